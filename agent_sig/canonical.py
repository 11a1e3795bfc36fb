"""Signature base construction.

The signature base is one line per covered component, in the order the
component list gives, followed by the ``@signature-params`` line:

    "@authority": localhost:8000
    "@path": /api/products?q=laptop
    "@signature-params": ("@authority" "@path"); created=...; ...

Lines are joined with a single newline and there is no trailing newline.
Signer and verifier must produce byte-identical output for the same request.
"""

from __future__ import annotations

from typing import Mapping, Sequence
from urllib.parse import urlsplit

AUTHORITY = "@authority"
PATH = "@path"
SIGNATURE_PARAMS = "@signature-params"

# Components this system knows how to resolve, in the order the signer covers them.
SIGNED_COMPONENTS = (AUTHORITY, PATH)
SUPPORTED_COMPONENTS = frozenset(SIGNED_COMPONENTS)


def build_signature_base(
    components: Sequence[str],
    values: Mapping[str, str],
    signature_params: str,
) -> str:
    """Render the canonical signature base.

    Args:
        components: Covered component ids, in wire order.
        values: Resolved value for every id in ``components``.
        signature_params: The parameter string exactly as it travels in
            ``Signature-Input`` after the label.

    Returns:
        The signature base string.

    Raises:
        KeyError: If a component has no resolved value.
    """
    lines = [f'"{component}": {values[component]}' for component in components]
    lines.append(f'"{SIGNATURE_PARAMS}": {signature_params}')
    return "\n".join(lines)


def resolve_components(
    components: Sequence[str],
    authority: str,
    path: str,
) -> dict[str, str]:
    """Map each covered component id to its value for one request.

    ``path`` is used verbatim and must include the query string as sent.

    Raises:
        ValueError: If a component id is not supported.
    """
    known = {AUTHORITY: authority, PATH: path}
    resolved: dict[str, str] = {}
    for component in components:
        if component not in known:
            raise ValueError(f"unsupported component: {component!r}")
        resolved[component] = known[component]
    return resolved


def authority_from_url(url: str) -> str:
    """Return the scheme-less ``host[:port]`` of a URL, as written."""
    netloc = urlsplit(url).netloc
    # Drop any userinfo; it is never part of the authority we sign.
    return netloc.rsplit("@", 1)[-1]


def path_from_url(url: str) -> str:
    """Return path plus query string of a URL, verbatim (no fragment)."""
    parts = urlsplit(url)
    path = parts.path or "/"
    if parts.query:
        path = f"{path}?{parts.query}"
    return path
