"""Signature-Input / Signature header codec.

Wire format::

    Signature-Input: sig1=("@authority" "@path"); created=1000; expires=1060;
        keyid="agent-42"; alg="ed25519"; nonce="ab12"; tag="agent-browser-auth"
    Signature: sig1=:<base64>:

The parameter string after ``sig1=`` is echoed verbatim as the
``@signature-params`` line of the signature base. The parser hands that exact
substring back instead of re-serializing the parsed values.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

from . import crypto
from .config import DEFAULT_LABEL
from .errors import SignatureParseError

HEADER_SIGNATURE_INPUT = "Signature-Input"
HEADER_SIGNATURE = "Signature"
HEADER_SIGNATURE_AGENT = "Signature-Agent"

_ITEM_RE = re.compile(r'"([^"\\\s]+)"')
_PARAM_RE = re.compile(
    r'\s*;\s*([a-z][a-z0-9_.-]*)=(?:"([^"\\]*)"|(-?[0-9]+))'
)
_UNSAFE_CHARS = frozenset('"\\\r\n')


@dataclass(frozen=True)
class SignatureParameters:
    """Covered components plus the metadata bound into the signature."""

    components: tuple[str, ...]
    created: int | None
    expires: int | None
    keyid: str
    alg: str
    nonce: str | None = None
    tag: str | None = None


@dataclass(frozen=True)
class ParsedSignature:
    """Successful parse of the two signature headers."""

    params: SignatureParameters
    signature_params: str
    signature: bytes


@dataclass(frozen=True)
class ParseFailure:
    """Explicit parse-error variant; carries no partial parameters."""

    message: str


ParseResult = Union[ParsedSignature, ParseFailure]


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def _quoted(name: str, value: str) -> str:
    if any(ch in _UNSAFE_CHARS for ch in value):
        raise ValueError(f"{name} contains characters that cannot be quoted: {value!r}")
    return f'{name}="{value}"'


def serialize_params(params: SignatureParameters) -> str:
    """Render the parameter string that follows the label in Signature-Input.

    Raises:
        ValueError: If a value cannot be represented on the wire.
    """
    if params.created is None or params.expires is None:
        raise ValueError("created and expires are required")
    for component in params.components:
        if not _ITEM_RE.fullmatch(f'"{component}"'):
            raise ValueError(f"invalid component id: {component!r}")
    inner = " ".join(f'"{c}"' for c in params.components)
    parts = [
        f"({inner})",
        f"created={int(params.created)}",
        f"expires={int(params.expires)}",
        _quoted("keyid", params.keyid),
        _quoted("alg", params.alg),
    ]
    if params.nonce is not None:
        parts.append(_quoted("nonce", params.nonce))
    if params.tag is not None:
        parts.append(_quoted("tag", params.tag))
    return "; ".join(parts)


def format_signature_input(signature_params: str, label: str = DEFAULT_LABEL) -> str:
    return f"{label}={signature_params}"


def format_signature(signature: bytes, label: str = DEFAULT_LABEL) -> str:
    return f"{label}=:{crypto.b64encode(signature)}:"


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def _parse_components(inner: str) -> tuple[str, ...]:
    tokens = inner.split()
    if not tokens:
        raise SignatureParseError("empty component list")
    components = []
    for token in tokens:
        m = _ITEM_RE.fullmatch(token)
        if m is None:
            raise SignatureParseError(f"invalid component item: {token!r}")
        components.append(m.group(1))
    return tuple(components)


def _parse_parameters(rest: str) -> dict[str, int | str]:
    values: dict[str, int | str] = {}
    pos = 0
    while pos < len(rest):
        if not rest[pos:].strip():
            break
        m = _PARAM_RE.match(rest, pos)
        if m is None:
            raise SignatureParseError(f"invalid parameter near {rest[pos:pos + 20]!r}")
        name, quoted, number = m.groups()
        if name in values:
            raise SignatureParseError(f"duplicate parameter: {name}")
        values[name] = quoted if quoted is not None else int(number)
        pos = m.end()
    return values


def _parse_signature_input(header: str, label: str) -> tuple[SignatureParameters, str]:
    prefix = f"{label}="
    if not header.startswith(prefix):
        raise SignatureParseError(f"Signature-Input is missing label {label!r}")
    signature_params = header[len(prefix):]
    if not signature_params.startswith("("):
        raise SignatureParseError("component list must start with '('")
    close = signature_params.find(")")
    if close == -1:
        raise SignatureParseError("unbalanced component list")
    components = _parse_components(signature_params[1:close])
    values = _parse_parameters(signature_params[close + 1:])

    keyid = values.get("keyid")
    alg = values.get("alg")
    if not isinstance(keyid, str) or not keyid:
        raise SignatureParseError("keyid is required")
    if not isinstance(alg, str) or not alg:
        raise SignatureParseError("alg is required")

    # Quoted timestamps are syntactically fine but unusable; the verifier
    # reports them as invalid timestamps.
    created = values.get("created")
    expires = values.get("expires")
    nonce = values.get("nonce")
    tag = values.get("tag")
    params = SignatureParameters(
        components=components,
        created=created if isinstance(created, int) else None,
        expires=expires if isinstance(expires, int) else None,
        keyid=keyid,
        alg=alg,
        nonce=nonce if isinstance(nonce, str) else None,
        tag=tag if isinstance(tag, str) else None,
    )
    return params, signature_params


def _parse_signature(header: str, label: str) -> bytes:
    m = re.fullmatch(re.escape(label) + r"=:([^:]*):", header)
    if m is None:
        raise SignatureParseError(f"Signature must be {label}=:<base64>:")
    try:
        signature = crypto.b64decode(m.group(1))
    except ValueError as exc:
        raise SignatureParseError(str(exc)) from exc
    if not signature:
        raise SignatureParseError("empty signature")
    return signature


def parse_signature_headers(
    signature_input: str,
    signature: str,
    label: str = DEFAULT_LABEL,
) -> ParseResult:
    """Parse the Signature-Input and Signature header values.

    Fails closed: any syntax problem yields a ParseFailure and no parameters.

    Args:
        signature_input: Raw Signature-Input header value.
        signature: Raw Signature header value.
        label: Signature label expected in both headers.

    Returns:
        ParsedSignature on success, ParseFailure otherwise.
    """
    try:
        params, signature_params = _parse_signature_input(signature_input.strip(), label)
        signature_bytes = _parse_signature(signature.strip(), label)
    except SignatureParseError as exc:
        return ParseFailure(str(exc))
    return ParsedSignature(
        params=params,
        signature_params=signature_params,
        signature=signature_bytes,
    )
