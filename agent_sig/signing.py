"""Outbound request signing.

Produces the Signature-Input, Signature and Signature-Agent headers for one
request. Stateless apart from reading the clock and the random source.
"""

from __future__ import annotations

import logging
import time

from . import crypto
from .canonical import SIGNED_COMPONENTS, build_signature_base, resolve_components
from .config import BROWSER_TAG, DEFAULT_ALGORITHM, DEFAULT_FRESHNESS_WINDOW, DEFAULT_LABEL
from .headers import (
    HEADER_SIGNATURE,
    HEADER_SIGNATURE_AGENT,
    HEADER_SIGNATURE_INPUT,
    SignatureParameters,
    format_signature,
    format_signature_input,
    serialize_params,
)

logger = logging.getLogger(__name__)

_SIGNERS = {
    DEFAULT_ALGORITHM: crypto.ed25519_sign,
}


def sign_request(
    private_key: bytes,
    authority: str,
    path: str,
    key_id: str,
    algorithm: str = DEFAULT_ALGORITHM,
    tag: str | None = BROWSER_TAG,
    *,
    agent_name: str | None = None,
    window: int = DEFAULT_FRESHNESS_WINDOW,
    created: int | None = None,
    expires: int | None = None,
    nonce: str | None = None,
    label: str = DEFAULT_LABEL,
) -> dict[str, str]:
    """Sign a request's authority and path and return the headers to attach.

    Args:
        private_key: 32-byte Ed25519 seed (or 64-byte seed || public key).
        authority: Scheme-less ``host[:port]`` the request targets.
        path: Request path including the query string, exactly as sent.
        key_id: Registered key identifier.
        algorithm: Signature algorithm; only ``ed25519`` is implemented.
        tag: Intent label bound into the signature, or None to omit it.
        agent_name: Advisory Signature-Agent value. Defaults to ``key_id``.
        window: Seconds between ``created`` and ``expires``.
        created: Unix timestamp. Defaults to now.
        expires: Unix timestamp. Defaults to ``created + window``.
        nonce: Hex nonce. A fresh one is generated if None.
        label: Signature label.

    Returns:
        Dict of HTTP headers: Signature-Input, Signature, Signature-Agent.

    Raises:
        ValueError: If the algorithm is unsupported or ``expires <= created``.
        InternalFailure: If no nonce could be generated.
    """
    sign = _SIGNERS.get(algorithm.lower())
    if sign is None:
        raise ValueError(f"Unsupported algorithm: {algorithm!r}")

    if created is None:
        created = int(time.time())
    if expires is None:
        expires = created + window
    if expires <= created:
        raise ValueError("expires must be later than created")
    if nonce is None:
        nonce = crypto.generate_nonce()

    params = SignatureParameters(
        components=SIGNED_COMPONENTS,
        created=created,
        expires=expires,
        keyid=key_id,
        alg=algorithm,
        nonce=nonce,
        tag=tag,
    )
    signature_params = serialize_params(params)
    base = build_signature_base(
        params.components,
        resolve_components(params.components, authority, path),
        signature_params,
    )

    logger.debug(
        "Signing request for keyid=%s (private key length %d)\n%s",
        key_id, len(private_key), base,
    )
    signature = sign(private_key, base.encode("utf-8"))

    return {
        HEADER_SIGNATURE_INPUT: format_signature_input(signature_params, label),
        HEADER_SIGNATURE: format_signature(signature, label),
        HEADER_SIGNATURE_AGENT: agent_name if agent_name is not None else key_id,
    }
