"""Inbound request verification.

A single pass over the request, each step either advancing or rejecting:

1. both signature headers present
2. headers parse and cover the required components
3. keyid resolves in the registry
4. created/expires are sane for the verifier's clock
5. signature base rebuilt from the verifier's own view of the request
6. declared algorithm matches the registry, signature verifies
7. (optional) tag allowed for the method, nonce not replayed

Authentication failures come back as a VerificationResult; only
InternalFailure (broken registry storage and the like) is raised.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from . import crypto
from .cache import NonceCache
from .canonical import (
    SIGNED_COMPONENTS,
    SUPPORTED_COMPONENTS,
    authority_from_url,
    build_signature_base,
    path_from_url,
    resolve_components,
)
from .config import DEFAULT_ALGORITHM, DEFAULT_LABEL, SignaturePolicy, TagPolicy
from .errors import RejectReason
from .headers import (
    HEADER_SIGNATURE,
    HEADER_SIGNATURE_AGENT,
    HEADER_SIGNATURE_INPUT,
    ParseFailure,
    parse_signature_headers,
)
from .registry import KeyRegistry

logger = logging.getLogger(__name__)

_VERIFIERS: dict[str, Callable[[bytes, bytes, bytes], bool]] = {
    DEFAULT_ALGORITHM: crypto.ed25519_verify,
}
_SIGNATURE_LENGTHS = {
    DEFAULT_ALGORITHM: crypto.SIGNATURE_LENGTH,
}

GENERIC_ERROR = "invalid_signature"
GENERIC_MESSAGE = "Signature verification failed"


@dataclass(frozen=True)
class SignedRequest:
    """The verifier's own view of an inbound request.

    ``authority`` and ``path`` must come from what the server actually
    received, never from values the client asserts elsewhere.
    """

    authority: str
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    method: str = "GET"

    def header(self, name: str) -> str | None:
        """Case-insensitive header lookup."""
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None

    @classmethod
    def from_url(
        cls,
        url: str,
        headers: Mapping[str, str],
        method: str = "GET",
    ) -> "SignedRequest":
        return cls(
            authority=authority_from_url(url),
            path=path_from_url(url),
            headers=dict(headers),
            method=method.upper(),
        )

    @classmethod
    def from_httpx(cls, request: Any) -> "SignedRequest":
        """Build from an ``httpx.Request`` as seen on the wire."""
        return cls(
            authority=request.url.netloc.decode("ascii"),
            path=request.url.raw_path.decode("ascii"),
            headers=dict(request.headers),
            method=request.method,
        )


@dataclass(frozen=True)
class AgentContext:
    """Identity attached to an accepted request for downstream handlers."""

    key_id: str
    name: str
    tag: str | None = None
    nonce: str | None = None
    claimed_agent: str | None = None


@dataclass(frozen=True)
class VerificationResult:
    """Valid(agent) or Invalid(reason, message)."""

    agent: AgentContext | None = None
    reason: RejectReason | None = None
    message: str = ""

    @classmethod
    def accepted(cls, agent: AgentContext) -> "VerificationResult":
        return cls(agent=agent)

    @classmethod
    def rejected(cls, reason: RejectReason, message: str) -> "VerificationResult":
        return cls(reason=reason, message=message)

    @property
    def valid(self) -> bool:
        return self.agent is not None

    @property
    def agent_id(self) -> str | None:
        return self.agent.key_id if self.agent is not None else None

    def __bool__(self) -> bool:
        return self.valid


def rejection_body(result: VerificationResult, expose_reason: bool = False) -> dict[str, str]:
    """JSON body for the host's 401 response.

    The specific reason is only included when ``expose_reason`` is set
    (local development); otherwise every failure looks the same so callers
    cannot tell which check tripped.
    """
    if result.valid:
        raise ValueError("result is not a rejection")
    if expose_reason and result.reason is not None:
        return {"error": result.reason.value, "message": result.message}
    return {"error": GENERIC_ERROR, "message": GENERIC_MESSAGE}


class Verifier:
    """Verifies signed requests against a KeyRegistry.

    Holds no mutable state of its own beyond the optional nonce cache, so one
    instance can serve concurrent requests.
    """

    def __init__(
        self,
        registry: KeyRegistry,
        clock: Callable[[], float] = time.time,
        policy: SignaturePolicy | None = None,
        tag_policy: TagPolicy | None = None,
        nonce_cache: NonceCache | None = None,
        label: str = DEFAULT_LABEL,
    ) -> None:
        self._registry = registry
        self._clock = clock
        self._policy = policy if policy is not None else SignaturePolicy()
        self._tag_policy = tag_policy
        self._nonce_cache = nonce_cache
        self._label = label

    @property
    def policy(self) -> SignaturePolicy:
        return self._policy

    def _reject(
        self,
        reason: RejectReason,
        message: str,
        key_id: str | None = None,
    ) -> VerificationResult:
        logger.warning("Signature rejected (%s) keyid=%s: %s", reason.value, key_id, message)
        return VerificationResult.rejected(reason, message)

    def verify(self, request: SignedRequest) -> VerificationResult:
        """Verify one inbound request.

        Args:
            request: The verifier's view of the request.

        Returns:
            VerificationResult; accepted results carry the AgentContext.

        Raises:
            InternalFailure: If the registry cannot be read.
        """
        # Headers
        signature_input = request.header(HEADER_SIGNATURE_INPUT)
        signature = request.header(HEADER_SIGNATURE)
        if not signature_input or not signature:
            return self._reject(
                RejectReason.MISSING_HEADERS,
                "Signature-Input and Signature headers are required",
            )

        # Parameters
        parsed = parse_signature_headers(signature_input, signature, self._label)
        if isinstance(parsed, ParseFailure):
            return self._reject(RejectReason.MALFORMED_SIGNATURE, parsed.message)
        params = parsed.params
        components = params.components
        unsupported = [c for c in components if c not in SUPPORTED_COMPONENTS]
        if unsupported:
            return self._reject(
                RejectReason.MALFORMED_SIGNATURE,
                f"Unsupported components: {', '.join(unsupported)}",
                params.keyid,
            )
        if len(set(components)) != len(components):
            return self._reject(
                RejectReason.MALFORMED_SIGNATURE, "Duplicate components", params.keyid,
            )
        uncovered = [c for c in SIGNED_COMPONENTS if c not in components]
        if uncovered:
            return self._reject(
                RejectReason.MALFORMED_SIGNATURE,
                f"Signature must cover {', '.join(uncovered)}",
                params.keyid,
            )
        if self._nonce_cache is not None and not params.nonce:
            return self._reject(
                RejectReason.MALFORMED_SIGNATURE, "nonce is required", params.keyid,
            )

        # Agent
        agent = self._registry.resolve(params.keyid)
        if agent is None:
            return self._reject(
                RejectReason.UNKNOWN_AGENT,
                f'Agent with keyid "{params.keyid}" not found in registry',
                params.keyid,
            )

        # Timestamps
        now = int(self._clock())
        created, expires = params.created, params.expires
        if created is None or expires is None or created <= 0 or expires <= 0:
            return self._reject(
                RejectReason.INVALID_TIMESTAMP,
                "Signature must include numeric created and expires parameters",
                params.keyid,
            )
        if expires <= created:
            return self._reject(
                RejectReason.INVALID_TIMESTAMP,
                "Signature expires must be later than created",
                params.keyid,
            )
        if created > now + self._policy.clock_skew:
            return self._reject(
                RejectReason.SIGNATURE_FROM_FUTURE,
                "Signature created timestamp is in the future",
                params.keyid,
            )
        if expires < now:
            return self._reject(
                RejectReason.SIGNATURE_EXPIRED, "Signature has expired", params.keyid,
            )
        if expires - created > self._policy.max_validity:
            return self._reject(
                RejectReason.VALIDITY_WINDOW_TOO_LONG,
                f"Signature validity period exceeds {self._policy.max_validity} seconds",
                params.keyid,
            )

        # Base
        base = build_signature_base(
            components,
            resolve_components(components, request.authority, request.path),
            parsed.signature_params,
        )
        logger.debug("Verifying keyid=%s against base:\n%s", params.keyid, base)

        # Crypto
        declared = params.alg.lower()
        if declared != agent.algorithm.lower():
            return self._reject(
                RejectReason.ALGORITHM_MISMATCH,
                f"Declared algorithm {params.alg!r} does not match registered {agent.algorithm!r}",
                params.keyid,
            )
        verify = _VERIFIERS.get(declared)
        if verify is None:
            return self._reject(
                RejectReason.ALGORITHM_MISMATCH,
                f"Algorithm {params.alg!r} is not supported",
                params.keyid,
            )
        if len(parsed.signature) != _SIGNATURE_LENGTHS[declared]:
            return self._reject(
                RejectReason.MALFORMED_SIGNATURE,
                f"Signature must be {_SIGNATURE_LENGTHS[declared]} bytes, got {len(parsed.signature)}",
                params.keyid,
            )
        if not verify(agent.public_key, base.encode("utf-8"), parsed.signature):
            return self._reject(
                RejectReason.INVALID_SIGNATURE, "Signature verification failed", params.keyid,
            )

        # Policy
        if self._tag_policy is not None and not self._tag_policy.permits(params.tag, request.method):
            return self._reject(
                RejectReason.TAG_NOT_PERMITTED,
                f"Tag {params.tag!r} does not permit {request.method.upper()}",
                params.keyid,
            )
        if self._nonce_cache is not None and not self._nonce_cache.check_and_record(
            params.keyid, params.nonce, now=now,
        ):
            return self._reject(
                RejectReason.REPLAYED_NONCE, "Nonce has already been used", params.keyid,
            )

        logger.info("Signature accepted for %s (%s)", agent.name, agent.key_id)
        return VerificationResult.accepted(AgentContext(
            key_id=agent.key_id,
            name=agent.name,
            tag=params.tag,
            nonce=params.nonce,
            claimed_agent=request.header(HEADER_SIGNATURE_AGENT),
        ))
