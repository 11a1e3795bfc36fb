"""HTTP message signatures for autonomous agents.

Sign outbound agent requests and verify them on the merchant side with
Ed25519 signatures over ``@authority``, ``@path`` and the signature
parameters.
"""

from .agent import Agent, SignatureAuth
from .cache import NonceCache
from .canonical import build_signature_base
from .client import RegistryClient
from .config import SignaturePolicy, TagPolicy
from .crypto import generate_keypair, KeyPair
from .errors import (
    AgentSigError,
    ConfigError,
    InternalFailure,
    RegistrationError,
    RejectReason,
)
from .headers import (
    SignatureParameters,
    ParsedSignature,
    ParseFailure,
    parse_signature_headers,
    serialize_params,
)
from .identity import AgentIdentity
from .registry import KeyRegistry, RegisteredAgent, handle_registration, is_registration_request
from .signing import sign_request
from .verifier import (
    AgentContext,
    SignedRequest,
    VerificationResult,
    Verifier,
    rejection_body,
)

__all__ = [
    "Agent",
    "SignatureAuth",
    "NonceCache",
    "build_signature_base",
    "RegistryClient",
    "SignaturePolicy",
    "TagPolicy",
    "generate_keypair",
    "KeyPair",
    "AgentSigError",
    "ConfigError",
    "InternalFailure",
    "RegistrationError",
    "RejectReason",
    "SignatureParameters",
    "ParsedSignature",
    "ParseFailure",
    "parse_signature_headers",
    "serialize_params",
    "AgentIdentity",
    "KeyRegistry",
    "RegisteredAgent",
    "handle_registration",
    "is_registration_request",
    "sign_request",
    "AgentContext",
    "SignedRequest",
    "VerificationResult",
    "Verifier",
    "rejection_body",
]
__version__ = "0.1.0"
