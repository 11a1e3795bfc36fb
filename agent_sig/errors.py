"""Exceptions and the rejection-reason taxonomy."""

from __future__ import annotations

import enum


class AgentSigError(Exception):
    """Base class for all agent_sig errors."""


class SignatureParseError(AgentSigError):
    """Raised inside the header parser when a header is malformed."""


class InternalFailure(AgentSigError):
    """Raised when the system itself is broken (RNG, registry storage).

    Distinct from an authentication rejection: the request was not judged.
    """


class RegistrationError(AgentSigError, ValueError):
    """Raised when a registration body cannot be accepted."""


class ConfigError(AgentSigError, ValueError):
    """Raised when a policy value is invalid."""


class RejectReason(str, enum.Enum):
    """Terminal verification failures."""

    MISSING_HEADERS = "MissingHeaders"
    MALFORMED_SIGNATURE = "MalformedSignature"
    UNKNOWN_AGENT = "UnknownAgent"
    INVALID_TIMESTAMP = "InvalidTimestamp"
    SIGNATURE_FROM_FUTURE = "SignatureFromFuture"
    SIGNATURE_EXPIRED = "SignatureExpired"
    VALIDITY_WINDOW_TOO_LONG = "ValidityWindowTooLong"
    ALGORITHM_MISMATCH = "AlgorithmMismatch"
    INVALID_SIGNATURE = "InvalidSignature"
    TAG_NOT_PERMITTED = "TagNotPermitted"
    REPLAYED_NONCE = "ReplayedNonce"
