"""Signature policy constants and their environment overrides.

Environment variables (all integers, seconds):

- AGENT_SIG_FRESHNESS_WINDOW: lifetime the signer gives each signature.
- AGENT_SIG_CLOCK_SKEW: how far in the future ``created`` may be.
- AGENT_SIG_MAX_VALIDITY: longest ``expires - created`` the verifier accepts.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from .errors import ConfigError

# Constants
DEFAULT_FRESHNESS_WINDOW = 60
CLOCK_SKEW_TOLERANCE = 60
MAX_VALIDITY_SECONDS = 300

DEFAULT_ALGORITHM = "ed25519"
DEFAULT_LABEL = "sig1"

BROWSER_TAG = "agent-browser-auth"
PAYER_TAG = "agent-payer-auth"

REGISTRATION_PATH = "/api/registry/register"

ENV_FRESHNESS_WINDOW = "AGENT_SIG_FRESHNESS_WINDOW"
ENV_CLOCK_SKEW = "AGENT_SIG_CLOCK_SKEW"
ENV_MAX_VALIDITY = "AGENT_SIG_MAX_VALIDITY"


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class SignaturePolicy:
    """Timing policy shared by the signer and the verifier."""

    freshness_window: int = DEFAULT_FRESHNESS_WINDOW
    clock_skew: int = CLOCK_SKEW_TOLERANCE
    max_validity: int = MAX_VALIDITY_SECONDS

    def __post_init__(self) -> None:
        for name in ("freshness_window", "clock_skew", "max_validity"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive")
        if self.freshness_window > self.max_validity:
            raise ConfigError("freshness_window cannot exceed max_validity")

    @classmethod
    def from_env(cls) -> "SignaturePolicy":
        """Build a policy from environment variables, falling back to defaults."""
        return cls(
            freshness_window=_env_int(ENV_FRESHNESS_WINDOW, DEFAULT_FRESHNESS_WINDOW),
            clock_skew=_env_int(ENV_CLOCK_SKEW, CLOCK_SKEW_TOLERANCE),
            max_validity=_env_int(ENV_MAX_VALIDITY, MAX_VALIDITY_SECONDS),
        )


@dataclass(frozen=True)
class TagPolicy:
    """Explicit mapping of signature tag to the HTTP methods it allows.

    Intent is never inferred from the route; a tag absent from the mapping
    allows nothing.
    """

    allowed: Mapping[str, frozenset[str]] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, allowed: Mapping[str, Iterable[str]]) -> "TagPolicy":
        return cls({
            tag: frozenset(m.upper() for m in methods)
            for tag, methods in allowed.items()
        })

    @classmethod
    def default(cls) -> "TagPolicy":
        """Browsing agents read; paying agents may also mutate."""
        return cls.from_mapping({
            BROWSER_TAG: ("GET", "HEAD"),
            PAYER_TAG: ("GET", "HEAD", "POST", "PUT", "DELETE"),
        })

    def permits(self, tag: str | None, method: str) -> bool:
        if tag is None:
            return False
        return method.upper() in self.allowed.get(tag, frozenset())
