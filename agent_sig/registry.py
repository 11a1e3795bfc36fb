"""Key registry: key identifier -> registered agent.

The registry is an explicit object created once per process and handed to
the verifier. Storage is any mutable mapping (a dict by default); a lock
serialises access so registration and verification can race safely.
Re-registering a key id overwrites the previous entry (last write wins).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, MutableMapping
from urllib.parse import urlsplit

from . import crypto
from .config import DEFAULT_ALGORITHM, REGISTRATION_PATH
from .errors import InternalFailure, RegistrationError

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = frozenset({DEFAULT_ALGORITHM})


@dataclass(frozen=True)
class RegisteredAgent:
    """Public key material and metadata for one signing identity."""

    key_id: str
    name: str
    public_key: bytes
    algorithm: str
    registered_at: datetime

    def to_dict(self) -> dict[str, str]:
        return {
            "keyid": self.key_id,
            "name": self.name,
            "publicKey": crypto.hex_encode(self.public_key),
            "algorithm": self.algorithm,
            "registeredAt": self.registered_at.isoformat(),
        }


class KeyRegistry:
    """Concurrency-safe mapping of key id to RegisteredAgent."""

    def __init__(self, store: MutableMapping[str, RegisteredAgent] | None = None) -> None:
        self._store: MutableMapping[str, RegisteredAgent] = store if store is not None else {}
        self._lock = threading.RLock()

    def register(
        self,
        key_id: str,
        name: str,
        public_key: bytes,
        algorithm: str = DEFAULT_ALGORITHM,
    ) -> RegisteredAgent:
        """Insert or overwrite the entry for ``key_id``.

        Raises:
            InternalFailure: If the backing store fails.
        """
        agent = RegisteredAgent(
            key_id=key_id,
            name=name,
            public_key=bytes(public_key),
            algorithm=algorithm,
            registered_at=datetime.now(timezone.utc),
        )
        with self._lock:
            try:
                replaced = key_id in self._store
                self._store[key_id] = agent
            except Exception as exc:
                raise InternalFailure(f"registry store failed on register: {exc}") from exc
        logger.info(
            "Agent %s: %s (%s)", "re-registered" if replaced else "registered", name, key_id,
        )
        return agent

    def resolve(self, key_id: str) -> RegisteredAgent | None:
        """Return the agent for ``key_id``, or None when it is not registered.

        Raises:
            InternalFailure: If the backing store fails.
        """
        with self._lock:
            try:
                return self._store.get(key_id)
            except Exception as exc:
                raise InternalFailure(f"registry store failed on resolve: {exc}") from exc

    def __contains__(self, key_id: object) -> bool:
        return isinstance(key_id, str) and self.resolve(key_id) is not None


# ---------------------------------------------------------------------------
# Unauthenticated registration endpoint
# ---------------------------------------------------------------------------

def is_registration_request(method: str, path: str) -> bool:
    """True only for ``POST`` to the registration path; query string ignored."""
    return method.upper() == "POST" and urlsplit(path).path == REGISTRATION_PATH


def _required_str(body: Mapping[str, Any], field: str) -> str:
    value = body.get(field)
    if not isinstance(value, str) or not value.strip():
        raise RegistrationError(f"Missing required field: {field}")
    return value


def handle_registration(body: Mapping[str, Any], registry: KeyRegistry) -> dict[str, Any]:
    """Validate a registration body and insert it into the registry.

    This is the only mutation that skips signature verification: the agent
    has no registered key yet.

    Args:
        body: Decoded JSON with ``keyid``, ``name``, hex ``publicKey`` and an
            optional ``algorithm`` (defaults to ed25519).
        registry: The process registry.

    Returns:
        Response body ``{"success": True, "agent": {"keyid", "name"}}``.

    Raises:
        RegistrationError: If the body is incomplete or the key unusable.
    """
    if not isinstance(body, Mapping):
        raise RegistrationError("Registration body must be a JSON object")
    missing = [f for f in ("keyid", "name", "publicKey") if not body.get(f)]
    if missing:
        raise RegistrationError(f"Missing required fields: {', '.join(missing)}")

    key_id = _required_str(body, "keyid")
    name = _required_str(body, "name")
    public_key_hex = _required_str(body, "publicKey")

    algorithm = body.get("algorithm") or DEFAULT_ALGORITHM
    if not isinstance(algorithm, str) or algorithm.lower() not in SUPPORTED_ALGORITHMS:
        raise RegistrationError(f"Unsupported algorithm: {algorithm!r}")

    try:
        public_key = crypto.hex_decode(public_key_hex)
    except ValueError as exc:
        raise RegistrationError("publicKey must be hex-encoded") from exc
    if len(public_key) != crypto.PUBLIC_KEY_LENGTH:
        raise RegistrationError(
            f"publicKey must be {crypto.PUBLIC_KEY_LENGTH} bytes, got {len(public_key)}"
        )

    agent = registry.register(key_id, name, public_key, algorithm.lower())
    return {"success": True, "agent": {"keyid": agent.key_id, "name": agent.name}}
