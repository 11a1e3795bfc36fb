"""AgentIdentity: the signing side's keyid, display name and keypair."""

from __future__ import annotations

import json
import os
import time
from datetime import datetime, timezone
from pathlib import Path

from . import crypto
from .config import BROWSER_TAG, DEFAULT_ALGORITHM, SignaturePolicy
from .signing import sign_request


class AgentIdentity:
    """Represents an agent's signing identity.

    Holds a key id, a display name and an Ed25519 keypair. The private key
    never leaves this object except through ``to_config`` for local storage.
    Signatures are valid for ``policy.freshness_window`` seconds.
    """

    def __init__(
        self,
        key_id: str,
        name: str,
        private_key: bytes | None,
        public_key: bytes,
        algorithm: str = DEFAULT_ALGORITHM,
        registered_at: str | None = None,
        policy: SignaturePolicy | None = None,
    ) -> None:
        if not key_id:
            raise ValueError("key_id must not be empty")
        if len(public_key) != crypto.PUBLIC_KEY_LENGTH:
            raise ValueError(f"public_key must be {crypto.PUBLIC_KEY_LENGTH} bytes")
        self._key_id = key_id
        self._name = name
        self._private_key = private_key
        self._public_key = public_key
        self._algorithm = algorithm
        self.registered_at = registered_at
        self._policy = policy if policy is not None else SignaturePolicy()

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def generate(
        cls,
        name: str,
        key_id: str | None = None,
        policy: SignaturePolicy | None = None,
    ) -> "AgentIdentity":
        """Create a fresh identity with a new keypair.

        Args:
            name: Display name sent at registration and in Signature-Agent.
            key_id: Key identifier. Defaults to ``agent-<epoch ms>``.
            policy: Signing policy. Defaults to ``SignaturePolicy()``.
        """
        if key_id is None:
            key_id = f"agent-{int(time.time() * 1000)}"
        private_key, public_key = crypto.generate_keypair()
        return cls(
            key_id=key_id,
            name=name,
            private_key=private_key,
            public_key=public_key,
            policy=policy,
        )

    @classmethod
    def from_private_key(
        cls,
        key_id: str,
        name: str,
        private_key_hex: str,
        policy: SignaturePolicy | None = None,
    ) -> "AgentIdentity":
        """Load an identity from a hex-encoded private key, deriving the public half."""
        private_key = crypto.hex_decode(private_key_hex)[:crypto.PRIVATE_KEY_LENGTH]
        return cls(
            key_id=key_id,
            name=name,
            private_key=private_key,
            public_key=crypto.public_key_from_private(private_key),
            policy=policy,
        )

    @classmethod
    def from_config(cls, config: dict, policy: SignaturePolicy | None = None) -> "AgentIdentity":
        """Restore an identity saved by ``to_config``."""
        identity = cls.from_private_key(
            config["keyId"], config["agentName"], config["privateKey"], policy,
        )
        if "publicKey" in config and crypto.hex_decode(config["publicKey"]) != identity._public_key:
            raise ValueError("publicKey in config does not match privateKey")
        identity.registered_at = config.get("registeredAt")
        return identity

    @classmethod
    def load(cls, path: str | os.PathLike, policy: SignaturePolicy | None = None) -> "AgentIdentity":
        """Read an identity from a JSON config file."""
        return cls.from_config(json.loads(Path(path).read_text(encoding="utf-8")), policy)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def key_id(self) -> str:
        return self._key_id

    @property
    def name(self) -> str:
        return self._name

    @property
    def algorithm(self) -> str:
        return self._algorithm

    @property
    def public_key(self) -> bytes:
        return self._public_key

    @property
    def policy(self) -> SignaturePolicy:
        return self._policy

    @property
    def public_key_hex(self) -> str:
        """The public key as hex, the encoding the registry expects."""
        return crypto.hex_encode(self._public_key)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def registration_payload(self) -> dict[str, str]:
        """Body for the registration endpoint."""
        return {
            "keyid": self._key_id,
            "name": self._name,
            "publicKey": self.public_key_hex,
            "algorithm": self._algorithm,
        }

    def mark_registered(self) -> None:
        self.registered_at = datetime.now(timezone.utc).isoformat()

    def to_config(self) -> dict:
        """Serialize for local storage, private key included.

        Raises:
            RuntimeError: If this identity has no private key.
        """
        if self._private_key is None:
            raise RuntimeError("Cannot export: no private key available")
        return {
            "keyId": self._key_id,
            "agentName": self._name,
            "privateKey": crypto.hex_encode(self._private_key),
            "publicKey": self.public_key_hex,
            "registeredAt": self.registered_at,
        }

    def save(self, path: str | os.PathLike) -> None:
        """Write the config file, readable by the owner only."""
        target = Path(path)
        target.write_text(json.dumps(self.to_config(), indent=2), encoding="utf-8")
        target.chmod(0o600)

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def sign_request(
        self,
        authority: str,
        path: str,
        tag: str | None = BROWSER_TAG,
    ) -> dict[str, str]:
        """Sign a request and return the headers to attach.

        Args:
            authority: ``host[:port]`` of the target.
            path: Path and query string exactly as they will be sent.
            tag: Intent label (browse vs pay).

        Raises:
            RuntimeError: If this identity has no private key.
        """
        if self._private_key is None:
            raise RuntimeError("Cannot sign: no private key available")
        return sign_request(
            self._private_key,
            authority,
            path,
            self._key_id,
            self._algorithm,
            tag,
            agent_name=self._name,
            window=self._policy.freshness_window,
        )

    def __repr__(self) -> str:
        return f"AgentIdentity(key_id={self._key_id!r}, name={self._name!r})"
