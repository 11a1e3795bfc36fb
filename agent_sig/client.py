"""Async HTTP client for the merchant's agent registration endpoint."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from .config import REGISTRATION_PATH

if TYPE_CHECKING:
    from .identity import AgentIdentity

logger = logging.getLogger(__name__)


class RegistryClient:
    """Client for the unauthenticated registration endpoint.

    Registration is the one call that is not signed: the server has no key
    to check it against yet.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    async def register_agent(self, identity: "AgentIdentity") -> dict:
        """Register an identity's public key.

        Args:
            identity: The agent identity to register.

        Returns:
            Response body, e.g. ``{"success": true, "agent": {...}}``.

        Raises:
            httpx.HTTPStatusError: If the server rejects the registration.
        """
        async with httpx.AsyncClient(transport=self._transport) as client:
            resp = await client.post(
                f"{self._base_url}{REGISTRATION_PATH}",
                json=identity.registration_payload(),
            )
            resp.raise_for_status()
        identity.mark_registered()
        logger.info("Registered agent %s (%s)", identity.name, identity.key_id)
        return resp.json()
