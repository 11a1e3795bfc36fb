"""High-level Agent: signed HTTP calls to a merchant API.

Every outbound request is signed by ``SignatureAuth`` from the URL exactly as
httpx will put it on the wire, so the server rebuilds the same base.
"""

from __future__ import annotations

from typing import Any, Generator

import httpx

from .client import RegistryClient
from .config import BROWSER_TAG, PAYER_TAG
from .identity import AgentIdentity

_READ_METHODS = frozenset({"GET", "HEAD"})


def default_tag(method: str) -> str:
    """Reads browse; anything that mutates state is a paying action."""
    return BROWSER_TAG if method.upper() in _READ_METHODS else PAYER_TAG


class SignatureAuth(httpx.Auth):
    """httpx auth flow that attaches Signature-Input/Signature/Signature-Agent.

    Args:
        identity: Identity holding the private key.
        tag: Fixed tag for every request, or None to pick by method.
    """

    def __init__(self, identity: AgentIdentity, tag: str | None = None) -> None:
        self._identity = identity
        self._tag = tag

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        tag = self._tag if self._tag is not None else default_tag(request.method)
        headers = self._identity.sign_request(
            request.url.netloc.decode("ascii"),
            request.url.raw_path.decode("ascii"),
            tag,
        )
        request.headers.update(headers)
        yield request


class _HttpNamespace:
    """Namespace for HTTP methods on Agent, providing auto-signed requests."""

    def __init__(self, agent: "Agent") -> None:
        self._agent = agent

    async def request(
        self,
        method: str,
        path: str,
        json: Any = None,
        tag: str | None = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """Send an auto-signed request to ``base_url + path``.

        Args:
            method: HTTP method.
            path: Path and query relative to the agent's base URL.
            json: Optional JSON body.
            tag: Override the intent tag for this request.
            **kwargs: Additional keyword arguments passed to httpx.

        Returns:
            httpx.Response object.
        """
        auth = SignatureAuth(self._agent.identity, tag)
        async with self._agent._client() as client:
            return await client.request(
                method, f"{self._agent.base_url}{path}", json=json, auth=auth, **kwargs,
            )

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, body: Any = None, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, json=body, **kwargs)

    async def put(self, path: str, body: Any = None, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, json=body, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)


class Agent:
    """An agent identity bound to one merchant API.

    Example::

        identity = AgentIdentity.generate("shopping-agent")
        agent = Agent(identity, "http://localhost:8000")
        await agent.register()
        resp = await agent.http.get("/api/products?q=laptop")
    """

    def __init__(
        self,
        identity: AgentIdentity,
        base_url: str = "http://localhost:8000",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._identity = identity
        self._base_url = base_url.rstrip("/")
        self._transport = transport
        self._registry = RegistryClient(self._base_url, transport=transport)
        self.http = _HttpNamespace(self)

    @property
    def identity(self) -> AgentIdentity:
        return self._identity

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def key_id(self) -> str:
        return self._identity.key_id

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=self._transport)

    async def register(self) -> dict:
        """Register this agent's public key with the merchant."""
        return await self._registry.register_agent(self._identity)
