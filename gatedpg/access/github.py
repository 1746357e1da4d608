"""GitHub REST lookups used for identity resolution and membership checks.

Membership lookups never raise: each returns a MembershipResult tagged as
found, not found, or transport error, so callers can tell an explicit "no"
from an unreachable API.
"""
import asyncio
import logging
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import httpx

from gatedpg.access.policy import Identity
from gatedpg.config import config
from gatedpg.errors import ConfigurationError, MembershipNotFound, TransportError

logger = logging.getLogger(__name__)

_USER_AGENT = "gatedpg-mcp"


class MembershipStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    TRANSPORT_ERROR = "transport_error"
    CONFIGURATION_ERROR = "configuration_error"


@dataclass(frozen=True)
class MembershipResult:
    status: MembershipStatus
    value: Optional[str] = None  # org login for owner lookups
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.status == MembershipStatus.FOUND


@dataclass(frozen=True)
class MembershipQuery:
    organization: str
    identity: Identity


class GitHubClient:
    """Thin async client over the GitHub REST API.

    Pass ``transport`` to route requests somewhere other than the network
    (tests use httpx.MockTransport).
    """

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self._base_url = base_url or config.github_api_url
        self._timeout = timeout if timeout is not None else config.github_timeout
        self._transport = transport
        # AsyncClient connections are bound to the loop that opened them
        self._clients: "weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, httpx.AsyncClient]" = (
            weakref.WeakKeyDictionary()
        )

    def _client(self) -> httpx.AsyncClient:
        loop = asyncio.get_running_loop()
        client = self._clients.get(loop)
        if client is None or client.is_closed:
            client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
                headers={
                    "Accept": "application/vnd.github+json",
                    "User-Agent": _USER_AGENT,
                    "X-GitHub-Api-Version": "2022-11-28",
                },
            )
            self._clients[loop] = client
        return client

    async def aclose(self):
        """Close the client owned by the running loop."""
        client = self._clients.pop(asyncio.get_running_loop(), None)
        if client is not None:
            await client.aclose()

    async def _get(
        self, path: str, token: str = None, auth: tuple[str, str] = None
    ) -> httpx.Response:
        """GET ``path``. Raises MembershipNotFound on 404, TransportError otherwise."""
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            resp = await self._client().get(path, headers=headers, auth=auth)
        except httpx.HTTPError as e:
            raise TransportError(f"GitHub request to {path} failed: {e}") from e

        if resp.status_code == 404:
            raise MembershipNotFound(f"GitHub returned 404 for {path}")
        if not resp.is_success:
            raise TransportError(
                f"GitHub returned {resp.status_code} for {path}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        return resp

    async def get_authenticated_user(self, token: str) -> dict[str, Any]:
        """Return the profile behind ``token`` (GET /user)."""
        if not token:
            raise ConfigurationError("No GitHub access token for this session")
        try:
            resp = await self._get("/user", token=token)
        except MembershipNotFound as e:
            raise TransportError(str(e), status_code=404) from e
        return resp.json()

    async def resolve_identity(self, token: str) -> Identity:
        user = await self.get_authenticated_user(token)
        return Identity(
            handle=user.get("login") or "",
            display_name=user.get("name") or "",
            email=user.get("email") or "",
            credential=token,
        )

    async def get_app_owner(self, client_id: str, client_secret: str) -> MembershipResult:
        """Find the organization that owns the OAuth app.

        Authenticates with the app's own credentials, not the user's token.
        A user-owned app yields NOT_FOUND.
        """
        if not client_id or not client_secret:
            return MembershipResult(
                MembershipStatus.CONFIGURATION_ERROR,
                detail="GITHUB_CLIENT_ID and GITHUB_CLIENT_SECRET are required",
            )
        try:
            resp = await self._get(f"/apps/{client_id}", auth=(client_id, client_secret))
            owner = (resp.json() or {}).get("owner") or {}
        except MembershipNotFound as e:
            return MembershipResult(MembershipStatus.NOT_FOUND, detail=str(e))
        except (TransportError, ValueError) as e:
            return MembershipResult(MembershipStatus.TRANSPORT_ERROR, detail=str(e))

        if owner.get("type") != "Organization" or not owner.get("login"):
            return MembershipResult(
                MembershipStatus.NOT_FOUND,
                detail=f"App owner {owner.get('login')!r} is a {owner.get('type')}, "
                "not an organization",
            )
        return MembershipResult(MembershipStatus.FOUND, value=owner["login"])

    async def check_public_membership(self, query: MembershipQuery) -> MembershipResult:
        """Is the user a public member of the org? (204 yes, 404 no)"""
        path = f"/orgs/{query.organization}/public_members/{query.identity.handle}"
        try:
            await self._get(path, token=query.identity.credential)
        except MembershipNotFound as e:
            return MembershipResult(MembershipStatus.NOT_FOUND, detail=str(e))
        except TransportError as e:
            return MembershipResult(MembershipStatus.TRANSPORT_ERROR, detail=str(e))
        return MembershipResult(MembershipStatus.FOUND, value=query.organization)

    async def check_membership(self, query: MembershipQuery) -> MembershipResult:
        """Membership of the authenticated user, public or private.

        Uses the user's own token, so private memberships are visible. Only an
        active membership counts; a pending invitation is NOT_FOUND.
        """
        path = f"/user/memberships/orgs/{query.organization}"
        try:
            resp = await self._get(path, token=query.identity.credential)
            state = (resp.json() or {}).get("state")
        except MembershipNotFound as e:
            return MembershipResult(MembershipStatus.NOT_FOUND, detail=str(e))
        except (TransportError, ValueError) as e:
            return MembershipResult(MembershipStatus.TRANSPORT_ERROR, detail=str(e))

        if state != "active":
            return MembershipResult(
                MembershipStatus.NOT_FOUND,
                detail=f"Membership in {query.organization} is {state!r}",
            )
        return MembershipResult(MembershipStatus.FOUND, value=query.organization)
