"""Per-session access state.

The access decision is computed once, on the first tool call of a session,
and reused for every later call in that session. Nothing is shared between
sessions.
"""
import asyncio
import logging
import weakref
from dataclasses import dataclass, field
from typing import Any, Optional

from mcp.server.auth.middleware.auth_context import get_access_token

from gatedpg.access.decider import AccessDecider, AccessDecision
from gatedpg.access.github import GitHubClient
from gatedpg.access.policy import AccessPolicy, Identity
from gatedpg.access.tool_guard import ToolAccessPolicy, resolve_tool_policy
from gatedpg.config import config
from gatedpg.errors import GatedPGError

logger = logging.getLogger(__name__)


@dataclass
class SessionGate:
    """Holds one session's identity and its (lazily computed) decision."""

    credential: str
    policy: AccessPolicy
    github: GitHubClient
    decider: AccessDecider
    identity: Optional[Identity] = None
    decision: Optional[AccessDecision] = None
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def resolve(self) -> AccessDecision:
        async with self._lock:
            if self.decision is not None:
                return self.decision

            try:
                self.identity = await self.github.resolve_identity(self.credential)
            except (GatedPGError, ValueError) as e:
                logger.warning(f"Could not resolve session identity: {e}")
                self.decision = AccessDecision(False, "identity unresolved")
                return self.decision

            self.decision = await self.decider.decide(self.identity, self.policy)
            logger.info(
                f"Session for {self.identity.handle}: "
                f"{'granted' if self.decision.granted else 'denied'} "
                f"({self.decision.reason})"
            )
            return self.decision

    async def tool_policy(self) -> ToolAccessPolicy:
        return resolve_tool_policy((await self.resolve()).granted)


class SessionRegistry:
    """Maps live MCP sessions to their gates; entries die with the session."""

    def __init__(self, policy: AccessPolicy, github: GitHubClient = None):
        self._policy = policy
        self._github = github or GitHubClient()
        self._decider = AccessDecider(self._github)
        self._gates: "weakref.WeakKeyDictionary[Any, SessionGate]" = (
            weakref.WeakKeyDictionary()
        )

    def gate_for(self, session: Any, credential: str) -> SessionGate:
        gate = self._gates.get(session)
        if gate is None:
            gate = SessionGate(
                credential=credential,
                policy=self._policy,
                github=self._github,
                decider=self._decider,
            )
            self._gates[session] = gate
        return gate


def credential_from_context(ctx: Any) -> str:
    """Bearer token for the current request.

    Order: the MCP auth layer's access token, the raw Authorization header,
    then GITHUB_TOKEN. GITHUB_TOKEN is only read under the stdio transport;
    an HTTP caller without a bearer token gets "" and is denied.
    """
    access_token = get_access_token()
    if access_token is not None and access_token.token:
        return access_token.token

    try:
        request = ctx.request_context.request
    except (AttributeError, ValueError):
        request = None
    if request is not None:
        scheme, _, token = request.headers.get("authorization", "").partition(" ")
        if scheme.lower() == "bearer" and token.strip():
            return token.strip()
        return ""

    if config.transport == "stdio":
        return config.github_token
    return ""
