"""Grant or deny the database tools for an authenticated GitHub identity.

Order of evaluation:
1. Handle in the allow-list -> GRANTED, no GitHub calls at all.
2. No wildcard in the allow-list -> DENIED.
3. Wildcard -> organization membership, per policy variant:
   - org_owner: the org owning the OAuth app; public membership first,
     then the user's own membership status (sees private memberships).
   - org_list: each configured org in order, first active membership wins.
   - allow_list: nothing to fall back to -> DENIED.

decide() never raises. Every failure path ends in a denial, and no lookup
is retried.
"""
import logging
from dataclasses import dataclass

from gatedpg.access.github import (
    GitHubClient,
    MembershipQuery,
    MembershipResult,
    MembershipStatus,
)
from gatedpg.access.policy import AccessPolicy, Identity, PolicyVariant

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    granted: bool
    reason: str = ""

    def __bool__(self) -> bool:
        return self.granted


def _log_miss(identity: Identity, org: str, result: MembershipResult):
    if result.status == MembershipStatus.NOT_FOUND:
        logger.info(f"{identity.handle} is not a member of {org}: {result.detail}")
    else:
        logger.warning(
            f"Membership lookup for {identity.handle} in {org} failed "
            f"({result.status.value}): {result.detail}"
        )


class AccessDecider:
    """Evaluates an AccessPolicy against an Identity."""

    def __init__(self, github: GitHubClient = None):
        self._github = github or GitHubClient()

    async def decide(self, identity: Identity, policy: AccessPolicy) -> AccessDecision:
        if identity.handle and identity.handle in policy.allowed_handles:
            return AccessDecision(True, "allow-list")

        if not policy.allow_wildcard:
            return AccessDecision(False, "not in allow-list")

        try:
            if policy.variant == PolicyVariant.ORG_OWNER:
                decision = await self._decide_by_app_owner(identity, policy)
            elif policy.variant == PolicyVariant.ORG_LIST:
                decision = await self._decide_by_org_list(identity, policy)
            else:
                decision = AccessDecision(False, "wildcard has no organization fallback")
        except Exception as e:
            logger.error(f"Access decision for {identity.handle} failed: {e}")
            decision = AccessDecision(False, f"error: {type(e).__name__}")

        if not decision.granted:
            logger.warning(f"Access denied for {identity.handle}: {decision.reason}")
        return decision

    async def _decide_by_app_owner(
        self, identity: Identity, policy: AccessPolicy
    ) -> AccessDecision:
        owner = await self._github.get_app_owner(policy.client_id, policy.client_secret)
        if not owner.ok:
            logger.warning(
                f"Could not resolve the organization owning the OAuth app "
                f"({owner.status.value}): {owner.detail}"
            )
            return AccessDecision(False, "app owner unresolved")

        query = MembershipQuery(organization=owner.value, identity=identity)
        public = await self._github.check_public_membership(query)
        if public.ok:
            return AccessDecision(True, f"public member of {owner.value}")
        if public.status != MembershipStatus.NOT_FOUND:
            _log_miss(identity, owner.value, public)
            return AccessDecision(False, f"membership lookup failed for {owner.value}")

        private = await self._github.check_membership(query)
        if private.ok:
            return AccessDecision(True, f"member of {owner.value}")
        _log_miss(identity, owner.value, private)
        return AccessDecision(False, f"not a member of {owner.value}")

    async def _decide_by_org_list(
        self, identity: Identity, policy: AccessPolicy
    ) -> AccessDecision:
        if not policy.allowed_organizations:
            logger.warning(
                "Wildcard access is configured but ALLOWED_ORGANIZATIONS is empty"
            )
            return AccessDecision(False, "no organizations configured")

        for org in policy.allowed_organizations:
            result = await self._github.check_membership(
                MembershipQuery(organization=org, identity=identity)
            )
            if result.ok:
                return AccessDecision(True, f"member of {org}")
            _log_miss(identity, org, result)

        return AccessDecision(False, "not a member of any allowed organization")
