"""Access policy: who may see the database tools.

Loads config from env vars (primary) and an optional YAML file, and resolves
it into an immutable AccessPolicy that is passed explicitly to the decider.
"""
import os
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

WILDCARD = "*"


class PolicyVariant(str, Enum):
    """How a wildcard entry in the allow-list is resolved."""

    ALLOW_LIST = "allow_list"  # explicit handles only
    ORG_OWNER = "org_owner"  # members of the org that owns the OAuth app
    ORG_LIST = "org_list"  # members of any configured organization


@dataclass(frozen=True)
class Identity:
    """Authenticated GitHub user for one session."""

    handle: str
    display_name: str = ""
    email: str = ""
    credential: str = field(default="", repr=False)


@dataclass(frozen=True)
class AccessPolicy:
    """Resolved access policy, immutable for the session."""

    allowed_handles: frozenset[str] = frozenset()
    allowed_organizations: tuple[str, ...] = ()
    variant: PolicyVariant = PolicyVariant.ALLOW_LIST
    client_id: str = ""
    client_secret: str = field(default="", repr=False)

    @property
    def allow_wildcard(self) -> bool:
        return WILDCARD in self.allowed_handles


@dataclass
class AccessConfig:
    """Parsed access configuration, before resolution."""

    allowed_handles: Optional[list[str]] = None
    allowed_organizations: Optional[list[str]] = None
    variant: Optional[str] = None
    client_id: str = ""
    client_secret: str = ""


def _load_yaml_config(path: str) -> dict:
    """Load access config from a YAML file."""
    config_path = Path(path)
    if not config_path.exists():
        logger.warning(f"Access config file not found: {path}")
        return {}

    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def _parse_env_list(env_var: str) -> Optional[list[str]]:
    """Parse comma-separated env var into list. Returns None if unset."""
    val = os.environ.get(env_var, "").strip()
    if not val:
        return None
    return [item.strip() for item in val.split(",") if item.strip()]


def load_access_config() -> AccessConfig:
    """Load access config from env vars + optional YAML.

    Env vars take precedence over YAML for all settings.
    """
    config = AccessConfig()

    yaml_path = os.environ.get("GATEDPG_ACCESS_CONFIG", "")
    yaml_data = {}
    if yaml_path:
        yaml_data = _load_yaml_config(yaml_path)

    access_section = yaml_data.get("access", {})
    github_section = yaml_data.get("github", {})

    config.allowed_handles = _parse_env_list("ALLOWED_USERNAMES") or (
        access_section.get("allowed_usernames")
    )
    config.allowed_organizations = _parse_env_list("ALLOWED_ORGANIZATIONS") or (
        access_section.get("allowed_organizations")
    )
    config.variant = os.environ.get(
        "ACCESS_POLICY_VARIANT", access_section.get("variant")
    ) or None
    config.client_id = os.environ.get(
        "GITHUB_CLIENT_ID", github_section.get("client_id", "")
    )
    config.client_secret = os.environ.get(
        "GITHUB_CLIENT_SECRET", github_section.get("client_secret", "")
    )

    return config


def build_access_policy(config: AccessConfig = None) -> AccessPolicy:
    """Resolve the runtime access policy from config.

    - No allowed handles configured -> nobody gets the database tools.
    - Unknown variant -> allow_list (wildcard resolves to nobody).
    - Organization names keep their configured order; duplicates are dropped.
    """
    if config is None:
        config = load_access_config()

    handles = frozenset(h.strip() for h in (config.allowed_handles or []) if h.strip())

    variant = PolicyVariant.ALLOW_LIST
    if config.variant:
        try:
            variant = PolicyVariant(config.variant.strip().lower())
        except ValueError:
            logger.warning(
                f"Unknown access policy variant: {config.variant}. "
                f"Falling back to {PolicyVariant.ALLOW_LIST.value}"
            )

    organizations: list[str] = []
    for org in config.allowed_organizations or []:
        org = org.strip()
        if org and org not in organizations:
            organizations.append(org)

    policy = AccessPolicy(
        allowed_handles=handles,
        allowed_organizations=tuple(organizations),
        variant=variant,
        client_id=(config.client_id or "").strip(),
        client_secret=(config.client_secret or "").strip(),
    )
    logger.info(
        f"Access policy: variant={variant.value}, "
        f"handles={len(handles - {WILDCARD})}, wildcard={policy.allow_wildcard}, "
        f"organizations={len(organizations)}"
    )
    return policy
