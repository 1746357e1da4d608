"""Tool-level access control.

Identity tools are open to every authenticated session. Database tools are
restricted: a session may call them only after the access decision granted it.
"""
import logging
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


TOOL_CATEGORIES: dict[str, list[str]] = {
    "identity": [
        "github_user_info",
    ],
    "database": [
        "query",
        "list_tables",
        "list_columns",
        "describe_table",
        "list_plugins",
        "show_plugin",
    ],
}

RESTRICTED_CATEGORIES: frozenset[str] = frozenset({"database"})


def restricted_tools() -> set[str]:
    tools: set[str] = set()
    for cat in RESTRICTED_CATEGORIES:
        tools.update(TOOL_CATEGORIES.get(cat, []))
    return tools


@dataclass
class ToolAccessPolicy:
    """Resolved tool access policy for one session."""

    denied_tools: set[str] = field(default_factory=set)

    def is_tool_allowed(self, tool_name: str) -> bool:
        return tool_name not in self.denied_tools


def resolve_tool_policy(granted: bool) -> ToolAccessPolicy:
    """Everything for a granted session, identity tools only otherwise."""
    if granted:
        return ToolAccessPolicy()
    return ToolAccessPolicy(denied_tools=restricted_tools())
