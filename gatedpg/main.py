"""Gated PostgreSQL MCP Server: main entry point.

7 tools: github_user_info for every authenticated GitHub user, plus
read-only SQL and schema tools for users the access policy grants.
"""
import logging
import sys
from contextlib import asynccontextmanager
from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from gatedpg.config import config
from gatedpg.db import pool
from gatedpg.access.github import GitHubClient
from gatedpg.access.policy import build_access_policy
from gatedpg.access.tool_guard import restricted_tools
from gatedpg.session import SessionRegistry, credential_from_context

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(server: FastMCP):
    """Initialize and tear down resources."""
    if config.database_url:
        try:
            await pool.initialize(config.database_url)
            logger.info("Gated PostgreSQL MCP Server started (pool connected)")
        except Exception as e:
            logger.warning(
                f"Pool initialization failed (database tools will report "
                f"the database as unavailable): {e}"
            )
    else:
        logger.info(
            "Gated PostgreSQL MCP Server started without DATABASE_URL; "
            "database tools will report the database as unavailable"
        )

    yield {"pool": pool}

    try:
        await pool.close()
    except Exception as e:
        logger.warning(f"Pool shutdown failed: {e}")
    await github.aclose()
    logger.info("Gated PostgreSQL MCP Server stopped")


mcp = FastMCP(
    "gatedpg_mcp",
    lifespan=app_lifespan,
    host="0.0.0.0",
    port=config.port,
)

github = GitHubClient()

# Access policy (env vars + optional YAML), one registry of per-session gates
sessions = SessionRegistry(build_access_policy(), github=github)

# Register all tool modules
from gatedpg.tools.identity import register_identity_tools
from gatedpg.tools.query import register_query_tools
from gatedpg.tools.schema import register_schema_tools

register_identity_tools(mcp, github)
register_query_tools(mcp)
register_schema_tools(mcp)


def _apply_tool_governance(mcp_instance: FastMCP, registry: SessionRegistry):
    """Gate restricted tools by wrapping ToolManager.call_tool.

    The session's access decision is computed on its first restricted call
    and reused afterwards. A denied session gets a tool error instead of
    the tool running.
    """
    restricted = restricted_tools()
    original_call_tool = mcp_instance._tool_manager.call_tool

    async def governed_call_tool(name, arguments, context=None, convert_result=False):
        if name in restricted:
            if context is None:
                raise ToolError(f"Tool '{name}' requires an authenticated session.")
            gate = registry.gate_for(context.session, credential_from_context(context))
            tool_policy = await gate.tool_policy()
            if not tool_policy.is_tool_allowed(name):
                raise ToolError(
                    f"Tool '{name}' is not available: your GitHub account is not "
                    f"authorized for database access."
                )
        return await original_call_tool(name, arguments, context, convert_result)

    mcp_instance._tool_manager.call_tool = governed_call_tool
    logger.info(f"Tool-level governance: active (restricted={len(restricted)})")


_apply_tool_governance(mcp, sessions)


def main():
    transport = sys.argv[1] if len(sys.argv) > 1 else config.transport
    config.transport = transport
    mcp.run(transport=transport)


if __name__ == "__main__":
    main()
