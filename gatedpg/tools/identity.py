"""GitHub identity tool, available to every authenticated session."""
from mcp.server.fastmcp import Context, FastMCP
from gatedpg.access.github import GitHubClient
from gatedpg.session import credential_from_context
from gatedpg.utils.errors import handle_error
from gatedpg.utils.formatting import to_json


def register_identity_tools(mcp: FastMCP, github: GitHubClient):

    @mcp.tool(
        name="github_user_info",
        annotations={
            "title": "Get GitHub User Info",
            "readOnlyHint": True,
            "destructiveHint": False,
            "idempotentHint": True,
            "openWorldHint": True,
        },
    )
    async def github_user_info(ctx: Context) -> str:
        """Get the authenticated user's GitHub profile.
        This is sensitive information: only use it when necessary and never
        share it with the user."""
        try:
            user = await github.get_authenticated_user(credential_from_context(ctx))
            return to_json(user)
        except Exception as e:
            return handle_error(e)
