"""Configuration for the gated PostgreSQL MCP server.

Server and database settings only. The access policy (allowed users,
organizations, policy variant) is loaded separately in gatedpg/access/policy.py.
"""
import os
from dataclasses import dataclass, field


@dataclass
class ServerConfig:
    """Server configuration loaded from environment variables."""

    # PostgreSQL connection
    database_url: str = field(
        default_factory=lambda: os.environ.get("DATABASE_URL", "")
    )
    query_timeout_seconds: int = field(
        default_factory=lambda: int(os.environ.get("GATEDPG_QUERY_TIMEOUT", "30"))
    )
    max_rows: int = field(
        default_factory=lambda: int(os.environ.get("GATEDPG_MAX_ROWS", "1000"))
    )

    # Pool settings
    pool_min_size: int = field(
        default_factory=lambda: int(os.environ.get("GATEDPG_POOL_MIN", "1"))
    )
    pool_max_size: int = field(
        default_factory=lambda: int(os.environ.get("GATEDPG_POOL_MAX", "10"))
    )
    pool_timeout: float = field(
        default_factory=lambda: float(os.environ.get("GATEDPG_POOL_TIMEOUT", "10"))
    )
    pool_max_lifetime: int = field(
        default_factory=lambda: int(
            os.environ.get("GATEDPG_POOL_MAX_LIFETIME", "300")
        )
    )
    pool_max_idle: int = field(
        default_factory=lambda: int(os.environ.get("GATEDPG_POOL_MAX_IDLE", "60"))
    )

    # GitHub API
    github_api_url: str = field(
        default_factory=lambda: os.environ.get(
            "GITHUB_API_URL", "https://api.github.com"
        ).rstrip("/")
    )
    github_timeout: float = field(
        default_factory=lambda: float(os.environ.get("GITHUB_TIMEOUT", "10"))
    )
    # Used only by the stdio transport, whose requests carry no headers
    github_token: str = field(
        default_factory=lambda: os.environ.get("GITHUB_TOKEN", ""), repr=False
    )

    # Transport chosen at startup ("stdio", "sse", "streamable-http")
    transport: str = field(
        default_factory=lambda: os.environ.get("MCP_TRANSPORT", "streamable-http")
    )

    # HTTP transport
    port: int = field(
        default_factory=lambda: int(os.environ.get("APP_PORT", "8000"))
    )


config = ServerConfig()
