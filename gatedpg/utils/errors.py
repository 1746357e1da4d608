"""Centralized error handling with actionable messages."""
import psycopg

from gatedpg.errors import (
    ConfigurationError,
    ConnectionUnavailableError,
    QueryExecutionError,
    TransportError,
)

# SQLSTATE 25006: write attempted inside a read-only transaction
_READ_ONLY_SQLSTATE = "25006"


def handle_error(e: Exception) -> str:
    """Return a human-readable, actionable error message.

    Distinguishes between:
    - Database unavailable (transient, retry later)
    - Query failed (fix the query; retrying will not help)
    - GitHub unreachable / misconfiguration
    """
    if isinstance(e, ConnectionUnavailableError):
        return (
            f"Error: Database unavailable. {e} "
            "Retry in a few seconds."
        )

    if isinstance(e, QueryExecutionError):
        if e.sqlstate == _READ_ONLY_SQLSTATE:
            return (
                f"Error: Query failed: {e}. "
                "Only read-only statements can be run; writes are rejected."
            )
        return f"Error: Query failed: {e}"

    if isinstance(e, TransportError):
        return f"Error: GitHub API unavailable: {e}"

    if isinstance(e, ConfigurationError):
        return f"Error: Server misconfigured: {e}"

    if isinstance(e, psycopg.OperationalError):
        return f"Error: Database unavailable. {str(e).strip()}"

    if isinstance(e, TimeoutError):
        return "Error: Request timed out. Retry shortly."

    return f"Error: {type(e).__name__}: {str(e)}"
