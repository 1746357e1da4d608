"""Typed failures shared by the access layer and the SQL executor."""


class GatedPGError(Exception):
    """Base class for errors raised inside gatedpg."""


class ConfigurationError(GatedPGError):
    """Missing or invalid access-policy inputs (e.g. no GitHub app credentials)."""


class TransportError(GatedPGError):
    """A GitHub API call could not complete (network failure, timeout, 5xx)."""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class MembershipNotFound(GatedPGError):
    """GitHub answered with an explicit negative (404) for a lookup."""


class ConnectionUnavailableError(GatedPGError):
    """No database connection could be leased from the pool."""


class QueryExecutionError(GatedPGError):
    """The statement failed or was rejected by the read-only transaction.

    The engine's message is kept verbatim; the original exception is
    available as ``__cause__``.
    """

    def __init__(self, message: str, sqlstate: str = None):
        self.sqlstate = sqlstate
        super().__init__(message)


class RollbackWarning(RuntimeWarning):
    """A rollback failed after a statement ran. Logged, never raised."""
