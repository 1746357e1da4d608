"""Shared test fixtures for gatedpg tests."""
import asyncio

import pytest
from unittest.mock import AsyncMock
from psycopg_pool import PoolTimeout

from gatedpg.access.github import MembershipResult, MembershipStatus
from gatedpg.access.policy import Identity
from gatedpg.db import DatabasePool


FOUND = MembershipStatus.FOUND
NOT_FOUND = MembershipStatus.NOT_FOUND
TRANSPORT_ERROR = MembershipStatus.TRANSPORT_ERROR


class FakeGitHub:
    """Scripted membership collaborator that records every call.

    ``public`` / ``membership`` map an org name to the status to return;
    orgs not listed answer NOT_FOUND.
    """

    def __init__(self, owner=None, public=None, membership=None, user=None):
        self.owner = owner or MembershipResult(
            MembershipStatus.CONFIGURATION_ERROR, detail="no app credentials"
        )
        self.public = public or {}
        self.membership = membership or {}
        self.user = user or {"login": "octocat", "name": "Mona", "email": "mona@example.com"}
        self.calls = []

    async def get_app_owner(self, client_id, client_secret):
        self.calls.append(("owner", client_id))
        return self.owner

    async def check_public_membership(self, query):
        self.calls.append(("public", query.organization))
        return MembershipResult(self.public.get(query.organization, NOT_FOUND))

    async def check_membership(self, query):
        self.calls.append(("membership", query.organization))
        return MembershipResult(self.membership.get(query.organization, NOT_FOUND))

    async def resolve_identity(self, token):
        self.calls.append(("user", token))
        return Identity(
            handle=self.user["login"],
            display_name=self.user.get("name") or "",
            email=self.user.get("email") or "",
            credential=token,
        )


class ExplodingGitHub:
    """Fails the test if any remote lookup is issued."""

    def __getattr__(self, name):
        async def _boom(*args, **kwargs):
            raise AssertionError(f"unexpected GitHub call: {name}")

        return _boom


class FakeCursor:
    def __init__(self, conn):
        self._conn = conn
        self.description = None
        self._rows = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, sql, params=None, prepare=None):
        self._conn.statements.append(sql)
        self._conn.prepared.append(prepare)
        await asyncio.sleep(0)
        outcome = self._conn.script(sql)
        if isinstance(outcome, Exception):
            raise outcome
        self._rows = outcome
        self.description = [("col",)] if outcome is not None else None

    async def fetchmany(self, size):
        return self._rows[:size]


class FakeConnection:
    """Records statements; ``script(sql)`` returns rows, None, or an exception."""

    def __init__(self, script=None, begin_error=None, rollback_error=None):
        self.script = script or (lambda sql: [])
        self.begin_error = begin_error
        self.rollback_error = rollback_error
        self.statements = []
        self.prepared = []

    async def execute(self, sql, params=None):
        self.statements.append(sql)
        if sql.startswith("BEGIN") and self.begin_error:
            raise self.begin_error
        if sql == "ROLLBACK" and self.rollback_error:
            raise self.rollback_error

    def cursor(self):
        return FakeCursor(self)


class FakeConnectionPool:
    """Stands in for psycopg_pool.AsyncConnectionPool (getconn/putconn only)."""

    def __init__(self, connections):
        self._idle = asyncio.Queue()
        for conn in connections:
            self._idle.put_nowait(conn)
        self.size = len(connections)
        self.in_use = 0
        self.peak_in_use = 0

    @property
    def available(self):
        return self._idle.qsize()

    async def getconn(self, timeout=None):
        try:
            conn = await asyncio.wait_for(self._idle.get(), timeout)
        except asyncio.TimeoutError:
            raise PoolTimeout(f"couldn't get a connection after {timeout} sec")
        self.in_use += 1
        self.peak_in_use = max(self.peak_in_use, self.in_use)
        return conn

    async def putconn(self, conn):
        self.in_use -= 1
        self._idle.put_nowait(conn)


@pytest.fixture
def identity():
    return Identity(
        handle="octocat", display_name="Mona", email="mona@example.com", credential="gho_user"
    )


@pytest.fixture
def make_db():
    """Factory: DatabasePool wired to fake connections."""

    def _make(*connections):
        db = DatabasePool()
        db._pool = FakeConnectionPool(list(connections) or [FakeConnection()])
        return db

    return _make


@pytest.fixture
def mock_pool():
    """Mock database pool for introspection helpers."""
    mock = AsyncMock()
    mock.execute_readonly = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def sample_rows():
    return [
        {"id": 1, "name": "Alice", "email": "alice@example.com"},
        {"id": 2, "name": "Bob", "email": "bob@example.com"},
    ]
