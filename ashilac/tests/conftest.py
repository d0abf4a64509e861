import os
import re
from datetime import datetime, timezone

import pytest
from unittest.mock import MagicMock

# Ensure JWT_SECRET is set before the services are imported
os.environ["JWT_SECRET"] = "test_secret"
os.environ.setdefault("REQUIRE_AUTH", "false")

from ashilac.gateway.server import create_app  # noqa: E402


@pytest.fixture
def app():
    app = create_app()
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()


def build_mock_conn():
    """
    MagicMock connection/cursor pair usable as `with get_db() as conn`
    and `with conn.cursor() as cur`.
    """
    mock_conn = MagicMock()
    mock_cursor = MagicMock()

    mock_conn.__enter__.return_value = mock_conn
    mock_conn.__exit__.return_value = None
    mock_cursor.__enter__.return_value = mock_cursor
    mock_cursor.__exit__.return_value = None

    mock_conn.cursor.return_value = mock_cursor
    return mock_conn, mock_cursor


@pytest.fixture
def mock_db(mocker):
    """
    Patch get_db in the given route module and return (conn, cursor).

    Usage:
        conn, cur = mock_db("ashilac.events_service.routes")
    """
    def _patch(module: str):
        mock_conn, mock_cursor = build_mock_conn()
        mocker.patch(f"{module}.get_db", return_value=mock_conn)
        return mock_conn, mock_cursor

    return _patch


class FakeEventCursor:
    """
    Minimal stand-in for the events tables, understanding only the statements
    issued by the reservation endpoint.
    """

    def __init__(self, store):
        self.store = store
        self._result = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return None

    def execute(self, sql, params=None):
        self.store.statements.append(sql)
        if "FOR UPDATE" in sql:
            capacity = self.store.events.get(params[0])
            self._result = None if capacity is None else {"capacity": capacity}
        elif re.search(r"SUM\(participants\)", sql):
            reserved = sum(p for e, _, p in self.store.registrations if e == params[0])
            self._result = {"reserved": reserved}
        elif sql.strip().startswith("INSERT INTO event_registrations"):
            self.store.pending.append(params)
            self._result = None
        else:
            raise AssertionError(f"unexpected SQL: {sql}")

    def fetchone(self):
        return self._result


class FakeEventStore:
    """Events keyed by id with their capacity, plus committed registrations."""

    def __init__(self, events):
        self.events = dict(events)
        self.registrations = []
        self.pending = []
        self.statements = []

    def get_db(self):
        store = self
        conn = MagicMock()
        conn.cursor.side_effect = lambda: FakeEventCursor(store)
        conn.__enter__.return_value = conn

        def _exit(exc_type, exc, tb):
            # Commit on success, discard on error, like the real get_db
            if exc_type is None:
                store.registrations.extend(store.pending)
            store.pending.clear()
            return None

        conn.__exit__.side_effect = _exit
        return conn

    def total(self, event_id):
        return sum(p for e, _, p in self.registrations if e == event_id)


@pytest.fixture
def event_store(mocker):
    def _make(events):
        store = FakeEventStore(events)
        mocker.patch("ashilac.events_service.routes.get_db", side_effect=store.get_db)
        return store

    return _make


@pytest.fixture
def now():
    return datetime(2025, 3, 1, 18, 0, tzinfo=timezone.utc)
