"""
Shared fixtures for the ledger tests.

The suite runs against an in-memory SQLite database unless DATABASE_URL
points somewhere else (e.g. a disposable PostgreSQL database).  Each test gets
a session bound to an outer transaction that is rolled back afterwards, so
tests may commit freely.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from itertools import count
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from ledger_kernel.clients.owner_directory import StaticOwnerDirectory
from ledger_kernel.db.engine import (
    create_tables,
    drop_tables,
    init_engine_from_url,
    reset_engine,
)
from ledger_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from ledger_kernel.services import AccountService, LedgerEngine, StatementBuilder

OWNERS = {"owner-1": "Ada Lovelace", "owner-2": "Alan Turing"}


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", "sqlite:///:memory:")


def pytest_configure(config):
    config.addinivalue_line("markers", "postgres: needs a PostgreSQL DATABASE_URL")


# --- logging ---------------------------------------------------------------


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Keep kernel log output off the terminal; tests read it via captured_logs."""
    reset_logging()
    configure_logging(level=logging.DEBUG, stream=StringIO())
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Collect ledger_kernel records emitted during the test.

    Yields a callable returning the records seen so far as dicts::

        ledger_engine.apply_movement(...)
        assert "movement_applied" in [r["message"] for r in captured_logs()]
    """
    buffer = StringIO()
    handler = logging.StreamHandler(buffer)
    handler.setFormatter(StructuredFormatter())
    namespace = logging.getLogger("ledger_kernel")
    namespace.addHandler(handler)

    yield lambda: [json.loads(line) for line in buffer.getvalue().splitlines() if line]

    namespace.removeHandler(handler)


# --- database --------------------------------------------------------------


@pytest.fixture(scope="session")
def db_engine():
    engine = init_engine_from_url(get_database_url(), pool_size=5)
    yield engine
    reset_engine()


@pytest.fixture(scope="session")
def db_tables(db_engine):
    """Fresh schema for the whole run."""
    drop_tables(db_engine)
    create_tables(db_engine)
    yield
    drop_tables(db_engine)


@pytest.fixture
def session(db_tables, db_engine) -> Generator[Session, None, None]:
    """
    Session whose commits only release savepoints.

    Everything the test writes is discarded when the outer transaction is
    rolled back at teardown.
    """
    connection = db_engine.connect()
    outer = connection.begin()
    sess = Session(bind=connection, join_transaction_mode="create_savepoint", expire_on_commit=False)
    try:
        yield sess
    finally:
        sess.close()
        outer.rollback()
        connection.close()


# --- services --------------------------------------------------------------


@pytest.fixture
def owner_directory() -> StaticOwnerDirectory:
    return StaticOwnerDirectory(OWNERS)


@pytest.fixture
def account_service(session) -> AccountService:
    return AccountService(session)


@pytest.fixture
def ledger_engine(session, owner_directory) -> LedgerEngine:
    return LedgerEngine(session, owner_directory)


@pytest.fixture
def statement_builder(session, owner_directory) -> StatementBuilder:
    return StatementBuilder(session, owner_directory)


@pytest.fixture
def create_account(account_service):
    """
    Make an account with sensible defaults; numbers are TEST-0001, TEST-0002...

        account = create_account("ACC-1", opening_balance="1000")
    """
    numbers = count(1)

    def _create(
        account_number: str | None = None,
        opening_balance: Decimal | int | str = Decimal("0"),
        owner_id: str = "owner-1",
        account_type: str = "checking",
    ):
        number = account_number or f"TEST-{next(numbers):04d}"
        return account_service.create_account(number, account_type, opening_balance, owner_id)

    return _create
