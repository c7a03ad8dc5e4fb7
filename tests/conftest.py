"""
Pytest fixtures for the ERP inventory ledger test suite.

Provides:
- A fresh database per test (in-memory SQLite by default)
- The default chart of accounts, a deterministic clock and actors
- Master-data factories (items, warehouses, vendors, customers)
- Structured logging fixtures

Environment Variables:
- DATABASE_URL: run against another database (e.g. PostgreSQL) instead of
  in-memory SQLite.  Tables are dropped and recreated for every test.
"""

import json
import logging
import os
from collections.abc import Generator
from datetime import datetime, timezone
from io import StringIO

import pytest
from sqlalchemy.orm import Session

from erp_config import get_active_config
from erp_config.bridges import seed_chart_of_accounts
from erp_kernel.db.engine import (
    create_tables,
    drop_tables,
    get_session,
    init_engine_from_url,
    reset_engine,
)
from erp_kernel.domain.actor import Actor, Role
from erp_kernel.domain.clock import DeterministicClock
from erp_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from erp_kernel.models.item import Item, ItemClass, Warehouse
from erp_modules.purchasing.orm import Vendor
from erp_modules.sales.orm import Customer

DEFAULT_DATABASE_URL = "sqlite://"


def get_database_url() -> str:
    return os.environ.get("DATABASE_URL", DEFAULT_DATABASE_URL)


def pytest_configure(config):
    config.addinivalue_line("markers", "postgres: mark test as requiring PostgreSQL")


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    reset_logging()
    configure_logging(level=logging.DEBUG)
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
    Capture erp_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, ledger):
            ledger.issue_stock(...)
            assert any(r["message"] == "stock_issued" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("erp_kernel")
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
def engine():
    eng = init_engine_from_url(get_database_url(), echo=False)
    if eng.dialect.name != "sqlite":
        # A shared database may hold tables from an aborted run.
        drop_tables()
    create_tables()
    yield eng
    drop_tables()
    reset_engine()


@pytest.fixture
def erp_config():
    return get_active_config()


@pytest.fixture
def session(engine, erp_config) -> Generator[Session, None, None]:
    """Session on a fresh schema with the default chart of accounts."""
    sess = get_session()
    seed_chart_of_accounts(sess, erp_config.chart_of_accounts)
    sess.commit()
    yield sess
    sess.rollback()
    sess.close()


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2025, 3, 1, 9, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def admin() -> Actor:
    return Actor(user_id="admin", role=Role.ADMIN)


@pytest.fixture
def clerk() -> Actor:
    return Actor(user_id="clerk", role=Role.ACCOUNTANT)


# =============================================================================
# Master data factories
# =============================================================================


@pytest.fixture
def make_item(session):
    counter = {"n": 0}

    def _make(
        sku: str | None = None,
        *,
        item_class: ItemClass = ItemClass.RAW_MATERIAL,
        sales_price: int = 0,
        requires_installation: bool = False,
        asset_account_code: str | None = None,
        is_active: bool = True,
    ) -> Item:
        counter["n"] += 1
        item = Item(
            sku=sku or f"SKU-{counter['n']:03d}",
            name=f"Item {sku or counter['n']}",
            item_class=item_class,
            sales_price=sales_price,
            requires_installation=requires_installation,
            asset_account_code=asset_account_code,
            is_active=is_active,
        )
        session.add(item)
        session.commit()
        return item

    return _make


@pytest.fixture
def make_warehouse(session):
    def _make(code: str) -> Warehouse:
        warehouse = Warehouse(code=code, name=f"Warehouse {code}")
        session.add(warehouse)
        session.commit()
        return warehouse

    return _make


@pytest.fixture
def vendor(session) -> Vendor:
    v = Vendor(name="Acme Supplies")
    session.add(v)
    session.commit()
    return v


@pytest.fixture
def customer(session) -> Customer:
    c = Customer(name="Globex LLC")
    session.add(c)
    session.commit()
    return c
