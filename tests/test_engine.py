"""Session scope commit and rollback behaviour."""

import pytest
from sqlalchemy import select

from erp_kernel.db.engine import get_session, is_postgres, session_scope
from erp_kernel.models.item import Item


def _skus() -> list[str]:
    session = get_session()
    try:
        return list(session.scalars(select(Item.sku)))
    finally:
        session.close()


def test_session_scope_commits(engine):
    with session_scope() as session:
        session.add(Item(sku="RM-1", name="Resin"))
    assert _skus() == ["RM-1"]


def test_session_scope_rolls_back_and_reraises(engine):
    with pytest.raises(RuntimeError):
        with session_scope() as session:
            session.add(Item(sku="RM-1", name="Resin"))
            session.flush()
            raise RuntimeError("boom")
    assert _skus() == []


def test_is_postgres_follows_engine_dialect(engine):
    assert is_postgres() == (engine.dialect.name == "postgresql")
