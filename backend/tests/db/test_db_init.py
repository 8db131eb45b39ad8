"""Tests for engine initialization."""

import pytest
from sqlalchemy import inspect

import edubilling.db.base as db_mod
from edubilling.db.base import close_db, get_session_factory, init_db


async def test_init_db_leaves_schema_to_migrations(tmp_path, monkeypatch):
    monkeypatch.setattr(db_mod, "_engine", None)
    monkeypatch.setattr(db_mod, "_session_factory", None)

    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'billing.db'}")
    try:
        assert get_session_factory() is not None
        async with db_mod._engine.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    finally:
        await close_db()

    assert tables == []


async def test_session_factory_requires_init(monkeypatch):
    monkeypatch.setattr(db_mod, "_session_factory", None)

    with pytest.raises(RuntimeError, match="init_db"):
        get_session_factory()
