import json
import threading

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker

import db
import ledger_store
from db import Base
from ledger import Ledger
from ledger_store import JsonLedgerStore, SqlLedgerStore
from schemas.ledger import UserRecord
import models.user  # noqa: F401


def _sample_ledger() -> Ledger:
    return Ledger(
        {
            "633765043": UserRecord(balance=60, last_earn=1700000000, referrals=1, ref_code="abcd1234"),
            "6375918223": UserRecord(balance=0, last_earn=0, referrals=0, ref_code="ffff0000", referred_by="633765043"),
        }
    )


# --------- JSON ----------

@pytest.mark.asyncio
async def test_json_load_creates_missing_file(tmp_path):
    path = tmp_path / "users.json"
    store = JsonLedgerStore(str(path))

    ledger = await store.load()

    assert len(ledger) == 0
    assert json.loads(path.read_text()) == {}


@pytest.mark.asyncio
async def test_json_save_then_load_round_trip(tmp_path):
    store = JsonLedgerStore(str(tmp_path / "users.json"))
    original = _sample_ledger()

    assert await store.save(original) is True
    loaded = await store.load()

    assert loaded.to_dict() == original.to_dict()
    assert list(loaded) == list(original)
    assert loaded.find_by_ref_code("ffff0000") == "6375918223"


@pytest.mark.asyncio
async def test_json_file_is_human_readable(tmp_path):
    path = tmp_path / "users.json"
    store = JsonLedgerStore(str(path))

    await store.save(_sample_ledger())

    text = path.read_text(encoding="utf-8")
    assert "\n    \"633765043\": {" in text
    assert list(tmp_path.iterdir()) == [path]


@pytest.mark.asyncio
async def test_json_corrupt_file_loads_empty(tmp_path):
    path = tmp_path / "users.json"
    path.write_text("{not json", encoding="utf-8")

    ledger = await JsonLedgerStore(str(path)).load()

    assert len(ledger) == 0


@pytest.mark.asyncio
async def test_json_non_object_loads_empty(tmp_path):
    path = tmp_path / "users.json"
    path.write_text("[1, 2, 3]", encoding="utf-8")

    ledger = await JsonLedgerStore(str(path)).load()

    assert len(ledger) == 0


@pytest.mark.asyncio
async def test_json_save_failure_is_reported_not_raised(tmp_path):
    store = JsonLedgerStore(str(tmp_path / "missing-dir" / "users.json"))

    assert await store.save(_sample_ledger()) is False


@pytest.mark.asyncio
async def test_json_file_io_runs_off_the_event_loop(tmp_path, monkeypatch):
    store = JsonLedgerStore(str(tmp_path / "users.json"))
    threads = []
    read, write = store._read, store._write
    monkeypatch.setattr(store, "_read", lambda: threads.append(threading.get_ident()) or read())
    monkeypatch.setattr(store, "_write", lambda data: threads.append(threading.get_ident()) or write(data))

    await store.save(_sample_ledger())
    await store.load()

    assert len(threads) == 2
    assert threading.get_ident() not in threads


# --------- SQL ----------

@pytest_asyncio.fixture
async def sql_store(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield SqlLedgerStore(sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    await engine.dispose()


@pytest.mark.asyncio
async def test_sql_empty_database_loads_empty(sql_store):
    ledger = await sql_store.load()

    assert len(ledger) == 0


@pytest.mark.asyncio
async def test_sql_save_then_load_round_trip(sql_store):
    original = _sample_ledger()

    assert await sql_store.save(original) is True
    loaded = await sql_store.load()

    assert loaded.to_dict() == original.to_dict()
    assert list(loaded) == list(original)


@pytest.mark.asyncio
async def test_sql_save_updates_existing_rows_and_appends_new(sql_store):
    ledger = _sample_ledger()
    await sql_store.save(ledger)

    ledger.get("633765043").balance = 0
    ledger.create("42")
    await sql_store.save(ledger)
    loaded = await sql_store.load()

    assert list(loaded) == ["633765043", "6375918223", "42"]
    assert loaded.get("633765043").balance == 0
    assert loaded.get("42").ref_code == ledger.get("42").ref_code


@pytest.mark.asyncio
async def test_sql_failure_is_reported_not_raised(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
    store = SqlLedgerStore(sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))

    # no tables created
    assert len(await store.load()) == 0
    assert await store.save(_sample_ledger()) is False
    await engine.dispose()


@pytest.mark.asyncio
async def test_sql_backend_selected_from_settings(tmp_path, monkeypatch):
    monkeypatch.setattr(ledger_store.settings, "ledger_backend", "sql")
    monkeypatch.setattr(db, "POSTGRES_DSN", f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}")
    monkeypatch.setattr(db, "_engine", None)
    monkeypatch.setattr(db, "_SessionLocal", None)

    store = ledger_store.get_ledger_store()

    assert isinstance(store, SqlLedgerStore)
    assert store._sessionmaker is db.get_sessionmaker()
    await db.get_engine().dispose()


def test_unknown_backend_is_rejected(monkeypatch):
    monkeypatch.setattr(ledger_store.settings, "ledger_backend", "redis")

    with pytest.raises(RuntimeError):
        ledger_store.get_ledger_store()
