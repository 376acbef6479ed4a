import asyncio
import json
import logging
import os
import tempfile
from typing import Protocol

from sqlalchemy.future import select

from ledger import Ledger
from models.user import LedgerUser
from settings import settings

log = logging.getLogger("earnbot")


class LedgerStore(Protocol):
    async def load(self) -> Ledger: ...

    async def save(self, ledger: Ledger) -> bool: ...


class JsonLedgerStore:
    """Whole ledger in one pretty-printed JSON file, rewritten on every save."""

    def __init__(self, path: str):
        self.path = path

    def _read(self):
        if not os.path.exists(self.path):
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump({}, f)
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write(self, data) -> None:
        directory = os.path.dirname(os.path.abspath(self.path))
        # Write next to the target then rename, so readers never see a partial file
        fd, tmp_path = tempfile.mkstemp(prefix=".users-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=4, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def load(self) -> Ledger:
        try:
            data = await asyncio.to_thread(self._read)
        except (OSError, ValueError) as e:
            log.error("Load users failed: %s", e)
            return Ledger()

        if not isinstance(data, dict):
            log.error("Load users failed: %s does not hold a JSON object", self.path)
            return Ledger()
        return Ledger.from_dict(data)

    async def save(self, ledger: Ledger) -> bool:
        try:
            await asyncio.to_thread(self._write, ledger.to_dict())
            return True
        except (OSError, TypeError, ValueError) as e:
            log.error("Save users failed: %s", e)
            return False


class SqlLedgerStore:
    """One row per user in ledger_users; saves update rows in place by user id."""

    def __init__(self, sessionmaker):
        self._sessionmaker = sessionmaker

    async def load(self) -> Ledger:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(select(LedgerUser).order_by(LedgerUser.id))
                rows = result.scalars().all()
        except Exception as e:
            log.error("Load users failed: %s", e)
            return Ledger()

        return Ledger.from_dict(
            {
                row.user_id: {
                    "balance": row.balance,
                    "last_earn": row.last_earn,
                    "referrals": row.referrals,
                    "ref_code": row.ref_code,
                    "referred_by": row.referred_by,
                }
                for row in rows
            }
        )

    async def save(self, ledger: Ledger) -> bool:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(select(LedgerUser))
                rows = {row.user_id: row for row in result.scalars().all()}

                for user_id, record in ledger.items():
                    row = rows.get(user_id)
                    if row is None:
                        row = LedgerUser(user_id=user_id)
                        session.add(row)
                    row.balance = record.balance
                    row.last_earn = record.last_earn
                    row.referrals = record.referrals
                    row.ref_code = record.ref_code
                    row.referred_by = record.referred_by

                await session.commit()
            return True
        except Exception as e:
            log.error("Save users failed: %s", e)
            return False


def get_ledger_store() -> LedgerStore:
    backend = (settings.ledger_backend or "json").strip().lower()
    if backend == "json":
        return JsonLedgerStore(settings.users_file)
    if backend == "sql":
        from db import get_sessionmaker  # lazy: needs a configured DSN

        return SqlLedgerStore(get_sessionmaker())
    raise RuntimeError(f"Unknown LEDGER_BACKEND: {settings.ledger_backend!r}")
