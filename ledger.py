import logging
import secrets
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import ValidationError

from schemas.ledger import REF_CODE_LENGTH, UserRecord

log = logging.getLogger("earnbot")

REF_CODE_ATTEMPTS = 16


def generate_ref_code() -> str:
    return secrets.token_hex(REF_CODE_LENGTH // 2)


class Ledger:
    """All user records keyed by user id, in insertion order.

    Keeps a ref_code -> user ids index next to the records. Codes shared by
    several records (legacy data) list their owners in ledger order.
    """

    def __init__(self, users: Optional[Dict[str, UserRecord]] = None):
        self._users: Dict[str, UserRecord] = {}
        self._by_code: Dict[str, List[str]] = {}
        for user_id, record in (users or {}).items():
            self._put(str(user_id), record)

    def _put(self, user_id: str, record: UserRecord) -> None:
        self._users[user_id] = record
        self._by_code.setdefault(record.ref_code, []).append(user_id)

    def __contains__(self, user_id: object) -> bool:
        return str(user_id) in self._users

    def __len__(self) -> int:
        return len(self._users)

    def __iter__(self) -> Iterator[str]:
        return iter(self._users)

    def items(self) -> Iterator[Tuple[str, UserRecord]]:
        return iter(self._users.items())

    def get(self, user_id: str) -> Optional[UserRecord]:
        return self._users.get(str(user_id))

    def _new_ref_code(self) -> str:
        code = generate_ref_code()
        for _ in range(REF_CODE_ATTEMPTS - 1):
            if code not in self._by_code:
                break
            code = generate_ref_code()
        return code

    def create(self, user_id: str) -> UserRecord:
        user_id = str(user_id)
        if user_id in self._users:
            raise KeyError(f"user {user_id} already exists")
        record = UserRecord(ref_code=self._new_ref_code())
        self._put(user_id, record)
        return record

    def ensure(self, user_id: str) -> Tuple[UserRecord, bool]:
        """Return (record, created)."""
        record = self.get(user_id)
        if record is not None:
            return record, False
        return self.create(user_id), True

    def find_by_ref_code(self, code: str, exclude: Optional[str] = None) -> Optional[str]:
        """First user in ledger order owning `code`, skipping `exclude`."""
        for user_id in self._by_code.get(code, ()):
            if user_id != exclude:
                return user_id
        return None

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return {user_id: record.model_dump() for user_id, record in self._users.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ledger":
        users: Dict[str, UserRecord] = {}
        for user_id, raw in data.items():
            try:
                users[str(user_id)] = UserRecord.model_validate(raw)
            except ValidationError:
                log.error("Skipping invalid ledger record for user %s", user_id)
        return cls(users)
