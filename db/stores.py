"""Per-account document stores over SQLite.

Each store exposes async get_all / get / create / patch / delete. Patches are
partial: keys whose value is None are dropped before the write, so a patch
never clears a field by accident. Write failures surface as StoreError and
are never retried here.
"""
from __future__ import annotations

import json
import logging
import sqlite3
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel

from models.account import Account
from models.collection import Collection
from models.profile import Profile
from models.review import ReviewSession
from models.verse import Verse
from utils.learning_phase import phase_from_storage

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class StoreError(RuntimeError):
    """A store read or write failed; the caller decides whether to retry."""


class RecordNotFound(LookupError):
    pass


class DuplicateRecord(ValueError):
    pass


def clean_patch(updates: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in updates.items() if value is not None}


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Cannot serialize {type(value).__name__}")


def _encode(value: Any, is_json: bool) -> Any:
    if is_json:
        return json.dumps(value, default=_json_default)
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


class _Store(Generic[ModelT]):
    table: str = ""
    key: str = "id"
    model: Type[ModelT]
    columns: frozenset = frozenset()
    json_columns: frozenset = frozenset()

    def __init__(self, conn: sqlite3.Connection, account_id: int):
        self.conn = conn
        self.account_id = account_id

    def _to_model(self, row: sqlite3.Row) -> ModelT:
        data = dict(row)
        for column in self.json_columns:
            if data.get(column) is not None:
                data[column] = json.loads(data[column])
        return self.model.model_validate(data)

    def _encode_fields(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(fields) - self.columns
        if unknown:
            raise ValueError(f"Unknown {self.table} field(s): {', '.join(sorted(unknown))}")
        return {name: _encode(value, name in self.json_columns) for name, value in fields.items()}

    def _execute(self, sql: str, params=()) -> sqlite3.Cursor:
        try:
            cursor = self.conn.execute(sql, params)
            self.conn.commit()
            return cursor
        except sqlite3.Error as exc:
            logger.error("Write to %s failed: %s", self.table, exc)
            raise StoreError(f"Write to {self.table} failed: {exc}") from exc

    def _query(self, sql: str, params=()) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Read from {self.table} failed: {exc}") from exc

    async def get_all(self) -> List[ModelT]:
        rows = self._query(
            f"SELECT * FROM {self.table} WHERE account_id = ? ORDER BY {self.key}",
            (self.account_id,),
        )
        return [self._to_model(row) for row in rows]

    async def get(self, record_id: int) -> ModelT:
        rows = self._query(
            f"SELECT * FROM {self.table} WHERE account_id = ? AND {self.key} = ?",
            (self.account_id, record_id),
        )
        if not rows:
            raise RecordNotFound(f"{self.table} {record_id} not found")
        return self._to_model(rows[0])

    async def create(self, **fields: Any) -> ModelT:
        values = self._encode_fields(clean_patch(fields))
        values["account_id"] = self.account_id
        names = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        cursor = self._execute(
            f"INSERT INTO {self.table} ({names}) VALUES ({placeholders})",
            tuple(values.values()),
        )
        record_id = self.account_id if self.key == "account_id" else cursor.lastrowid
        return await self.get(record_id)

    async def patch(self, record_id: int, updates: Dict[str, Any]) -> None:
        values = self._encode_fields(clean_patch(updates))
        if not values:
            return
        assignments = ", ".join(f"{name} = ?" for name in values)
        cursor = self._execute(
            f"UPDATE {self.table} SET {assignments} WHERE account_id = ? AND {self.key} = ?",
            (*values.values(), self.account_id, record_id),
        )
        if cursor.rowcount == 0:
            raise RecordNotFound(f"{self.table} {record_id} not found")

    async def delete(self, record_id: int) -> None:
        cursor = self._execute(
            f"DELETE FROM {self.table} WHERE account_id = ? AND {self.key} = ?",
            (self.account_id, record_id),
        )
        if cursor.rowcount == 0:
            raise RecordNotFound(f"{self.table} {record_id} not found")


class VerseStore(_Store[Verse]):
    table = "verses"
    model = Verse
    columns = frozenset({
        "reference", "book_name", "text", "collection_ids", "scheduler_state",
        "active", "learning_phase", "starred", "created_at",
    })
    json_columns = frozenset({"collection_ids", "scheduler_state"})

    def _to_model(self, row: sqlite3.Row) -> Verse:
        data = dict(row)
        data["learning_phase"] = phase_from_storage(data.get("learning_phase"))
        if data.get("active") is None:
            data["active"] = True
        for column in self.json_columns:
            data[column] = json.loads(data[column]) if data.get(column) else None
        data["collection_ids"] = data["collection_ids"] or []
        data["scheduler_state"] = data["scheduler_state"] or {}
        return Verse.model_validate(data)

    async def get_all(self) -> List[Verse]:
        rows = self._query(
            "SELECT * FROM verses WHERE account_id = ? ORDER BY created_at, id",
            (self.account_id,),
        )
        return [self._to_model(row) for row in rows]


class CollectionStore(_Store[Collection]):
    table = "collections"
    model = Collection
    columns = frozenset({
        "name", "description", "verse_order", "drip_rate", "drip_period",
        "drip_days", "drip_cursor", "drip_last_checked", "created_at",
    })
    json_columns = frozenset({"verse_order", "drip_days"})


class ProfileStore(_Store[Profile]):
    table = "profiles"
    key = "account_id"
    model = Profile
    columns = frozenset({
        "streak", "last_review_date", "xp", "level", "total_reviewed",
        "daily_review_log", "level_up", "created_at",
    })
    json_columns = frozenset({"daily_review_log"})

    async def get_or_create(self, now: Optional[datetime] = None) -> Profile:
        try:
            return await self.get(self.account_id)
        except RecordNotFound:
            created_at = now or datetime.now(timezone.utc)
            logger.info("Creating profile for account %s", self.account_id)
            return await self.create(created_at=created_at)

    async def save(self, profile: Profile) -> None:
        """Write every mutable field of the profile (last write wins)."""
        fields = profile.model_dump(exclude={"account_id", "created_at"})
        fields["daily_review_log"] = profile.daily_review_log
        values = self._encode_fields(fields)
        assignments = ", ".join(f"{name} = ?" for name in values)
        self._execute(
            f"UPDATE profiles SET {assignments} WHERE account_id = ?",
            (*values.values(), self.account_id),
        )


class SessionStore(_Store[ReviewSession]):
    table = "review_sessions"
    model = ReviewSession
    columns = frozenset({
        "entries", "position", "mode", "input_mode", "status", "xp_earned", "pending", "created_at",
    })
    json_columns = frozenset({"entries", "pending"})


class ReviewLogStore(_Store[BaseModel]):
    table = "reviews"
    columns = frozenset({
        "verse_id", "session_id", "session_position", "grade", "auto_graded", "xp_earned",
        "user_text", "duration_seconds", "created_at",
    })

    async def append(self, **fields: Any) -> int:
        """Insert a review row; a row already logged for the same session position is reused."""
        session_id, position = fields.get("session_id"), fields.get("session_position")
        if session_id is not None and position is not None:
            rows = self._query(
                "SELECT id FROM reviews WHERE account_id = ? AND session_id = ? AND session_position = ?",
                (self.account_id, session_id, position),
            )
            if rows:
                return int(rows[0][0])
        values = self._encode_fields(clean_patch(fields))
        values["account_id"] = self.account_id
        names = ", ".join(values)
        placeholders = ", ".join("?" for _ in values)
        cursor = self._execute(
            f"INSERT INTO reviews ({names}) VALUES ({placeholders})",
            tuple(values.values()),
        )
        return cursor.lastrowid

    async def count_by_grade(self) -> Dict[int, int]:
        rows = self._query(
            "SELECT grade, COUNT(*) FROM reviews WHERE account_id = ? GROUP BY grade",
            (self.account_id,),
        )
        return {int(row[0]): int(row[1]) for row in rows}


class Stores:
    """Every store for one account, sharing a connection."""

    def __init__(self, conn: sqlite3.Connection, account_id: int):
        self.account_id = account_id
        self.verses = VerseStore(conn, account_id)
        self.collections = CollectionStore(conn, account_id)
        self.profile = ProfileStore(conn, account_id)
        self.sessions = SessionStore(conn, account_id)
        self.reviews = ReviewLogStore(conn, account_id)


class AccountStore:
    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    def _query(self, sql: str, params=()) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as exc:
            raise StoreError(f"Read from accounts failed: {exc}") from exc

    async def get_all(self) -> List[Account]:
        rows = self._query("SELECT id, name FROM accounts ORDER BY name")
        return [Account.model_validate(dict(row)) for row in rows]

    async def get(self, account_id: int) -> Account:
        rows = self._query("SELECT id, name FROM accounts WHERE id = ?", (account_id,))
        if not rows:
            raise RecordNotFound(f"Account {account_id} not found")
        return Account.model_validate(dict(rows[0]))

    async def create(self, name: str) -> Account:
        try:
            cursor = self.conn.execute("INSERT INTO accounts (name) VALUES (?)", (name,))
            self.conn.commit()
        except sqlite3.IntegrityError as exc:
            raise DuplicateRecord(f"Account {name!r} already exists") from exc
        except sqlite3.Error as exc:
            raise StoreError(f"Write to accounts failed: {exc}") from exc
        return Account(id=cursor.lastrowid, name=name)
