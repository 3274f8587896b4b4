"""
store.py - Role-scoped key/value persistence for training state

Provides get/set/append over the kv_store table. Every read is
best-effort: a missing, unparseable or invalid value is treated as
absent and the caller's default is returned.
"""

import json
import logging
from typing import Any, Optional, TypeVar

import aiosqlite
from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATS_KEY = "mathforce_train_stats"
HISTORY_KEY = "mathforce_training_history"
WEAK_TOPIC_KEY = "mathforce_weak_topic"
DIFFICULTY_KEY = "mathforce_difficulty_state"
PROFILE_KEY = "mathforce_student_profile"
REVIEW_RESULTS_KEY = "mathforce_review_results"


def role_scoped_key(base_key: str, role: Optional[str]) -> str:
    return f"{base_key}_{role}" if role else base_key


class ScopedStore:
    """Key/value access for one role scope (None = unscoped)."""

    def __init__(self, db: aiosqlite.Connection, role: Optional[str] = None):
        self.db = db
        self.role = role

    def key(self, base_key: str) -> str:
        return role_scoped_key(base_key, self.role)

    async def get_raw(self, base_key: str) -> Optional[str]:
        cursor = await self.db.execute(
            "SELECT value FROM kv_store WHERE key = ?", (self.key(base_key),)
        )
        row = await cursor.fetchone()
        return row[0] if row else None

    async def get(self, base_key: str, type_: Any, default: T) -> T:
        """Read and validate a stored value; corrupt data counts as absence."""
        raw = await self.get_raw(base_key)
        if raw is None:
            return default
        try:
            return TypeAdapter(type_).validate_json(raw)
        except (ValidationError, ValueError) as e:
            logger.warning(f"Ignoring corrupt value under {self.key(base_key)}: {e}")
            return default

    async def set(self, base_key: str, value: Any) -> None:
        payload = json.dumps(_to_jsonable(value), ensure_ascii=False)
        await self.db.execute(
            """INSERT INTO kv_store (key, value, updated_at)
               VALUES (?, ?, CURRENT_TIMESTAMP)
               ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                              updated_at = excluded.updated_at""",
            (self.key(base_key), payload),
        )
        await self.db.commit()

    async def append(self, base_key: str, item_type: Any, item: Any) -> list:
        """Read the stored list, append one item and write it back.

        Not safe against concurrent appends to the same scope; one active
        session per scope is assumed.
        """
        items = await self.get(base_key, list[item_type], [])
        items.append(item)
        await self.set(base_key, items)
        return items


def _to_jsonable(value: Any) -> Any:
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json", by_alias=True)
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {k: _to_jsonable(v) for k, v in value.items()}
    return value
