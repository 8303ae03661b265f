"""键值存储

值以 JSON 序列化保存，同一键后写覆盖先写。
"""

from __future__ import annotations

import json
from typing import Any, Optional

from .database import Database
from .models import current_timestamp_ms


class KeyValueStore:
    """键值存储"""

    def __init__(self, db: Database):
        self.db = db

    async def save(self, key: str, value: Any) -> None:
        """保存值 (覆盖已有值)"""
        await self.db.execute(
            """
            INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, json.dumps(value, ensure_ascii=False), current_timestamp_ms()),
        )
        await self.db.commit()

    async def load(self, key: str, default: Optional[Any] = None) -> Any:
        """读取值，不存在时返回 default"""
        row = await self.db.fetchone("SELECT value FROM kv_store WHERE key = ?", (key,))
        if row is None:
            return default
        return json.loads(row[0])

    async def delete(self, key: str) -> bool:
        """删除值"""
        cursor = await self.db.execute("DELETE FROM kv_store WHERE key = ?", (key,))
        await self.db.commit()
        return cursor.rowcount > 0

    async def keys(self) -> list[str]:
        """列出所有键"""
        rows = await self.db.fetchall("SELECT key FROM kv_store ORDER BY key")
        return [row[0] for row in rows]

    async def clear(self) -> None:
        """清空所有值"""
        await self.db.execute("DELETE FROM kv_store")
        await self.db.commit()
