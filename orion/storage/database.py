"""数据库连接管理

使用 aiosqlite 实现异步 SQLite 操作。
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import aiosqlite

from .models import current_timestamp_ms

# 数据库迁移 SQL
MIGRATIONS = [
    # 初始迁移 - 键值表
    """
    CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at INTEGER NOT NULL
    );

    -- 迁移版本表
    CREATE TABLE IF NOT EXISTS schema_migrations (
        version INTEGER PRIMARY KEY,
        applied_at INTEGER NOT NULL
    );
    """,
]


class Database:
    """数据库管理器"""

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        """检查是否已连接"""
        return self._connection is not None

    async def connect(self) -> None:
        """连接数据库"""
        if self._connection is not None:
            return

        # 确保目录存在
        if self.db_path != ":memory:":
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path)
        await self._connection.execute("PRAGMA journal_mode = WAL")
        await self._connection.commit()

    async def close(self) -> None:
        """关闭数据库连接"""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    async def migrate(self) -> None:
        """执行数据库迁移"""
        if self._connection is None:
            await self.connect()

        async with self._lock:
            cursor = await self._connection.execute(
                """
                SELECT name FROM sqlite_master
                WHERE type='table' AND name='schema_migrations'
                """
            )
            table_exists = await cursor.fetchone()

            current_version = 0
            if table_exists:
                cursor = await self._connection.execute(
                    "SELECT MAX(version) FROM schema_migrations"
                )
                row = await cursor.fetchone()
                if row and row[0]:
                    current_version = row[0]

            # 执行未应用的迁移
            for i, migration in enumerate(MIGRATIONS):
                version = i + 1
                if version > current_version:
                    await self._connection.executescript(migration)
                    await self._connection.execute(
                        "INSERT INTO schema_migrations (version, applied_at) VALUES (?, ?)",
                        (version, current_timestamp_ms()),
                    )
                    await self._connection.commit()

    async def execute(self, sql: str, parameters: tuple = ()) -> aiosqlite.Cursor:
        """执行 SQL"""
        if self._connection is None:
            await self.connect()
        return await self._connection.execute(sql, parameters)

    async def commit(self) -> None:
        """提交事务"""
        if self._connection is not None:
            await self._connection.commit()

    async def fetchone(self, sql: str, parameters: tuple = ()) -> Optional[tuple]:
        """查询单行"""
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchone()

    async def fetchall(self, sql: str, parameters: tuple = ()) -> list[tuple]:
        """查询多行"""
        cursor = await self.execute(sql, parameters)
        return await cursor.fetchall()


async def init_database(db_path: str) -> Database:
    """打开数据库并执行迁移"""
    database = Database(db_path)
    await database.connect()
    await database.migrate()
    return database
