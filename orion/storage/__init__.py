"""存储模块

基于 SQLite 的键值存储，保存对话与设置。
"""

from .database import Database, init_database
from .kv_store import KeyValueStore
from .models import ChatMessage, Conversation, Settings

__all__ = [
    "Database",
    "init_database",
    "KeyValueStore",
    "ChatMessage",
    "Conversation",
    "Settings",
]
