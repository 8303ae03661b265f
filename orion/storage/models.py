"""数据模型定义

会话与设置以 JSON 形式整体存入键值表。
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Optional


def generate_id() -> str:
    """生成唯一 ID"""
    return str(uuid.uuid4())


def current_timestamp_ms() -> int:
    """获取当前时间戳（毫秒）"""
    return int(time.time() * 1000)


@dataclass
class ChatMessage:
    """聊天消息"""

    id: str = field(default_factory=generate_id)
    role: str = "user"  # user, assistant, system, tool
    content: str = ""
    timestamp: int = field(default_factory=current_timestamp_ms)
    model: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        """转换为字典"""
        data = {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.model is not None:
            data["model"] = self.model
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ChatMessage:
        """从字典创建"""
        return cls(
            id=data.get("id", generate_id()),
            role=data.get("role", "user"),
            content=data.get("content", ""),
            timestamp=data.get("timestamp", current_timestamp_ms()),
            model=data.get("model"),
        )


@dataclass
class Conversation:
    """对话"""

    id: str = field(default_factory=generate_id)
    title: str = "新对话"
    messages: list[ChatMessage] = field(default_factory=list)
    created_at: int = field(default_factory=current_timestamp_ms)
    updated_at: int = field(default_factory=current_timestamp_ms)
    model: str = ""

    def to_dict(self) -> dict[str, Any]:
        """转换为字典"""
        return {
            "id": self.id,
            "title": self.title,
            "messages": [message.to_dict() for message in self.messages],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "model": self.model,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Conversation:
        """从字典创建"""
        return cls(
            id=data.get("id", generate_id()),
            title=data.get("title", "新对话"),
            messages=[ChatMessage.from_dict(m) for m in data.get("messages", [])],
            created_at=data.get("created_at", current_timestamp_ms()),
            updated_at=data.get("updated_at", current_timestamp_ms()),
            model=data.get("model", ""),
        )


@dataclass
class Settings:
    """用户设置"""

    api_key: Optional[str] = None
    selected_model: str = ""

    def to_dict(self) -> dict[str, Any]:
        """转换为字典"""
        return {"api_key": self.api_key, "selected_model": self.selected_model}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """从字典创建"""
        return cls(
            api_key=data.get("api_key"),
            selected_model=data.get("selected_model", ""),
        )
