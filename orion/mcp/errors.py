"""MCP 错误类型

传输层、会话层、注册表三层错误统一继承自 MCPError。
"""

from __future__ import annotations

from typing import Any, Optional


class MCPError(Exception):
    """MCP 错误基类"""

    pass


# =============================================================================
# 传输层错误
# =============================================================================


class TransportError(MCPError):
    """传输层错误"""

    pass


class SpawnError(TransportError):
    """子进程启动失败"""

    pass


class TransportIOError(TransportError):
    """管道读写失败，传输层不再可用"""

    pass


class TransportTimeoutError(TransportError):
    """等待响应超时

    服务器不视为失效，但之后可能收到迟到的响应。
    """

    pass


class TransportClosedError(TransportError):
    """服务器输出流已关闭"""

    pass


class DecodeError(TransportError):
    """无法解析的 JSON-RPC 响应行"""

    def __init__(self, message: str, line: str):
        super().__init__(message)
        self.line = line


# =============================================================================
# 会话层错误
# =============================================================================


class SessionError(MCPError):
    """会话错误"""

    pass


class SessionNotInitializedError(SessionError):
    """会话尚未完成握手"""

    pass


class ProtocolError(SessionError):
    """服务器返回的 JSON-RPC 错误，或结果无法解析"""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(f"服务器错误 [{code}]: {message}")
        self.code = code
        self.message = message
        self.data = data


# =============================================================================
# 注册表错误
# =============================================================================


class RegistryError(MCPError):
    """注册表错误"""

    pass


class ServerAlreadyRunningError(RegistryError):
    """服务器 ID 已在运行或正在启动"""

    def __init__(self, server_id: str):
        super().__init__(f"服务器 '{server_id}' 已在运行")
        self.server_id = server_id


class ServerNotFoundError(RegistryError):
    """服务器 ID 不存在"""

    def __init__(self, server_id: str):
        super().__init__(f"服务器 '{server_id}' 不存在")
        self.server_id = server_id
