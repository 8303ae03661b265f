"""MCP (Model Context Protocol) 客户端模块

启动 MCP 服务器进程，通过 stdio 完成握手、发现工具并调用工具。
"""

from .errors import (
    DecodeError,
    MCPError,
    ProtocolError,
    RegistryError,
    ServerAlreadyRunningError,
    ServerNotFoundError,
    SessionError,
    SessionNotInitializedError,
    SpawnError,
    TransportClosedError,
    TransportError,
    TransportIOError,
    TransportTimeoutError,
)
from .protocol import (
    CallToolResult,
    ContentBlock,
    InitializeResult,
    JSONRPCError,
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    MCPTool,
)
from .registry import MCPServerRegistry, ServerStatus
from .session import MCPSession
from .tools import OpenAIFunction, OpenAITool, extract_text, to_openai_tool, to_openai_tools
from .transport import StdioTransport

__all__ = [
    # Protocol types
    "JSONRPCRequest",
    "JSONRPCNotification",
    "JSONRPCResponse",
    "JSONRPCError",
    "InitializeResult",
    "MCPTool",
    "ContentBlock",
    "CallToolResult",
    # Errors
    "MCPError",
    "TransportError",
    "SpawnError",
    "TransportIOError",
    "TransportTimeoutError",
    "TransportClosedError",
    "DecodeError",
    "SessionError",
    "SessionNotInitializedError",
    "ProtocolError",
    "RegistryError",
    "ServerAlreadyRunningError",
    "ServerNotFoundError",
    # Transport
    "StdioTransport",
    # Session
    "MCPSession",
    # Registry
    "MCPServerRegistry",
    "ServerStatus",
    # Tools
    "OpenAITool",
    "OpenAIFunction",
    "to_openai_tool",
    "to_openai_tools",
    "extract_text",
]
