"""
Orion - MCP 客户端运行时

启动 MCP 服务器进程，通过 stdio 上的 JSON-RPC 2.0 完成握手、发现并调用工具。
"""

__version__ = "0.1.0"

from .config import ClientConfig, Config, MCPServerConfig, TimeoutConfig
from .mcp import (
    CallToolResult,
    InitializeResult,
    MCPServerRegistry,
    MCPSession,
    MCPTool,
    StdioTransport,
)

__all__ = [
    "__version__",
    "Config",
    "ClientConfig",
    "TimeoutConfig",
    "MCPServerConfig",
    "MCPServerRegistry",
    "MCPSession",
    "StdioTransport",
    "MCPTool",
    "CallToolResult",
    "InitializeResult",
]
