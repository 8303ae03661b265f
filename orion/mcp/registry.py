"""MCP 服务器注册表

管理多个 MCP 服务器会话，所有对服务器表的访问都经过同一把锁。
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Set

from ..config import ClientConfig, MCPServerConfig, TimeoutConfig
from .errors import MCPError, ServerAlreadyRunningError, ServerNotFoundError
from .protocol import CallToolResult, InitializeResult, MCPTool
from .session import MCPSession
from .tools import to_openai_tools
from .transport import StdioTransport

logger = logging.getLogger(__name__)


class ServerStatus(str, Enum):
    """服务器状态"""

    STARTING = "starting"
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


class MCPServerRegistry:
    """MCP 服务器注册表

    start_server 先在锁内预留 ID，再在锁外启动进程和握手，成功后提交，
    失败则终止进程并释放预留。同一 ID 的并发启动只有一个能成功。
    """

    def __init__(
        self,
        client: Optional[ClientConfig] = None,
        timeouts: Optional[TimeoutConfig] = None,
    ):
        self._client = client or ClientConfig()
        self._timeouts = timeouts or TimeoutConfig()
        self._servers: Dict[str, MCPSession] = {}
        self._starting: Set[str] = set()
        self._failures: Dict[str, Exception] = {}
        self._lock = asyncio.Lock()

    async def _open_session(self, config: MCPServerConfig) -> MCPSession:
        """启动进程并完成握手"""
        transport = await StdioTransport.spawn(
            config.command,
            config.args,
            env=config.env,
            cwd=config.cwd,
        )
        session = MCPSession(config, transport, client=self._client, timeouts=self._timeouts)
        try:
            await session.initialize()
        except BaseException:
            await session.close()
            raise
        return session

    async def start_server(self, config: MCPServerConfig) -> str:
        """启动 MCP 服务器

        Returns:
            服务器 ID
        """
        server_id = config.id

        async with self._lock:
            if server_id in self._servers or server_id in self._starting:
                raise ServerAlreadyRunningError(server_id)
            self._starting.add(server_id)
            self._failures.pop(server_id, None)

        try:
            session = await self._open_session(config)
        except BaseException as e:
            async with self._lock:
                self._starting.discard(server_id)
                if isinstance(e, Exception):
                    self._failures[server_id] = e
            raise

        async with self._lock:
            self._starting.discard(server_id)
            self._servers[server_id] = session

        logger.info(f"已启动 MCP 服务器: {config.display_name} ({server_id})")
        return server_id

    async def stop_server(self, server_id: str) -> None:
        """停止 MCP 服务器"""
        async with self._lock:
            session = self._servers.pop(server_id, None)

        if session is None:
            raise ServerNotFoundError(server_id)

        await session.close()
        logger.info(f"已停止 MCP 服务器: {server_id}")

    async def get_server(self, server_id: str) -> MCPSession:
        """获取服务器会话"""
        async with self._lock:
            session = self._servers.get(server_id)

        if session is None:
            raise ServerNotFoundError(server_id)
        return session

    async def list_servers(self) -> List[str]:
        """列出所有运行中的服务器 ID"""
        async with self._lock:
            return list(self._servers.keys())

    async def get_status(self, server_id: str) -> ServerStatus:
        """获取服务器状态"""
        async with self._lock:
            if server_id in self._servers:
                return ServerStatus.RUNNING
            if server_id in self._starting:
                return ServerStatus.STARTING
            if server_id in self._failures:
                return ServerStatus.ERROR
            return ServerStatus.STOPPED

    async def get_last_error(self, server_id: str) -> Optional[Exception]:
        """获取最近一次启动失败的错误"""
        async with self._lock:
            return self._failures.get(server_id)

    async def get_server_info(self, server_id: str) -> Optional[InitializeResult]:
        """获取服务器握手信息"""
        session = await self.get_server(server_id)
        return session.server_info

    async def list_tools(self, server_id: str) -> List[MCPTool]:
        """列出指定服务器的工具"""
        session = await self.get_server(server_id)
        return await session.list_tools()

    async def call_tool(
        self,
        server_id: str,
        tool_name: str,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> CallToolResult:
        """调用指定服务器的工具"""
        session = await self.get_server(server_id)
        return await session.call_tool(tool_name, arguments)

    async def get_all_tools(self) -> List[Dict[str, Any]]:
        """汇总所有服务器已发现的工具 (OpenAI 格式)"""
        async with self._lock:
            sessions = list(self._servers.values())

        tools: List[MCPTool] = []
        for session in sessions:
            tools.extend(session.tools.values())
        return to_openai_tools(tools)

    async def find_server_for_tool(self, tool_name: str) -> Optional[str]:
        """查找提供指定工具的服务器"""
        async with self._lock:
            for server_id, session in self._servers.items():
                if tool_name in session.tools:
                    return server_id
        return None

    async def start_configured(self, servers: Iterable[MCPServerConfig]) -> Dict[str, MCPError]:
        """启动所有 auto_start 的服务器

        单个服务器失败不影响其他服务器。

        Returns:
            启动失败的服务器 ID 与错误
        """
        failures: Dict[str, MCPError] = {}
        for config in servers:
            if not config.auto_start:
                continue
            try:
                await self.start_server(config)
                await self.list_tools(config.id)
            except MCPError as e:
                logger.error(f"启动 MCP 服务器 '{config.display_name}' 失败: {e}")
                failures[config.id] = e
        return failures

    async def stop_all(self) -> None:
        """停止所有服务器"""
        async with self._lock:
            sessions = list(self._servers.values())
            self._servers.clear()

        for session in sessions:
            await session.close()

    async def __aenter__(self) -> "MCPServerRegistry":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.stop_all()
