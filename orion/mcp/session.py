"""MCP 会话

在一个传输之上维护请求 ID 序列和握手结果，提供 initialize、tools/list、tools/call。
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..config import ClientConfig, MCPServerConfig, TimeoutConfig
from .errors import ProtocolError, SessionNotInitializedError
from .protocol import (
    INTERNAL_ERROR,
    CallToolParams,
    CallToolResult,
    ClientCapabilities,
    Implementation,
    InitializeParams,
    InitializeResult,
    JSONRPCResponse,
    ListToolsResult,
    MCPTool,
)
from .transport import StdioTransport

logger = logging.getLogger(__name__)

ResultT = TypeVar("ResultT", bound=BaseModel)


class MCPSession:
    """MCP 会话

    使用示例:
        transport = await StdioTransport.spawn("npx", ["-y", "@modelcontextprotocol/server-filesystem"])
        session = MCPSession(config, transport)
        await session.initialize()
        tools = await session.list_tools()
        result = await session.call_tool("read_file", {"path": "/tmp/test.txt"})
    """

    def __init__(
        self,
        config: MCPServerConfig,
        transport: StdioTransport,
        client: Optional[ClientConfig] = None,
        timeouts: Optional[TimeoutConfig] = None,
    ):
        self.config = config
        self._transport = transport
        self._client = client or ClientConfig()
        self._timeouts = timeouts or TimeoutConfig()

        # 状态
        self._next_request_id = 1
        self._server_info: Optional[InitializeResult] = None
        self._tools: Dict[str, MCPTool] = {}

    @property
    def transport(self) -> StdioTransport:
        return self._transport

    @property
    def is_initialized(self) -> bool:
        """是否已完成握手"""
        return self._server_info is not None

    @property
    def server_info(self) -> Optional[InitializeResult]:
        """握手结果，握手前为 None"""
        return self._server_info

    @property
    def next_request_id(self) -> int:
        """下一个将被使用的请求 ID"""
        return self._next_request_id

    @property
    def tools(self) -> Dict[str, MCPTool]:
        """已发现的工具"""
        return self._tools

    def _next_id(self) -> int:
        """取得下一个请求 ID，失败的请求也会消耗 ID"""
        request_id = self._next_request_id
        self._next_request_id += 1
        return request_id

    async def _request(
        self,
        method: str,
        params: Optional[Dict[str, Any]],
        timeout: Optional[float],
    ) -> Any:
        """发送请求，将 JSON-RPC 错误转换为 ProtocolError"""
        response: JSONRPCResponse = await self._transport.call(
            method, params, self._next_id(), timeout
        )
        if response.error is not None:
            raise ProtocolError(response.error.code, response.error.message, response.error.data)
        return response.result

    @staticmethod
    def _parse(model: Type[ResultT], result: Any, method: str) -> ResultT:
        if result is None:
            raise ProtocolError(INTERNAL_ERROR, f"{method} 响应缺少 result")
        try:
            return model.model_validate(result)
        except ValidationError as e:
            raise ProtocolError(INTERNAL_ERROR, f"{method} 结果解析失败: {e}") from e

    def _require_initialized(self) -> None:
        if not self.is_initialized:
            raise SessionNotInitializedError("未初始化，请先调用 initialize()")

    async def initialize(self) -> InitializeResult:
        """执行 MCP 协议握手

        成功后发送 notifications/initialized 通知。
        """
        params = InitializeParams(
            protocolVersion=self._client.protocol_version,
            capabilities=ClientCapabilities(),
            clientInfo=Implementation(name=self._client.name, version=self._client.version),
        )

        result = await self._request(
            "initialize",
            params.model_dump(exclude_none=True),
            self._timeouts.initialize,
        )
        init_result = self._parse(InitializeResult, result, "initialize")
        self._server_info = init_result

        logger.info(
            f"MCP 初始化成功: {init_result.serverInfo.name} v{init_result.serverInfo.version}"
        )

        await self._transport.send_notification("notifications/initialized")
        return init_result

    async def list_tools(self) -> List[MCPTool]:
        """获取服务器提供的工具列表"""
        self._require_initialized()

        # 按 nextCursor 翻页直到取完，重复的游标视为结束
        tools: List[MCPTool] = []
        cursor: Optional[str] = None
        seen_cursors = set()
        while True:
            params = {"cursor": cursor} if cursor is not None else None
            result = await self._request("tools/list", params, self._timeouts.list_tools)
            list_result = self._parse(ListToolsResult, result, "tools/list")
            tools.extend(list_result.tools)

            cursor = list_result.nextCursor
            if not cursor or cursor in seen_cursors:
                break
            seen_cursors.add(cursor)

        self._tools = {tool.name: tool for tool in tools}
        logger.info(f"{self.config.display_name}: 发现 {len(tools)} 个工具")

        return tools

    async def call_tool(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> CallToolResult:
        """调用工具

        Args:
            name: 工具名称
            arguments: 工具参数
            timeout: 超时 (秒)，默认使用配置值

        Returns:
            工具执行结果
        """
        self._require_initialized()

        params = CallToolParams(name=name, arguments=arguments)
        result = await self._request(
            "tools/call",
            params.model_dump(exclude_none=True),
            timeout if timeout is not None else self._timeouts.call_tool,
        )
        return self._parse(CallToolResult, result, "tools/call")

    async def close(self) -> None:
        """关闭会话并终止服务器进程"""
        self._server_info = None
        self._tools = {}
        await self._transport.close()

    async def __aenter__(self) -> "MCPSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
