"""MCP 协议类型定义

基于 JSON-RPC 2.0 和 MCP 规范实现，仅覆盖 initialize、tools/list、tools/call。
参考: https://modelcontextprotocol.io/specification/
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from .errors import DecodeError

# =============================================================================
# JSON-RPC 2.0 基础类型
# =============================================================================

# 标准错误码
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

RequestId = Union[str, int]


class JSONRPCRequest(BaseModel):
    """JSON-RPC 2.0 请求"""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: Optional[Dict[str, Any]] = None
    id: RequestId


class JSONRPCNotification(BaseModel):
    """JSON-RPC 2.0 通知

    线上格式沿用请求结构，id 固定为 null，不等待响应。
    """

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: Optional[Dict[str, Any]] = None


class JSONRPCError(BaseModel):
    """JSON-RPC 2.0 错误"""

    code: int
    message: str
    data: Optional[Any] = None


class JSONRPCResponse(BaseModel):
    """JSON-RPC 2.0 响应

    result 与 error 必须且只能出现一个。
    """

    jsonrpc: Literal["2.0"] = "2.0"
    result: Optional[Any] = None
    error: Optional[JSONRPCError] = None
    id: Optional[RequestId] = None

    @model_validator(mode="after")
    def _check_result_or_error(self) -> "JSONRPCResponse":
        has_result = "result" in self.model_fields_set
        has_error = "error" in self.model_fields_set and self.error is not None
        if has_result and has_error:
            raise ValueError("响应不能同时包含 result 和 error")
        if not has_result and not has_error:
            raise ValueError("响应必须包含 result 或 error")
        return self

    @property
    def is_error(self) -> bool:
        return self.error is not None


def encode_message(message: Union[JSONRPCRequest, JSONRPCNotification]) -> str:
    """序列化为单行 JSON (不含换行符)"""
    if isinstance(message, JSONRPCNotification):
        data = message.model_dump(exclude_none=True)
        data["id"] = None
        return json.dumps(data, ensure_ascii=False)
    return message.model_dump_json(exclude_none=True)


def parse_line(line: str) -> Dict[str, Any]:
    """解析一行 JSON 为对象"""
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise DecodeError(f"JSON 解析失败: {e}", line) from e

    if not isinstance(data, dict):
        raise DecodeError("JSON-RPC 消息必须是对象", line)
    return data


def is_server_message(data: Dict[str, Any]) -> bool:
    """是否为服务器主动发起的请求或通知"""
    return "method" in data


def response_from_dict(data: Dict[str, Any], line: str) -> JSONRPCResponse:
    """从已解析的对象构建响应"""
    if is_server_message(data):
        raise DecodeError(f"收到服务器消息而非响应: {data.get('method')}", line)
    try:
        return JSONRPCResponse.model_validate(data)
    except ValidationError as e:
        raise DecodeError(f"无效的 JSON-RPC 响应: {e}", line) from e


def decode_response(line: str) -> JSONRPCResponse:
    """解析一行文本为 JSON-RPC 响应"""
    return response_from_dict(parse_line(line), line)


# =============================================================================
# MCP 协议版本
# =============================================================================

PROTOCOL_VERSION = "2024-11-05"


# =============================================================================
# MCP 实现信息与能力
# =============================================================================


class Implementation(BaseModel):
    """客户端/服务器实现信息"""

    name: str
    version: str


class ClientCapabilities(BaseModel):
    """客户端能力"""

    experimental: Optional[Dict[str, Any]] = None
    sampling: Optional[Dict[str, Any]] = None


class ServerCapabilities(BaseModel):
    """服务器能力 (内容不做解释)"""

    model_config = ConfigDict(extra="allow")

    experimental: Optional[Dict[str, Any]] = None
    logging: Optional[Dict[str, Any]] = None
    prompts: Optional[Dict[str, Any]] = None
    resources: Optional[Dict[str, Any]] = None
    tools: Optional[Dict[str, Any]] = None


# =============================================================================
# MCP 初始化
# =============================================================================


class InitializeParams(BaseModel):
    """初始化请求参数"""

    protocolVersion: str = PROTOCOL_VERSION
    capabilities: ClientCapabilities = Field(default_factory=ClientCapabilities)
    clientInfo: Implementation


class InitializeResult(BaseModel):
    """初始化响应结果"""

    protocolVersion: str
    capabilities: ServerCapabilities = Field(default_factory=ServerCapabilities)
    serverInfo: Implementation
    instructions: Optional[str] = None


# =============================================================================
# MCP 工具类型
# =============================================================================


class MCPTool(BaseModel):
    """MCP 工具定义"""

    name: str
    description: str = ""
    inputSchema: Dict[str, Any] = Field(
        default_factory=lambda: {
            "type": "object",
            "properties": {},
        }
    )


class ListToolsResult(BaseModel):
    """工具列表响应"""

    tools: List[MCPTool]
    nextCursor: Optional[str] = None


class CallToolParams(BaseModel):
    """工具调用参数"""

    name: str
    arguments: Optional[Dict[str, Any]] = None


class ContentBlock(BaseModel):
    """工具结果内容块

    非文本内容 (如 image) 的额外字段原样保留。
    """

    model_config = ConfigDict(extra="allow")

    type: str
    text: str = ""


class CallToolResult(BaseModel):
    """工具调用结果"""

    content: List[ContentBlock] = Field(default_factory=list)
    isError: Optional[bool] = None
