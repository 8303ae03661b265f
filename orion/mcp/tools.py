"""MCP 工具格式转换

将 MCP 工具定义转换为 OpenAI function calling 格式，纯数据映射，无状态。
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Literal

from pydantic import BaseModel

from .protocol import CallToolResult, MCPTool


class OpenAIFunction(BaseModel):
    """OpenAI 函数定义"""

    name: str
    description: str
    parameters: Dict[str, Any]


class OpenAITool(BaseModel):
    """OpenAI 兼容工具格式"""

    type: Literal["function"] = "function"
    function: OpenAIFunction


def to_openai_tool(tool: MCPTool) -> OpenAITool:
    """转换单个 MCP 工具"""
    return OpenAITool(
        function=OpenAIFunction(
            name=tool.name,
            description=tool.description,
            parameters=tool.inputSchema,
        )
    )


def to_openai_tools(tools: Iterable[MCPTool]) -> List[Dict[str, Any]]:
    """批量转换为可直接传给 LLM API 的字典列表"""
    return [to_openai_tool(tool).model_dump() for tool in tools]


def extract_text(result: CallToolResult) -> str:
    """从工具结果中提取文本内容"""
    texts = [block.text for block in result.content if block.type == "text"]
    return "\n".join(texts)
