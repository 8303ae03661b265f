"""对外命令接口

供上层界面调用的异步函数，每个函数接收应用状态作为第一个参数。
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .config import Config, MCPServerConfig
from .mcp.protocol import CallToolResult, InitializeResult
from .mcp.registry import MCPServerRegistry
from .mcp.tools import to_openai_tools
from .storage import Conversation, KeyValueStore, Settings, init_database

CONVERSATIONS_KEY = "conversations"
SETTINGS_KEY = "settings"


@dataclass
class AppState:
    """应用状态"""

    registry: MCPServerRegistry
    store: KeyValueStore


async def create_app_state(config: Optional[Config] = None) -> AppState:
    """根据配置创建应用状态并启动 auto_start 服务器"""
    config = config or Config()
    database = await init_database(config.storage.db_path)
    registry = MCPServerRegistry(client=config.client, timeouts=config.timeouts)
    try:
        await registry.start_configured(config.mcp.servers)
    except BaseException:
        await registry.stop_all()
        await database.close()
        raise
    return AppState(registry=registry, store=KeyValueStore(database))


async def close_app_state(state: AppState) -> None:
    """停止所有服务器并关闭数据库"""
    await state.registry.stop_all()
    await state.store.db.close()


# =============================================================================
# MCP 命令
# =============================================================================


async def start_mcp_server(state: AppState, config: MCPServerConfig) -> str:
    """启动 MCP 服务器"""
    return await state.registry.start_server(config)


async def stop_mcp_server(state: AppState, server_id: str) -> None:
    """停止 MCP 服务器"""
    await state.registry.stop_server(server_id)


async def list_mcp_servers(state: AppState) -> List[str]:
    """列出运行中的 MCP 服务器"""
    return await state.registry.list_servers()


async def list_mcp_tools(state: AppState, server_id: str) -> List[Dict[str, Any]]:
    """列出服务器工具 (OpenAI 格式)"""
    tools = await state.registry.list_tools(server_id)
    return to_openai_tools(tools)


async def call_mcp_tool(
    state: AppState,
    server_id: str,
    tool_name: str,
    arguments: Optional[Dict[str, Any]] = None,
) -> CallToolResult:
    """调用服务器工具"""
    return await state.registry.call_tool(server_id, tool_name, arguments)


async def get_mcp_server_info(state: AppState, server_id: str) -> Optional[InitializeResult]:
    """获取服务器握手信息"""
    return await state.registry.get_server_info(server_id)


# =============================================================================
# 存储命令
# =============================================================================


async def save_conversations(state: AppState, conversations: List[Conversation]) -> None:
    await state.store.save(CONVERSATIONS_KEY, [c.to_dict() for c in conversations])


async def load_conversations(state: AppState) -> List[Conversation]:
    data = await state.store.load(CONVERSATIONS_KEY, [])
    return [Conversation.from_dict(item) for item in data]


async def save_settings(state: AppState, settings: Settings) -> None:
    await state.store.save(SETTINGS_KEY, settings.to_dict())


async def load_settings(state: AppState) -> Optional[Settings]:
    data = await state.store.load(SETTINGS_KEY)
    return Settings.from_dict(data) if data is not None else None


async def clear_all_data(state: AppState) -> None:
    """清空对话和设置"""
    await state.store.clear()
