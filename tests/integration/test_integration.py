"""集成测试

从 YAML 配置启动服务器，按工具名路由调用，最后关闭。
"""

import json
import sys
from pathlib import Path

import pytest

from orion import commands
from orion.config import Config
from orion.mcp import extract_text

FAKE_SERVER = Path(__file__).parent.parent / "fixtures" / "fake_mcp_server.py"


@pytest.fixture
def config_file(tmp_path):
    """写入包含测试服务器的配置文件"""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        f"""
timeouts:
  initialize: 10
  list_tools: 5
  call_tool: 5
storage:
  db_path: {tmp_path / "orion.db"}
mcp:
  servers:
    - id: fake
      name: Fake
      command: {json.dumps(sys.executable)}
      args: [{json.dumps(str(FAKE_SERVER))}]
      auto_start: true
    - id: idle
      command: {json.dumps(sys.executable)}
      args: [{json.dumps(str(FAKE_SERVER))}]
""",
        encoding="utf-8",
    )
    return config_file


class TestEndToEnd:
    """端到端测试"""

    @pytest.mark.asyncio
    async def test_configured_servers(self, config_file):
        """测试按配置自动启动并路由工具调用"""
        state = await commands.create_app_state(Config.load(config_file))
        try:
            assert await commands.list_mcp_servers(state) == ["fake"]

            tools = await state.registry.get_all_tools()
            assert {tool["function"]["name"] for tool in tools} == {"echo", "slow"}

            server_id = await state.registry.find_server_for_tool("echo")
            assert server_id == "fake"

            result = await commands.call_mcp_tool(state, server_id, "echo", {"q": "北京"})
            assert json.loads(extract_text(result)) == {"q": "北京"}

            idle = next(s for s in Config.load(config_file).mcp.servers if s.id == "idle")
            await commands.start_mcp_server(state, idle)
            assert sorted(await commands.list_mcp_servers(state)) == ["fake", "idle"]
        finally:
            await commands.close_app_state(state)

        assert await commands.list_mcp_servers(state) == []
