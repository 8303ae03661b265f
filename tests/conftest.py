"""pytest 配置"""

import sys
from pathlib import Path

import pytest

# 添加项目根目录到 Python 路径
ROOT_DIR = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT_DIR))

from orion.config import MCPServerConfig, TimeoutConfig  # noqa: E402

FAKE_SERVER = Path(__file__).parent / "fixtures" / "fake_mcp_server.py"


@pytest.fixture
def make_server_config():
    """创建指向测试 MCP 服务器的配置"""

    def _make(server_id: str = "fake", *flags: str, **kwargs) -> MCPServerConfig:
        return MCPServerConfig(
            id=server_id,
            name=kwargs.pop("name", "Fake Server"),
            command=sys.executable,
            args=[str(FAKE_SERVER), *flags],
            **kwargs,
        )

    return _make


@pytest.fixture
def fast_timeouts():
    """较短的超时配置"""
    return TimeoutConfig(initialize=10.0, list_tools=5.0, call_tool=5.0)


@pytest.fixture
def db_path(tmp_path):
    """临时数据库路径"""
    return str(tmp_path / "data" / "orion.db")
