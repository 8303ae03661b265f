"""配置测试"""

import pytest

from orion.config import Config, MCPServerConfig


class TestConfig:
    """配置加载测试"""

    def test_defaults(self):
        """测试默认配置"""
        config = Config()
        assert config.client.name == "Orion"
        assert config.client.protocol_version == "2024-11-05"
        assert config.timeouts.initialize == 30.0
        assert config.timeouts.list_tools == 10.0
        assert config.timeouts.call_tool == 60.0
        assert config.mcp.servers == []

    def test_from_yaml(self, tmp_path):
        """测试从 YAML 加载"""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            """
client:
  name: tester
  version: 2.0.0
timeouts:
  call_tool: 120
storage:
  db_path: /tmp/orion-test.db
mcp:
  servers:
    - id: fs
      name: Filesystem
      command: npx
      args: ["-y", "@modelcontextprotocol/server-filesystem", "/tmp"]
      env:
        DEBUG: "1"
      auto_start: true
    - id: git
      command: uvx
      args: [mcp-server-git]
""",
            encoding="utf-8",
        )

        config = Config.load(config_file)

        assert config.client.name == "tester"
        assert config.client.version == "2.0.0"
        assert config.timeouts.call_tool == 120.0
        assert config.timeouts.initialize == 30.0
        assert config.storage.db_path == "/tmp/orion-test.db"

        fs, git = config.mcp.servers
        assert fs.id == "fs"
        assert fs.display_name == "Filesystem"
        assert fs.args == ["-y", "@modelcontextprotocol/server-filesystem", "/tmp"]
        assert fs.env == {"DEBUG": "1"}
        assert fs.auto_start is True
        assert git.display_name == "git"
        assert git.env is None
        assert git.auto_start is False

    def test_missing_file(self, tmp_path):
        """测试配置文件不存在"""
        with pytest.raises(FileNotFoundError):
            Config.load(tmp_path / "missing.yaml")

    def test_empty_file(self, tmp_path):
        """测试空配置文件"""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("", encoding="utf-8")
        with pytest.raises(ValueError):
            Config.from_yaml(config_file)

    def test_duplicate_server_id(self):
        """测试服务器 ID 重复"""
        data = {
            "mcp": {
                "servers": [
                    {"id": "a", "command": "x"},
                    {"id": "a", "command": "y"},
                ]
            }
        }
        with pytest.raises(ValueError, match="重复"):
            Config.from_dict(data)

    def test_server_requires_command(self):
        """测试服务器缺少命令"""
        with pytest.raises(ValueError):
            MCPServerConfig.from_dict({"id": "a"})

    def test_yaml_scalars_become_strings(self, tmp_path):
        """测试 YAML 中的数字参数和环境变量转为字符串"""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(
            """
mcp:
  servers:
    - id: web
      command: node
      args: [server.js, --port, 8080]
      env:
        PORT: 8080
        VERBOSE: true
""",
            encoding="utf-8",
        )

        (server,) = Config.load(config_file).mcp.servers

        assert server.args == ["server.js", "--port", "8080"]
        assert server.env == {"PORT": "8080", "VERBOSE": "True"}

    def test_server_args_must_be_list(self):
        """测试 args 不是列表"""
        with pytest.raises(ValueError, match="args"):
            MCPServerConfig.from_dict({"id": "a", "command": "x", "args": "--flag"})

    def test_server_env_must_be_mapping(self):
        """测试 env 不是映射"""
        with pytest.raises(ValueError, match="env"):
            MCPServerConfig.from_dict({"id": "a", "command": "x", "env": ["A=1"]})

    def test_default_db_path_uses_xdg(self, monkeypatch, tmp_path):
        """测试默认数据库路径使用 XDG_DATA_HOME"""
        monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
        config = Config.from_dict({"client": {}})
        assert config.storage.db_path == str(tmp_path / "orion" / "orion.db")


class TestServerConfig:
    """服务器配置测试"""

    def test_immutable(self):
        """测试服务器配置不可修改"""
        config = MCPServerConfig(id="a", command="x")
        with pytest.raises(AttributeError):
            config.command = "y"
