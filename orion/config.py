"""配置管理"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


@dataclass
class ClientConfig:
    """客户端身份"""

    name: str = "Orion"
    version: str = "0.1.0"
    protocol_version: str = "2024-11-05"


@dataclass
class TimeoutConfig:
    """请求超时 (秒)"""

    initialize: float = 30.0
    list_tools: float = 10.0
    call_tool: float = 60.0  # 工具执行可能较慢


@dataclass(frozen=True)
class MCPServerConfig:
    """MCP 服务器配置

    启动后不可修改。
    """

    id: str
    command: str
    name: str = ""
    args: List[str] = field(default_factory=list)
    env: Optional[Dict[str, str]] = None
    cwd: Optional[str] = None
    auto_start: bool = False

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MCPServerConfig":
        """从字典创建"""
        server_id = data.get("id", "")
        command = data.get("command", "")
        if not server_id:
            raise ValueError("MCP 服务器配置缺少 id")
        if not command:
            raise ValueError(f"MCP 服务器 '{server_id}' 缺少 command")

        # YAML 会把数字等解析为非字符串，进程参数和环境变量统一转为字符串
        args = data.get("args") or []
        if not isinstance(args, list):
            raise ValueError(f"MCP 服务器 '{server_id}' 的 args 必须是列表")
        env = data.get("env")
        if env is not None and not isinstance(env, dict):
            raise ValueError(f"MCP 服务器 '{server_id}' 的 env 必须是映射")

        return cls(
            id=str(server_id),
            command=str(command),
            name=str(data.get("name") or ""),
            args=[str(arg) for arg in args],
            env={str(k): str(v) for k, v in env.items()} if env is not None else None,
            cwd=data.get("cwd"),
            auto_start=data.get("auto_start", False),
        )


@dataclass
class MCPConfig:
    """MCP 配置"""

    servers: List[MCPServerConfig] = field(default_factory=list)


def get_default_db_path() -> str:
    """获取默认数据库路径"""
    xdg_data = os.environ.get("XDG_DATA_HOME")
    if xdg_data:
        return str(Path(xdg_data) / "orion" / "orion.db")
    return str(Path.home() / ".local" / "share" / "orion" / "orion.db")


@dataclass
class StorageConfig:
    """存储配置"""

    db_path: str = field(default_factory=get_default_db_path)


@dataclass
class Config:
    """主配置"""

    client: ClientConfig = field(default_factory=ClientConfig)
    timeouts: TimeoutConfig = field(default_factory=TimeoutConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    mcp: MCPConfig = field(default_factory=MCPConfig)

    @classmethod
    def load(cls, config_path: str | Path | None = None) -> "Config":
        """加载配置"""
        if config_path is None:
            config_path = cls._find_config_file()

        if config_path is None or not Path(config_path).exists():
            raise FileNotFoundError("配置文件未找到，请创建 config/config.yaml")

        return cls.from_yaml(config_path)

    @classmethod
    def _find_config_file(cls) -> Path | None:
        """查找配置文件"""
        # 优先级: 当前目录 > 用户目录
        search_paths = [
            Path.cwd() / "config" / "config.yaml",
            Path.home() / ".orion" / "config" / "config.yaml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    @classmethod
    def from_yaml(cls, config_path: str | Path) -> "Config":
        """从 YAML 文件加载配置"""
        config_path = Path(config_path)

        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        if not data:
            raise ValueError("配置文件为空")

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """从字典创建配置"""
        client_data = data.get("client", {})
        client_config = ClientConfig(
            name=client_data.get("name", "Orion"),
            version=client_data.get("version", "0.1.0"),
            protocol_version=client_data.get("protocol_version", "2024-11-05"),
        )

        timeout_data = data.get("timeouts", {})
        timeout_config = TimeoutConfig(
            initialize=float(timeout_data.get("initialize", 30.0)),
            list_tools=float(timeout_data.get("list_tools", 10.0)),
            call_tool=float(timeout_data.get("call_tool", 60.0)),
        )

        storage_data = data.get("storage", {})
        storage_config = StorageConfig(
            db_path=storage_data.get("db_path") or get_default_db_path(),
        )

        # MCP 服务器列表，id 必须唯一
        mcp_data = data.get("mcp", {})
        servers: List[MCPServerConfig] = []
        seen_ids = set()
        for server_data in mcp_data.get("servers", []):
            server = MCPServerConfig.from_dict(server_data)
            if server.id in seen_ids:
                raise ValueError(f"MCP 服务器 id 重复: {server.id}")
            seen_ids.add(server.id)
            servers.append(server)

        return cls(
            client=client_config,
            timeouts=timeout_config,
            storage=storage_config,
            mcp=MCPConfig(servers=servers),
        )
