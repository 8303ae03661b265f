"""MCP 传输层实现

通过子进程的 stdin/stdout 以换行分隔的 JSON-RPC 与 MCP 服务器通信。
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import (
    SpawnError,
    TransportClosedError,
    TransportIOError,
    TransportTimeoutError,
)
from .protocol import (
    JSONRPCNotification,
    JSONRPCRequest,
    JSONRPCResponse,
    RequestId,
    decode_response,
    encode_message,
    is_server_message,
    parse_line,
    response_from_dict,
)

logger = logging.getLogger(__name__)

# 读取队列容量，消费者停滞时子进程的写入最终会被阻塞
QUEUE_CAPACITY = 100

# 单行输出上限
STREAM_LIMIT = 16 * 1024 * 1024

# 进程终止超时
PROCESS_TERMINATION_TIMEOUT = 2.0

# 输出流结束标记
_EOF = None


class StdioTransport:
    """Stdio 传输实现

    持有一个子进程；后台读取任务按行拆分 stdout 并放入有界队列。
    同一传输上的调用互斥执行 (发送 + 接收为一个整体)。
    """

    def __init__(
        self,
        command: str,
        args: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[Union[str, Path]] = None,
        encoding: str = "utf-8",
    ):
        """初始化 Stdio 传输

        Args:
            command: 服务器命令
            args: 命令参数
            env: 环境变量 (叠加在继承的环境变量之上)
            cwd: 工作目录
            encoding: 编码
        """
        self.command = command
        self.args = list(args or [])
        self.env = {**os.environ, **(env or {})}
        self.cwd = cwd
        self.encoding = encoding

        self._process: Optional[asyncio.subprocess.Process] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue(maxsize=QUEUE_CAPACITY)
        self._lock = asyncio.Lock()

    @classmethod
    async def spawn(
        cls,
        command: str,
        args: Optional[List[str]] = None,
        env: Optional[Dict[str, str]] = None,
        cwd: Optional[Union[str, Path]] = None,
    ) -> "StdioTransport":
        """启动子进程并返回已连接的传输"""
        transport = cls(command=command, args=args, env=env, cwd=cwd)
        await transport.connect()
        return transport

    @property
    def is_connected(self) -> bool:
        """是否已连接"""
        return self._process is not None and self._process.returncode is None

    @property
    def pid(self) -> Optional[int]:
        """子进程 PID"""
        return self._process.pid if self._process else None

    async def connect(self) -> None:
        """启动子进程和后台读取任务"""
        if self._process is not None:
            return

        cmd = [self.command] + self.args
        logger.debug(f"启动 MCP 服务器: {' '.join(cmd)}")

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self.env,
                cwd=self.cwd,
                limit=STREAM_LIMIT,
            )
        except FileNotFoundError as e:
            raise SpawnError(f"找不到命令: {self.command}") from e
        except PermissionError as e:
            raise SpawnError(f"没有执行权限: {self.command}") from e
        except (OSError, TypeError, ValueError) as e:
            raise SpawnError(f"启动服务器失败: {e}") from e

        self._reader_task = asyncio.create_task(self._read_stdout())
        logger.info(f"MCP 服务器已启动 (PID: {self._process.pid})")

    async def _read_stdout(self) -> None:
        """逐行读取 stdout 放入队列，输出流结束时放入结束标记"""
        stdout = self._process.stdout
        try:
            while True:
                try:
                    raw = await stdout.readline()
                except ValueError as e:
                    # 超长行已被丢弃，继续读取后续行
                    logger.warning(f"丢弃超长输出行: {e}")
                    continue

                if not raw:
                    break

                line = raw.decode(self.encoding, errors="replace").strip()
                if line:
                    await self._queue.put(line)
        except asyncio.CancelledError:
            return

        await self._queue.put(_EOF)

    async def close(self) -> None:
        """断开连接并终止子进程"""
        if self._process is None:
            return

        process = self._process
        try:
            if self._reader_task is not None:
                self._reader_task.cancel()
                try:
                    await self._reader_task
                except asyncio.CancelledError:
                    pass
            self._mark_closed()

            if process.stdin and not process.stdin.is_closing():
                process.stdin.close()
                try:
                    await process.stdin.wait_closed()
                except (BrokenPipeError, ConnectionResetError):
                    pass

            try:
                await asyncio.wait_for(process.wait(), timeout=PROCESS_TERMINATION_TIMEOUT)
            except asyncio.TimeoutError:
                logger.warning(f"MCP 服务器未退出，强制终止 (PID: {process.pid})")
                process.terminate()
                try:
                    await asyncio.wait_for(process.wait(), timeout=1.0)
                except asyncio.TimeoutError:
                    process.kill()
                    await process.wait()

            logger.info(f"MCP 服务器已断开 (PID: {process.pid})")

        except ProcessLookupError:
            pass
        finally:
            self._process = None
            self._reader_task = None

    def _mark_closed(self) -> None:
        """放入结束标记，唤醒所有等待中的接收"""
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_EOF)

    async def _write(self, message: Union[JSONRPCRequest, JSONRPCNotification]) -> None:
        if self._process is None or self._process.stdin is None:
            raise TransportIOError("未连接到服务器")

        line = encode_message(message)
        logger.debug(f"发送: {line[:200]}")

        try:
            self._process.stdin.write((line + "\n").encode(self.encoding))
            await self._process.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise TransportIOError(f"发送消息失败: {e}") from e

    async def send_request(self, message: Union[JSONRPCRequest, JSONRPCNotification]) -> None:
        """发送一条 JSON-RPC 消息"""
        await self._write(message)

    async def send_notification(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        """发送通知 (不等待响应)"""
        async with self._lock:
            await self._write(JSONRPCNotification(method=method, params=params))

    async def _receive_line(self, timeout: Optional[float]) -> str:
        try:
            line = await asyncio.wait_for(self._queue.get(), timeout=timeout)
        except asyncio.TimeoutError:
            raise TransportTimeoutError("接收响应超时") from None

        if line is _EOF:
            # 保留结束标记，后续接收同样报告关闭
            self._queue.put_nowait(_EOF)
            raise TransportClosedError("服务器输出流已关闭")

        logger.debug(f"接收: {line[:200]}")
        return line

    async def receive_response(self, timeout: Optional[float] = 30.0) -> JSONRPCResponse:
        """按顺序接收下一条响应

        超时后迟到的响应仍留在队列头部，会被下一次接收取得。
        """
        line = await self._receive_line(timeout)
        return decode_response(line)

    async def call(
        self,
        method: str,
        params: Optional[Dict[str, Any]],
        request_id: RequestId,
        timeout: Optional[float] = 30.0,
    ) -> JSONRPCResponse:
        """发送请求并等待 id 匹配的响应

        之前超时请求的迟到响应和服务器主动消息会被丢弃。
        """
        async with self._lock:
            await self._write(JSONRPCRequest(method=method, params=params, id=request_id))

            loop = asyncio.get_running_loop()
            deadline = None if timeout is None else loop.time() + timeout

            while True:
                remaining = None if deadline is None else max(deadline - loop.time(), 0)
                line = await self._receive_line(remaining)

                data = parse_line(line)
                if is_server_message(data):
                    logger.debug(f"忽略服务器消息: {data.get('method')}")
                    continue

                response = response_from_dict(data, line)
                if response.id == request_id:
                    return response
                if response.id is None and response.error is not None:
                    return response

                logger.warning(f"丢弃过期响应: 期望 id {request_id}, 收到 {response.id}")

    async def read_stderr(self) -> str:
        """读取 stderr 输出 (用于调试)"""
        if not self.is_connected or self._process.stderr is None:
            return ""

        try:
            data = await asyncio.wait_for(self._process.stderr.read(4096), timeout=0.1)
            return data.decode(self.encoding, errors="replace") if data else ""
        except asyncio.TimeoutError:
            return ""

    async def __aenter__(self) -> "StdioTransport":
        """异步上下文管理器入口"""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """异步上下文管理器出口"""
        await self.close()
