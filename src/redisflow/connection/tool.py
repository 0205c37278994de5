"""连接工具模块.

提供 Connection 类：管理一条到后端服务的套接字，负责命令发送、回复读取、
管道计数以及损坏状态的传播。

使用示例:
    from redisflow.connection import Connection, Endpoint
    from redisflow.protocol import Command

    with Connection(Endpoint(host="localhost")) as conn:
        conn.send_command(Command.SET, "k", "v")
        conn.send_command(Command.GET, "k")
        replies = conn.drain_all()  # ["OK", b"v"]
"""

from __future__ import annotations

import logging
import socket
import struct
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from ..core.constants import ProtocolDefaults
from ..core.utils import decode, to_bytes
from ..exceptions import RedisConnectionError, RedisDataError
from ..protocol import Command, Keyword, codec
from ..transport import RedisInputStream, RedisOutputStream
from ..typing import Reply
from .exceptions import NoPendingReplyError
from .models import ConnectionState, Endpoint

logger = logging.getLogger(__name__)

# close() 时立即释放套接字，不等待未发送的数据
_LINGER_ABORT = struct.pack("ii", 1, 0)


def _socket_timeout(timeout: float | None) -> float | None:
    """将配置的超时转换为 socket 超时，0 表示永不超时."""
    return timeout or None


class Connection:
    """到后端服务的单条连接.

    非线程安全：同一时刻只能有一个调用方使用。管道模式下先写入若干命令，
    再按发送顺序读取同样数量的回复。

    发生任何传输层故障后连接进入 BROKEN 状态，之后除 disconnect() 外的
    所有操作都直接抛出 RedisConnectionError。

    Attributes:
        _endpoint: 服务端点
        _socket: 套接字，首次使用前为 None
        _input: 缓冲输入流
        _output: 缓冲输出流
        _state: 连接状态
        _pipelined_count: 已发送但尚未读取回复的命令数
    """

    def __init__(
        self,
        endpoint: Endpoint | None = None,
        buffer_size: int = ProtocolDefaults.BUFFER_SIZE,
    ) -> None:
        """初始化连接，不会立即建立套接字.

        Args:
            endpoint: 服务端点，默认 localhost:6379
            buffer_size: 输入/输出流缓冲区大小
        """
        self._endpoint = endpoint or Endpoint()
        self._timeout = self._endpoint.timeout
        self._buffer_size = buffer_size
        self._socket: socket.socket | None = None
        self._input: RedisInputStream | None = None
        self._output: RedisOutputStream | None = None
        self._state = ConnectionState.UNCONNECTED
        self._pipelined_count = 0

    def __repr__(self) -> str:
        return f"Connection({self._endpoint.address}, state={self._state.value})"

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def timeout(self) -> float | None:
        return self._timeout

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def broken(self) -> bool:
        """连接是否已损坏，一旦为 True 将不再恢复."""
        return self._state is ConnectionState.BROKEN

    @property
    def pipelined_count(self) -> int:
        """已发送但尚未读取回复的命令数."""
        return self._pipelined_count

    @property
    def socket(self) -> socket.socket | None:
        return self._socket

    # ============================================================
    # 生命周期管理
    # ============================================================

    def is_connected(self) -> bool:
        """套接字是否已建立且仍然打开."""
        sock = self._socket
        if sock is None or sock.fileno() == -1:
            return False
        try:
            sock.getpeername()
        except OSError:
            return False
        return True

    def connect(self) -> None:
        """建立连接，已连接时什么也不做.

        Raises:
            RedisConnectionError: 连接已损坏或建立连接失败时抛出
        """
        self._ensure_not_broken()
        if self.is_connected():
            return

        try:
            sock = self._open_socket()
            self._socket = sock
            self._input = RedisInputStream(sock.makefile("rb", buffering=0), self._buffer_size)
            self._output = RedisOutputStream(sock.makefile("wb", buffering=0), self._buffer_size)
        except OSError as e:
            self._mark_broken(e)
            raise RedisConnectionError(f"连接 {self._endpoint.address} 失败: {e}") from e

        self._state = ConnectionState.CONNECTED
        logger.debug(f"已连接到 {self._endpoint.address}")

    def _open_socket(self) -> socket.socket:
        """按 getaddrinfo 的结果依次尝试建立 TCP 连接."""
        host, port = self._endpoint.host, self._endpoint.port
        timeout = _socket_timeout(self._timeout)
        last_error: OSError | None = None

        for family, socktype, proto, _, address in socket.getaddrinfo(
            host, port, 0, socket.SOCK_STREAM
        ):
            sock = socket.socket(family, socktype, proto)
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_KEEPALIVE, 1)
                sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_LINGER, _LINGER_ABORT)
                sock.settimeout(timeout)
                sock.connect(address)
                return sock
            except OSError as e:
                last_error = e
                sock.close()

        raise last_error or OSError(f"无法解析地址 {host}:{port}")

    def disconnect(self) -> None:
        """断开连接.

        依次关闭输入流、输出流、套接字；未连接时什么也不做。

        Raises:
            RedisConnectionError: 任一步骤失败时抛出，连接同时被标记为损坏
        """
        if self._socket is None:
            return

        error: Exception | None = None
        for resource in (self._input, self._output, self._socket):
            if resource is None:
                continue
            try:
                resource.close()
            except OSError as e:
                error = error or e

        self._socket = None
        self._input = None
        self._output = None
        self._pipelined_count = 0
        if error is not None:
            self._mark_broken(error)
            raise RedisConnectionError(
                f"关闭连接 {self._endpoint.address} 失败: {error}"
            ) from error

        if not self.broken:
            self._state = ConnectionState.CLOSED
        logger.debug(f"已断开与 {self._endpoint.address} 的连接")

    def close(self) -> None:
        """关闭连接，与 disconnect() 相同."""
        self.disconnect()

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    # ============================================================
    # 超时控制
    # ============================================================

    def set_timeout_infinite(self) -> None:
        """暂时取消读取超时，用于阻塞型命令.

        Raises:
            RedisConnectionError: 连接已损坏或设置失败时抛出
        """
        self.connect()
        try:
            self._socket.settimeout(None)
        except OSError as e:
            self._mark_broken(e)
            raise RedisConnectionError(f"取消读取超时失败: {e}") from e

    def rollback_timeout(self) -> None:
        """恢复配置的读取超时."""
        if self._socket is None:
            return
        try:
            self._socket.settimeout(_socket_timeout(self._timeout))
        except OSError as e:
            self._mark_broken(e)
            raise RedisConnectionError(f"恢复读取超时失败: {e}") from e

    @contextmanager
    def infinite_timeout(self) -> Iterator[Connection]:
        """在作用域内取消读取超时，退出时（包括异常退出）恢复."""
        self.set_timeout_infinite()
        try:
            yield self
        finally:
            if not self.broken:
                self.rollback_timeout()

    # ============================================================
    # 命令发送
    # ============================================================

    def send_command(self, command: Command | bytes | str, *args: Any) -> Connection:
        """发送一条命令（只写入缓冲区）.

        Args:
            command: 命令
            *args: 参数，支持 bytes、str、int、float 和 Keyword

        Returns:
            连接自身（支持链式调用）

        Raises:
            RedisDataError: 参数为 None 或类型不受支持时抛出
            RedisConnectionError: 连接失败或写入失败时抛出
        """
        name = command if isinstance(command, Command) else to_bytes(command)
        raw_args = [arg if isinstance(arg, Keyword) else to_bytes(arg) for arg in args]

        self.connect()
        try:
            codec.send_command(self._output, name, raw_args)
        except RedisConnectionError as e:
            self._mark_broken(e)
            raise
        self._pipelined_count += 1
        return self

    def flush(self) -> None:
        """将缓冲区中的命令写入套接字.

        Raises:
            RedisConnectionError: 连接已损坏或写入失败时抛出
        """
        self._ensure_not_broken()
        if self._output is None:
            return
        try:
            self._output.flush()
        except RedisConnectionError as e:
            self._mark_broken(e)
            raise

    def reset_pipelined_count(self) -> None:
        self._pipelined_count = 0

    # ============================================================
    # 回复读取
    # ============================================================

    def _read_reply(self) -> Reply:
        try:
            return codec.read_reply(self._input)
        except RedisConnectionError as e:
            self._mark_broken(e)
            raise

    def _next_reply(self) -> Reply:
        """刷新缓冲区并读取下一条回复，错误回复直接抛出."""
        if self._pipelined_count <= 0:
            raise NoPendingReplyError("没有待读取的回复，请先发送命令")
        self.flush()
        self._pipelined_count -= 1
        reply = self._read_reply()
        if isinstance(reply, RedisDataError):
            raise reply
        return reply

    def get_status(self) -> str | None:
        """读取一条状态回复."""
        reply = self._next_reply()
        if isinstance(reply, bytes):
            return decode(reply)
        return _expect(reply, str, "status")

    def get_binary_bulk(self) -> bytes | None:
        """读取一条批量字符串回复（字节形式）."""
        return _expect(self._next_reply(), bytes, "bulk")

    def get_bulk(self) -> str | None:
        """读取一条批量字符串回复并按协议字符集解码."""
        return decode(self.get_binary_bulk())

    def get_integer(self) -> int | None:
        """读取一条整数回复."""
        return _expect(self._next_reply(), int, "integer")

    def get_array_of_reply(self) -> list[Reply] | None:
        """读取一条数组回复，元素保持解码后的原样."""
        return _expect(self._next_reply(), list, "array")

    def get_binary_array(self) -> list[bytes | None] | None:
        """读取一条批量字符串数组回复（字节形式）."""
        reply = self.get_array_of_reply()
        if reply is None:
            return None
        return [_expect(item, bytes, "bulk") for item in reply]

    def get_array_of_bulk(self) -> list[str | None] | None:
        """读取一条批量字符串数组回复并逐个解码."""
        reply = self.get_binary_array()
        if reply is None:
            return None
        return [decode(item) for item in reply]

    def get_array_of_integer(self) -> list[int | None] | None:
        """读取一条整数数组回复."""
        reply = self.get_array_of_reply()
        if reply is None:
            return None
        return [_expect(item, int, "integer") for item in reply]

    def get_one(self) -> Reply:
        """读取一条任意类型的回复."""
        return self._next_reply()

    def drain_all(self, except_: int = 0) -> list[Reply]:
        """读取所有待读取的回复，只保留最后 except_ 条不读.

        单条回复是错误回复时，RedisDataError 实例按位置放入结果列表，
        不会中断后续回复的读取。

        Args:
            except_: 保留不读的回复数

        Returns:
            按发送顺序排列的回复列表
        """
        replies: list[Reply] = []
        self.flush()
        while self._pipelined_count > except_:
            replies.append(self._read_reply())
            self._pipelined_count -= 1
        return replies

    # ============================================================
    # 状态维护
    # ============================================================

    def _ensure_not_broken(self) -> None:
        if self.broken:
            raise RedisConnectionError(
                f"连接 {self._endpoint.address} 已损坏，不能继续使用"
            )

    def _mark_broken(self, error: Exception) -> None:
        if not self.broken:
            self._state = ConnectionState.BROKEN
            logger.warning(f"连接 {self._endpoint.address} 已损坏: {error}")


def _expect(reply: Any, expected: type, kind: str) -> Any:
    """校验回复类型，None 原样返回."""
    if reply is None or (isinstance(reply, expected) and not isinstance(reply, bool)):
        return reply
    raise RedisDataError(f"期望 {kind} 类型的回复，实际为 {type(reply).__name__}: {reply!r}")
