"""客户端工具模块.

提供 RedisClient（单端点客户端）和 Pipeline（管道）。

RedisClient 只封装连接池、分片和测试所需的少量命令，每个命令方法都只是
把参数编码后调用 Connection.send_command，再用对应类型的回复读取方法取回结果。
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..connection import Connection, Endpoint, parse_uri
from ..core.constants import ProtocolDefaults
from ..protocol import Command, Keyword
from ..typing import Reply

if TYPE_CHECKING:
    from ..pool import Pool

logger = logging.getLogger(__name__)


class Pipeline:
    """管道.

    连续写入多条命令，调用 sync() 时一次性刷新并按发送顺序读回所有回复。

    Examples:
        >>> pipeline = client.pipelined()
        >>> pipeline.queue(Command.SET, "k", "v").queue(Command.GET, "k")
        >>> pipeline.sync()
        ['OK', b'v']
    """

    def __init__(self, connection: Connection) -> None:
        self._connection = connection

    def queue(self, command: Command | bytes | str, *args: Any) -> Pipeline:
        """写入一条命令，不读取回复."""
        self._connection.send_command(command, *args)
        return self

    def sync(self) -> list[Reply]:
        """读取所有待读取的回复，错误回复以 RedisDataError 实例保留在对应位置."""
        return self._connection.drain_all()


class RedisClient:
    """单端点客户端.

    可以直接使用，也可以从 ClientPool 借出；从连接池借出时 close()
    会把客户端归还给连接池，而不是断开连接。

    Attributes:
        _endpoint: 服务端点
        _connection: 底层连接
        _db: 当前选择的数据库索引
        _data_source: 借出该客户端的连接池

    Examples:
        >>> with RedisClient(Endpoint(host="localhost")) as client:
        ...     client.set("greeting", "hello")
        ...     client.get("greeting")
        'hello'
    """

    def __init__(self, endpoint: Endpoint | None = None) -> None:
        self._endpoint = endpoint or Endpoint()
        self._connection = Connection(self._endpoint)
        self._db = self._endpoint.database
        self._data_source: Pool | None = None

    @classmethod
    def from_uri(
        cls, uri: str, timeout: float | None = ProtocolDefaults.TIMEOUT
    ) -> RedisClient:
        """根据 redis:// 地址创建客户端."""
        return cls(parse_uri(uri, timeout))

    def __repr__(self) -> str:
        return f"RedisClient({self._endpoint.address}, db={self._db})"

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def db(self) -> int:
        """当前选择的数据库索引."""
        return self._db

    @property
    def broken(self) -> bool:
        return self._connection.broken

    # ============================================================
    # 连接管理
    # ============================================================

    def connect(self) -> None:
        self._connection.connect()

    def disconnect(self) -> None:
        self._connection.disconnect()

    def is_connected(self) -> bool:
        return self._connection.is_connected()

    def set_data_source(self, pool: Pool | None) -> None:
        """设置借出该客户端的连接池."""
        self._data_source = pool

    def reset_state(self) -> None:
        """重置会话状态，归还连接池前调用.

        丢弃尚未读取的管道回复，并切回端点配置的数据库。
        """
        if self.is_connected() and not self.broken:
            if self._connection.pipelined_count > 0:
                self._connection.drain_all()
            if self._db != self._endpoint.database:
                self.select(self._endpoint.database)
        self._connection.reset_pipelined_count()

    def close(self) -> None:
        """关闭客户端.

        从连接池借出时归还给连接池：连接已损坏则走损坏归还路径，否则正常归还；
        否则直接断开连接。
        """
        pool = self._data_source
        if pool is None:
            self.disconnect()
            return

        self._data_source = None
        logger.debug(f"归还客户端 {self._endpoint.address}，broken={self.broken}")
        if self.broken:
            pool.return_broken(self)
        else:
            pool.return_healthy(self)

    def __enter__(self) -> RedisClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def pipelined(self) -> Pipeline:
        """创建一个管道."""
        return Pipeline(self._connection)

    def execute_command(self, command: Command | bytes | str, *args: Any) -> Reply:
        """发送任意命令并读取一条回复."""
        self._connection.send_command(command, *args)
        return self._connection.get_one()

    # ============================================================
    # 连接类命令
    # ============================================================

    def ping(self) -> str | None:
        self._connection.send_command(Command.PING)
        return self._connection.get_status()

    def echo(self, message: str) -> str | None:
        self._connection.send_command(Command.ECHO, message)
        return self._connection.get_bulk()

    def auth(self, password: str) -> str | None:
        self._connection.send_command(Command.AUTH, password)
        return self._connection.get_status()

    def select(self, index: int) -> str | None:
        """切换数据库."""
        self._connection.send_command(Command.SELECT, index)
        status = self._connection.get_status()
        self._db = index
        return status

    def client_setname(self, name: str) -> str | None:
        self._connection.send_command(Command.CLIENT, Keyword.SETNAME, name)
        return self._connection.get_status()

    def quit(self) -> str | None:
        """请求服务端关闭连接."""
        self._connection.send_command(Command.QUIT)
        status = self._connection.get_status()
        self._db = ProtocolDefaults.DATABASE
        return status

    # ============================================================
    # 键值类命令
    # ============================================================

    def get(self, key: str | bytes) -> str | None:
        self._connection.send_command(Command.GET, key)
        return self._connection.get_bulk()

    def set(
        self,
        key: str | bytes,
        value: Any,
        ex: int | None = None,
        px: int | None = None,
        nx: bool = False,
        xx: bool = False,
    ) -> str | None:
        """设置键值.

        Args:
            key: 键
            value: 值
            ex: 过期时间（秒）
            px: 过期时间（毫秒）
            nx: 仅在键不存在时设置
            xx: 仅在键已存在时设置

        Returns:
            成功时为 "OK"，nx/xx 条件不满足时为 None
        """
        args: list[Any] = [key, value]
        if ex is not None:
            args.extend((Keyword.EX, ex))
        if px is not None:
            args.extend((Keyword.PX, px))
        if nx:
            args.append(Keyword.NX)
        if xx:
            args.append(Keyword.XX)
        self._connection.send_command(Command.SET, *args)
        return self._connection.get_status()

    def delete(self, *keys: str | bytes) -> int | None:
        self._connection.send_command(Command.DEL, *keys)
        return self._connection.get_integer()

    def exists(self, key: str | bytes) -> bool:
        self._connection.send_command(Command.EXISTS, key)
        return self._connection.get_integer() == 1

    def incr(self, key: str | bytes) -> int | None:
        self._connection.send_command(Command.INCR, key)
        return self._connection.get_integer()

    def expire(self, key: str | bytes, seconds: int) -> int | None:
        self._connection.send_command(Command.EXPIRE, key, seconds)
        return self._connection.get_integer()

    def dbsize(self) -> int | None:
        self._connection.send_command(Command.DBSIZE)
        return self._connection.get_integer()

    def flushdb(self) -> str | None:
        self._connection.send_command(Command.FLUSHDB)
        return self._connection.get_status()

    def blpop(self, timeout: float, *keys: str | bytes) -> list[str | None] | None:
        """阻塞式弹出列表头部元素.

        等待期间取消套接字读取超时，返回后恢复。

        Args:
            timeout: 服务端等待时间（秒），0 表示一直等待
            *keys: 列表键

        Returns:
            [键, 值]，超时时为 None
        """
        with self._connection.infinite_timeout():
            self._connection.send_command(Command.BLPOP, *keys, timeout)
            return self._connection.get_array_of_bulk()
