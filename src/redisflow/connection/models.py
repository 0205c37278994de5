"""连接数据模型定义模块.

提供连接相关的数据模型，包括：
- Endpoint: 后端服务地址与会话参数
- ConnectionState: 连接状态枚举
"""

from dataclasses import dataclass, field
from enum import Enum

from ..core.constants import ProtocolDefaults
from .exceptions import ConnectionConfigError


class ConnectionState(Enum):
    """连接状态枚举.

    UNCONNECTED -> CONNECTED -> (CLOSED | BROKEN)，BROKEN 可从任意状态进入，
    且进入后不再改变。

    Attributes:
        UNCONNECTED: 已创建，尚未建立套接字
        CONNECTED: 套接字已建立
        CLOSED: 已主动断开，可再次连接
        BROKEN: 发生过传输层故障，只能丢弃
    """

    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    CLOSED = "closed"
    BROKEN = "broken"


@dataclass(frozen=True)
class Endpoint:
    """后端服务端点.

    Attributes:
        host: 主机名或 IP，默认 localhost
        port: 端口号，默认 6379
        timeout: 连接与读取超时（秒），0 或 None 表示不超时，默认 2 秒
        password: 访问密码
        database: 数据库索引，默认 0
        client_name: 连接建立后通过 CLIENT SETNAME 设置的名称

    Raises:
        ConnectionConfigError: 参数不合法时抛出

    Examples:
        >>> endpoint = Endpoint(host="10.0.0.1", port=6380, database=2)
        >>> endpoint.address
        '10.0.0.1:6380'
    """

    host: str = ProtocolDefaults.HOST
    port: int = ProtocolDefaults.PORT
    timeout: float | None = ProtocolDefaults.TIMEOUT
    password: str | None = field(default=None, repr=False)
    database: int = ProtocolDefaults.DATABASE
    client_name: str | None = None

    def __post_init__(self) -> None:
        """校验端点参数合法性."""
        if not self.host:
            raise ConnectionConfigError("host 不能为空")
        if not 0 < self.port < 65536:
            raise ConnectionConfigError(f"port 必须在 1~65535 之间，当前值: {self.port}")
        if self.timeout is not None and self.timeout < 0:
            raise ConnectionConfigError(f"timeout 必须 >= 0，当前值: {self.timeout}")
        if self.database < 0:
            raise ConnectionConfigError(f"database 必须 >= 0，当前值: {self.database}")

    @property
    def address(self) -> str:
        """host:port 形式的地址."""
        return f"{self.host}:{self.port}"
