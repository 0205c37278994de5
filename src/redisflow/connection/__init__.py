"""连接模块 - 管理到后端服务的单条套接字连接.

主要组件:
    - Connection: 连接对象，负责命令发送、回复读取、管道计数和损坏状态
    - Endpoint: 服务端点模型
    - ConnectionState: 连接状态枚举
    - parse_uri: 将 redis:// 地址解析为 Endpoint

使用示例:
    from redisflow.connection import Connection, parse_uri
    from redisflow.protocol import Command

    conn = Connection(parse_uri("redis://localhost:6379/0"))
    conn.send_command(Command.PING)
    assert conn.get_status() == "PONG"
"""

from .exceptions import ConnectionConfigError, NoPendingReplyError
from .models import ConnectionState, Endpoint
from .tool import Connection
from .utils import get_database, get_password, parse_uri

__all__ = [
    # 连接
    "Connection",
    # 模型
    "Endpoint",
    "ConnectionState",
    # 工具
    "parse_uri",
    "get_password",
    "get_database",
    # 异常
    "ConnectionConfigError",
    "NoPendingReplyError",
]
