"""连接 URI 解析工具模块.

支持 ``redis://[:password@]host[:port][/database]`` 形式的地址。
"""

from urllib.parse import SplitResult, unquote, urlsplit

from ..core.constants import ProtocolDefaults
from .exceptions import ConnectionConfigError
from .models import Endpoint


def get_password(parsed: SplitResult) -> str | None:
    """从 URI 的用户信息部分获取密码（冒号之后的内容）."""
    if parsed.password is None:
        return None
    return unquote(parsed.password)


def get_database(parsed: SplitResult) -> int:
    """从 URI 路径获取数据库索引，路径为空时返回默认数据库.

    Raises:
        ConnectionConfigError: 路径不是整数时抛出
    """
    path = parsed.path.lstrip("/")
    if not path:
        return ProtocolDefaults.DATABASE
    try:
        return int(path)
    except ValueError as e:
        raise ConnectionConfigError(f"无法从 URI 路径解析数据库索引: {parsed.path!r}") from e


def parse_uri(uri: str, timeout: float | None = ProtocolDefaults.TIMEOUT) -> Endpoint:
    """将地址字符串解析为 Endpoint.

    非 redis 协议的字符串整体视为主机名，使用默认端口。

    Args:
        uri: 地址字符串
        timeout: 超时时间（秒）

    Returns:
        解析得到的 Endpoint

    Raises:
        ConnectionConfigError: URI 格式不合法时抛出

    Examples:
        >>> endpoint = parse_uri("redis://:secret@cache.local:6380/2")
        >>> endpoint.address, endpoint.database
        ('cache.local:6380', 2)
    """
    parsed = urlsplit(uri)
    if parsed.scheme != ProtocolDefaults.URI_SCHEME:
        return Endpoint(host=uri, timeout=timeout)

    try:
        port = parsed.port or ProtocolDefaults.PORT
    except ValueError as e:
        raise ConnectionConfigError(f"URI 端口不合法: {uri}") from e
    if not parsed.hostname:
        raise ConnectionConfigError(f"URI 缺少主机名: {uri}")

    return Endpoint(
        host=parsed.hostname,
        port=port,
        timeout=timeout,
        password=get_password(parsed),
        database=get_database(parsed),
    )
