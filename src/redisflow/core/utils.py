"""编码工具函数模块.

在字符串与协议字节之间转换，统一使用 ProtocolDefaults.CHARSET。
"""

from typing import Any

from ..exceptions import RedisDataError
from .constants import ProtocolDefaults


def encode(value: str) -> bytes:
    """将字符串编码为协议字节.

    Args:
        value: 待编码的字符串

    Returns:
        编码后的字节串

    Raises:
        RedisDataError: 当 value 为 None 或无法编码时抛出
    """
    if value is None:
        raise RedisDataError("发送给服务端的值不能为 None")
    try:
        return value.encode(ProtocolDefaults.CHARSET)
    except UnicodeEncodeError as e:
        raise RedisDataError(f"无法按 {ProtocolDefaults.CHARSET} 编码: {e}") from e


def decode(data: bytes | bytearray | None) -> str | None:
    """将协议字节解码为字符串，None 原样返回."""
    if data is None:
        return None
    return bytes(data).decode(ProtocolDefaults.CHARSET)


def to_bytes(value: Any) -> bytes:
    """将命令参数转换为字节串.

    支持 bytes/bytearray/memoryview、str 以及 int/float（十进制文本）。

    Raises:
        RedisDataError: 当参数为 None 或类型不受支持时抛出
    """
    if isinstance(value, bytes):
        return value
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return encode(value)
    if isinstance(value, bool):
        raise RedisDataError("布尔值不能直接作为命令参数，请显式转换")
    if isinstance(value, (int, float)):
        return repr(value).encode("ascii")
    if value is None:
        raise RedisDataError("发送给服务端的值不能为 None")
    raise RedisDataError(f"不支持的参数类型: {type(value).__name__}")
