"""协议编解码模块.

请求编码为批量字符串数组::

    *<参数个数+1>\r\n$<命令长度>\r\n<命令>\r\n$<参数长度>\r\n<参数>\r\n...

回复以一个类型标记字节开头，按标记分发到对应的解码函数：

    - ``+`` 状态回复 -> str
    - ``-`` 错误回复 -> RedisDataError 实例（作为值返回，不抛出）
    - ``:`` 整数回复 -> int
    - ``$`` 批量字符串 -> bytes，长度为 -1 时为 None
    - ``*`` 数组 -> list（递归解码），个数为 -1 时为 None
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

from ..core.constants import ReplyMarker
from ..exceptions import ProtocolError, RedisDataError
from ..transport import RedisInputStream, RedisOutputStream
from ..typing import Reply
from .commands import Command, Keyword

_NIL_LENGTH = -1


def send_command(
    stream: RedisOutputStream,
    command: Command | bytes,
    args: Sequence[bytes | Keyword] = (),
) -> None:
    """将一条命令写入输出流.

    只写入缓冲区，不刷新；连续写入多条命令后再统一刷新即可实现管道。

    Args:
        stream: 输出流
        command: 命令，可以是 Command 枚举或原始字节串
        args: 参数列表，元素为字节串或 Keyword
    """
    stream.write_byte(ReplyMarker.ARRAY)
    stream.write_int_line(len(args) + 1)
    _write_bulk(stream, command.raw if isinstance(command, Command) else command)
    for arg in args:
        _write_bulk(stream, arg.raw if isinstance(arg, Keyword) else arg)


def _write_bulk(stream: RedisOutputStream, data: bytes) -> None:
    stream.write_byte(ReplyMarker.BULK)
    stream.write_int_line(len(data))
    stream.write_bytes(data)
    stream.write_crlf()


def read_reply(stream: RedisInputStream) -> Reply:
    """从输入流读取并解码一条回复.

    Returns:
        解码后的回复，错误回复以 RedisDataError 实例返回

    Raises:
        ProtocolError: 类型标记未知或格式非法时抛出
        RedisConnectionError: 底层读取失败时抛出
    """
    marker = stream.read_byte()
    decoder = _DECODERS.get(marker)
    if decoder is None:
        raise ProtocolError(f"未知的回复类型: {chr(marker)!r}")
    return decoder(stream)


def _read_status(stream: RedisInputStream) -> str:
    return stream.read_line()


def _read_error(stream: RedisInputStream) -> RedisDataError:
    return RedisDataError(stream.read_line())


def _read_integer(stream: RedisInputStream) -> int:
    line = stream.read_line()
    try:
        return int(line)
    except ValueError as e:
        raise ProtocolError(f"无法解析整数: {line!r}") from e


def _read_bulk(stream: RedisInputStream) -> bytes | None:
    length = _read_integer(stream)
    if length == _NIL_LENGTH:
        return None
    if length < 0:
        raise ProtocolError(f"非法的批量字符串长度: {length}")
    data = stream.read_exact(length)
    if stream.read_exact(2) != b"\r\n":
        raise ProtocolError("批量字符串缺少结束符 CRLF")
    return data


def _read_array(stream: RedisInputStream) -> list[Reply] | None:
    count = _read_integer(stream)
    if count == _NIL_LENGTH:
        return None
    if count < 0:
        raise ProtocolError(f"非法的数组长度: {count}")
    return [read_reply(stream) for _ in range(count)]


_DECODERS: dict[int, Callable[[RedisInputStream], Reply]] = {
    ReplyMarker.STATUS: _read_status,
    ReplyMarker.ERROR: _read_error,
    ReplyMarker.INTEGER: _read_integer,
    ReplyMarker.BULK: _read_bulk,
    ReplyMarker.ARRAY: _read_array,
}
