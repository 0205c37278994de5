"""协议编解码单元测试."""

import io

import pytest

from redisflow.exceptions import ProtocolError, RedisConnectionError, RedisDataError
from redisflow.protocol import Command, Keyword, read_reply, send_command
from redisflow.transport import RedisInputStream, RedisOutputStream


def encode_command(command, args=(), buffer_size: int = 8192) -> bytes:
    raw = io.BytesIO()
    stream = RedisOutputStream(raw, buffer_size)
    send_command(stream, command, args)
    stream.flush()
    return raw.getvalue()


def decode(data: bytes, buffer_size: int = 8192):
    return read_reply(RedisInputStream(io.BytesIO(data), buffer_size))


class TestSendCommand:
    """send_command 测试."""

    def test_command_without_args(self) -> None:
        """测试无参数命令."""
        assert encode_command(Command.PING) == b"*1\r\n$4\r\nPING\r\n"

    def test_command_with_args(self) -> None:
        """测试带参数命令编码为批量字符串数组."""
        assert encode_command(Command.SET, [b"key", b"value"]) == (
            b"*3\r\n$3\r\nSET\r\n$3\r\nkey\r\n$5\r\nvalue\r\n"
        )

    def test_keyword_args(self) -> None:
        """测试关键字参数按原始字节写入."""
        assert encode_command(Command.CLIENT, [Keyword.SETNAME, b"worker"]) == (
            b"*3\r\n$6\r\nCLIENT\r\n$7\r\nSETNAME\r\n$6\r\nworker\r\n"
        )

    def test_raw_command_and_binary_payload(self) -> None:
        """测试原始字节命令和包含 CRLF 的二进制参数."""
        payload = b"\x00\r\n\xff"
        assert encode_command(b"ECHO", [payload]) == b"*2\r\n$4\r\nECHO\r\n$4\r\n" + payload + b"\r\n"

    def test_empty_argument(self) -> None:
        """测试空参数编码为长度 0 的批量字符串."""
        assert encode_command(Command.GET, [b""]) == b"*2\r\n$3\r\nGET\r\n$0\r\n\r\n"

    def test_small_buffer(self) -> None:
        """测试缓冲区远小于命令长度时编码结果不变."""
        args = [b"k" * 40, b"v" * 100]
        assert encode_command(Command.SET, args, buffer_size=8) == encode_command(Command.SET, args)


class TestReadReply:
    """read_reply 测试."""

    def test_status(self) -> None:
        """测试状态回复解码为 str."""
        assert decode(b"+OK\r\n") == "OK"

    def test_error_returned_as_value(self) -> None:
        """测试错误回复作为 RedisDataError 实例返回."""
        reply = decode(b"-ERR wrong number of arguments\r\n")
        assert isinstance(reply, RedisDataError)
        assert str(reply) == "ERR wrong number of arguments"

    @pytest.mark.parametrize("value", [0, 42, -7, 2**63 - 1, -(2**63)])
    def test_integer(self, value: int) -> None:
        """测试整数回复."""
        assert decode(f":{value}\r\n".encode()) == value

    def test_bulk(self) -> None:
        """测试批量字符串解码为 bytes."""
        assert decode(b"$5\r\nhello\r\n") == b"hello"

    def test_bulk_with_crlf_inside(self) -> None:
        """测试批量字符串按长度读取，内容可以包含 CRLF."""
        assert decode(b"$4\r\na\r\nb\r\n", buffer_size=3) == b"a\r\nb"

    def test_empty_bulk(self) -> None:
        """测试长度为 0 的批量字符串."""
        assert decode(b"$0\r\n\r\n") == b""

    def test_null_bulk(self) -> None:
        """测试空批量字符串解码为 None."""
        assert decode(b"$-1\r\n") is None

    def test_nested_array(self) -> None:
        """测试嵌套数组递归解码."""
        data = b"*4\r\n:1\r\n$3\r\nfoo\r\n*2\r\n+OK\r\n$-1\r\n-ERR bad\r\n"
        reply = decode(data)
        assert reply[:3] == [1, b"foo", ["OK", None]]
        assert isinstance(reply[3], RedisDataError)

    def test_empty_and_null_array(self) -> None:
        """测试空数组和空数组回复."""
        assert decode(b"*0\r\n") == []
        assert decode(b"*-1\r\n") is None

    def test_sequential_replies(self) -> None:
        """测试同一个流中连续读取多条回复."""
        stream = RedisInputStream(io.BytesIO(b"+OK\r\n$1\r\nv\r\n:3\r\n"), 4)
        assert [read_reply(stream) for _ in range(3)] == ["OK", b"v", 3]

    def test_unknown_marker(self) -> None:
        """测试未知类型标记抛出 ProtocolError."""
        with pytest.raises(ProtocolError, match="未知的回复类型"):
            decode(b"?what\r\n")

    def test_protocol_error_is_connection_error(self) -> None:
        """测试 ProtocolError 属于连接异常."""
        with pytest.raises(RedisConnectionError):
            decode(b"!\r\n")

    def test_invalid_integer(self) -> None:
        """测试无法解析的整数抛出 ProtocolError."""
        with pytest.raises(ProtocolError, match="无法解析整数"):
            decode(b":abc\r\n")

    def test_bulk_missing_terminator(self) -> None:
        """测试批量字符串缺少结束符."""
        with pytest.raises(ProtocolError, match="CRLF"):
            decode(b"$3\r\nfooXY")

    def test_truncated_bulk(self) -> None:
        """测试批量字符串数据不足时抛出 RedisConnectionError."""
        with pytest.raises(RedisConnectionError, match="输入流提前结束"):
            decode(b"$10\r\nshort")

    def test_end_of_stream(self) -> None:
        """测试读到流末尾时抛出 RedisConnectionError."""
        with pytest.raises(RedisConnectionError):
            decode(b"")
