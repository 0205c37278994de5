"""缓冲输入/输出流模块.

提供非线程安全的缓冲流，直接在字节缓冲区上完成协议所需的读写操作：

- RedisInputStream: 按字节、按行、按块读取，缓冲区耗尽时从底层流重新填充
- RedisOutputStream: 批量缓冲写入，支持 ASCII/UTF-8 文本行和十进制整数行的
  原地编码，避免为每次调用分配中间缓冲区

底层流只需提供 ``readinto``（输入）或 ``write``（输出）方法，
例如 ``socket.makefile("rb", buffering=0)`` 或 ``io.BytesIO``。
"""

from __future__ import annotations

from typing import Any, Protocol

from ..core.constants import ProtocolDefaults
from ..exceptions import RedisConnectionError

# 底层流已读到末尾
_EOF = -1

_CR = 0x0D
_LF = 0x0A
_MINUS = 0x2D
_ZERO = 0x30

# 两位数查表：下标为 0~99，分别取十位和个位的 ASCII 码
_DIGIT_TENS = bytes(_ZERO + i // 10 for i in range(100))
_DIGIT_ONES = bytes(_ZERO + i % 10 for i in range(100))


class RawInput(Protocol):
    """可被 RedisInputStream 包装的底层输入流."""

    def readinto(self, buffer: Any) -> int | None: ...

    def close(self) -> None: ...


class RawOutput(Protocol):
    """可被 RedisOutputStream 包装的底层输出流."""

    def write(self, data: Any) -> int | None: ...

    def flush(self) -> None: ...

    def close(self) -> None: ...


def _check_buffer_size(buffer_size: int) -> None:
    if buffer_size <= 0:
        raise ValueError(f"缓冲区大小必须 > 0，当前值: {buffer_size}")


class RedisInputStream:
    """缓冲输入流.

    Attributes:
        _buf: 缓冲区
        _count: 下一个待读取字节的位置
        _limit: 缓冲区中有效数据的长度，读到流末尾时为 -1

    Examples:
        >>> stream = RedisInputStream(io.BytesIO(b"+OK\\r\\n"))
        >>> stream.read_byte()
        43
        >>> stream.read_line()
        'OK'
    """

    def __init__(
        self, raw: RawInput, buffer_size: int = ProtocolDefaults.BUFFER_SIZE
    ) -> None:
        """初始化输入流.

        Args:
            raw: 底层输入流
            buffer_size: 缓冲区大小，默认 8KB

        Raises:
            ValueError: 当 buffer_size <= 0 时抛出
        """
        _check_buffer_size(buffer_size)
        self._raw = raw
        self._buf = bytearray(buffer_size)
        self._view = memoryview(self._buf)
        self._count = 0
        self._limit = 0

    def _fill(self) -> None:
        """从底层流重新填充缓冲区."""
        try:
            n = self._raw.readinto(self._view)
        except OSError as e:
            raise RedisConnectionError(f"读取输入流失败: {e}") from e
        self._count = 0
        self._limit = n if n else _EOF

    def read_byte(self) -> int:
        """读取一个字节.

        Returns:
            字节值（0~255）

        Raises:
            RedisConnectionError: 底层流已结束或读取失败时抛出
        """
        if self._count >= self._limit:
            self._fill()
            if self._limit == _EOF:
                raise RedisConnectionError("读取字节时输入流已结束，服务端似乎已关闭连接")
        b = self._buf[self._count]
        self._count += 1
        return b

    def read_line(self) -> str:
        """读取一行文本，不包含行结束符 CRLF.

        CR 之后若不是 LF，则两个字节都保留在行内；流末尾处孤立的 CR
        同样保留并结束该行。

        Returns:
            一行文本

        Raises:
            RedisConnectionError: 读到流末尾且没有读到任何内容时抛出
        """
        line = bytearray()
        while True:
            if self._count >= self._limit:
                self._fill()
                if self._limit == _EOF:
                    break

            cr = self._buf.find(b"\r", self._count, self._limit)
            if cr == -1:
                line += self._view[self._count : self._limit]
                self._count = self._limit
                continue

            line += self._view[self._count : cr]
            self._count = cr + 1
            if self._count >= self._limit:
                self._fill()
                if self._limit == _EOF:
                    line.append(_CR)
                    break

            c = self._buf[self._count]
            self._count += 1
            if c == _LF:
                break
            line.append(_CR)
            line.append(c)

        if not line:
            raise RedisConnectionError("服务端似乎已关闭连接")
        return line.decode(ProtocolDefaults.CHARSET, errors="replace")

    def read_into(
        self, buffer: bytearray | memoryview, offset: int = 0, length: int | None = None
    ) -> int:
        """将缓冲区中的数据复制到调用方提供的区域.

        一次调用最多消耗一个缓冲周期的数据。

        Args:
            buffer: 目标区域
            offset: 目标区域中的起始位置
            length: 最多复制的字节数，默认填满 buffer 剩余空间

        Returns:
            实际复制的字节数，流已结束时返回 0
        """
        if length is None:
            length = len(buffer) - offset
        if length <= 0:
            return 0
        if self._count >= self._limit:
            self._fill()
            if self._limit == _EOF:
                return 0
        n = min(self._limit - self._count, length)
        buffer[offset : offset + n] = self._view[self._count : self._count + n]
        self._count += n
        return n

    def read_exact(self, n: int) -> bytes:
        """读取恰好 n 个字节.

        Raises:
            RedisConnectionError: 读满 n 个字节之前流已结束时抛出
        """
        data = bytearray(n)
        pos = 0
        while pos < n:
            read = self.read_into(data, pos, n - pos)
            if read == 0:
                raise RedisConnectionError(
                    f"输入流提前结束: 期望 {n} 字节，实际读取 {pos} 字节"
                )
            pos += read
        return bytes(data)

    def close(self) -> None:
        """关闭底层输入流."""
        self._raw.close()


class RedisOutputStream:
    """缓冲输出流.

    写入的数据先进入缓冲区，缓冲区写满或调用 flush() 时才写入底层流。
    """

    def __init__(
        self, raw: RawOutput, buffer_size: int = ProtocolDefaults.BUFFER_SIZE
    ) -> None:
        """初始化输出流.

        Args:
            raw: 底层输出流
            buffer_size: 缓冲区大小，默认 8KB

        Raises:
            ValueError: 当 buffer_size <= 0 时抛出
        """
        _check_buffer_size(buffer_size)
        self._raw = raw
        self._buf = bytearray(buffer_size)
        self._view = memoryview(self._buf)
        self._count = 0

    @property
    def buffered(self) -> int:
        """缓冲区中尚未写出的字节数."""
        return self._count

    def _write_raw(self, data: bytes | bytearray | memoryview) -> None:
        """将数据完整写入底层流，底层流只写出一部分时继续写剩余部分."""
        view = memoryview(data)
        try:
            while view:
                written = self._raw.write(view)
                if written is None:
                    raise RedisConnectionError("输出流暂时不可写")
                view = view[written:]
        except OSError as e:
            raise RedisConnectionError(f"写入输出流失败: {e}") from e

    def _flush_buffer(self) -> None:
        if self._count > 0:
            self._write_raw(self._view[: self._count])
            self._count = 0

    def _reserve(self, n: int) -> None:
        """确保缓冲区剩余空间不少于 n 字节，不足时先刷新."""
        if len(self._buf) - self._count < n:
            self._flush_buffer()

    def write_byte(self, b: int) -> None:
        """写入一个字节."""
        if self._count == len(self._buf):
            self._flush_buffer()
        self._buf[self._count] = b
        self._count += 1

    def _write_sequence(self, *values: int) -> None:
        self._reserve(len(values))
        for b in values:
            self.write_byte(b)

    def write_bytes(
        self,
        data: bytes | bytearray | memoryview,
        offset: int = 0,
        length: int | None = None,
    ) -> None:
        """写入字节数据.

        数据本身不小于缓冲区容量时，先刷新缓冲区再直接写入底层流；
        否则在剩余空间不足时先刷新，再复制进缓冲区。

        Args:
            data: 待写入的数据
            offset: 数据起始位置
            length: 写入长度，默认写到 data 末尾
        """
        if length is None:
            length = len(data) - offset
        if length >= len(self._buf):
            self._flush_buffer()
            self._write_raw(memoryview(data)[offset : offset + length])
            return
        if length > len(self._buf) - self._count:
            self._flush_buffer()
        self._buf[self._count : self._count + length] = memoryview(data)[
            offset : offset + length
        ]
        self._count += length

    def write_crlf(self) -> None:
        """写入行结束符 CRLF."""
        self._write_sequence(_CR, _LF)

    def write_ascii_line(self, text: str) -> None:
        """写入 ASCII 文本行，每个字符占一个字节.

        Raises:
            UnicodeEncodeError: 文本包含非 ASCII 字符时抛出
        """
        self.write_bytes(text.encode("ascii"))
        self.write_crlf()

    def write_utf8_line(self, text: str) -> None:
        """写入 UTF-8 编码的文本行.

        逐字符展开为 1/2/3/4 字节的 UTF-8 序列，直接写入缓冲区。
        UTF-16 代理对会先合并为一个码点再按 4 字节编码。
        """
        if text.isascii():
            self.write_bytes(text.encode("ascii"))
            self.write_crlf()
            return

        size = len(text)
        i = 0
        while i < size:
            c = ord(text[i])
            if c < 0x80:
                self.write_byte(c)
            elif c < 0x800:
                self._write_sequence(0xC0 | (c >> 6), 0x80 | (c & 0x3F))
            elif c > 0xFFFF or (
                _is_high_surrogate(c) and i + 1 < size and _is_low_surrogate(ord(text[i + 1]))
            ):
                if c <= 0xFFFF:
                    i += 1
                    c = 0x10000 + ((c - 0xD800) << 10) + (ord(text[i]) - 0xDC00)
                self._write_sequence(
                    0xF0 | (c >> 18),
                    0x80 | ((c >> 12) & 0x3F),
                    0x80 | ((c >> 6) & 0x3F),
                    0x80 | (c & 0x3F),
                )
            else:
                self._write_sequence(
                    0xE0 | (c >> 12),
                    0x80 | ((c >> 6) & 0x3F),
                    0x80 | (c & 0x3F),
                )
            i += 1

        self.write_crlf()

    def write_int_line(self, value: int) -> None:
        """写入十进制整数行.

        借助两位数查表从低位到高位直接填充缓冲区，不经过字符串转换。
        """
        if value < 0:
            self.write_byte(_MINUS)
            value = -value

        size = _digit_count(value)
        self._reserve(size)
        if size > len(self._buf) - self._count:
            # 缓冲区整体放不下这个数
            self.write_bytes(str(value).encode("ascii"))
        else:
            pos = self._count + size
            while value >= 100:
                value, r = divmod(value, 100)
                pos -= 2
                self._buf[pos] = _DIGIT_TENS[r]
                self._buf[pos + 1] = _DIGIT_ONES[r]
            if value >= 10:
                self._buf[pos - 2] = _DIGIT_TENS[value]
                self._buf[pos - 1] = _DIGIT_ONES[value]
            else:
                self._buf[pos - 1] = _ZERO + value
            self._count += size

        self.write_crlf()

    def flush(self) -> None:
        """将缓冲区内容写入底层流并刷新底层流."""
        self._flush_buffer()
        try:
            self._raw.flush()
        except OSError as e:
            raise RedisConnectionError(f"刷新输出流失败: {e}") from e

    def close(self) -> None:
        """关闭底层输出流，缓冲区中尚未写出的数据被丢弃."""
        self._count = 0
        self._raw.close()

    @staticmethod
    def utf8_length(text: str) -> int:
        """计算文本按 write_utf8_line 编码后的字节数（不含 CRLF）."""
        length = 0
        size = len(text)
        i = 0
        while i < size:
            c = ord(text[i])
            if c < 0x80:
                length += 1
            elif c < 0x800:
                length += 2
            elif c > 0xFFFF:
                length += 4
            elif _is_high_surrogate(c) and i + 1 < size and _is_low_surrogate(ord(text[i + 1])):
                i += 1
                length += 4
            else:
                length += 3
            i += 1
        return length


def _is_high_surrogate(c: int) -> bool:
    return 0xD800 <= c <= 0xDBFF


def _is_low_surrogate(c: int) -> bool:
    return 0xDC00 <= c <= 0xDFFF


def _digit_count(value: int) -> int:
    """非负整数的十进制位数."""
    size = 1
    threshold = 9
    while value > threshold:
        size += 1
        threshold = threshold * 10 + 9
    return size
