"""缓冲传输模块 - 在原始字节流之上提供协议所需的缓冲读写.

主要组件:
    - RedisInputStream: 缓冲输入流，按字节、按行、按块读取
    - RedisOutputStream: 缓冲输出流，原地编码文本行与整数行

使用示例:
    import io
    from redisflow.transport import RedisOutputStream

    raw = io.BytesIO()
    out = RedisOutputStream(raw)
    out.write_int_line(-42)
    out.flush()
    assert raw.getvalue() == b"-42\\r\\n"
"""

from .streams import RedisInputStream, RedisOutputStream

__all__ = [
    "RedisInputStream",
    "RedisOutputStream",
]
