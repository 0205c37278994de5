"""协议命令与关键字定义模块."""

from enum import Enum


class Command(Enum):
    """支持的命令名称.

    枚举值即命令在协议中的名称，raw 属性返回编码后的字节串。
    """

    AUTH = "AUTH"
    BLPOP = "BLPOP"
    CLIENT = "CLIENT"
    DBSIZE = "DBSIZE"
    DEL = "DEL"
    ECHO = "ECHO"
    EXISTS = "EXISTS"
    EXPIRE = "EXPIRE"
    FLUSHDB = "FLUSHDB"
    GET = "GET"
    INCR = "INCR"
    PING = "PING"
    QUIT = "QUIT"
    SELECT = "SELECT"
    SET = "SET"

    @property
    def raw(self) -> bytes:
        """命令名称的字节形式."""
        return self.value.encode("ascii")


class Keyword(Enum):
    """命令中使用的关键字参数."""

    SETNAME = "SETNAME"
    EX = "EX"
    PX = "PX"
    NX = "NX"
    XX = "XX"

    @property
    def raw(self) -> bytes:
        """关键字的字节形式."""
        return self.value.encode("ascii")
