"""redisflow 类型定义模块."""

from typing import List, Union

from .exceptions import RedisDataError

# 一条解码后的回复
# 状态回复为 str，整数回复为 int，批量字符串为 bytes，数组为 list，
# 空值为 None，错误回复为 RedisDataError 实例
Reply = Union[str, int, bytes, List["Reply"], RedisDataError, None]

# 命令参数类型
CommandArg = Union[bytes, bytearray, memoryview, str, int, float]
