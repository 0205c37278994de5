"""协议编解码模块 - 请求帧编码与回复类型分发解码.

主要组件:
    - send_command: 将命令与参数编码为批量字符串数组
    - read_reply: 读取一个类型标记并分发到对应的解码函数
    - Command / Keyword: 命令名称与关键字枚举
"""

from .codec import read_reply, send_command
from .commands import Command, Keyword

__all__ = [
    "Command",
    "Keyword",
    "read_reply",
    "send_command",
]
