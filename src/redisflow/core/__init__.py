"""核心常量与编码工具."""

from .constants import ProtocolDefaults, ReplyMarker, ShardingDefaults
from .utils import decode, encode, to_bytes

__all__ = [
    "ProtocolDefaults",
    "ReplyMarker",
    "ShardingDefaults",
    "decode",
    "encode",
    "to_bytes",
]
