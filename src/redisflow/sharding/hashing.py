"""一致性哈希算法模块.

哈希值统一为有符号 64 位整数，以保证与其他语言客户端构建出的哈希环一致：
同样的分片配置在不同客户端上会把同一个键路由到同一个分片。
"""

import hashlib
import struct
from abc import ABC, abstractmethod

from ..core.utils import encode

_MASK_64 = 0xFFFFFFFFFFFFFFFF
_SIGN_BIT = 1 << 63


def _to_signed(value: int) -> int:
    """将无符号 64 位整数转换为有符号表示."""
    return value - (1 << 64) if value & _SIGN_BIT else value


def _to_bytes(key: bytes | str) -> bytes:
    if isinstance(key, str):
        return encode(key)
    return bytes(key)


class Hashing(ABC):
    """哈希算法接口."""

    @abstractmethod
    def hash(self, key: bytes | str) -> int:
        """计算键的哈希值，字符串先按 UTF-8 编码."""
        raise NotImplementedError


class MurmurHash(Hashing):
    """MurmurHash64A 算法.

    按 8 字节小端分块处理，剩余不足 8 字节的尾部补零后作为最后一块。
    """

    SEED = 0x1234ABCD
    _M = 0xC6A4A7935BD1E995
    _R = 47

    def __init__(self, seed: int = SEED) -> None:
        self._seed = seed

    def hash(self, key: bytes | str) -> int:
        data = _to_bytes(key)
        m, r = self._M, self._R
        length = len(data)
        h = (self._seed ^ (length * m)) & _MASK_64

        body = length - length % 8
        for (k,) in struct.iter_unpack("<Q", data[:body]):
            k = (k * m) & _MASK_64
            k ^= k >> r
            k = (k * m) & _MASK_64
            h ^= k
            h = (h * m) & _MASK_64

        tail = data[body:]
        if tail:
            h ^= int.from_bytes(tail, "little")
            h = (h * m) & _MASK_64

        h ^= h >> r
        h = (h * m) & _MASK_64
        h ^= h >> r
        return _to_signed(h)


class MD5Hash(Hashing):
    """MD5 算法，取摘要前 4 个字节按小端组成非负整数."""

    def hash(self, key: bytes | str) -> int:
        digest = hashlib.md5(_to_bytes(key)).digest()
        return int.from_bytes(digest[:4], "little")


MURMUR_HASH = MurmurHash()
MD5 = MD5Hash()
