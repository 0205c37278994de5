"""分片客户端模块.

ShardedRedisClient 按键把命令转发到对应分片的 RedisClient。
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from ..client import RedisClient
from ..exceptions import RedisFlowError
from .hashing import MURMUR_HASH, Hashing
from .models import RedisShardInfo
from .tool import Sharded

if TYPE_CHECKING:
    from ..pool import Pool

logger = logging.getLogger(__name__)


class ShardedRedisClient(Sharded[RedisClient, RedisShardInfo]):
    """分片客户端.

    每个分片持有一个 RedisClient；从 ShardedClientPool 借出时 close()
    会把整个分片客户端归还给连接池。

    Examples:
        >>> shards = [
        ...     RedisShardInfo(host="10.0.0.1", name="cache-1"),
        ...     RedisShardInfo(host="10.0.0.2", name="cache-2"),
        ... ]
        >>> with ShardedRedisClient(shards) as client:
        ...     client.set("user:1", "alice")
        ...     client.get("user:1")
        'alice'
    """

    def __init__(
        self,
        shards: Sequence[RedisShardInfo],
        algo: Hashing = MURMUR_HASH,
        tag_pattern: re.Pattern[str] | str | None = None,
    ) -> None:
        super().__init__(shards, algo, tag_pattern)
        self._data_source: Pool | None = None

    def __repr__(self) -> str:
        return f"ShardedRedisClient({', '.join(str(s) for s in self.get_all_shard_info())})"

    # ============================================================
    # 键值类命令
    # ============================================================

    def get(self, key: str | bytes) -> str | None:
        return self.get_shard(key).get(key)

    def set(self, key: str | bytes, value: Any, **options: Any) -> str | None:
        return self.get_shard(key).set(key, value, **options)

    def delete(self, key: str | bytes) -> int | None:
        return self.get_shard(key).delete(key)

    def exists(self, key: str | bytes) -> bool:
        return self.get_shard(key).exists(key)

    def incr(self, key: str | bytes) -> int | None:
        return self.get_shard(key).incr(key)

    def expire(self, key: str | bytes, seconds: int) -> int | None:
        return self.get_shard(key).expire(key, seconds)

    # ============================================================
    # 连接管理
    # ============================================================

    @property
    def broken(self) -> bool:
        """任一分片连接已损坏即视为损坏."""
        return any(client.broken for client in self.get_all_shards())

    def disconnect(self) -> None:
        """断开所有分片连接.

        已连接的分片先发送 QUIT；单个分片失败只记录日志，不影响其他分片。
        """
        for client in self.get_all_shards():
            if client.is_connected() and not client.broken:
                try:
                    client.quit()
                except RedisFlowError as e:
                    logger.warning(f"向分片 {client.endpoint.address} 发送 QUIT 失败: {e}")
            try:
                client.disconnect()
            except RedisFlowError as e:
                logger.warning(f"断开分片 {client.endpoint.address} 失败: {e}")

    def reset_state(self) -> None:
        for client in self.get_all_shards():
            client.reset_state()

    def set_data_source(self, pool: Pool | None) -> None:
        self._data_source = pool

    def close(self) -> None:
        """关闭分片客户端，从连接池借出时归还给连接池."""
        pool = self._data_source
        if pool is None:
            self.disconnect()
            return

        self._data_source = None
        if self.broken:
            pool.return_broken(self)
        else:
            pool.return_healthy(self)

    def __enter__(self) -> ShardedRedisClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
