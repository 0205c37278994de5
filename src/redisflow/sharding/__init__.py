"""分片模块 - 一致性哈希分片.

主要组件:
    - Sharded: 带权重虚拟节点的一致性哈希环
    - ShardedRedisClient: 按键路由命令的分片客户端
    - ShardInfo / RedisShardInfo: 分片描述
    - Hashing / MurmurHash / MD5Hash: 哈希算法

使用示例:
    from redisflow.sharding import RedisShardInfo, ShardedRedisClient

    client = ShardedRedisClient(
        [
            RedisShardInfo(host="10.0.0.1", name="cache-1"),
            RedisShardInfo(host="10.0.0.2", name="cache-2", weight=2),
        ],
        tag_pattern=DEFAULT_KEY_TAG_PATTERN,
    )
    client.set("user:{42}:profile", "...")
"""

from .client import ShardedRedisClient
from .exceptions import ShardConfigError, ShardingError
from .hashing import MD5, MURMUR_HASH, Hashing, MD5Hash, MurmurHash
from .models import RedisShardInfo, ShardInfo
from .tool import DEFAULT_KEY_TAG_PATTERN, Sharded

__all__ = [
    # 哈希环
    "Sharded",
    "ShardedRedisClient",
    "DEFAULT_KEY_TAG_PATTERN",
    # 模型
    "ShardInfo",
    "RedisShardInfo",
    # 哈希算法
    "Hashing",
    "MurmurHash",
    "MD5Hash",
    "MURMUR_HASH",
    "MD5",
    # 异常
    "ShardingError",
    "ShardConfigError",
]
