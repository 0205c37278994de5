"""redisflow - Redis 客户端驱动.

这是一个基于 RESP 协议的同步 Redis 客户端库。

主要功能:
    - Connection: 单条连接，支持管道和损坏状态检测
    - RedisClient: 单端点客户端
    - ShardedRedisClient: 基于一致性哈希的分片客户端
    - ClientPool / ShardedClientPool: 线程安全的连接池

使用示例:
    from redisflow import ClientPool

    with ClientPool("redis://localhost:6379/0") as pool:
        with pool.lease() as client:
            client.set("greeting", "hello")
"""

__version__ = "0.1.0"

# 导出客户端
from redisflow.client import Pipeline, RedisClient

# 导出连接
from redisflow.connection import Connection, ConnectionState, Endpoint, parse_uri

# 导出异常
from redisflow.exceptions import (
    ProtocolError,
    RedisConnectionError,
    RedisDataError,
    RedisFlowError,
)

# 导出连接池
from redisflow.pool import (
    ClientPool,
    Pool,
    PoolConfig,
    PoolError,
    ResourceBorrowError,
    ResourceFactory,
    ShardedClientPool,
)

# 导出协议
from redisflow.protocol import Command, Keyword

# 导出分片
from redisflow.sharding import (
    DEFAULT_KEY_TAG_PATTERN,
    MD5,
    MURMUR_HASH,
    RedisShardInfo,
    Sharded,
    ShardedRedisClient,
)

__all__ = [
    # 版本
    "__version__",
    # 连接
    "Connection",
    "ConnectionState",
    "Endpoint",
    "parse_uri",
    # 协议
    "Command",
    "Keyword",
    # 客户端
    "RedisClient",
    "Pipeline",
    # 分片
    "Sharded",
    "ShardedRedisClient",
    "RedisShardInfo",
    "DEFAULT_KEY_TAG_PATTERN",
    "MURMUR_HASH",
    "MD5",
    # 连接池
    "Pool",
    "ClientPool",
    "ShardedClientPool",
    "PoolConfig",
    "ResourceFactory",
    # 异常
    "RedisFlowError",
    "RedisConnectionError",
    "ProtocolError",
    "RedisDataError",
    "PoolError",
    "ResourceBorrowError",
]
