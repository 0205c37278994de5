"""一致性哈希分片使用示例.

本文件展示了如何使用 ShardedRedisClient 将键分布到多个服务端，
以及如何通过键标记把相关的键放到同一个分片上。
"""

from redisflow.pool import PoolConfig, ShardedClientPool
from redisflow.sharding import (
    DEFAULT_KEY_TAG_PATTERN,
    RedisShardInfo,
    ShardedRedisClient,
)

# 为每个分片指定唯一且固定的名称：调整列表顺序不会改变键的路由结果
shards = [
    RedisShardInfo(host="10.0.0.1", name="cache-1"),
    RedisShardInfo(host="10.0.0.2", name="cache-2"),
    RedisShardInfo.from_uri("redis://:secret@10.0.0.3:6380/0", name="cache-3", weight=2),
]


# ==================== 示例1：直接使用分片客户端 ====================
def example_sharded_client():
    """按键路由到对应分片."""
    with ShardedRedisClient(shards, tag_pattern=DEFAULT_KEY_TAG_PATTERN) as client:
        client.set("user:{42}:profile", "...")
        client.set("user:{42}:orders", "...")

        # 两个键具有相同的键标记 42，一定落在同一个分片上
        print(client.get_shard_info("user:{42}:profile"))
        print(client.get_shard_info("user:{42}:orders"))


# ==================== 示例2：分片客户端连接池 ====================
def example_sharded_pool():
    """从连接池借出分片客户端."""
    pool = ShardedClientPool(shards, PoolConfig(max_total=4), tag_pattern=DEFAULT_KEY_TAG_PATTERN)
    try:
        with pool.lease() as client:
            client.incr("counter:{daily}")
    finally:
        pool.close()


if __name__ == "__main__":
    example_sharded_client()
    example_sharded_pool()
