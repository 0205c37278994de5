"""客户端模块 - 基于单条连接的命令封装.

主要组件:
    - RedisClient: 单端点客户端，可直接使用或从连接池借出
    - Pipeline: 管道，批量发送命令后一次性读回回复

使用示例:
    from redisflow.client import RedisClient

    client = RedisClient.from_uri("redis://localhost:6379/1")
    client.set("k", "v")
    pipeline = client.pipelined()
    pipeline.queue(Command.INCR, "counter").queue(Command.GET, "k")
    replies = pipeline.sync()
"""

from .tool import Pipeline, RedisClient

__all__ = [
    "RedisClient",
    "Pipeline",
]
