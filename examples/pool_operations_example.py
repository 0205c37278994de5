"""连接池使用示例.

本文件展示了如何使用 ClientPool 借出、使用和归还客户端，以及如何使用管道。
"""

import logging

from redisflow.exceptions import RedisConnectionError
from redisflow.pool import ClientPool, PoolConfig
from redisflow.protocol import Command

logging.basicConfig(level=logging.INFO)

# 创建连接池：最多 16 个连接，资源耗尽时最多等待 1 秒
pool = ClientPool(
    "redis://localhost:6379/0",
    PoolConfig(
        max_total=16,
        max_wait=1.0,  # 等待 1 秒后仍无可用连接则抛出 ResourceBorrowError
        test_on_borrow=True,  # 借出前先 PING
    ),
)


# ==================== 示例1：使用 lease 自动归还 ====================
def example_lease():
    """作用域结束时自动归还，连接异常时按损坏资源归还."""
    with pool.lease() as client:
        client.set("greeting", "你好")
        print(client.get("greeting"))


# ==================== 示例2：手动借出与归还 ====================
def example_borrow_and_close():
    """close() 会把客户端归还给连接池，而不是断开连接."""
    client = pool.borrow()
    try:
        client.incr("visits")
    except RedisConnectionError as e:
        print(f"连接已损坏，close() 时会被连接池销毁: {e}")
    finally:
        client.close()


# ==================== 示例3：管道 ====================
def example_pipeline():
    """一次性发送多条命令，按发送顺序读回所有回复."""
    with pool.lease() as client:
        pipeline = client.pipelined()
        pipeline.queue(Command.SET, "a", 1)
        pipeline.queue(Command.INCR, "a")
        pipeline.queue(Command.GET, "a")
        # 单条命令失败时，对应位置是一个 RedisDataError 实例
        print(pipeline.sync())  # ['OK', 2, b'2']


# ==================== 示例4：阻塞命令 ====================
def example_blpop():
    """BLPOP 等待期间不受读取超时限制."""
    with pool.lease() as client:
        print(client.blpop(5, "jobs"))


if __name__ == "__main__":
    try:
        example_lease()
        example_borrow_and_close()
        example_pipeline()
        example_blpop()
    finally:
        pool.close()
