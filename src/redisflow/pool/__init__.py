"""连接池模块 - 线程安全的资源池.

主要组件:
    - Pool: 通用连接池门面，统一借出/归还的异常
    - ClientPool: 单端点客户端连接池
    - ShardedClientPool: 分片客户端连接池
    - ObjectPool: 有界对象池
    - ResourceFactory: 资源工厂接口
    - PoolConfig: 连接池配置

使用示例:
    from redisflow.pool import ClientPool, PoolConfig

    pool = ClientPool("redis://localhost:6379/0", PoolConfig(max_total=16))
    with pool.lease() as client:
        client.incr("visits")
    pool.close()
"""

from .base import ObjectPool
from .exceptions import (
    ForeignResourceError,
    PoolClosedError,
    PoolConfigError,
    PoolError,
    PoolExhaustedError,
    ResourceBorrowError,
    ResourceValidationError,
)
from .factory import ClientFactory, ResourceFactory, ShardedClientFactory
from .models import PoolConfig, PooledObject, PooledObjectState
from .tool import ClientPool, Pool, ShardedClientPool

__all__ = [
    # 连接池
    "Pool",
    "ClientPool",
    "ShardedClientPool",
    "ObjectPool",
    # 工厂
    "ResourceFactory",
    "ClientFactory",
    "ShardedClientFactory",
    # 模型
    "PoolConfig",
    "PooledObject",
    "PooledObjectState",
    # 异常
    "PoolError",
    "ResourceBorrowError",
    "PoolConfigError",
    "PoolExhaustedError",
    "PoolClosedError",
    "ResourceValidationError",
    "ForeignResourceError",
]
