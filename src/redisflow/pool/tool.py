"""连接池工具模块.

提供 Pool（通用连接池门面）以及两个具体连接池：
- ClientPool: 单端点 RedisClient 连接池
- ShardedClientPool: ShardedRedisClient 连接池

使用示例:
    from redisflow.pool import ClientPool, PoolConfig

    with ClientPool("redis://localhost:6379/0", PoolConfig(max_total=4)) as pool:
        with pool.lease() as client:
            client.set("k", "v")

        client = pool.borrow()
        try:
            client.get("k")
        finally:
            client.close()  # 归还给连接池
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Generic, TypeVar

from ..client import RedisClient
from ..connection import Endpoint, parse_uri
from ..exceptions import RedisConnectionError
from ..sharding import MURMUR_HASH, Hashing, RedisShardInfo, ShardedRedisClient
from .base import ObjectPool
from .exceptions import PoolError, ResourceBorrowError
from .factory import ClientFactory, ResourceFactory, ShardedClientFactory
from .models import PoolConfig

logger = logging.getLogger(__name__)

R = TypeVar("R")


class Pool(Generic[R]):
    """通用连接池.

    在 ObjectPool 之上统一异常：借出失败抛出 ResourceBorrowError，
    归还、归还损坏资源、销毁失败抛出 PoolError，原始异常通过 __cause__ 保留。

    Attributes:
        _factory: 资源工厂
        _internal_pool: 底层对象池，init_pool() 之前为 None
    """

    def __init__(
        self,
        factory: ResourceFactory[R] | None = None,
        config: PoolConfig | None = None,
    ) -> None:
        self._factory: ResourceFactory[R] | None = None
        self._internal_pool: ObjectPool[R] | None = None
        if factory is not None:
            self.init_pool(factory, config)

    def init_pool(self, factory: ResourceFactory[R], config: PoolConfig | None = None) -> None:
        """初始化底层对象池，已有的对象池会先被关闭."""
        if self._internal_pool is not None:
            try:
                self._close_internal_pool()
            except PoolError as e:
                logger.warning(f"关闭原有连接池失败: {e}")

        self._factory = factory
        self._internal_pool = ObjectPool(factory, config)
        logger.info(f"{type(self).__name__} 初始化完成: {self._internal_pool.config}")

    @property
    def config(self) -> PoolConfig:
        return self._pool.config

    @property
    def _pool(self) -> ObjectPool[R]:
        if self._internal_pool is None:
            raise PoolError("连接池尚未初始化，请先调用 init_pool()")
        return self._internal_pool

    # ============================================================
    # 借出与归还
    # ============================================================

    def borrow(self) -> R:
        """从连接池借出一个资源.

        Raises:
            ResourceBorrowError: 无法获取资源时抛出
        """
        pool = self._pool
        try:
            resource = pool.borrow_object()
        except Exception as e:
            logger.error(f"无法从连接池获取资源: {e}")
            raise ResourceBorrowError("无法从连接池获取资源") from e

        try:
            self._factory.on_borrow(resource, self)
        except Exception as e:
            logger.error(f"绑定资源的数据源失败，资源将被销毁: {e}")
            self._invalidate_quietly(resource)
            raise ResourceBorrowError("无法从连接池获取资源") from e
        return resource

    def return_healthy(self, resource: R | None) -> None:
        """归还一个正常的资源，None 什么也不做.

        归还前会清理资源的会话状态，清理失败的资源会被销毁。
        已损坏的资源（broken 为真）按 return_broken 处理。

        Raises:
            PoolError: 归还失败时抛出
        """
        if resource is None:
            return
        if getattr(resource, "broken", False):
            self.return_broken(resource)
            return
        pool = self._pool

        try:
            self._factory.on_return(resource)
        except Exception as e:
            logger.error(f"清理资源状态失败，资源将被销毁: {e}")
            self._invalidate_quietly(resource)
            raise PoolError("无法将资源归还给连接池") from e

        try:
            pool.return_object(resource)
        except Exception as e:
            logger.error(f"无法将资源归还给连接池: {e}")
            raise PoolError("无法将资源归还给连接池") from e

    def return_broken(self, resource: R | None) -> None:
        """归还一个损坏的资源，资源会被销毁而不会再被借出.

        Raises:
            PoolError: 销毁失败时抛出
        """
        if resource is None:
            return
        try:
            self._pool.invalidate_object(resource)
        except Exception as e:
            logger.error(f"无法将损坏的资源归还给连接池: {e}")
            raise PoolError("无法将损坏的资源归还给连接池") from e

    def _invalidate_quietly(self, resource: R) -> None:
        try:
            self._pool.invalidate_object(resource)
        except Exception as e:
            logger.warning(f"销毁资源失败: {e}")

    @contextmanager
    def lease(self) -> Iterator[R]:
        """借出一个资源，退出作用域时自动归还.

        作用域内抛出 RedisConnectionError 或资源已损坏时按损坏资源归还，其他情况正常归还；
        资源已在作用域内被归还时什么也不做。
        """
        resource = self.borrow()
        try:
            yield resource
        except RedisConnectionError:
            if self._pool.is_borrowed(resource):
                self.return_broken(resource)
            raise
        except BaseException:
            if self._pool.is_borrowed(resource):
                self.return_healthy(resource)
            raise
        else:
            if self._pool.is_borrowed(resource):
                self.return_healthy(resource)

    # ============================================================
    # 生命周期
    # ============================================================

    def _close_internal_pool(self) -> None:
        try:
            self._pool.close()
        except Exception as e:
            logger.error(f"无法销毁连接池: {e}")
            raise PoolError("无法销毁连接池") from e

    def close(self) -> None:
        """关闭连接池，空闲资源立即销毁，借出中的资源在归还时销毁."""
        self._close_internal_pool()

    def destroy(self) -> None:
        """销毁连接池，与 close() 相同."""
        self._close_internal_pool()

    def is_closed(self) -> bool:
        return self._pool.is_closed()

    @property
    def num_active(self) -> int:
        return self._pool.num_active

    @property
    def num_idle(self) -> int:
        return self._pool.num_idle

    def __enter__(self) -> Pool[R]:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class ClientPool(Pool[RedisClient]):
    """单端点客户端连接池.

    Examples:
        >>> pool = ClientPool(Endpoint(host="localhost", database=1))
        >>> pool = ClientPool("redis://:secret@localhost:6379/2")
    """

    def __init__(
        self,
        endpoint: Endpoint | str | None = None,
        config: PoolConfig | None = None,
    ) -> None:
        if isinstance(endpoint, str):
            endpoint = parse_uri(endpoint)
        super().__init__(ClientFactory(endpoint), config)


class ShardedClientPool(Pool[ShardedRedisClient]):
    """分片客户端连接池.

    Examples:
        >>> pool = ShardedClientPool(
        ...     [RedisShardInfo(host="10.0.0.1", name="a"), RedisShardInfo(host="10.0.0.2", name="b")],
        ...     PoolConfig(max_total=4),
        ... )
    """

    def __init__(
        self,
        shards: Sequence[RedisShardInfo],
        config: PoolConfig | None = None,
        algo: Hashing = MURMUR_HASH,
        tag_pattern: re.Pattern[str] | str | None = None,
    ) -> None:
        super().__init__(ShardedClientFactory(shards, algo, tag_pattern), config)
