"""资源工厂模块.

提供 ResourceFactory 接口，以及两个具体实现：
- ClientFactory: 创建单端点的 RedisClient
- ShardedClientFactory: 创建 ShardedRedisClient
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Generic, TypeVar

from ..client import RedisClient
from ..connection import Endpoint
from ..core.constants import ProtocolDefaults
from ..exceptions import RedisFlowError
from ..sharding import MURMUR_HASH, Hashing, RedisShardInfo, ShardedRedisClient

if TYPE_CHECKING:
    from .tool import Pool

logger = logging.getLogger(__name__)

R = TypeVar("R")

_PONG = "PONG"


class ResourceFactory(ABC, Generic[R]):
    """资源工厂接口.

    连接池通过工厂管理资源的完整生命周期：
    create -> (activate -> [validate] -> on_borrow -> 借出 -> on_return -> passivate)* -> destroy
    """

    @abstractmethod
    def create(self) -> R:
        """创建一个可用的资源."""
        raise NotImplementedError

    @abstractmethod
    def destroy(self, resource: R) -> None:
        """释放资源."""
        raise NotImplementedError

    @abstractmethod
    def validate(self, resource: R) -> bool:
        """检查资源是否仍然可用，抛出异常时按未通过处理."""
        raise NotImplementedError

    def activate(self, resource: R) -> None:
        """借出前恢复资源的初始状态."""

    def passivate(self, resource: R) -> None:
        """放回空闲队列前调用."""

    def on_borrow(self, resource: R, pool: Pool[R]) -> None:
        """借出后调用，用于把连接池绑定到资源上."""

    def on_return(self, resource: R) -> None:
        """正常归还前调用，用于清理会话状态."""


class ClientFactory(ResourceFactory[RedisClient]):
    """单端点客户端工厂.

    创建时建立连接，并按端点配置依次执行 AUTH、SELECT、CLIENT SETNAME。
    """

    def __init__(self, endpoint: Endpoint | None = None) -> None:
        self._endpoint = endpoint or Endpoint()

    @property
    def endpoint(self) -> Endpoint:
        return self._endpoint

    def create(self) -> RedisClient:
        client = RedisClient(self._endpoint)
        try:
            client.connect()
            if self._endpoint.password is not None:
                client.auth(self._endpoint.password)
            if self._endpoint.database != ProtocolDefaults.DATABASE:
                client.select(self._endpoint.database)
            if self._endpoint.client_name is not None:
                client.client_setname(self._endpoint.client_name)
        except RedisFlowError:
            # 初始化失败时释放已建立的套接字
            self._disconnect(client)
            raise
        return client

    def destroy(self, resource: RedisClient) -> None:
        resource.set_data_source(None)
        if resource.is_connected() and not resource.broken:
            try:
                resource.quit()
            except RedisFlowError as e:
                logger.warning(f"向 {self._endpoint.address} 发送 QUIT 失败: {e}")
        self._disconnect(resource)

    def _disconnect(self, client: RedisClient) -> None:
        try:
            client.disconnect()
        except RedisFlowError as e:
            logger.warning(f"断开 {self._endpoint.address} 失败: {e}")

    def validate(self, resource: RedisClient) -> bool:
        try:
            return resource.is_connected() and resource.ping() == _PONG
        except RedisFlowError as e:
            logger.debug(f"客户端 {self._endpoint.address} 校验失败: {e}")
            return False

    def activate(self, resource: RedisClient) -> None:
        if resource.db != self._endpoint.database:
            resource.select(self._endpoint.database)

    def on_borrow(self, resource: RedisClient, pool: Pool[RedisClient]) -> None:
        resource.set_data_source(pool)

    def on_return(self, resource: RedisClient) -> None:
        resource.set_data_source(None)
        resource.reset_state()


class ShardedClientFactory(ResourceFactory[ShardedRedisClient]):
    """分片客户端工厂.

    每次创建都会构建一个新的哈希环，各分片连接在首次发送命令时建立。
    """

    def __init__(
        self,
        shards: Sequence[RedisShardInfo],
        algo: Hashing = MURMUR_HASH,
        tag_pattern: re.Pattern[str] | str | None = None,
    ) -> None:
        self._shards = tuple(shards)
        self._algo = algo
        self._tag_pattern = tag_pattern

    @property
    def shards(self) -> tuple[RedisShardInfo, ...]:
        return self._shards

    def create(self) -> ShardedRedisClient:
        return ShardedRedisClient(self._shards, self._algo, self._tag_pattern)

    def destroy(self, resource: ShardedRedisClient) -> None:
        resource.set_data_source(None)
        resource.disconnect()

    def validate(self, resource: ShardedRedisClient) -> bool:
        try:
            return all(client.ping() == _PONG for client in resource.get_all_shards())
        except RedisFlowError as e:
            logger.debug(f"分片客户端校验失败: {e}")
            return False

    def on_borrow(self, resource: ShardedRedisClient, pool: Pool[ShardedRedisClient]) -> None:
        resource.set_data_source(pool)

    def on_return(self, resource: ShardedRedisClient) -> None:
        resource.set_data_source(None)
        resource.reset_state()
