"""分片数据模型定义模块.

提供分片描述相关的模型，包括：
- ShardInfo: 分片描述的抽象基类，负责创建该分片对应的资源
- RedisShardInfo: 后端服务分片描述，资源为 RedisClient
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from ..client import RedisClient
from ..connection import ConnectionConfigError, Endpoint, parse_uri
from ..core.constants import ProtocolDefaults, ShardingDefaults
from .exceptions import ShardConfigError

R = TypeVar("R")


class ShardInfo(ABC, Generic[R]):
    """分片描述.

    哈希环只通过 name 和 weight 决定虚拟节点的位置，资源由 create_resource() 创建。
    分片描述按对象身份作为映射键，配置相同的两个描述也被视为两个分片。

    Attributes:
        name: 分片名称，为 None 时使用分片在列表中的位置生成虚拟节点标签
        weight: 权重，虚拟节点数为 160 × weight
    """

    name: str | None
    weight: int

    @abstractmethod
    def create_resource(self) -> R:
        """创建该分片对应的资源."""
        raise NotImplementedError


@dataclass(eq=False)
class RedisShardInfo(ShardInfo[RedisClient]):
    """后端服务分片描述.

    Attributes:
        host: 主机名或 IP
        port: 端口号，默认 6379
        timeout: 超时时间（秒）
        name: 分片名称，建议为每个分片指定唯一且固定的名称
        weight: 权重，默认 1
        password: 访问密码
        database: 数据库索引
        client_name: 客户端名称

    Raises:
        ShardConfigError: 参数不合法时抛出

    Examples:
        >>> shard = RedisShardInfo(host="10.0.0.1", name="cache-1", weight=2)
        >>> str(shard)
        '10.0.0.1:6379*2'
    """

    host: str = ProtocolDefaults.HOST
    port: int = ProtocolDefaults.PORT
    timeout: float | None = ProtocolDefaults.TIMEOUT
    name: str | None = None
    weight: int = ShardingDefaults.WEIGHT
    password: str | None = field(default=None, repr=False)
    database: int = ProtocolDefaults.DATABASE
    client_name: str | None = None

    def __post_init__(self) -> None:
        """校验分片参数合法性."""
        if self.weight < 1:
            raise ShardConfigError(f"weight 必须 >= 1，当前值: {self.weight}")
        # 提前校验地址参数，避免构建哈希环时才失败
        self._build_endpoint()

    def _build_endpoint(self) -> Endpoint:
        try:
            return Endpoint(
                host=self.host,
                port=self.port,
                timeout=self.timeout,
                password=self.password,
                database=self.database,
                client_name=self.client_name,
            )
        except ConnectionConfigError as e:
            raise ShardConfigError(f"分片配置不合法: {e}") from e

    @classmethod
    def from_uri(
        cls,
        uri: str,
        name: str | None = None,
        weight: int = ShardingDefaults.WEIGHT,
        timeout: float | None = ProtocolDefaults.TIMEOUT,
    ) -> RedisShardInfo:
        """根据 redis:// 地址创建分片描述."""
        try:
            endpoint = parse_uri(uri, timeout)
        except ConnectionConfigError as e:
            raise ShardConfigError(f"分片地址不合法: {e}") from e
        return cls(
            host=endpoint.host,
            port=endpoint.port,
            timeout=endpoint.timeout,
            name=name,
            weight=weight,
            password=endpoint.password,
            database=endpoint.database,
        )

    @property
    def endpoint(self) -> Endpoint:
        return self._build_endpoint()

    def create_resource(self) -> RedisClient:
        return RedisClient(self.endpoint)

    def __str__(self) -> str:
        return f"{self.host}:{self.port}*{self.weight}"
