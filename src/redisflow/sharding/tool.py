"""分片工具模块.

提供 Sharded：基于带权重虚拟节点的一致性哈希环，把键映射到分片描述，
再把分片描述映射到构建时创建好的资源。

虚拟节点标签：
    - 有名称的分片: "{name}*{weight}{n}"，与分片在列表中的位置无关
    - 无名称的分片: "SHARD-{index}-NODE-{n}"，依赖分片在列表中的位置，
      调整分片列表顺序会改变键的路由结果，生产环境应为每个分片指定名称
"""

from __future__ import annotations

import bisect
import logging
import re
from collections.abc import Sequence
from typing import Generic, TypeVar

from ..core.constants import ShardingDefaults
from ..core.utils import encode
from .exceptions import ShardConfigError
from .hashing import MURMUR_HASH, Hashing
from .models import ShardInfo

logger = logging.getLogger(__name__)

R = TypeVar("R")
S = TypeVar("S", bound=ShardInfo)

DEFAULT_KEY_TAG_PATTERN = re.compile(ShardingDefaults.KEY_TAG_PATTERN)


def _node_label(shard: ShardInfo, index: int, n: int) -> str:
    """生成虚拟节点标签."""
    if shard.name is None:
        return f"SHARD-{index}-NODE-{n}"
    return f"{shard.name}*{shard.weight}{n}"


class Sharded(Generic[R, S]):
    """一致性哈希分片环.

    构建完成后不再变化：不会因为某个分片的资源故障而重新分布。

    Attributes:
        _algo: 哈希算法
        _tag_pattern: 键标记模式，为 None 时不提取键标记
        _points: 升序排列的虚拟节点哈希值
        _owners: 与 _points 一一对应的分片描述
        _shards: 按输入顺序排列的分片描述
        _resources: 分片描述（按对象身份）到资源的映射

    Examples:
        >>> ring = Sharded(shards, tag_pattern=DEFAULT_KEY_TAG_PATTERN)
        >>> ring.get_shard_info("user:{42}:profile") is ring.get_shard_info("order:{42}:history")
        True
    """

    def __init__(
        self,
        shards: Sequence[S],
        algo: Hashing = MURMUR_HASH,
        tag_pattern: re.Pattern[str] | str | None = None,
    ) -> None:
        """构建哈希环并为每个分片创建资源.

        Args:
            shards: 分片描述列表
            algo: 哈希算法，默认 MurmurHash64A
            tag_pattern: 键标记模式，必须包含一个捕获组

        Raises:
            ShardConfigError: 分片列表为空或权重不合法时抛出
        """
        if not shards:
            raise ShardConfigError("分片列表不能为空")

        self._algo = algo
        if isinstance(tag_pattern, str):
            tag_pattern = re.compile(tag_pattern)
        self._tag_pattern = tag_pattern
        self._shards: tuple[S, ...] = tuple(shards)
        self._distinct: tuple[S, ...] = ()
        self._resources: dict[int, R] = {}
        self._points: list[int] = []
        self._owners: list[S] = []
        self._initialize()

    def _initialize(self) -> None:
        # 哈希冲突时后插入的虚拟节点覆盖先插入的
        ring: dict[int, S] = {}
        for index, shard in enumerate(self._shards):
            if shard.weight < 1:
                raise ShardConfigError(f"分片 {shard} 的权重必须 >= 1，当前值: {shard.weight}")
            for n in range(ShardingDefaults.VIRTUAL_NODES_PER_WEIGHT * shard.weight):
                ring[self._algo.hash(_node_label(shard, index, n))] = shard

        self._points = sorted(ring)
        self._owners = [ring[point] for point in self._points]

        # 同一个分片描述重复出现时只创建一次资源
        distinct: dict[int, S] = {}
        for shard in self._shards:
            distinct.setdefault(id(shard), shard)
        self._distinct = tuple(distinct.values())
        for shard in self._distinct:
            self._resources[id(shard)] = shard.create_resource()

        logger.info(
            f"哈希环构建完成: {len(self._distinct)} 个分片, {len(self._points)} 个虚拟节点"
        )

    # ============================================================
    # 键路由
    # ============================================================

    def get_key_tag(self, key: str) -> str:
        """提取键标记，未配置模式或未匹配时返回原键."""
        if self._tag_pattern is not None:
            match = self._tag_pattern.search(key)
            if match:
                return match.group(1)
        return key

    def _hash_key(self, key: bytes | str) -> int:
        if isinstance(key, str):
            return self._algo.hash(encode(self.get_key_tag(key)))
        return self._algo.hash(key)

    def get_shard_info(self, key: bytes | str) -> S:
        """获取键所映射的分片描述.

        取第一个不小于键哈希值的虚拟节点，超过最大虚拟节点时回绕到第一个。
        """
        index = bisect.bisect_left(self._points, self._hash_key(key))
        if index == len(self._points):
            index = 0
        return self._owners[index]

    def get_shard(self, key: bytes | str) -> R:
        """获取键所映射的分片资源."""
        return self._resources[id(self.get_shard_info(key))]

    # ============================================================
    # 只读视图
    # ============================================================

    def get_all_shard_info(self) -> tuple[S, ...]:
        """按输入顺序返回所有分片描述，重复出现的描述只保留第一次."""
        return self._distinct

    def get_all_shards(self) -> tuple[R, ...]:
        """按 get_all_shard_info() 的顺序返回所有分片资源."""
        return tuple(self._resources[id(shard)] for shard in self._distinct)

    @property
    def algo(self) -> Hashing:
        return self._algo

    @property
    def tag_pattern(self) -> re.Pattern[str] | None:
        return self._tag_pattern

    def __len__(self) -> int:
        return len(self._distinct)
