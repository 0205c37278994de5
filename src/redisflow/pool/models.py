"""连接池数据模型定义模块.

提供连接池相关的数据模型，包括：
- PoolConfig: 连接池配置
- PooledObjectState: 池化对象状态枚举
- PooledObject: 池化对象包装
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Generic, TypeVar

from .exceptions import PoolConfigError

R = TypeVar("R")


@dataclass
class PoolConfig:
    """连接池配置.

    Attributes:
        max_total: 资源总数上限（借出 + 空闲），默认 8
        max_idle: 空闲资源上限，超出时归还的资源直接销毁，默认 8
        block_when_exhausted: 资源耗尽时是否等待，默认 True
        max_wait: 最长等待时间（秒），None 表示一直等待
        test_on_create: 创建后是否校验
        test_on_borrow: 借出前是否校验
        test_on_return: 归还时是否校验
        lifo: 是否优先借出最近归还的资源，默认 True

    Raises:
        PoolConfigError: 参数不合法时抛出

    Examples:
        >>> config = PoolConfig(max_total=16, max_wait=1.5, test_on_borrow=True)
    """

    max_total: int = 8
    max_idle: int = 8
    block_when_exhausted: bool = True
    max_wait: float | None = None
    test_on_create: bool = False
    test_on_borrow: bool = False
    test_on_return: bool = False
    lifo: bool = True

    def __post_init__(self) -> None:
        """校验配置参数合法性."""
        if self.max_total < 1:
            raise PoolConfigError(f"max_total 必须 >= 1，当前值: {self.max_total}")
        if self.max_idle < 0:
            raise PoolConfigError(f"max_idle 必须 >= 0，当前值: {self.max_idle}")
        if self.max_wait is not None and self.max_wait < 0:
            raise PoolConfigError(f"max_wait 必须 >= 0，当前值: {self.max_wait}")


class PooledObjectState(Enum):
    """池化对象状态枚举.

    Attributes:
        IDLE: 空闲，可被借出
        ALLOCATED: 已借出
        RETURNING: 正在归还
        INVALID: 已销毁
    """

    IDLE = "idle"
    ALLOCATED = "allocated"
    RETURNING = "returning"
    INVALID = "invalid"


@dataclass(eq=False)
class PooledObject(Generic[R]):
    """池化对象，记录资源的状态和借出信息."""

    resource: R
    state: PooledObjectState = PooledObjectState.IDLE
    created_at: float = field(default_factory=time.monotonic)
    last_borrowed_at: float | None = None
    borrow_count: int = 0

    def allocate(self) -> None:
        self.state = PooledObjectState.ALLOCATED
        self.last_borrowed_at = time.monotonic()
        self.borrow_count += 1
