"""通用对象池模块.

ObjectPool 是线程安全的有界对象池：借出时优先复用空闲资源，未达上限时创建新资源，
达到上限后按配置等待或立即失败。资源的创建、校验、销毁都在锁外进行。
"""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from typing import Generic, TypeVar

from .exceptions import (
    ForeignResourceError,
    PoolClosedError,
    PoolExhaustedError,
    ResourceValidationError,
)
from .factory import ResourceFactory
from .models import PoolConfig, PooledObject, PooledObjectState

logger = logging.getLogger(__name__)

R = TypeVar("R")


class ObjectPool(Generic[R]):
    """线程安全的有界对象池.

    Attributes:
        _factory: 资源工厂
        _config: 连接池配置
        _cond: 保护以下所有状态的条件变量
        _idle: 空闲对象队列，右端为最近归还的对象
        _all: 按资源对象身份索引的全部对象（借出 + 空闲）
        _creating: 正在锁外创建的资源数，计入容量
        _closed: 是否已关闭
    """

    def __init__(self, factory: ResourceFactory[R], config: PoolConfig | None = None) -> None:
        self._factory = factory
        self._config = config or PoolConfig()
        self._cond = threading.Condition()
        self._idle: deque[PooledObject[R]] = deque()
        self._all: dict[int, PooledObject[R]] = {}
        self._creating = 0
        self._closed = False

    @property
    def config(self) -> PoolConfig:
        return self._config

    @property
    def factory(self) -> ResourceFactory[R]:
        return self._factory

    # ============================================================
    # 借出
    # ============================================================

    def borrow_object(self) -> R:
        """借出一个资源.

        Raises:
            PoolClosedError: 连接池已关闭
            PoolExhaustedError: 资源耗尽且不等待，或等待超时
            ResourceValidationError: 新创建的资源未通过校验
        """
        max_wait = self._config.max_wait
        deadline = None if max_wait is None else time.monotonic() + max_wait

        while True:
            pooled, created = self._acquire(deadline)
            if created:
                pooled = self._create()
            if self._prepare(pooled, created):
                return pooled.resource

    def _acquire(self, deadline: float | None) -> tuple[PooledObject[R] | None, bool]:
        """在锁内取出一个空闲对象，或为新建资源预留容量."""
        with self._cond:
            while True:
                if self._closed:
                    raise PoolClosedError("连接池已关闭")
                if self._idle:
                    pooled = self._idle.pop() if self._config.lifo else self._idle.popleft()
                    pooled.allocate()
                    return pooled, False
                if len(self._all) + self._creating < self._config.max_total:
                    self._creating += 1
                    return None, True
                if not self._config.block_when_exhausted:
                    raise PoolExhaustedError(f"连接池已耗尽，上限 {self._config.max_total}")

                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0 or not self._cond.wait(remaining):
                    if self._idle or len(self._all) + self._creating < self._config.max_total:
                        continue
                    raise PoolExhaustedError(
                        f"等待 {self._config.max_wait} 秒后仍无可用资源，上限 {self._config.max_total}"
                    )

    def _create(self) -> PooledObject[R]:
        try:
            resource = self._factory.create()
        except BaseException:
            with self._cond:
                self._creating -= 1
                self._cond.notify()
            raise

        pooled = PooledObject(resource)
        pooled.allocate()
        with self._cond:
            self._creating -= 1
            self._all[id(resource)] = pooled
            closed = self._closed

        if closed:
            self._destroy(pooled)
            raise PoolClosedError("连接池已关闭")
        return pooled

    def _prepare(self, pooled: PooledObject[R], created: bool) -> bool:
        """激活并按配置校验借出的资源.

        新建资源失败时直接抛出；复用的空闲资源失败时销毁并返回 False，
        由调用方继续尝试下一个。
        """
        resource = pooled.resource
        try:
            self._factory.activate(resource)
        except Exception as e:
            self._destroy_quietly(pooled)
            if created:
                raise
            logger.warning(f"激活空闲资源失败，已销毁: {e}")
            return False

        should_validate = self._config.test_on_borrow or (created and self._config.test_on_create)
        if should_validate and not self._validate(resource):
            self._destroy_quietly(pooled)
            if created:
                raise ResourceValidationError("新创建的资源未通过校验")
            logger.warning("空闲资源未通过校验，已销毁")
            return False
        return True

    def _validate(self, resource: R) -> bool:
        """校验资源，校验过程抛出异常按未通过处理."""
        try:
            return bool(self._factory.validate(resource))
        except Exception as e:
            logger.error(f"校验资源时出错: {e}")
            return False

    # ============================================================
    # 归还与销毁
    # ============================================================

    def _checkout(self, resource: R, state: PooledObjectState) -> PooledObject[R]:
        """在锁内确认资源处于借出状态，并切换到给定状态."""
        with self._cond:
            pooled = self._all.get(id(resource))
            if pooled is None or pooled.resource is not resource:
                raise ForeignResourceError("资源不属于该连接池")
            if pooled.state is not PooledObjectState.ALLOCATED:
                raise ForeignResourceError(f"资源当前不处于借出状态: {pooled.state.value}")
            pooled.state = state
            return pooled

    def is_borrowed(self, resource: R) -> bool:
        """资源是否由该连接池借出且尚未归还."""
        with self._cond:
            pooled = self._all.get(id(resource))
            return (
                pooled is not None
                and pooled.resource is resource
                and pooled.state is PooledObjectState.ALLOCATED
            )

    def return_object(self, resource: R) -> None:
        """归还一个资源.

        开启 test_on_return 时未通过校验的资源会被销毁；
        连接池已关闭或空闲数已满时资源同样会被销毁。

        Raises:
            ForeignResourceError: 资源不属于该连接池或未被借出
        """
        pooled = self._checkout(resource, PooledObjectState.RETURNING)

        if self._config.test_on_return and not self._validate(resource):
            logger.warning("归还的资源未通过校验，已销毁")
            self._destroy(pooled)
            return

        try:
            self._factory.passivate(resource)
        except Exception:
            self._destroy_quietly(pooled)
            raise

        with self._cond:
            keep = not self._closed and len(self._idle) < self._config.max_idle
            if keep:
                pooled.state = PooledObjectState.IDLE
                self._idle.append(pooled)
                self._cond.notify()
        if not keep:
            self._destroy(pooled)

    def invalidate_object(self, resource: R) -> None:
        """销毁一个借出的资源，释放其占用的容量.

        Raises:
            ForeignResourceError: 资源不属于该连接池或未被借出
        """
        pooled = self._checkout(resource, PooledObjectState.INVALID)
        self._destroy(pooled)

    def _destroy(self, pooled: PooledObject[R]) -> None:
        with self._cond:
            self._all.pop(id(pooled.resource), None)
            pooled.state = PooledObjectState.INVALID
            self._cond.notify()
        self._factory.destroy(pooled.resource)

    def _destroy_quietly(self, pooled: PooledObject[R]) -> None:
        try:
            self._destroy(pooled)
        except Exception as e:
            logger.warning(f"销毁资源失败: {e}")

    def close(self) -> None:
        """关闭连接池.

        立即销毁所有空闲资源；借出中的资源在归还时销毁。等待中的借出请求
        会收到 PoolClosedError。重复关闭什么也不做。

        Raises:
            Exception: 销毁空闲资源时遇到的第一个异常，其余资源仍会被销毁
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            idle = list(self._idle)
            self._idle.clear()
            self._cond.notify_all()

        error: Exception | None = None
        for pooled in idle:
            try:
                self._destroy(pooled)
            except Exception as e:
                error = error or e
        if error is not None:
            raise error

    # ============================================================
    # 统计
    # ============================================================

    def is_closed(self) -> bool:
        with self._cond:
            return self._closed

    @property
    def num_idle(self) -> int:
        with self._cond:
            return len(self._idle)

    @property
    def num_active(self) -> int:
        """已借出（含正在归还）的资源数."""
        with self._cond:
            return len(self._all) - len(self._idle)
