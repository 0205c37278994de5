"""连接池模块异常定义."""

from ..exceptions import RedisConnectionError, RedisFlowError


class PoolError(RedisFlowError):
    """连接池操作异常.

    归还资源、归还损坏资源、销毁连接池失败时抛出，原始异常通过 __cause__ 保留。
    """

    pass


class ResourceBorrowError(RedisConnectionError):
    """无法从连接池获取资源.

    作为连接异常抛出，调用方可以与其他连接故障统一处理。
    """

    pass


class PoolConfigError(PoolError):
    """连接池配置校验异常."""

    pass


class PoolExhaustedError(PoolError):
    """连接池已耗尽.

    资源数已达上限，且不允许等待或等待超时。
    """

    pass


class PoolClosedError(PoolError):
    """连接池已关闭."""

    pass


class ResourceValidationError(PoolError):
    """新创建的资源未通过校验."""

    pass


class ForeignResourceError(PoolError):
    """归还的资源不属于该连接池，或当前并未被借出."""

    pass
