"""分片模块异常定义."""

from ..exceptions import RedisFlowError


class ShardingError(RedisFlowError):
    """分片操作异常基类."""

    pass


class ShardConfigError(ShardingError):
    """分片配置校验异常.

    分片列表为空、权重小于 1、分片地址不合法时抛出。
    """

    pass
