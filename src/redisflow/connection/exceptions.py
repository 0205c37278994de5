"""连接模块异常定义."""

from ..exceptions import RedisFlowError


class ConnectionConfigError(RedisFlowError):
    """连接配置校验异常.

    当连接参数不合法时抛出，例如 host 为空、端口越界、URI 无法解析等。
    """

    pass


class NoPendingReplyError(RedisFlowError):
    """没有待读取回复时仍尝试读取回复.

    读取前已发送命令数为 0，继续读取只会一直阻塞或读到错位的数据。
    """

    pass
