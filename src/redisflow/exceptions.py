"""redisflow 异常定义模块.

异常分类：
    - RedisFlowError: 所有异常的基类
    - RedisConnectionError: 传输层异常（连接、读写、关闭失败，流提前结束），
      总是会把所属连接标记为损坏
    - ProtocolError: 无法识别的回复类型，说明协议已失去同步，按连接异常处理
    - RedisDataError: 服务端返回的错误回复（如参数个数错误、键类型错误），
      不影响连接健康状态
"""


class RedisFlowError(Exception):
    """redisflow 基础异常类."""

    pass


class RedisConnectionError(RedisFlowError):
    """连接异常.

    底层套接字或流的读写失败、服务端关闭连接等传输层故障时抛出。
    """

    pass


class ProtocolError(RedisConnectionError):
    """协议异常.

    读取到未知的回复类型标记时抛出，此时输入流已失去同步。
    """

    pass


class RedisDataError(RedisFlowError):
    """数据异常.

    表示一条格式正确、但被服务端标记为失败的回复。解码阶段该异常作为值返回，
    是否抛出由连接层决定。
    """

    pass
