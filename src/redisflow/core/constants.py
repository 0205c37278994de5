"""redisflow 常量定义模块."""


class ProtocolDefaults:
    """协议与连接的默认参数."""

    HOST = "localhost"
    PORT = 6379
    # 连接超时与读取超时（秒）
    TIMEOUT = 2.0
    DATABASE = 0
    CHARSET = "utf-8"
    # 输入/输出流缓冲区大小（8KB）
    BUFFER_SIZE = 8192
    URI_SCHEME = "redis"


class ReplyMarker:
    """回复类型标记字节."""

    STATUS = ord("+")
    ERROR = ord("-")
    INTEGER = ord(":")
    BULK = ord("$")
    ARRAY = ord("*")


class ShardingDefaults:
    """分片相关常量."""

    # 分片默认权重
    WEIGHT = 1
    # 每单位权重对应的虚拟节点数
    VIRTUAL_NODES_PER_WEIGHT = 160
    # 键标记：花括号中的内容
    KEY_TAG_PATTERN = r"\{(.+?)\}"
