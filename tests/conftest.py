"""测试公共 fixtures.

提供一个进程内的简易 RESP 服务端，运行在 127.0.0.1 的随机端口上，
支持连接、客户端、连接池测试用到的少量命令。
"""

import select
import socket
import threading
import time

import pytest

from redisflow.connection import Endpoint


def _bulk(data: bytes | None) -> bytes:
    if data is None:
        return b"$-1\r\n"
    return b"$%d\r\n%s\r\n" % (len(data), data)


def _integer(value: int) -> bytes:
    return b":%d\r\n" % value


def _error(message: str) -> bytes:
    return b"-" + message.encode() + b"\r\n"


_OK = b"+OK\r\n"


class FakeRedisServer:
    """简易 RESP 服务端.

    Attributes:
        port: 监听端口
        password: 设置后 AUTH 必须匹配
        received: 按接收顺序记录的全部命令
        overrides: 命令名到原始回复的映射，用于构造异常回复
    """

    def __init__(self, password: str | None = None) -> None:
        self._listener = socket.create_server(("127.0.0.1", 0))
        self._listener.setblocking(False)
        self.port = self._listener.getsockname()[1]
        self.password = password
        self.received: list[list[bytes]] = []
        self.overrides: dict[bytes, bytes] = {}
        self._data: dict[tuple[int, bytes], bytes | list[bytes]] = {}
        self._lock = threading.Lock()
        self._clients: list[socket.socket] = []
        self._running = True
        self._thread = threading.Thread(target=self._accept_loop, daemon=True)

    def start(self) -> "FakeRedisServer":
        self._thread.start()
        return self

    def close(self) -> None:
        self._running = False
        self._listener.close()
        self.drop_connections()

    def drop_connections(self) -> None:
        """服务端主动关闭所有客户端连接."""
        with self._lock:
            clients, self._clients = self._clients, []
            # 已完成握手但尚未被 accept 的连接同样关闭
            while True:
                try:
                    conn, _ = self._listener.accept()
                except OSError:
                    break
                clients.append(conn)
        for conn in clients:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            conn.close()

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._clients)

    def commands(self, name: bytes) -> list[list[bytes]]:
        """返回所有给定名称的命令."""
        with self._lock:
            return [cmd for cmd in self.received if cmd[0].upper() == name]

    def push(self, key: bytes, *values: bytes, db: int = 0) -> None:
        with self._lock:
            self._data.setdefault((db, key), []).extend(values)

    def _accept_loop(self) -> None:
        while self._running:
            try:
                readable, _, _ = select.select([self._listener], [], [], 0.05)
            except (OSError, ValueError):
                break
            if not readable:
                continue
            with self._lock:
                try:
                    conn, _ = self._listener.accept()
                except BlockingIOError:
                    continue
                except OSError:
                    break
                self._clients.append(conn)
            threading.Thread(target=self._serve, args=(conn,), daemon=True).start()

    def _serve(self, conn: socket.socket) -> None:
        state = {"db": 0}
        reader = conn.makefile("rb")
        try:
            while True:
                args = self._read_command(reader)
                if args is None:
                    break
                with self._lock:
                    self.received.append(args)
                name = args[0].upper()
                reply = self.overrides.get(name)
                if reply is None:
                    reply = self._dispatch(name, args[1:], state)
                conn.sendall(reply)
                if name == b"QUIT":
                    break
        except (OSError, ValueError):
            pass
        finally:
            with self._lock:
                if conn in self._clients:
                    self._clients.remove(conn)
            reader.close()
            conn.close()

    @staticmethod
    def _read_command(reader) -> list[bytes] | None:
        line = reader.readline()
        if not line:
            return None
        count = int(line[1:-2])
        args = []
        for _ in range(count):
            size = int(reader.readline()[1:-2])
            args.append(reader.read(size + 2)[:-2])
        return args

    def _dispatch(self, name: bytes, args: list[bytes], state: dict) -> bytes:
        db = state["db"]
        with self._lock:
            if name == b"PING":
                return b"+PONG\r\n"
            if name == b"ECHO":
                return _bulk(args[0])
            if name == b"QUIT":
                return _OK
            if name == b"AUTH":
                if self.password is None:
                    return _error("ERR Client sent AUTH, but no password is set")
                if args[0].decode() != self.password:
                    return _error("ERR invalid password")
                return _OK
            if name == b"SELECT":
                state["db"] = int(args[0])
                return _OK
            if name == b"CLIENT":
                return _OK
            if name == b"SET":
                return self._set(db, args)
            if name == b"GET":
                value = self._data.get((db, args[0]))
                if isinstance(value, list):
                    return _error("WRONGTYPE Operation against a key holding the wrong kind of value")
                return _bulk(value)
            if name == b"DEL":
                return _integer(sum(self._data.pop((db, key), None) is not None for key in args))
            if name == b"EXISTS":
                return _integer(int((db, args[0]) in self._data))
            if name == b"INCR":
                try:
                    value = int(self._data.get((db, args[0]), b"0")) + 1
                except (TypeError, ValueError):
                    return _error("ERR value is not an integer or out of range")
                self._data[(db, args[0])] = str(value).encode()
                return _integer(value)
            if name == b"EXPIRE":
                return _integer(int((db, args[0]) in self._data))
            if name == b"DBSIZE":
                return _integer(sum(1 for key_db, _ in self._data if key_db == db))
            if name == b"FLUSHDB":
                for key in [key for key in self._data if key[0] == db]:
                    del self._data[key]
                return _OK
            if name == b"BLPOP":
                for key in args[:-1]:
                    values = self._data.get((db, key))
                    if values:
                        value = values.pop(0)
                        return b"*2\r\n" + _bulk(key) + _bulk(value)
                timeout = float(args[-1])
        if name == b"BLPOP":
            time.sleep(timeout)
            return b"*-1\r\n"
        return _error(f"ERR unknown command '{name.decode().lower()}'")

    def _set(self, db: int, args: list[bytes]) -> bytes:
        key, value = args[0], args[1]
        options = [arg.upper() for arg in args[2:]]
        exists = (db, key) in self._data
        if b"NX" in options and exists:
            return _bulk(None)
        if b"XX" in options and not exists:
            return _bulk(None)
        self._data[(db, key)] = value
        return _OK


@pytest.fixture
def make_server():
    """创建 FakeRedisServer 的工厂，测试结束后统一关闭."""
    servers = []

    def factory(password: str | None = None) -> FakeRedisServer:
        server = FakeRedisServer(password).start()
        servers.append(server)
        return server

    yield factory
    for server in servers:
        server.close()


@pytest.fixture
def redis_server(make_server) -> FakeRedisServer:
    """单个 FakeRedisServer."""
    return make_server()


@pytest.fixture
def endpoint(redis_server) -> Endpoint:
    """指向 redis_server 的端点."""
    return Endpoint(host="127.0.0.1", port=redis_server.port, timeout=2.0)
