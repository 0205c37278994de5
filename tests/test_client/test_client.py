"""RedisClient / Pipeline 单元测试."""

from unittest.mock import MagicMock

import pytest

from redisflow.client import Pipeline, RedisClient
from redisflow.connection import Endpoint
from redisflow.exceptions import RedisConnectionError, RedisDataError
from redisflow.protocol import Command


@pytest.fixture
def client(endpoint):
    """指向 FakeRedisServer 的客户端."""
    client = RedisClient(endpoint)
    yield client
    client.disconnect()


class TestCommands:
    """命令封装测试."""

    def test_ping_and_echo(self, client) -> None:
        """测试 PING 和 ECHO."""
        assert client.ping() == "PONG"
        assert client.echo("你好") == "你好"

    def test_set_and_get(self, client) -> None:
        """测试 SET/GET."""
        assert client.set("greeting", "hello") == "OK"
        assert client.get("greeting") == "hello"
        assert client.get("missing") is None

    def test_set_numeric_value(self, client) -> None:
        """测试数值参数按十进制文本发送."""
        client.set("n", 41)
        assert client.incr("n") == 42

    def test_set_options(self, client, redis_server) -> None:
        """测试 SET 的 EX/PX/NX/XX 选项."""
        assert client.set("k", "v1", nx=True) == "OK"
        assert client.set("k", "v2", nx=True) is None
        assert client.set("absent", "v", xx=True) is None
        assert client.set("k", "v3", ex=10, xx=True) == "OK"
        client.set("k", "v4", px=500)
        sets = redis_server.commands(b"SET")
        assert sets[-2] == [b"SET", b"k", b"v3", b"EX", b"10", b"XX"]
        assert sets[-1] == [b"SET", b"k", b"v4", b"PX", b"500"]

    def test_delete_and_exists(self, client) -> None:
        """测试 DEL 和 EXISTS."""
        client.set("a", "1")
        client.set("b", "2")
        assert client.exists("a")
        assert client.delete("a", "b", "c") == 2
        assert not client.exists("a")

    def test_expire_dbsize_flushdb(self, client) -> None:
        """测试 EXPIRE、DBSIZE 和 FLUSHDB."""
        client.set("a", "1")
        assert client.expire("a", 60) == 1
        assert client.expire("missing", 60) == 0
        assert client.dbsize() == 1
        assert client.flushdb() == "OK"
        assert client.dbsize() == 0

    def test_incr_error(self, client) -> None:
        """测试服务端错误回复抛出 RedisDataError，连接不受影响."""
        client.set("text", "abc")
        with pytest.raises(RedisDataError, match="not an integer"):
            client.incr("text")
        assert not client.broken
        assert client.ping() == "PONG"

    def test_select_tracks_db(self, client) -> None:
        """测试 SELECT 记录当前数据库."""
        assert client.db == 0
        client.select(3)
        assert client.db == 3
        client.set("k", "in-3")
        client.select(0)
        assert client.get("k") is None

    def test_auth_and_setname(self, make_server) -> None:
        """测试 AUTH 和 CLIENT SETNAME."""
        server = make_server(password="secret")
        client = RedisClient(Endpoint(host="127.0.0.1", port=server.port))
        try:
            with pytest.raises(RedisDataError, match="invalid password"):
                client.auth("wrong")
            assert client.auth("secret") == "OK"
            assert client.client_setname("worker-1") == "OK"
            assert server.commands(b"CLIENT") == [[b"CLIENT", b"SETNAME", b"worker-1"]]
        finally:
            client.disconnect()

    def test_quit(self, client) -> None:
        """测试 QUIT 后服务端关闭连接."""
        client.select(2)
        assert client.quit() == "OK"
        assert client.db == 0
        with pytest.raises(RedisConnectionError):
            client.ping()
        assert client.broken

    def test_blpop(self, redis_server) -> None:
        """测试 BLPOP 在阻塞期间不受读取超时限制."""
        client = RedisClient(Endpoint(host="127.0.0.1", port=redis_server.port, timeout=0.1))
        try:
            redis_server.push(b"jobs", b"job-1")
            assert client.blpop(1, "jobs") == ["jobs", "job-1"]
            assert client.blpop(0.3, "jobs") is None
            assert client.connection.socket.gettimeout() == 0.1
        finally:
            client.disconnect()

    def test_execute_command(self, client) -> None:
        """测试发送任意命令."""
        assert client.execute_command(Command.ECHO, "x") == b"x"
        assert client.execute_command("PING") == "PONG"

    def test_from_uri(self, redis_server) -> None:
        """测试根据地址创建客户端."""
        client = RedisClient.from_uri(f"redis://127.0.0.1:{redis_server.port}/4")
        assert client.endpoint.database == 4
        assert client.db == 4


class TestPipeline:
    """Pipeline 测试."""

    def test_queue_and_sync(self, client) -> None:
        """测试管道按发送顺序返回回复."""
        pipeline = client.pipelined()
        assert isinstance(pipeline, Pipeline)
        pipeline.queue(Command.SET, "k", "v").queue(Command.GET, "k")
        assert pipeline.sync() == ["OK", b"v"]

    def test_error_kept_in_position(self, client) -> None:
        """测试管道中的错误回复按位置保留."""
        client.set("text", "abc")
        pipeline = client.pipelined()
        pipeline.queue(Command.INCR, "text").queue(Command.INCR, "counter")
        replies = pipeline.sync()
        assert isinstance(replies[0], RedisDataError)
        assert replies[1] == 1


class TestStateAndClose:
    """会话状态重置与关闭测试."""

    def test_reset_state_drains_and_reselects(self, client, redis_server) -> None:
        """测试 reset_state 丢弃未读回复并切回配置的数据库."""
        client.select(5)
        client.connection.send_command(Command.PING)
        client.connection.send_command(Command.PING)
        client.reset_state()
        assert client.connection.pipelined_count == 0
        assert client.db == 0
        assert redis_server.commands(b"SELECT")[-1] == [b"SELECT", b"0"]
        assert client.ping() == "PONG"

    def test_reset_state_on_broken_client(self, client) -> None:
        """测试连接已损坏时 reset_state 只重置计数."""
        client.quit()
        with pytest.raises(RedisConnectionError):
            client.ping()
        client.reset_state()
        assert client.connection.pipelined_count == 0

    def test_close_without_pool_disconnects(self, client) -> None:
        """测试未绑定连接池时 close 断开连接."""
        client.ping()
        client.close()
        assert not client.is_connected()

    def test_close_returns_to_pool(self, client) -> None:
        """测试绑定连接池时 close 正常归还."""
        pool = MagicMock()
        client.ping()
        client.set_data_source(pool)
        client.close()
        pool.return_healthy.assert_called_once_with(client)
        pool.return_broken.assert_not_called()
        assert client.is_connected()

    def test_close_broken_returns_broken(self, client) -> None:
        """测试连接已损坏时走损坏归还路径."""
        pool = MagicMock()
        client.quit()
        with pytest.raises(RedisConnectionError):
            client.ping()
        client.set_data_source(pool)
        client.close()
        pool.return_broken.assert_called_once_with(client)
        pool.return_healthy.assert_not_called()

    def test_close_clears_data_source(self, client) -> None:
        """测试归还后再次 close 不会重复归还."""
        pool = MagicMock()
        client.set_data_source(pool)
        client.close()
        client.close()
        assert pool.return_healthy.call_count == 1

    def test_context_manager(self, endpoint) -> None:
        """测试上下文管理器退出时关闭客户端."""
        with RedisClient(endpoint) as client:
            client.ping()
        assert not client.is_connected()
