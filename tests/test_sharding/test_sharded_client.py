"""ShardedRedisClient 单元测试."""

from unittest.mock import MagicMock

import pytest

from redisflow.exceptions import RedisConnectionError
from redisflow.sharding import DEFAULT_KEY_TAG_PATTERN, RedisShardInfo, ShardedRedisClient


@pytest.fixture
def servers(make_server):
    """两个 FakeRedisServer."""
    return make_server(), make_server()


@pytest.fixture
def shards(servers) -> list[RedisShardInfo]:
    return [
        RedisShardInfo(host="127.0.0.1", port=server.port, name=f"node-{i}")
        for i, server in enumerate(servers)
    ]


@pytest.fixture
def sharded(shards):
    client = ShardedRedisClient(shards)
    yield client
    client.disconnect()


class TestRouting:
    """命令路由测试."""

    def test_keys_land_on_resolved_shard(self, sharded, servers, shards) -> None:
        """测试每个键写入其所映射分片对应的服务端."""
        by_port = {server.port: server for server in servers}
        for i in range(40):
            key = f"user:{i}"
            sharded.set(key, str(i))
            port = sharded.get_shard_info(key).port
            assert [b"SET", key.encode(), str(i).encode()] in by_port[port].commands(b"SET")
        assert all(server.commands(b"SET") for server in servers)

    def test_delegated_commands(self, sharded) -> None:
        """测试委托的键值命令."""
        assert sharded.set("k", "v") == "OK"
        assert sharded.get("k") == "v"
        assert sharded.exists("k")
        assert sharded.expire("k", 10) == 1
        assert sharded.incr("counter") == 1
        assert sharded.delete("k") == 1
        assert sharded.get("k") is None

    def test_set_options_forwarded(self, sharded) -> None:
        """测试 SET 选项透传给分片客户端."""
        assert sharded.set("k", "v", nx=True) == "OK"
        assert sharded.set("k", "v", nx=True) is None

    def test_key_tag_colocation(self, shards, servers) -> None:
        """测试相同键标记的键写入同一个服务端."""
        client = ShardedRedisClient(shards, tag_pattern=DEFAULT_KEY_TAG_PATTERN)
        try:
            client.set("user:{7}:name", "n")
            client.set("user:{7}:mail", "m")
            owners = [server for server in servers if server.commands(b"SET")]
            assert len(owners) == 1
            assert len(owners[0].commands(b"SET")) == 2
        finally:
            client.disconnect()


class TestLifecycle:
    """连接管理测试."""

    def test_disconnect_sends_quit_to_connected_shards(self, sharded, servers) -> None:
        """测试 disconnect 只向已连接的分片发送 QUIT."""
        sharded.set("only-one", "v")
        sharded.disconnect()
        quits = [len(server.commands(b"QUIT")) for server in servers]
        assert sorted(quits) == [0, 1]
        assert not any(client.is_connected() for client in sharded.get_all_shards())

    def test_disconnect_tolerates_broken_shard(self, sharded, servers) -> None:
        """测试单个分片损坏时 disconnect 仍然断开其他分片."""
        for i in range(20):
            sharded.set(f"key:{i}", "v")
        for server in servers:
            server.drop_connections()
        with pytest.raises(RedisConnectionError):
            sharded.get("key:0")
        assert sharded.broken
        sharded.disconnect()
        assert not any(client.is_connected() for client in sharded.get_all_shards())

    def test_reset_state(self, sharded) -> None:
        """测试 reset_state 重置所有分片客户端."""
        for client in sharded.get_all_shards():
            client.select(1)
        sharded.reset_state()
        assert all(client.db == 0 for client in sharded.get_all_shards())

    def test_close_returns_to_pool(self, sharded) -> None:
        """测试绑定连接池时 close 归还整个分片客户端."""
        pool = MagicMock()
        sharded.set_data_source(pool)
        sharded.close()
        pool.return_healthy.assert_called_once_with(sharded)

    def test_close_broken_returns_broken(self, sharded, servers) -> None:
        """测试任一分片损坏时走损坏归还路径."""
        sharded.set("k", "v")
        for server in servers:
            server.drop_connections()
        with pytest.raises(RedisConnectionError):
            sharded.get("k")
        pool = MagicMock()
        sharded.set_data_source(pool)
        sharded.close()
        pool.return_broken.assert_called_once_with(sharded)

    def test_context_manager(self, shards) -> None:
        """测试上下文管理器退出时断开所有分片."""
        with ShardedRedisClient(shards) as client:
            client.set("k", "v")
        assert not any(c.is_connected() for c in client.get_all_shards())
