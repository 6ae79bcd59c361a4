"""Tests for FabricAdapter."""

import pytest
from unittest.mock import patch, MagicMock
from invoke.exceptions import CommandTimedOut
from paramiko.ssh_exception import SSHException

from fleetwright.domain.errors import ConnectivityError, OperationTimeoutError
from fleetwright.domain.value_objects.node import Node
from fleetwright.infrastructure.adapters.fabric_adapter import FabricAdapter, parse_file_listing

NODE = Node(name="pve2", address="10.0.0.2")


def _result(exited=0, stdout="", stderr=""):
    result = MagicMock()
    result.exited = exited
    result.stdout = stdout
    result.stderr = stderr
    return result


@pytest.fixture
def conn():
    connection = MagicMock()
    connection.run.return_value = _result()
    return connection


@pytest.fixture
def factory(conn):
    return MagicMock(return_value=conn)


@pytest.fixture
def adapter(factory):
    return FabricAdapter(connect_timeout=3, command_timeout=30, connection_factory=factory)


class TestConnection:
    def test_new_connection(self):
        adapter = FabricAdapter(connect_timeout=7)
        node = Node(name="pve3", address="10.0.0.3", user="admin", port=2222)
        with patch("fleetwright.infrastructure.adapters.fabric_adapter.Connection") as mock_conn_cls:
            adapter._get_connection(node)
            mock_conn_cls.assert_called_once_with(
                host="10.0.0.3",
                user="admin",
                port=2222,
                connect_timeout=7,
                connect_kwargs={"allow_agent": True, "look_for_keys": True},
            )

    @pytest.mark.asyncio
    async def test_connection_reused_per_node(self, adapter, factory):
        await adapter.run(NODE, "true")
        await adapter.run(NODE, "true")
        assert factory.call_count == 1

    @pytest.mark.asyncio
    async def test_close_drops_connections(self, adapter, conn, factory):
        await adapter.run(NODE, "true")
        await adapter.close()
        conn.close.assert_called_once()
        await adapter.run(NODE, "true")
        assert factory.call_count == 2


class TestRun:
    @pytest.mark.asyncio
    async def test_result_mapped(self, adapter, conn):
        conn.run.return_value = _result(1, "out", "err")

        result = await adapter.run(NODE, "perl -c /tmp/x")

        assert (result.exit_code, result.stdout, result.stderr) == (1, "out", "err")
        conn.run.assert_called_once_with(
            "perl -c /tmp/x", hide=True, warn=True, timeout=30, in_stream=False
        )

    @pytest.mark.asyncio
    async def test_explicit_timeout(self, adapter, conn):
        await adapter.run(NODE, "true", timeout=5)
        assert conn.run.call_args.kwargs["timeout"] == 5

    @pytest.mark.asyncio
    async def test_command_timeout(self, adapter, conn, factory):
        conn.run.side_effect = CommandTimedOut(_result(), 30)
        with pytest.raises(OperationTimeoutError, match="pve2"):
            await adapter.run(NODE, "sleep 100")
        conn.close.assert_called_once()

    @pytest.mark.asyncio
    async def test_connect_timeout(self, adapter, conn):
        conn.run.side_effect = TimeoutError("timed out")
        with pytest.raises(OperationTimeoutError):
            await adapter.run(NODE, "true")

    @pytest.mark.asyncio
    async def test_ssh_failure_is_connectivity_error(self, adapter, conn, factory):
        conn.run.side_effect = SSHException("No authentication methods available")

        with pytest.raises(ConnectivityError, match="root@10.0.0.2:22"):
            await adapter.run(NODE, "true")

        conn.run.side_effect = None
        await adapter.run(NODE, "true")
        assert factory.call_count == 2


class TestFiles:
    @pytest.mark.asyncio
    async def test_put_sets_mode(self, adapter, conn):
        await adapter.put(NODE, b"data", "/tmp/x.pm", mode=0o600)
        stream = conn.put.call_args.args[0]
        assert stream.getvalue() == b"data"
        assert conn.put.call_args.kwargs["remote"] == "/tmp/x.pm"
        conn.sftp.return_value.chmod.assert_called_once_with("/tmp/x.pm", 0o600)

    @pytest.mark.asyncio
    async def test_get(self, adapter, conn):
        conn.get.side_effect = lambda path, local: local.write(b"plugin")
        assert await adapter.get(NODE, "/tmp/x.pm") == b"plugin"

    @pytest.mark.asyncio
    async def test_get_missing_file_propagates(self, adapter, conn):
        conn.get.side_effect = FileNotFoundError("/tmp/x.pm")
        with pytest.raises(FileNotFoundError):
            await adapter.get(NODE, "/tmp/x.pm")

    @pytest.mark.asyncio
    async def test_exists(self, adapter, conn):
        conn.run.return_value = _result(1)
        assert await adapter.exists(NODE, "/tmp/it's.pm") is False
        assert conn.run.call_args.args[0] == "test -e '/tmp/it'\"'\"'s.pm'"

    @pytest.mark.asyncio
    async def test_remove_failure(self, adapter, conn):
        conn.run.return_value = _result(1, stderr="Operation not permitted")
        with pytest.raises(OSError, match="Operation not permitted"):
            await adapter.remove(NODE, "/tmp/x.pm")

    @pytest.mark.asyncio
    async def test_copy_is_staged(self, adapter, conn):
        await adapter.copy(NODE, "/tmp/x.pm", "/usr/share/x.pm", mode=0o644)
        command = conn.run.call_args.args[0]
        assert command == (
            "cp -- /tmp/x.pm /usr/share/x.pm.fleetwright-new"
            " && chmod 644 /usr/share/x.pm.fleetwright-new"
            " && mv -f -- /usr/share/x.pm.fleetwright-new /usr/share/x.pm"
        )

    @pytest.mark.asyncio
    async def test_copy_failure_removes_staged_file(self, adapter, conn):
        conn.run.side_effect = [_result(1, stderr="No space left"), _result()]
        with pytest.raises(OSError, match="No space left"):
            await adapter.copy(NODE, "/tmp/x.pm", "/usr/share/x.pm")
        assert conn.run.call_args.args[0] == "rm -f -- /usr/share/x.pm.fleetwright-new"

    @pytest.mark.asyncio
    async def test_list_files(self, adapter, conn):
        conn.run.return_value = _result(
            stdout="a.pm.backup.1.0.0.20260101_000000_000000\t120\t1767225600.5\n"
        )
        [listed] = await adapter.list_files(NODE, "/var/lib/backups/")
        assert listed.path == "/var/lib/backups/a.pm.backup.1.0.0.20260101_000000_000000"
        assert listed.size == 120


class TestParseFileListing:
    def test_skips_malformed_lines(self):
        output = "good\t10\t1.0\nbad line\nworse\tten\t1.0\n"
        files = parse_file_listing(output, "/d")
        assert [f.name for f in files] == ["good"]
        assert files[0].modified == 1.0

    def test_empty(self):
        assert parse_file_listing("", "/d") == []
