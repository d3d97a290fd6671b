import pytest

from respkv.aof_writer import (
    AofConfig,
    AofWriter,
    SyncPolicy,
    encode_command,
    is_write_command,
)


def _config(tmp_path, policy=SyncPolicy.ALWAYS, enabled=True):
    return AofConfig(
        enabled=enabled,
        filepath=str(tmp_path / "appendonly.aof"),
        sync_policy=policy,
        buffer_size=4096,
    )


def test_encode_command_documented_example():
    assert encode_command(["SET", "key", "value"]) == (
        b"*3\r\n$3\r\nSET\r\n$3\r\nkey\r\n$5\r\nvalue\r\n"
    )


def test_encode_command_uses_byte_length():
    encoded = encode_command(["é"])
    assert encoded == b"*1\r\n$2\r\n" + "é".encode("utf-8") + b"\r\n"


def test_encode_empty_command():
    assert encode_command([]) == b"*0\r\n"


@pytest.mark.parametrize(
    "cmd, expected",
    [
        ("SET", True),
        ("SETRANGE", True),
        ("LMOVE", True),
        ("SELECT", True),
        ("COPY", True),
        ("GET", False),
        ("MULTI", False),
        ("EXEC", False),
        ("ZADD", False),
    ],
)
def test_is_write_command(cmd, expected):
    assert is_write_command(cmd) is expected


def test_write_command_appends_to_file(tmp_path):
    config = _config(tmp_path)
    with AofWriter(config) as writer:
        writer.write_command(["SET", "a", "1"])
        writer.write_command(["DEL", "a"])
        stats = writer.stats()
    data = (tmp_path / "appendonly.aof").read_bytes()
    expected = encode_command(["SET", "a", "1"]) + encode_command(["DEL", "a"])
    assert data == expected
    assert stats.total_writes == 2
    assert stats.total_bytes == len(expected)
    assert stats.sync_policy == "always"
    assert stats.file_path == config.filepath


def test_appends_to_existing_file(tmp_path):
    config = _config(tmp_path, policy=SyncPolicy.NO)
    with AofWriter(config) as writer:
        writer.write_command(["SET", "a", "1"])
    with AofWriter(config) as writer:
        writer.write_command(["SET", "b", "2"])
    data = (tmp_path / "appendonly.aof").read_bytes()
    assert data == encode_command(["SET", "a", "1"]) + encode_command(["SET", "b", "2"])


def test_everysec_close_flushes(tmp_path):
    config = _config(tmp_path, policy=SyncPolicy.EVERYSEC)
    writer = AofWriter(config)
    writer.write_command(["INCR", "counter"])
    assert writer.stats().sync_policy == "everysec"
    writer.close()
    assert writer.closed
    assert (tmp_path / "appendonly.aof").read_bytes() == encode_command(["INCR", "counter"])


def test_sync_makes_data_visible(tmp_path):
    config = _config(tmp_path, policy=SyncPolicy.NO)
    with AofWriter(config) as writer:
        writer.write_command(["SET", "x", "y"])
        writer.sync()
        assert (tmp_path / "appendonly.aof").read_bytes() == encode_command(["SET", "x", "y"])


def test_writes_after_close_are_ignored(tmp_path):
    config = _config(tmp_path)
    writer = AofWriter(config)
    writer.write_command(["SET", "a", "1"])
    writer.close()
    writer.write_command(["SET", "b", "2"])
    writer.close()
    assert (tmp_path / "appendonly.aof").read_bytes() == encode_command(["SET", "a", "1"])
    assert writer.stats().total_writes == 1


def test_disabled_writer_creates_no_file(tmp_path):
    config = _config(tmp_path, enabled=False)
    writer = AofWriter(config)
    writer.write_command(["SET", "a", "1"])
    writer.sync()
    writer.close()
    stats = writer.stats()
    assert not (tmp_path / "appendonly.aof").exists()
    assert stats.enabled is False
    assert stats.total_writes == 0


def test_rewrite_replaces_file_with_snapshot(tmp_path):
    config = _config(tmp_path)
    with AofWriter(config) as writer:
        writer.write_command(["SET", "a", "1"])
        writer.write_command(["SET", "a", "2"])
        writer.rewrite(lambda: [["SET", "a", "2"]])
        assert writer.stats().total_bytes == 0
        assert writer.stats().total_writes == 2
        writer.write_command(["SET", "b", "3"])
        assert writer.stats().total_bytes == len(encode_command(["SET", "b", "3"]))
    data = (tmp_path / "appendonly.aof").read_bytes()
    assert data == encode_command(["SET", "a", "2"]) + encode_command(["SET", "b", "3"])
    assert not (tmp_path / "appendonly.aof.rewrite.tmp").exists()


def test_rewrite_keeps_commands_written_during_snapshot(tmp_path):
    config = _config(tmp_path)
    with AofWriter(config) as writer:
        def snapshot():
            writer.write_command(["SET", "late", "v"])
            return [["SET", "early", "v"]]

        writer.rewrite(snapshot)
    data = (tmp_path / "appendonly.aof").read_bytes()
    assert data == encode_command(["SET", "early", "v"]) + encode_command(["SET", "late", "v"])


def test_rewrite_failure_leaves_original(tmp_path):
    config = _config(tmp_path)
    with AofWriter(config) as writer:
        writer.write_command(["SET", "a", "1"])

        def broken():
            raise ValueError("snapshot failed")

        with pytest.raises(ValueError):
            writer.rewrite(broken)
        writer.write_command(["SET", "b", "2"])
    data = (tmp_path / "appendonly.aof").read_bytes()
    assert data == encode_command(["SET", "a", "1"]) + encode_command(["SET", "b", "2"])
    assert not (tmp_path / "appendonly.aof.rewrite.tmp").exists()