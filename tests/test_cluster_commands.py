import pytest

from respkv.cluster import Cluster, Node, NodeFlag
from respkv.cluster_commands import ClusterCommands
from respkv.commands import CommandError, SimpleString
from respkv.slots import key_hash_slot

DISABLED = "ERR This instance has cluster support disabled"


@pytest.fixture
def cluster():
    c = Cluster("abc", "127.0.0.1", 7000)
    c.enable()
    return c


@pytest.fixture
def commands(cluster):
    return ClusterCommands(cluster)


@pytest.mark.parametrize("sub", ["SLOTS", "NODES", "INFO", "MYID"])
def test_disabled_cluster_rejects(sub):
    c = Cluster("abc", "127.0.0.1", 7000)
    with pytest.raises(CommandError) as info:
        ClusterCommands(c).execute([sub])
    assert str(info.value) == DISABLED


def test_no_cluster_rejects_addslots():
    with pytest.raises(CommandError) as info:
        ClusterCommands(None).execute(["ADDSLOTS", "1"])
    assert str(info.value) == DISABLED


def test_keyslot_without_cluster():
    assert ClusterCommands(None).execute(["keyslot", "user:{42}:x"]) == key_hash_slot("42")


def test_keyslot_needs_key():
    with pytest.raises(CommandError, match="cluster\\|keyslot"):
        ClusterCommands(None).execute(["KEYSLOT"])


def test_empty_args():
    with pytest.raises(CommandError, match="'cluster' command"):
        ClusterCommands(None).execute([])


def test_unknown_subcommand(commands):
    with pytest.raises(CommandError) as info:
        commands.execute(["bogus"])
    assert str(info.value) == "ERR unknown CLUSTER subcommand 'BOGUS'"


def test_enabled_flag(cluster):
    assert ClusterCommands(cluster).enabled() == 1
    cluster.disable()
    assert ClusterCommands(cluster).enabled() == 0
    assert ClusterCommands(None).enabled() == 0


def test_myid(commands):
    assert commands.execute(["MYID"]) == "abc"


def test_addslots_assigns(commands, cluster):
    reply = commands.execute(["ADDSLOTS", "0", "1", "2"])
    assert reply == "OK"
    assert isinstance(reply, SimpleString)
    assert cluster.get_slots() == [0, 1, 2]


@pytest.mark.parametrize("bad", ["-1", "16384", "x", "1.5"])
def test_addslots_rejects_invalid(commands, cluster, bad):
    with pytest.raises(CommandError) as info:
        commands.addslots(["3", bad])
    assert str(info.value) == f"ERR Invalid slot {bad}"
    assert cluster.get_slots() == []


def test_addslots_needs_slot(commands):
    with pytest.raises(CommandError, match="cluster\\|addslots"):
        commands.addslots([])


def test_slots_and_nodes(commands):
    commands.addslots(["0", "1", "2", "5"])
    assert commands.execute(["SLOTS"]) == [
        "0-2 127.0.0.1:7000 abc",
        "5-5 127.0.0.1:7000 abc",
    ]
    assert commands.execute(["NODES"]) == (
        "abc 127.0.0.1:7000@17000 myself,master - 0 0 0 connected 0-2 5"
    )


def test_nodes_includes_other_nodes(commands, cluster):
    cluster.add_node(Node("def", "10.0.0.2", 7001, slots=[], flags=[NodeFlag.SLAVE]))
    lines = commands.nodes().split("\n")
    assert len(lines) == 2
    assert lines[1].startswith("def 10.0.0.2:7001@")
    assert " slave - 0 0 0 connected" in lines[1]
    assert lines[1].endswith("connected")


def test_info_matches_cluster_info(commands, cluster):
    commands.addslots(["10", "11"])
    text = commands.execute(["INFO"])
    parsed = dict(line.split(":", 1) for line in text.split("\r\n"))
    expected = {k: str(v) for k, v in cluster.cluster_info().items()}
    assert parsed == expected
    assert text.split("\r\n")[0].startswith("cluster_state:")