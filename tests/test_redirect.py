import pytest

from respkv.cluster import Cluster, Node, NodeFlag
from respkv.commands import CommandError
from respkv.redirect import (
    ClusterDownError,
    CrossSlotError,
    RedirectError,
    RedirectType,
    ask_error,
    check_key_ownership,
    check_multi_key_ownership,
    moved_error,
)
from respkv.slots import key_hash_slot


def _cluster():
    cluster = Cluster("node-a", "127.0.0.1", 7000)
    cluster.enable()
    return cluster


def _other_node(slots):
    return Node(
        id="node-b",
        address="10.0.0.2",
        port=7001,
        slots=list(slots),
        flags=[NodeFlag.MASTER],
    )


def test_moved_error_fields_and_message():
    node = _other_node([])
    err = moved_error(42, node)
    assert err.type is RedirectType.MOVED
    assert err.slot == 42
    assert err.node_id == "node-b"
    assert str(err) == "MOVED 42 10.0.0.2:7001"


def test_ask_error_message():
    err = ask_error(42, _other_node([]))
    assert err.type is RedirectType.ASK
    assert str(err) == "ASK 42 10.0.0.2:7001"


def test_disabled_cluster_allows_everything():
    cluster = Cluster("node-a", "127.0.0.1", 7000)
    assert check_key_ownership(cluster, "foo") is None
    assert check_multi_key_ownership(cluster, ["foo", "bar"]) is None
    assert cluster.is_enabled() is False


def test_owned_key_passes():
    cluster = _cluster()
    cluster.assign_slots([key_hash_slot("user:1")])
    assert check_key_ownership(cluster, "user:1") is None
    assert cluster.is_key_owner("user:1")


def test_key_on_other_node_is_moved():
    cluster = _cluster()
    slot = key_hash_slot("user:1")
    cluster.add_node(_other_node([slot]))
    with pytest.raises(RedirectError) as info:
        check_key_ownership(cluster, "user:1")
    assert info.value.slot == slot
    assert info.value.port == 7001
    assert str(info.value) == f"MOVED {slot} 10.0.0.2:7001"


def test_unassigned_slot_is_cluster_down():
    cluster = _cluster()
    with pytest.raises(ClusterDownError) as info:
        check_key_ownership(cluster, "user:1")
    assert str(info.value) == "CLUSTERDOWN Hash slot not served"


def test_cross_slot_keys_rejected():
    cluster = _cluster()
    with pytest.raises(CrossSlotError) as info:
        check_multi_key_ownership(cluster, ["foo", "bar"])
    assert str(info.value) == "CROSSSLOT Keys in request don't hash to the same slot"


def test_hash_tagged_keys_pass_multi_check():
    cluster = _cluster()
    cluster.assign_slots([key_hash_slot("user")])
    assert check_multi_key_ownership(cluster, ["{user}:a", "{user}:b"]) is None
    assert check_multi_key_ownership(cluster, []) is None


def test_multi_key_on_other_node_is_moved():
    cluster = _cluster()
    slot = key_hash_slot("user")
    cluster.add_node(_other_node([slot]))
    with pytest.raises(CommandError) as info:
        check_multi_key_ownership(cluster, ["{user}:a", "{user}:b"])
    assert isinstance(info.value, RedirectError)
    assert info.value.slot == slot