"""Cluster redirects and key-ownership checks."""

from __future__ import annotations

from enum import Enum
from typing import Sequence

from respkv.cluster import Cluster, Node
from respkv.commands import CommandError
from respkv.slots import key_hash_slot, keys_in_same_slot


class RedirectType(str, Enum):
    """MOVED: the slot lives elsewhere for good. ASK: it is being migrated."""

    MOVED = "MOVED"
    ASK = "ASK"


class ClusterError(CommandError):
    """A command cannot be served by this node in cluster mode."""


class RedirectError(ClusterError):
    """The client must retry the command on another node."""

    def __init__(
        self, type: RedirectType, slot: int, node_id: str, address: str, port: int
    ) -> None:
        self.type = type
        self.slot = slot
        self.node_id = node_id
        self.address = address
        self.port = port
        super().__init__(f"{type.value} {slot} {address}:{port}")


class ClusterDownError(ClusterError):
    """The key's slot is not served by any node."""

    def __init__(self, message: str = "CLUSTERDOWN Hash slot not served") -> None:
        super().__init__(message)


class CrossSlotError(ClusterError):
    """The keys of a multi-key command map to different slots."""

    def __init__(
        self, message: str = "CROSSSLOT Keys in request don't hash to the same slot"
    ) -> None:
        super().__init__(message)


def moved_error(slot: int, node: Node) -> RedirectError:
    return RedirectError(RedirectType.MOVED, slot, node.id, node.address, node.port)


def ask_error(slot: int, node: Node) -> RedirectError:
    return RedirectError(RedirectType.ASK, slot, node.id, node.address, node.port)


def check_key_ownership(cluster: Cluster, key: str) -> None:
    """Raise unless this node may serve ``key``.

    Nothing is checked while cluster mode is disabled.
    """
    if not cluster.is_enabled():
        return
    slot = key_hash_slot(key)
    if cluster.is_slot_owner(slot):
        return
    node = cluster.get_key_node(key)
    if node is None:
        raise ClusterDownError()
    raise moved_error(slot, node)


def check_multi_key_ownership(cluster: Cluster, keys: Sequence[str]) -> None:
    """Raise unless all ``keys`` share one slot owned by this node."""
    if not cluster.is_enabled() or not keys:
        return
    if not keys_in_same_slot(keys):
        raise CrossSlotError()
    check_key_ownership(cluster, keys[0])