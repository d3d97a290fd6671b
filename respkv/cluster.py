"""Cluster topology: nodes, flags and hash-slot ownership."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Optional

from respkv.slots import NUM_SLOTS, SlotRange, build_slot_ranges, key_hash_slot


class NodeFlag(str, Enum):
    """Flags describing a node's role and health."""

    MYSELF = "myself"
    MASTER = "master"
    SLAVE = "slave"
    FAIL = "fail"
    PFAIL = "pfail"
    HANDSHAKE = "handshake"
    NOADDR = "noaddr"
    NOFLAGS = "noflags"


@dataclass
class Node:
    """A single server instance taking part in the cluster."""

    id: str
    address: str
    port: int
    slots: list[int] = field(default_factory=list)
    flags: list[NodeFlag] = field(default_factory=list)

    def node_info(self) -> str:
        return f"{self.id} {self.address}:{self.port}"

    def has_flag(self, flag: NodeFlag) -> bool:
        return flag in self.flags

    def add_flag(self, flag: NodeFlag) -> None:
        if flag not in self.flags:
            self.flags.append(flag)

    def remove_flag(self, flag: NodeFlag) -> None:
        if flag in self.flags:
            self.flags.remove(flag)

    def flags_string(self) -> str:
        if not self.flags:
            return NodeFlag.NOFLAGS.value
        return ",".join(flag.value for flag in self.flags)

    def is_master(self) -> bool:
        return self.has_flag(NodeFlag.MASTER)

    def is_slave(self) -> bool:
        return self.has_flag(NodeFlag.SLAVE)

    def is_myself(self) -> bool:
        return self.has_flag(NodeFlag.MYSELF)

    def is_failed(self) -> bool:
        return self.has_flag(NodeFlag.FAIL)


class ClusterState(str, Enum):
    OK = "ok"
    FAIL = "fail"


class Cluster:
    """This node's view of the cluster and its slot assignments."""

    def __init__(self, node_id: str, address: str, port: int) -> None:
        self._lock = threading.RLock()
        self.myself = Node(
            id=node_id,
            address=address,
            port=port,
            flags=[NodeFlag.MYSELF, NodeFlag.MASTER],
        )
        self.nodes: dict[str, Node] = {node_id: self.myself}
        self.slot_map: list[Optional[str]] = [None] * NUM_SLOTS
        self.enabled = False
        self.assigned_slots = 0
        self._state = ClusterState.FAIL

    def enable(self) -> None:
        with self._lock:
            self.enabled = True

    def disable(self) -> None:
        with self._lock:
            self.enabled = False

    def is_enabled(self) -> bool:
        with self._lock:
            return self.enabled

    def assign_slots(self, slots: Iterable[int]) -> None:
        """Give the listed slots to this node; out-of-range slots are ignored."""
        with self._lock:
            for slot in slots:
                if 0 <= slot < NUM_SLOTS:
                    if self.slot_map[slot] is None:
                        self.assigned_slots += 1
                    self.slot_map[slot] = self.myself.id
                    self.myself.slots.append(slot)
            self._update_state()

    def assign_slot_range(self, start: int, end: int) -> None:
        self.assign_slots(range(start, end + 1))

    def get_slot_node(self, slot: int) -> Optional[str]:
        """Return the id of the node owning ``slot``, or None."""
        with self._lock:
            if not 0 <= slot < NUM_SLOTS:
                return None
            return self.slot_map[slot]

    def is_slot_owner(self, slot: int) -> bool:
        with self._lock:
            if not 0 <= slot < NUM_SLOTS:
                return False
            return self.slot_map[slot] == self.myself.id

    def is_key_owner(self, key: str) -> bool:
        return self.is_slot_owner(key_hash_slot(key))

    def get_key_node(self, key: str) -> Optional[Node]:
        with self._lock:
            node_id = self.slot_map[key_hash_slot(key)]
            if node_id is None:
                return None
            return self.nodes.get(node_id)

    def add_node(self, node: Node) -> None:
        with self._lock:
            self.nodes[node.id] = node
            for slot in node.slots:
                if 0 <= slot < NUM_SLOTS:
                    if self.slot_map[slot] is None:
                        self.assigned_slots += 1
                    self.slot_map[slot] = node.id
            self._update_state()

    def remove_node(self, node_id: str) -> None:
        with self._lock:
            node = self.nodes.get(node_id)
            if node is None:
                return
            for slot in node.slots:
                if 0 <= slot < NUM_SLOTS and self.slot_map[slot] == node_id:
                    self.slot_map[slot] = None
                    self.assigned_slots -= 1
            del self.nodes[node_id]
            self._update_state()

    def get_slots(self) -> list[int]:
        with self._lock:
            return list(self.myself.slots)

    def get_slot_ranges(self) -> list[SlotRange]:
        with self._lock:
            return build_slot_ranges(self.myself.slots)

    def get_all_nodes(self) -> list[Node]:
        with self._lock:
            return list(self.nodes.values())

    def state(self) -> ClusterState:
        with self._lock:
            return self._state

    def _update_state(self) -> None:
        self._state = (
            ClusterState.OK if self.assigned_slots == NUM_SLOTS else ClusterState.FAIL
        )

    def cluster_info(self) -> dict[str, Any]:
        with self._lock:
            return {
                "cluster_state": self._state.value,
                "cluster_slots_assigned": self.assigned_slots,
                "cluster_slots_ok": self.assigned_slots,
                "cluster_slots_pfail": 0,
                "cluster_slots_fail": NUM_SLOTS - self.assigned_slots,
                "cluster_known_nodes": len(self.nodes),
                "cluster_size": len(self.nodes),
                "cluster_my_epoch": 1,
                "cluster_current_epoch": 1,
            }