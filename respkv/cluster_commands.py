"""The CLUSTER command and its subcommands."""

from __future__ import annotations

import re
from typing import Optional, Sequence

from respkv.cluster import Cluster
from respkv.commands import CommandError, SimpleString
from respkv.slots import NUM_SLOTS, build_slot_ranges, key_hash_slot

_DISABLED = "ERR This instance has cluster support disabled"
_INTEGER = re.compile(r"[+-]?[0-9]+")

_INFO_FIELDS = (
    "cluster_state",
    "cluster_slots_assigned",
    "cluster_slots_ok",
    "cluster_slots_pfail",
    "cluster_slots_fail",
    "cluster_known_nodes",
    "cluster_size",
    "cluster_current_epoch",
    "cluster_my_epoch",
)


class ClusterCommands:
    """Handlers for CLUSTER SLOTS, NODES, KEYSLOT, INFO, ADDSLOTS, MYID, ENABLED.

    ``cluster`` may be None when the server runs without cluster support.
    Errors are raised as :class:`CommandError`.
    """

    def __init__(self, cluster: Optional[Cluster]) -> None:
        self.cluster = cluster

    def _enabled_cluster(self) -> Cluster:
        if self.cluster is None or not self.cluster.is_enabled():
            raise CommandError(_DISABLED)
        return self.cluster

    def execute(self, args: Sequence[str]):
        """Run ``CLUSTER <subcommand> ...``; ``args`` excludes the word CLUSTER."""
        if not args:
            raise CommandError("ERR wrong number of arguments for 'cluster' command")
        subcommand = args[0].upper()
        rest = list(args[1:])
        if subcommand == "SLOTS":
            return self.slots()
        if subcommand == "NODES":
            return self.nodes()
        if subcommand == "KEYSLOT":
            return self.keyslot(rest)
        if subcommand == "INFO":
            return self.info()
        if subcommand == "ADDSLOTS":
            return self.addslots(rest)
        if subcommand == "MYID":
            return self.myid()
        if subcommand == "ENABLED":
            return self.enabled()
        raise CommandError(f"ERR unknown CLUSTER subcommand '{subcommand}'")

    def slots(self) -> list[str]:
        """One ``"start-end host:port id"`` entry per contiguous slot range."""
        cluster = self._enabled_cluster()
        return [
            f"{r.start}-{r.end} {node.address}:{node.port} {node.id}"
            for node in cluster.get_all_nodes()
            if node.slots
            for r in build_slot_ranges(node.slots)
        ]

    def nodes(self) -> str:
        """The node table, one line per node."""
        cluster = self._enabled_cluster()
        lines = []
        for node in cluster.get_all_nodes():
            slots_text = ""
            if node.slots:
                parts = [
                    str(r.start) if r.start == r.end else f"{r.start}-{r.end}"
                    for r in build_slot_ranges(node.slots)
                ]
                slots_text = " " + " ".join(parts)
            lines.append(
                f"{node.id} {node.address}:{node.port}@{node.port + 10000} "
                f"{node.flags_string()} - 0 0 0 connected{slots_text}"
            )
        return "\n".join(lines)

    def keyslot(self, args: Sequence[str]) -> int:
        """The hash slot of ``args[0]``; works without cluster mode."""
        if not args:
            raise CommandError(
                "ERR wrong number of arguments for 'cluster|keyslot' command"
            )
        return key_hash_slot(args[0])

    def info(self) -> str:
        cluster = self._enabled_cluster()
        info = cluster.cluster_info()
        return "\r\n".join(f"{name}:{info[name]}" for name in _INFO_FIELDS)

    def addslots(self, args: Sequence[str]) -> SimpleString:
        """Assign the listed slots to this node; all are validated first."""
        if self.cluster is None:
            raise CommandError(_DISABLED)
        if not args:
            raise CommandError(
                "ERR wrong number of arguments for 'cluster|addslots' command"
            )
        slots = []
        for text in args:
            if _INTEGER.fullmatch(text) is None or not 0 <= int(text) < NUM_SLOTS:
                raise CommandError(f"ERR Invalid slot {text}")
            slots.append(int(text))
        self.cluster.assign_slots(slots)
        return SimpleString("OK")

    def myid(self) -> str:
        return self._enabled_cluster().myself.id

    def enabled(self) -> int:
        return int(self.cluster is not None and self.cluster.is_enabled())