"""Server and sentinel configuration, and their command-line parsing."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Optional, Sequence

from respkv.aof_writer import AofConfig, SyncPolicy


@dataclass
class RdbSavePoint:
    """Snapshot when at least ``changes`` writes happened within ``seconds``."""

    seconds: int = 60
    changes: int = 1000


def _default_aof() -> AofConfig:
    return AofConfig(
        enabled=True,
        filepath="appendonly.aof",
        sync_policy=SyncPolicy.EVERYSEC,
        buffer_size=4096,
    )


@dataclass
class ServerConfig:
    """Settings for a data server. Durations are in seconds."""

    host: str = "127.0.0.1"
    port: int = 6379
    max_connections: int = 10000
    read_buffer_size: int = 4096
    write_buffer_size: int = 4096

    max_pipeline_commands: int = 1000
    slow_log_threshold: float = 0.010
    command_timeout: float = 30.0
    read_timeout: float = 60.0
    pipeline_timeout: float = 1.0

    aof: AofConfig = field(default_factory=_default_aof)

    rdb_filepath: str = "dump.rdb"
    rdb_save_point: RdbSavePoint = field(default_factory=RdbSavePoint)

    replica_priority: int = 100
    replication_role: str = "master"
    replication_master_host: str = ""
    replication_master_port: int = 6379

    cluster_enabled: bool = False
    cluster_config: str = "nodes.conf"


@dataclass
class SentinelConfig:
    """Settings for a sentinel. Times are in milliseconds."""

    host: str = "0.0.0.0"
    port: int = 26379
    master_name: str = "mymaster"
    master_host: str = "127.0.0.1"
    master_port: int = 6379
    sentinel_addrs: list[str] = field(default_factory=list)
    quorum: int = 2
    down_after_millis: int = 30000
    failover_timeout: int = 180000
    max_connections: int = 10000


def _flag(parser: argparse.ArgumentParser, name: str, **kwargs) -> None:
    parser.add_argument(f"-{name}", f"--{name}", **kwargs)


def _server_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="server", allow_abbrev=False)
    _flag(parser, "port", type=int, default=6379, help="Port to listen on")
    _flag(parser, "host", default="127.0.0.1", help="Host to bind to")
    _flag(parser, "replication-role", default="master",
          help="Replication role (master/replica)")
    _flag(parser, "replication-master-host", default="",
          help="Master host for replica")
    _flag(parser, "replication-master-port", type=int, default=6379,
          help="Master port for replica")
    _flag(parser, "replica-priority", type=int, default=100,
          help="Replica priority for failover")
    return parser


def _sentinel_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sentinel", allow_abbrev=False)
    _flag(parser, "port", type=int, default=26379,
          help="Port for Sentinel to listen on")
    _flag(parser, "master-name", default="mymaster",
          help="Name of the master to monitor")
    _flag(parser, "master-host", default="127.0.0.1",
          help="Host of the master to monitor")
    _flag(parser, "master-port", type=int, default=6379,
          help="Port of the master to monitor")
    _flag(parser, "quorum", type=int, default=2,
          help="Number of Sentinels that need to agree")
    _flag(parser, "down-after-ms", type=int, default=30000,
          help="Milliseconds before marking instance down")
    _flag(parser, "failover-timeout-ms", type=int, default=180000,
          help="Milliseconds for failover timeout")
    _flag(parser, "sentinel-addrs", default="",
          help="Comma-separated list of other Sentinel addresses "
               "(e.g., 'host1:26379,host2:26379')")
    return parser


def parse_server_args(argv: Optional[Sequence[str]] = None) -> ServerConfig:
    """Build a :class:`ServerConfig` from command-line arguments.

    Invalid arguments exit with status 2.
    """
    ns = _server_parser().parse_args(argv)
    return ServerConfig(
        host=ns.host,
        port=ns.port,
        replica_priority=ns.replica_priority,
        replication_role=ns.replication_role,
        replication_master_host=ns.replication_master_host,
        replication_master_port=ns.replication_master_port,
    )


def parse_sentinel_args(argv: Optional[Sequence[str]] = None) -> SentinelConfig:
    """Build a :class:`SentinelConfig` from command-line arguments."""
    ns = _sentinel_parser().parse_args(argv)
    addrs = [addr.strip() for addr in ns.sentinel_addrs.split(",")] if ns.sentinel_addrs else []
    return SentinelConfig(
        port=ns.port,
        master_name=ns.master_name,
        master_host=ns.master_host,
        master_port=ns.master_port,
        sentinel_addrs=addrs,
        quorum=ns.quorum,
        down_after_millis=ns.down_after_ms,
        failover_timeout=ns.failover_timeout_ms,
    )


def sentinel_usage() -> str:
    """Usage text for the sentinel, with a three-sentinel example."""
    lines = [
        "Sentinel - high availability monitoring",
        "",
        _sentinel_parser().format_help().rstrip(),
        "",
        "Example:",
    ]
    ports = (26379, 26380, 26381)
    for number, port in enumerate(ports, start=1):
        others = ",".join(f"127.0.0.1:{p}" for p in ports if p != port)
        lines += [
            f"  # Sentinel {number}",
            f"  sentinel --port {port} --master-name mymaster "
            "--master-host 127.0.0.1 --master-port 6379 \\",
            f'    --quorum 2 --sentinel-addrs "{others}"',
            "",
        ]
    return "\n".join(lines).rstrip() + "\n"