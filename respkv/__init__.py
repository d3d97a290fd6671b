"""Building blocks for a RESP key-value server: hash slots, cluster topology,
append-only persistence, blocking lists, command front-ends and configuration."""

__version__ = "0.1.0"

__all__ = [
    "aof_reader",
    "aof_writer",
    "blocking",
    "cluster",
    "cluster_commands",
    "commands",
    "config",
    "hyperloglog",
    "redirect",
    "slots",
]