# respkv

`respkv` collects pieces that a RESP-speaking key-value server is built
from. Each module can be used on its own, and the package depends only on
the standard library (Python 3.10 and later).

| Module | What it provides |
| --- | --- |
| `respkv.slots` | CRC16 hash slots with `{hash tag}` support, `SlotRange`, `build_slot_ranges` |
| `respkv.cluster` | `Cluster` topology, `Node`, `NodeFlag`, `ClusterState` |
| `respkv.redirect` | key-ownership checks raising `RedirectError`, `ClusterDownError`, `CrossSlotError` |
| `respkv.cluster_commands` | the `CLUSTER` command and its subcommands |
| `respkv.aof_writer` | `AofWriter`, `AofConfig`, `SyncPolicy`, `encode_command` |
| `respkv.aof_reader` | `AofReader`, `load_commands`, `open_reader`, `AofFormatError` |
| `respkv.blocking` | `BLPOP`, `BRPOP`, `BLMOVE`, `BRPOPLPUSH` and the `BlockingManager` |
| `respkv.hyperloglog` | `PFADD`, `PFCOUNT`, `PFMERGE` over a backend you supply |
| `respkv.commands` | `CommandError`, `SimpleString`, `is_write_command` |
| `respkv.config` | `ServerConfig`, `SentinelConfig` and their argument parsers |

## Hash slots

```python
from respkv.slots import key_hash_slot, keys_in_same_slot, build_slot_ranges

key_hash_slot("foo")                                                  # 12182
key_hash_slot("{user:1000}:profile") == key_hash_slot("user:1000")   # True
keys_in_same_slot(["{user:1000}:a", "{user:1000}:b"])                # True

build_slot_ranges([5, 0, 1, 2, 6, 7])
# [SlotRange(start=0, end=2), SlotRange(start=5, end=7)]
```

Every key maps to one of 16384 slots. When a key contains a non-empty
`{...}` section, only the first such section is hashed, so related keys can
be kept in one slot.

## Cluster topology and redirects

```python
from respkv.cluster import Cluster
from respkv.redirect import check_key_ownership

cluster = Cluster("a" * 40, "127.0.0.1", 7000)
cluster.enable()
cluster.assign_slot_range(0, 16383)
cluster.state()                       # ClusterState.OK once every slot is covered

check_key_ownership(cluster, "foo")   # returns None: this node owns the slot
```

While cluster mode is disabled no check is made. When another node owns a
key's slot, `check_key_ownership` raises a `RedirectError` whose text is
`MOVED <slot> <host>:<port>`; a slot no node serves raises
`ClusterDownError`. `check_multi_key_ownership` additionally raises
`CrossSlotError` when the keys hash to different slots. All of these are
`CommandError` subclasses.

`ClusterCommands` answers `CLUSTER SLOTS`, `NODES`, `KEYSLOT`, `INFO`,
`ADDSLOTS`, `MYID` and `ENABLED`:

```python
from respkv.cluster_commands import ClusterCommands

commands = ClusterCommands(cluster)
commands.execute(["KEYSLOT", "foo"])   # 12182
commands.execute(["INFO"])             # "cluster_state:ok\r\ncluster_slots_assigned:16384\r\n..."
```

## Append-only file

```python
from respkv.aof_writer import AofConfig, AofWriter, SyncPolicy, encode_command
from respkv.aof_reader import load_commands

encode_command(["SET", "key", "value"])
# b"*3\r\n$3\r\nSET\r\n$3\r\nkey\r\n$5\r\nvalue\r\n"

config = AofConfig(enabled=True, filepath="appendonly.aof",
                   sync_policy=SyncPolicy.ALWAYS, buffer_size=4096)
with AofWriter(config) as writer:
    writer.write_command(["SET", "greeting", "hello"])

load_commands("appendonly.aof")   # [["SET", "greeting", "hello"]]
```

`SyncPolicy.EVERYSEC` fsyncs from a background thread once a second,
`ALWAYS` after every command, and `NO` leaves flushing to the operating
system. `AofWriter.stats()` returns an `AofStats` snapshot of the counters.

`AofWriter.rewrite(snapshot_func)` takes a function returning the commands
that rebuild the current data set. They are written to a temporary file;
commands logged while it is being built are appended to it before it
replaces the old file.

`respkv.aof_writer.is_write_command` says which commands belong in the
file. A malformed file makes the reader raise `AofFormatError`, which
carries the commands read before the error; a missing file yields no
commands.

## Blocking list operations

`BlockingManager` keeps, for every key, the clients waiting on it in
arrival order. `block_client` returns a `concurrent.futures.Future` that
resolves to a `BlockingResult`, raises `BlockingTimeoutError` when the
timeout passes, or is cancelled by `remove_client`.

`BlockingCommands` sits on a `ListBackend` (any object with `lpop`, `rpop`,
`lpush`, `rpush`). Each handler first tries to pop immediately and returns
a `BlockingOutcome`: either the reply, or `should_block=True` with a
`BlockingConfig` describing the wait (a timeout of 0 means wait a year,
i.e. effectively forever). After a push, `notify_list_push(key)` hands the
value to the longest-waiting client. `non_blocking_equivalent` gives the
command to log or replicate for what actually happened, such as
`["LPOP", key]` for a satisfied `BLPOP`.

## HyperLogLog commands

`HyperLogLogCommands` validates the arguments of `PFADD`, `PFCOUNT` and
`PFMERGE` and delegates to a `HyperLogLogBackend` you supply; errors from
the backend are reported as `CommandError("ERR ...")`, and `PFMERGE`
returns `SimpleString("OK")`.

## Write commands

`respkv.commands.is_write_command` tells whether a command changes data,
which a replica uses to refuse writes from ordinary clients.

## Configuration

```python
from respkv.config import parse_server_args, parse_sentinel_args, sentinel_usage

server = parse_server_args(["--port", "6380",
                            "--replication-role", "replica",
                            "--replication-master-host", "127.0.0.1"])

sentinel = parse_sentinel_args(["--port", "26379",
                                "--sentinel-addrs", "127.0.0.1:26380, 127.0.0.1:26381"])
sentinel.sentinel_addrs   # ["127.0.0.1:26380", "127.0.0.1:26381"]
```

By default the server config binds `127.0.0.1:6379` as a master with the
append-only file `appendonly.aof` synced every second; the sentinel config
listens on port 26379 and watches `mymaster` at `127.0.0.1:6379` with a
quorum of 2, a 30000 ms down-after period and a 180000 ms failover timeout.
Invalid arguments exit with status 2. `sentinel_usage()` returns the
sentinel's help text.

## What this package does not do

- There is no network server, client connection handling or RESP request
  parser, and no command-line program: `respkv.config` only builds
  configuration objects.
- There is no in-memory data store. List and HyperLogLog commands work
  over backend objects you provide.
- Bitmap, Bloom filter, geospatial and scripting commands are not
  provided.
- No snapshot file is written or read; `ServerConfig.rdb_filepath` and
  `rdb_save_point` are settings only.
- There is no replication or sentinel failover logic; the sentinel and
  replication options are configuration only.