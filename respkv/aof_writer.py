"""Append-only file persistence: logging write commands in RESP form."""

from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Callable, Iterable, Optional, Sequence, Union

Arg = Union[str, bytes, bytearray]


class SyncPolicy(Enum):
    """When the AOF file is fsynced to disk."""

    ALWAYS = "always"
    EVERYSEC = "everysec"
    NO = "no"


@dataclass
class AofConfig:
    """AOF settings."""

    enabled: bool = True
    filepath: str = "appendonly.aof"
    sync_policy: SyncPolicy = SyncPolicy.EVERYSEC
    buffer_size: int = 4096


@dataclass(frozen=True)
class AofStats:
    """A snapshot of the writer's counters."""

    total_writes: int
    total_bytes: int
    last_sync: float
    file_path: str
    enabled: bool
    sync_policy: str


def _to_bytes(value: Arg) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def encode_command(args: Sequence[Arg]) -> bytes:
    """Encode a command as a RESP array of bulk strings."""
    parts = [b"*%d\r\n" % len(args)]
    for arg in args:
        data = _to_bytes(arg)
        parts.append(b"$%d\r\n" % len(data))
        parts.append(data)
        parts.append(b"\r\n")
    return b"".join(parts)


_AOF_WRITE_COMMANDS = frozenset(
    {
        # strings
        "SET", "SETNX", "SETEX", "PSETEX", "MSET", "MSETNX", "APPEND",
        "INCR", "INCRBY", "INCRBYFLOAT", "DECR", "DECRBY", "GETSET", "SETRANGE",
        # lists
        "LPUSH", "LPUSHX", "RPUSH", "RPUSHX", "LPOP", "RPOP",
        "LSET", "LREM", "LTRIM", "LINSERT", "LMOVE", "RPOPLPUSH",
        "BLPOP", "BRPOP", "BLMOVE", "BRPOPLPUSH",
        # hashes
        "HSET", "HSETNX", "HMSET", "HDEL", "HINCRBY", "HINCRBYFLOAT",
        # sets
        "SADD", "SREM", "SPOP", "SMOVE", "SUNIONSTORE", "SINTERSTORE", "SDIFFSTORE",
        # keys
        "DEL", "UNLINK", "RENAME", "RENAMENX", "COPY",
        "EXPIRE", "EXPIREAT", "PEXPIRE", "PEXPIREAT", "PERSIST",
        # database
        "FLUSHALL", "FLUSHDB", "SELECT",
    }
)


def is_write_command(cmd: str) -> bool:
    """Return True if the command modifies data and belongs in the AOF.

    Transaction control commands are not logged; the commands inside a
    transaction are logged when it is executed.
    """
    return cmd in _AOF_WRITE_COMMANDS


def _fsync(file: BinaryIO) -> None:
    file.flush()
    os.fsync(file.fileno())


class AofWriter:
    """Thread-safe writer that appends commands to the AOF file.

    A disabled configuration yields a writer whose operations do nothing.
    """

    def __init__(self, config: Optional[AofConfig] = None) -> None:
        self.config = config if config is not None else AofConfig()
        self._lock = threading.Lock()
        self._rewrite_lock = threading.Lock()
        self._rewrite_buffer: list[list[Arg]] = []
        self._is_rewriting = False
        self._total_writes = 0
        self._total_bytes = 0
        self._last_sync = time.time()
        self._stop = threading.Event()
        self._sync_thread: Optional[threading.Thread] = None
        self._file: Optional[BinaryIO] = None

        if not self.config.enabled:
            self._closed = True
            return

        self._file = self._open_append()
        self._closed = False

        if self.config.sync_policy is SyncPolicy.EVERYSEC:
            self._sync_thread = threading.Thread(
                target=self._background_sync, name="aof-sync", daemon=True
            )
            self._sync_thread.start()

    @property
    def _buffer_size(self) -> int:
        size = self.config.buffer_size
        return size if size > 0 else 4096

    def _open_append(self) -> BinaryIO:
        return open(self.config.filepath, "ab", buffering=self._buffer_size)

    def _background_sync(self) -> None:
        while not self._stop.wait(1.0):
            with self._lock:
                if not self._closed and self._file is not None:
                    try:
                        _fsync(self._file)
                    except OSError:
                        continue
                    self._last_sync = time.time()

    @property
    def closed(self) -> bool:
        return self._closed

    def write_command(self, args: Sequence[Arg]) -> None:
        """Append one command; called after the command has executed."""
        if not self.config.enabled or self._closed:
            return

        encoded = encode_command(args)
        with self._lock:
            if self._closed or self._file is None:
                return
            self._file.write(encoded)
            self._total_writes += 1
            self._total_bytes += len(encoded)
            if self.config.sync_policy is SyncPolicy.ALWAYS:
                _fsync(self._file)
                self._last_sync = time.time()

        with self._rewrite_lock:
            if self._is_rewriting:
                self._rewrite_buffer.append(list(args))

    def sync(self) -> None:
        """Flush buffered data and fsync the file."""
        if not self.config.enabled or self._closed:
            return
        with self._lock:
            if self._file is None:
                return
            _fsync(self._file)
            self._last_sync = time.time()

    def close(self) -> None:
        """Flush, fsync and close the file; later writes are ignored."""
        if not self.config.enabled:
            return
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._stop.set()
            if self._file is not None:
                try:
                    _fsync(self._file)
                finally:
                    self._file.close()
        if self._sync_thread is not None and self._sync_thread is not threading.current_thread():
            self._sync_thread.join(timeout=2.0)

    def stats(self) -> AofStats:
        with self._lock:
            return AofStats(
                total_writes=self._total_writes,
                total_bytes=self._total_bytes,
                last_sync=self._last_sync,
                file_path=self.config.filepath,
                enabled=self.config.enabled,
                sync_policy=self.config.sync_policy.value,
            )

    def _stop_rewriting(self) -> None:
        with self._rewrite_lock:
            self._is_rewriting = False
            self._rewrite_buffer = []

    def rewrite(self, snapshot_func: Callable[[], Iterable[Sequence[Arg]]]) -> None:
        """Replace the AOF with the commands returned by ``snapshot_func``.

        Commands written while the rewrite runs are buffered and appended to
        the new file, so none are lost.
        """
        with self._rewrite_lock:
            self._is_rewriting = True
            self._rewrite_buffer = []

        temp_path = self.config.filepath + ".rewrite.tmp"
        try:
            commands = snapshot_func()
            with open(temp_path, "wb", buffering=self._buffer_size) as temp:
                for args in commands:
                    temp.write(encode_command(args))

                with self._rewrite_lock:
                    pending, self._rewrite_buffer = self._rewrite_buffer, []
                for args in pending:
                    temp.write(encode_command(args))
                _fsync(temp)
        except BaseException:
            self._stop_rewriting()
            try:
                os.remove(temp_path)
            except OSError:
                pass
            raise

        with self._lock, self._rewrite_lock:
            self._is_rewriting = False
            late, self._rewrite_buffer = self._rewrite_buffer, []

            if late:
                with open(temp_path, "ab") as temp:
                    for args in late:
                        temp.write(encode_command(args))
                    _fsync(temp)

            if self._file is not None:
                try:
                    self._file.flush()
                finally:
                    self._file.close()
                    self._file = None

            os.replace(temp_path, self.config.filepath)
            self._file = self._open_append()
            self._total_bytes = 0

    def __enter__(self) -> "AofWriter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()