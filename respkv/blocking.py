"""Blocking list operations: BLPOP, BRPOP, BLMOVE and BRPOPLPUSH.

The :class:`BlockingManager` keeps, for every key, a FIFO queue of clients
waiting for data on it. A waiting client receives its result through a
:class:`concurrent.futures.Future`. The future resolves to a
:class:`BlockingResult` when data arrives, raises
:class:`BlockingTimeoutError` when the wait times out, and is cancelled
when the client is removed.
"""

from __future__ import annotations

import math
import threading
import time
from collections import OrderedDict
from concurrent.futures import Future
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, Protocol, Sequence, Union

from respkv.commands import CommandError

# A timeout of zero means "wait forever"; this stands in for it.
FOREVER = 365 * 24 * 60 * 60.0

_BLOCKING_COMMANDS = frozenset({"BLPOP", "BRPOP", "BLMOVE", "BRPOPLPUSH"})


class BlockingDirection(str, Enum):
    """The end of a list that is popped from or pushed to."""

    LEFT = "LEFT"
    RIGHT = "RIGHT"


@dataclass(frozen=True)
class BlockingResult:
    """Data handed to a client that was waiting: the key and the value."""

    key: str
    value: str


class BlockingTimeoutError(Exception):
    """A blocked client waited longer than its timeout."""

    def __init__(self, message: str = "blocking operation timeout") -> None:
        super().__init__(message)


@dataclass(eq=False)
class BlockedClient:
    """A client waiting for data on one or more keys."""

    client_id: int
    keys: tuple[str, ...]
    direction: BlockingDirection
    timeout: float
    dest_key: Optional[str] = None
    dest_dir: BlockingDirection = BlockingDirection.LEFT
    start_time: float = field(default_factory=time.monotonic)
    future: Future = field(default_factory=Future, repr=False)
    _timer: Optional[threading.Timer] = field(default=None, repr=False)


PopFunc = Callable[[BlockingDirection], Optional[str]]
PushFunc = Callable[[str, str, BlockingDirection], None]


class BlockingManager:
    """Tracks clients blocked on list keys, served in FIFO order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_key: dict[str, OrderedDict[int, BlockedClient]] = {}
        self._clients: dict[int, BlockedClient] = {}

    def block_client(
        self,
        client_id: int,
        keys: Iterable[str],
        direction: BlockingDirection,
        timeout: float,
        dest_key: Optional[str] = None,
        dest_dir: BlockingDirection = BlockingDirection.LEFT,
    ) -> Future:
        """Register a client as waiting on ``keys`` and return its future.

        A positive ``timeout`` (seconds) arms a timer; otherwise the client
        waits until served or removed.
        """
        client = BlockedClient(
            client_id=client_id,
            keys=tuple(keys),
            direction=direction,
            timeout=timeout,
            dest_key=dest_key,
            dest_dir=dest_dir,
        )
        with self._lock:
            previous = self._clients.get(client_id)
            if previous is not None:
                self._remove_locked(previous)
                previous.future.cancel()
            self._clients[client_id] = client
            for key in client.keys:
                self._by_key.setdefault(key, OrderedDict())[client_id] = client
            if timeout > 0:
                timer = threading.Timer(timeout, self._expire, args=(client,))
                timer.daemon = True
                client._timer = timer
        if client._timer is not None:
            client._timer.start()
        return client.future

    def _expire(self, client: BlockedClient) -> None:
        with self._lock:
            if self._clients.get(client.client_id) is not client:
                return
            self._remove_locked(client)
            client.future.set_exception(BlockingTimeoutError())

    def unblock_client_with_data(
        self, key: str, pop_func: PopFunc, push_func: PushFunc
    ) -> bool:
        """Serve the longest-waiting client on ``key``.

        ``pop_func`` pops a value from ``key`` in the client's direction and
        returns None when the list is empty. For move operations
        ``push_func`` pushes the value onto the destination. Returns True if
        a client was served.
        """
        with self._lock:
            waiters = self._by_key.get(key)
            if not waiters:
                return False
            client = next(iter(waiters.values()))
            value = pop_func(client.direction)
            if value is None:
                return False
            if client.dest_key:
                push_func(client.dest_key, value, client.dest_dir)
            self._remove_locked(client)
            client.future.set_result(BlockingResult(key, value))
            return True

    def _remove_locked(self, client: BlockedClient) -> None:
        if self._clients.get(client.client_id) is client:
            del self._clients[client.client_id]
        for key in client.keys:
            waiters = self._by_key.get(key)
            if waiters is None:
                continue
            if waiters.get(client.client_id) is client:
                del waiters[client.client_id]
            if not waiters:
                del self._by_key[key]
        if client._timer is not None:
            client._timer.cancel()

    def remove_client(self, client_id: int) -> None:
        """Stop waiting for ``client_id`` (on disconnect); cancels its future."""
        with self._lock:
            client = self._clients.get(client_id)
            if client is None:
                return
            self._remove_locked(client)
            client.future.cancel()

    def has_blocked_clients(self, key: str) -> bool:
        with self._lock:
            return bool(self._by_key.get(key))

    def blocked_client_count(self, key: str) -> int:
        with self._lock:
            return len(self._by_key.get(key, ()))


@dataclass(frozen=True)
class BlockingConfig:
    """What a blocking command waits for, and where a moved value goes."""

    keys: tuple[str, ...]
    direction: BlockingDirection
    timeout: float
    dest_key: Optional[str] = None
    dest_dir: BlockingDirection = BlockingDirection.LEFT
    actual_key: Optional[str] = None


@dataclass(frozen=True)
class BlockingOutcome:
    """The result of a first, non-blocking attempt.

    When ``should_block`` is False, ``reply`` holds the answer: a
    ``[key, value]`` list for pops, the value for moves. Otherwise the
    client must wait as described by ``config``.
    """

    reply: Union[list[str], str, None]
    should_block: bool
    config: BlockingConfig


class ListBackend(Protocol):
    """The list operations the blocking commands need."""

    def lpop(self, key: str) -> Optional[str]: ...

    def rpop(self, key: str) -> Optional[str]: ...

    def lpush(self, key: str, values: Sequence[str]) -> int: ...

    def rpush(self, key: str, values: Sequence[str]) -> int: ...


def _parse_timeout(text: str) -> float:
    error = CommandError("ERR timeout is not a float or out of range")
    if text != text.strip():
        raise error
    try:
        value = float(text)
    except ValueError:
        raise error from None
    if not math.isfinite(value):
        raise error
    return value


def _blocking_timeout(seconds: float) -> float:
    if int(seconds * 1e9) == 0:
        return FOREVER
    return seconds


def _parse_direction(text: str) -> BlockingDirection:
    try:
        return BlockingDirection(text.upper())
    except ValueError:
        raise CommandError("ERR syntax error") from None


class BlockingCommands:
    """Handlers for the blocking list commands.

    Each handler takes the command's arguments without the command name.
    """

    def __init__(
        self,
        backend: ListBackend,
        manager: BlockingManager,
        touch_keys: Optional[Callable[[list[str]], None]] = None,
    ) -> None:
        self._backend = backend
        self._manager = manager
        self._touch = touch_keys if touch_keys is not None else (lambda keys: None)

    def _pop(self, key: str, direction: BlockingDirection) -> Optional[str]:
        if direction is BlockingDirection.LEFT:
            return self._backend.lpop(key)
        return self._backend.rpop(key)

    def _push(self, key: str, value: str, direction: BlockingDirection) -> None:
        if direction is BlockingDirection.LEFT:
            self._backend.lpush(key, [value])
        else:
            self._backend.rpush(key, [value])

    def _pop_any(
        self, args: Sequence[str], direction: BlockingDirection, name: str
    ) -> BlockingOutcome:
        if len(args) < 2:
            raise CommandError(f"ERR wrong number of arguments for '{name}' command")
        timeout = _parse_timeout(args[-1])
        keys = tuple(args[:-1])
        for key in keys:
            value = self._pop(key, direction)
            if value is not None:
                self._touch([key])
                return BlockingOutcome(
                    [key, value],
                    False,
                    BlockingConfig(keys, direction, timeout, actual_key=key),
                )
        return BlockingOutcome(
            None, True, BlockingConfig(keys, direction, _blocking_timeout(timeout))
        )

    def _move(
        self,
        source: str,
        dest: str,
        src_dir: BlockingDirection,
        dst_dir: BlockingDirection,
        timeout: float,
    ) -> BlockingOutcome:
        value = self._pop(source, src_dir)
        if value is not None:
            self._push(dest, value, dst_dir)
            self._touch([source, dest])
            return BlockingOutcome(
                value,
                False,
                BlockingConfig((source,), src_dir, timeout, dest, dst_dir, source),
            )
        return BlockingOutcome(
            None,
            True,
            BlockingConfig((source,), src_dir, _blocking_timeout(timeout), dest, dst_dir),
        )

    def blpop(self, args: Sequence[str]) -> BlockingOutcome:
        """BLPOP key [key ...] timeout"""
        return self._pop_any(args, BlockingDirection.LEFT, "blpop")

    def brpop(self, args: Sequence[str]) -> BlockingOutcome:
        """BRPOP key [key ...] timeout"""
        return self._pop_any(args, BlockingDirection.RIGHT, "brpop")

    def blmove(self, args: Sequence[str]) -> BlockingOutcome:
        """BLMOVE source destination LEFT|RIGHT LEFT|RIGHT timeout"""
        if len(args) != 5:
            raise CommandError("ERR wrong number of arguments for 'blmove' command")
        source, dest, src_text, dst_text, timeout_text = args
        timeout = _parse_timeout(timeout_text)
        src_dir = _parse_direction(src_text)
        dst_dir = _parse_direction(dst_text)
        return self._move(source, dest, src_dir, dst_dir, timeout)

    def brpoplpush(self, args: Sequence[str]) -> BlockingOutcome:
        """BRPOPLPUSH source destination timeout"""
        if len(args) != 3:
            raise CommandError("ERR wrong number of arguments for 'brpoplpush' command")
        source, dest, timeout_text = args
        timeout = _parse_timeout(timeout_text)
        return self._move(
            source, dest, BlockingDirection.RIGHT, BlockingDirection.LEFT, timeout
        )

    def notify_list_push(self, key: str) -> bool:
        """Wake the first client waiting on ``key``; True if one was served."""
        if not self._manager.has_blocked_clients(key):
            return False

        def pop(direction: BlockingDirection) -> Optional[str]:
            return self._pop(key, direction)

        def push(dest_key: str, value: str, direction: BlockingDirection) -> None:
            self._push(dest_key, value, direction)
            self._touch([dest_key])

        return self._manager.unblock_client_with_data(key, pop, push)


def is_blocking_command(cmd: str) -> bool:
    """Return True for BLPOP, BRPOP, BLMOVE and BRPOPLPUSH."""
    return cmd in _BLOCKING_COMMANDS


def non_blocking_equivalent(
    command: str, actual_key: Optional[str], config: Optional[BlockingConfig]
) -> Optional[list[str]]:
    """Return the non-blocking command that records what a blocking one did.

    This is what gets logged and propagated; None when nothing happened.
    """
    if config is None or not actual_key:
        return None
    command = command.upper()
    if command == "BLPOP":
        return ["LPOP", actual_key]
    if command == "BRPOP":
        return ["RPOP", actual_key]
    if command == "BLMOVE" and config.dest_key:
        return [
            "LMOVE",
            actual_key,
            config.dest_key,
            config.direction.value,
            config.dest_dir.value,
        ]
    if command == "BRPOPLPUSH" and config.dest_key:
        return ["RPOPLPUSH", actual_key, config.dest_key]
    return None