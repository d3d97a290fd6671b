"""HyperLogLog commands: PFADD, PFCOUNT and PFMERGE."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Protocol, Sequence

from respkv.commands import CommandError, SimpleString


class HyperLogLogBackend(Protocol):
    """The HyperLogLog operations the commands need."""

    def pfadd(self, key: str, elements: Sequence[str]) -> int: ...

    def pfcount(self, keys: Sequence[str]) -> int: ...

    def pfmerge(self, dest_key: str, source_keys: Sequence[str]) -> object: ...


@contextmanager
def _backend_errors() -> Iterator[None]:
    try:
        yield
    except CommandError:
        raise
    except Exception as exc:
        raise CommandError(f"ERR {exc}") from exc


class HyperLogLogCommands:
    """Handlers for the HyperLogLog commands.

    Each handler takes the command's arguments without the command name.
    """

    def __init__(self, backend: HyperLogLogBackend) -> None:
        self._backend = backend

    def pfadd(self, args: Sequence[str]) -> int:
        """PFADD key element [element ...]; 1 if any register changed."""
        if len(args) < 2:
            raise CommandError("ERR wrong number of arguments for 'pfadd' command")
        with _backend_errors():
            return self._backend.pfadd(args[0], list(args[1:]))

    def pfcount(self, args: Sequence[str]) -> int:
        """PFCOUNT key [key ...]; the cardinality of the union of the keys."""
        if len(args) < 1:
            raise CommandError("ERR wrong number of arguments for 'pfcount' command")
        with _backend_errors():
            return self._backend.pfcount(list(args))

    def pfmerge(self, args: Sequence[str]) -> SimpleString:
        """PFMERGE destkey sourcekey [sourcekey ...]"""
        if len(args) < 2:
            raise CommandError("ERR wrong number of arguments for 'pfmerge' command")
        with _backend_errors():
            self._backend.pfmerge(args[0], list(args[1:]))
        return SimpleString("OK")