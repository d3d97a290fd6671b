"""Reading and replaying append-only files."""

from __future__ import annotations

import os
import re
from typing import BinaryIO, Iterator, Optional, Sequence, Union

PathLike = Union[str, "os.PathLike[str]"]

_INTEGER = re.compile(r"[+-]?[0-9]+")


class AofFormatError(ValueError):
    """The AOF file is corrupted or truncated.

    ``commands`` holds the commands read successfully before the error.
    """

    def __init__(self, message: str, commands: Optional[Sequence[list[str]]] = None) -> None:
        super().__init__(message)
        self.commands: list[list[str]] = list(commands or [])


def _decode(line: bytes) -> str:
    return line.decode("utf-8", "surrogateescape")


def _parse_int(text: str) -> Optional[int]:
    if _INTEGER.fullmatch(text) is None:
        return None
    return int(text)


class AofReader:
    """Reads RESP-encoded commands from an AOF file, one per call."""

    def __init__(self, path: PathLike) -> None:
        self.path = os.fspath(path)
        self._file: Optional[BinaryIO] = open(self.path, "rb")

    def _next_line(self) -> Optional[bytes]:
        if self._file is None:
            return None
        line = self._file.readline()
        if not line:
            return None
        if line.endswith(b"\n"):
            line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
        return line

    def _read_bulk_string(self) -> str:
        line = self._next_line()
        if line is None:
            raise AofFormatError("unexpected EOF")
        text = _decode(line)
        if not text.startswith("$"):
            raise AofFormatError(
                f"invalid bulk string format: expected '$', got: {text}"
            )
        length_text = text[1:]
        length = _parse_int(length_text)
        if length is None:
            raise AofFormatError(f"invalid bulk string length: {length_text}")
        if length < 0:
            raise AofFormatError(f"invalid bulk string length: {length}")

        data = self._next_line()
        if data is None:
            raise AofFormatError("unexpected EOF")
        if len(data) != length:
            raise AofFormatError(
                f"bulk string length mismatch: expected {length}, got {len(data)}"
            )
        return _decode(data)

    def read_command(self) -> Optional[list[str]]:
        """Return the next command's arguments, or None at end of file.

        Raises :class:`AofFormatError` if the file is corrupted.
        """
        line = self._next_line()
        if line is None:
            return None
        text = _decode(line)
        if not text.startswith("*"):
            raise AofFormatError(
                f"invalid AOF format: expected '*' array header, got: {text}"
            )
        count_text = text[1:]
        count = _parse_int(count_text)
        if count is None:
            raise AofFormatError(f"invalid array count: {count_text}")
        if count <= 0:
            raise AofFormatError(f"invalid array count: {count}")

        args: list[str] = []
        for position in range(count):
            try:
                args.append(self._read_bulk_string())
            except AofFormatError as exc:
                raise AofFormatError(
                    f"failed to read argument {position}: {exc}"
                ) from exc
        return args

    def load_all(self) -> list[list[str]]:
        """Read every remaining command.

        On corruption, raises :class:`AofFormatError` carrying the commands
        read so far.
        """
        commands: list[list[str]] = []
        while True:
            try:
                command = self.read_command()
            except AofFormatError as exc:
                raise AofFormatError(
                    f"error reading command at position {len(commands)}: {exc}",
                    commands,
                ) from exc
            if command is None:
                return commands
            commands.append(command)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None

    def __iter__(self) -> Iterator[list[str]]:
        while True:
            command = self.read_command()
            if command is None:
                return
            yield command

    def __enter__(self) -> "AofReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def open_reader(path: PathLike) -> Optional[AofReader]:
    """Open ``path`` for reading, or return None if it does not exist yet."""
    try:
        return AofReader(path)
    except FileNotFoundError:
        return None


def load_commands(path: PathLike) -> list[list[str]]:
    """Return all commands in the AOF at ``path``; empty if there is no file."""
    reader = open_reader(path)
    if reader is None:
        return []
    with reader:
        return reader.load_all()