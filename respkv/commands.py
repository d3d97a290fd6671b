"""Reply types shared by command handlers and the write-command table."""

from __future__ import annotations


class CommandError(Exception):
    """A command failed; the message is sent to the client as an error reply."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class SimpleString(str):
    """A status reply, sent as a simple string rather than a bulk string."""

    def __repr__(self) -> str:
        return f"SimpleString({str.__repr__(self)})"


_WRITE_COMMANDS = frozenset(
    {
        # strings
        "SET", "SETEX", "SETNX", "PSETEX", "APPEND", "INCR", "DECR", "INCRBY",
        "DECRBY", "GETSET", "MSET", "MSETNX",
        # keys
        "DEL", "UNLINK", "EXPIRE", "EXPIREAT", "PEXPIRE", "PEXPIREAT", "PERSIST",
        "RENAME", "RENAMENX", "MOVE",
        # hashes
        "HSET", "HSETNX", "HMSET", "HDEL", "HINCRBY", "HINCRBYFLOAT",
        # lists
        "LPUSH", "RPUSH", "LPUSHX", "RPUSHX", "LPOP", "RPOP", "LSET", "LINSERT",
        "LREM", "LTRIM", "RPOPLPUSH", "BLPOP", "BRPOP", "BRPOPLPUSH",
        # sets
        "SADD", "SREM", "SPOP", "SMOVE",
        # sorted sets
        "ZADD", "ZREM", "ZINCRBY", "ZREMRANGEBYRANK", "ZREMRANGEBYSCORE",
        "ZREMRANGEBYLEX", "ZPOPMIN", "ZPOPMAX", "BZPOPMIN", "BZPOPMAX",
        # geo
        "GEOADD",
        # bloom filters
        "BF.ADD", "BF.MADD",
        # pub/sub
        "PUBLISH",
        # admin
        "FLUSHDB", "FLUSHALL",
    }
)


def is_write_command(cmd: str) -> bool:
    """Return True if the (upper-case) command modifies data.

    Replicas refuse these commands from ordinary clients.
    """
    return cmd in _WRITE_COMMANDS