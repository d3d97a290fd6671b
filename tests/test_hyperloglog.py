import pytest

from respkv.commands import CommandError, SimpleString
from respkv.hyperloglog import HyperLogLogCommands


class RecordingBackend:
    def __init__(self, result=0, error=None):
        self.calls = []
        self.result = result
        self.error = error

    def _record(self, *call):
        self.calls.append(call)
        if self.error is not None:
            raise self.error
        return self.result

    def pfadd(self, key, elements):
        return self._record("pfadd", key, elements)

    def pfcount(self, keys):
        return self._record("pfcount", keys)

    def pfmerge(self, dest_key, source_keys):
        return self._record("pfmerge", dest_key, source_keys)


def test_pfadd_passes_elements():
    backend = RecordingBackend(result=1)
    assert HyperLogLogCommands(backend).pfadd(["hll", "a", "b"]) == 1
    assert backend.calls == [("pfadd", "hll", ["a", "b"])]


def test_pfcount_passes_all_keys():
    backend = RecordingBackend(result=42)
    assert HyperLogLogCommands(backend).pfcount(["h1", "h2"]) == 42
    assert backend.calls == [("pfcount", ["h1", "h2"])]


def test_pfmerge_returns_ok():
    backend = RecordingBackend(result="OK")
    reply = HyperLogLogCommands(backend).pfmerge(["dest", "s1", "s2"])
    assert reply == "OK"
    assert isinstance(reply, SimpleString)
    assert backend.calls == [("pfmerge", "dest", ["s1", "s2"])]


@pytest.mark.parametrize("method,args,name", [
    ("pfadd", ["hll"], "pfadd"),
    ("pfcount", [], "pfcount"),
    ("pfmerge", ["dest"], "pfmerge"),
])
def test_argument_count(method, args, name):
    backend = RecordingBackend()
    with pytest.raises(CommandError) as info:
        getattr(HyperLogLogCommands(backend), method)(args)
    assert info.value.message == f"ERR wrong number of arguments for '{name}' command"
    assert backend.calls == []


def test_backend_error_is_prefixed():
    backend = RecordingBackend(error=ValueError("key is not a HyperLogLog"))
    with pytest.raises(CommandError) as info:
        HyperLogLogCommands(backend).pfmerge(["dest", "src"])
    assert info.value.message == "ERR key is not a HyperLogLog"


def test_command_error_passes_through():
    error = CommandError("WRONGTYPE wrong kind of value")
    backend = RecordingBackend(error=error)
    with pytest.raises(CommandError) as info:
        HyperLogLogCommands(backend).pfcount(["k"])
    assert info.value is error