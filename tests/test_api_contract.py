import os, sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

import consensusbridge


def test_public_names_resolve():
    for name in consensusbridge.__all__:
        assert hasattr(consensusbridge, name), name


def test_error_hierarchy():
    assert issubclass(consensusbridge.ContractViolation, AssertionError)
    assert issubclass(consensusbridge.OpaqueIOError, OSError)
    for name in ("SerializationError", "ParseError", "OddLengthStringError", "InvalidCharError"):
        assert issubclass(getattr(consensusbridge, name), consensusbridge.ConsensusBridgeError)


def test_builtin_types_satisfy_protocols():
    assert isinstance(consensusbridge.VarBytes(b""), consensusbridge.Encodable)
    assert isinstance(consensusbridge.CheckedData(b""), consensusbridge.Encodable)


def test_debug_toggle_restores_previous_value():
    before = consensusbridge.debug_assertions()
    with consensusbridge.debug_mode(not before):
        assert consensusbridge.debug_assertions() is (not before)
    assert consensusbridge.debug_assertions() is before
