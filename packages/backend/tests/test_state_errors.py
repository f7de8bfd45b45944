"""Tests for pagination state blobs and the error taxonomy."""

from pydantic import Field

from payconnect.errors import (
    InvalidRequest,
    MissingFromPayload,
    PluginError,
    UpstreamError,
    wrap_error,
)
from payconnect.state import PluginState, dump_state, load_state


class CursorState(PluginState):
    last_id: str = Field(default="", alias="lastId")
    page: int = 0


# ---------------------------------------------------------------------------
# State
# ---------------------------------------------------------------------------


def test_empty_state_is_zero_state():
    for raw in (None, b"", b"  ", ""):
        state = load_state(CursorState, raw)
        assert state.is_zero()


def test_state_uses_wire_names():
    state = CursorState(last_id="acc-9", page=3)
    raw = dump_state(state)
    assert b'"lastId":"acc-9"' in raw
    assert load_state(CursorState, raw) == state


def test_unknown_state_keys_are_ignored():
    state = load_state(CursorState, b'{"lastId": "x", "legacy": true}')
    assert state.last_id == "x"


def test_corrupt_state_is_invalid_request():
    try:
        load_state(CursorState, b"{not json")
        assert False, "Should have raised"
    except InvalidRequest as exc:
        assert "failed to unmarshal state" in str(exc)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


def test_default_messages():
    assert str(MissingFromPayload()) == "missing from payload in request"
    assert isinstance(MissingFromPayload(), InvalidRequest)


def test_wrap_error_keeps_cause():
    cause = ConnectionError("connection reset")
    err = wrap_error(cause, UpstreamError, "failed to get accounts")
    assert isinstance(err, UpstreamError)
    assert str(err) == "failed to get accounts: connection reset"
    assert err.__cause__ is cause
    assert err.cause() is cause


def test_cause_of_unwrapped_error_is_itself():
    err = PluginError("boom")
    assert err.cause() is err
