"""Opaque pagination state blobs.

Every fetch operation keeps its own watermark model.  The caller stores the
bytes returned in ``new_state`` and hands them back unchanged on the next
call; only the connector that produced them ever parses them.
"""

from typing import TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import InvalidRequest, wrap_error

StateT = TypeVar("StateT", bound="PluginState")


class PluginState(BaseModel):
    """Base for per-entity watermark models.

    Field defaults are the zero-value state, meaning "from the beginning".
    Unknown keys are ignored so older blobs keep decoding after a field is
    dropped.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    def is_zero(self) -> bool:
        return self == type(self)()


def load_state(model_cls: type[StateT], raw: bytes | str | None) -> StateT:
    """Decode ``raw`` into ``model_cls``; empty input yields the zero state."""
    if raw is None or (isinstance(raw, (bytes, str)) and not raw.strip()):
        return model_cls()
    try:
        return model_cls.model_validate_json(raw)
    except ValidationError as exc:
        raise wrap_error(exc, InvalidRequest, "failed to unmarshal state") from exc


def dump_state(state: PluginState) -> bytes:
    return state.model_dump_json(by_alias=True).encode()
