"""Connector configuration and polling period validation."""

import json
import re
from datetime import timedelta
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_core import core_schema

from ..errors import InvalidConfig, wrap_error

DEFAULT_POLLING_PERIOD = timedelta(minutes=2)
MINIMUM_POLLING_PERIOD = timedelta(seconds=20)

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

ConfigT = TypeVar("ConfigT", bound="ConnectorConfig")


def parse_duration(value: str) -> timedelta:
    """Parse a Go-style duration such as ``"30s"``, ``"2m"`` or ``"1h30m"``."""
    text = value.strip()
    sign = 1
    if text and text[0] in "+-":
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    if text == "0":
        return timedelta(0)

    pos = 0
    seconds = 0.0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    if pos == 0 or pos != len(text):
        raise ValueError(f"invalid duration {value!r}")
    return timedelta(seconds=sign * seconds)


def format_duration(period: timedelta) -> str:
    total = int(period.total_seconds())
    hours, rest = divmod(total, 3600)
    minutes, seconds = divmod(rest, 60)
    out = ""
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + f"{seconds}s"


class PollingPeriod:
    """A polling interval that never drops below its minimum.

    An empty value selects ``max(default, minimum)``.  A valid duration below
    the minimum is clamped up to the minimum; only unparseable strings are
    rejected.
    """

    __slots__ = ("value",)

    def __init__(self, value: timedelta) -> None:
        self.value = value

    @classmethod
    def parse(
        cls,
        raw: str | timedelta | None,
        default: timedelta = DEFAULT_POLLING_PERIOD,
        minimum: timedelta = MINIMUM_POLLING_PERIOD,
    ) -> "PollingPeriod":
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            return cls(max(default, minimum))
        period = raw if isinstance(raw, timedelta) else parse_duration(raw)
        return cls(max(period, minimum))

    @classmethod
    def _validate(cls, value: Any) -> "PollingPeriod":
        if isinstance(value, PollingPeriod):
            return value
        if value is None or isinstance(value, (str, timedelta)):
            return cls.parse(value)
        raise ValueError("pollingPeriod must be a duration string")

    @classmethod
    def __get_pydantic_core_schema__(cls, source: Any, handler: Any):
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    @classmethod
    def __get_pydantic_json_schema__(cls, schema: Any, handler: Any) -> dict:
        return {"type": "string", "examples": ["30s", "2m", "1h30m"]}

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PollingPeriod):
            return self.value == other.value
        if isinstance(other, timedelta):
            return self.value == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.value)

    def __repr__(self) -> str:
        return f"PollingPeriod({format_duration(self.value)})"

    def __str__(self) -> str:
        return format_duration(self.value)


class ConnectorConfig(BaseModel):
    """Fields shared by every connector configuration."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    name: str | None = None
    polling_period: PollingPeriod = Field(
        default_factory=lambda: PollingPeriod.parse(None),
        alias="pollingPeriod",
    )
    page_size: int | None = Field(default=None, alias="pageSize", ge=1)


def unmarshal_and_validate_config(
    config_cls: type[ConfigT], raw: bytes | str | dict | None
) -> ConfigT:
    """Decode raw JSON config and validate required fields.

    Any failure surfaces as ``InvalidConfig`` wrapping the decoder or pydantic
    error, which names the offending field.
    """
    try:
        data = raw if isinstance(raw, dict) else json.loads(raw or b"{}")
    except ValueError as exc:
        raise wrap_error(exc, InvalidConfig) from exc
    if not isinstance(data, dict):
        raise InvalidConfig("invalid config: expected a JSON object")

    try:
        return config_cls.model_validate(data)
    except ValidationError as exc:
        raise wrap_error(exc, InvalidConfig) from exc
