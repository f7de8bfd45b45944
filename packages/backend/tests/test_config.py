"""Tests for settings, connector config decoding and polling periods."""

from datetime import timedelta

from pydantic import ValidationError

from payconnect.config import Settings
from payconnect.connectors.config import (
    ConnectorConfig,
    PollingPeriod,
    format_duration,
    parse_duration,
    unmarshal_and_validate_config,
)
from payconnect.connectors.modulr import Config as ModulrConfig
from payconnect.errors import InvalidConfig


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------


def test_parse_duration():
    assert parse_duration("30s") == timedelta(seconds=30)
    assert parse_duration("1h30m") == timedelta(minutes=90)
    assert parse_duration("1.5m") == timedelta(seconds=90)
    assert parse_duration("250ms") == timedelta(milliseconds=250)
    assert parse_duration("0") == timedelta(0)
    assert parse_duration("-5s") == timedelta(seconds=-5)


def test_parse_duration_rejects_garbage():
    for value in ("", "abc", "10", "5 s", "1h-2m", "3d"):
        try:
            parse_duration(value)
            assert False, f"Should have raised for {value!r}"
        except ValueError:
            pass


def test_format_duration():
    assert format_duration(timedelta(minutes=2)) == "2m0s"
    assert format_duration(timedelta(seconds=20)) == "20s"
    assert format_duration(timedelta(hours=1, seconds=5)) == "1h0m5s"


# ---------------------------------------------------------------------------
# Polling period
# ---------------------------------------------------------------------------


def test_polling_period_defaults():
    assert PollingPeriod.parse(None) == timedelta(minutes=2)
    assert PollingPeriod.parse("  ") == timedelta(minutes=2)


def test_polling_period_default_below_minimum_uses_minimum():
    period = PollingPeriod.parse(
        None, default=timedelta(seconds=5), minimum=timedelta(seconds=20)
    )
    assert period == timedelta(seconds=20)


def test_polling_period_is_clamped_to_minimum():
    assert PollingPeriod.parse("5s") == timedelta(seconds=20)
    assert PollingPeriod.parse("10m") == timedelta(minutes=10)


def test_polling_period_invalid():
    try:
        PollingPeriod.parse("soon")
        assert False, "Should have raised"
    except ValueError:
        pass


def test_config_polling_period_serializes_as_duration():
    config = unmarshal_and_validate_config(ConnectorConfig, {"pollingPeriod": "45s"})
    assert config.polling_period == timedelta(seconds=45)
    assert config.model_dump(by_alias=True)["pollingPeriod"] == "45s"


def test_config_invalid_polling_period_is_invalid_config():
    try:
        unmarshal_and_validate_config(ConnectorConfig, b'{"pollingPeriod": "soon"}')
        assert False, "Should have raised"
    except InvalidConfig as exc:
        assert "pollingPeriod" in str(exc)


# ---------------------------------------------------------------------------
# Config decoding
# ---------------------------------------------------------------------------


def test_config_from_bytes():
    config = unmarshal_and_validate_config(
        ModulrConfig, b'{"apiKey": "key", "apiSecret": "secret", "unknown": 1}'
    )
    assert config.api_key == "key"
    assert config.polling_period == timedelta(minutes=2)
    assert config.page_size is None


def test_config_missing_required_field():
    try:
        unmarshal_and_validate_config(ModulrConfig, {"apiKey": "key"})
        assert False, "Should have raised"
    except InvalidConfig as exc:
        assert "apiSecret" in str(exc)


def test_config_rejects_non_object_and_bad_json():
    for raw in (b"[]", b"{", b"42"):
        try:
            unmarshal_and_validate_config(ConnectorConfig, raw)
            assert False, f"Should have raised for {raw!r}"
        except InvalidConfig:
            pass


def test_config_rejects_non_positive_page_size():
    try:
        unmarshal_and_validate_config(ConnectorConfig, {"pageSize": 0})
        assert False, "Should have raised"
    except InvalidConfig:
        pass


def test_empty_config_uses_defaults():
    config = unmarshal_and_validate_config(ConnectorConfig, None)
    assert config.name is None
    assert config.polling_period == timedelta(minutes=2)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("PAYCONNECT_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("PAYCONNECT_HTTP_TIMEOUT_SECONDS", "5")
    settings = Settings()
    assert settings.log_level == "DEBUG"
    assert settings.http_timeout_seconds == 5.0


def test_settings_validation():
    try:
        Settings(http_timeout_seconds=0)
        assert False, "Should have raised"
    except ValidationError:
        pass
