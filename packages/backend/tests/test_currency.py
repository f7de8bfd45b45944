from payconnect.currency import (
    ISO4217_CURRENCIES,
    amount_from_string,
    amount_to_string,
    format_asset,
    get_precision,
    is_valid_asset,
    parse_asset,
)
from payconnect.errors import CurrencyNotSupported


def test_format_asset_with_precision():
    assert format_asset(ISO4217_CURRENCIES, "USD") == "USD/2"
    assert format_asset(ISO4217_CURRENCIES, "kwd") == "KWD/3"


def test_format_asset_zero_precision_has_no_suffix():
    assert format_asset(ISO4217_CURRENCIES, "JPY") == "JPY"


def test_format_asset_unsupported_currency():
    try:
        format_asset({"GBP": 2}, "USD")
        assert False, "Should have raised"
    except CurrencyNotSupported as exc:
        assert "USD" in str(exc)


def test_get_precision_is_case_insensitive():
    assert get_precision(ISO4217_CURRENCIES, "eur") == 2


def test_parse_asset():
    assert parse_asset("EUR/2") == ("EUR", 2)
    assert parse_asset("JPY") == ("JPY", 0)


def test_invalid_assets():
    for asset in ("", "usd/2", "USD/x", "US1/2"):
        assert is_valid_asset(asset) is False, asset


def test_amount_from_string_is_exact():
    assert amount_from_string("12.5", 2) == 1250
    assert amount_from_string("0.07", 2) == 7
    assert amount_from_string("1000", 0) == 1000
    assert amount_from_string("-3.20", 2) == -320


def test_amount_from_string_rejects_extra_decimals():
    try:
        amount_from_string("1.234", 2)
        assert False, "Should have raised"
    except ValueError as exc:
        assert "decimal places" in str(exc)


def test_amount_from_string_rejects_garbage():
    for value in ("abc", "NaN", "Infinity", ""):
        try:
            amount_from_string(value, 2)
            assert False, f"Should have raised for {value!r}"
        except ValueError:
            pass


def test_amount_to_string():
    assert amount_to_string(1250, 2) == "12.50"
    assert amount_to_string(5, 0) == "5"
    assert amount_to_string(1, 3) == "0.001"
