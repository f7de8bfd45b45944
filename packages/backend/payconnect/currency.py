"""Asset strings and exact minor-unit conversions.

Assets are written ``CODE/precision`` (``USD/2``); a zero precision drops the
suffix (``JPY``).  Amounts are integers in the smallest unit, never floats.
"""

from decimal import Decimal, InvalidOperation

from .errors import CurrencyNotSupported

ISO4217_CURRENCIES: dict[str, int] = {
    "AED": 2,
    "AUD": 2,
    "BGN": 2,
    "BHD": 3,
    "BRL": 2,
    "CAD": 2,
    "CHF": 2,
    "CNY": 2,
    "CZK": 2,
    "DKK": 2,
    "EUR": 2,
    "GBP": 2,
    "HKD": 2,
    "HUF": 2,
    "IDR": 2,
    "ILS": 2,
    "INR": 2,
    "ISK": 0,
    "JOD": 3,
    "JPY": 0,
    "KRW": 0,
    "KWD": 3,
    "MXN": 2,
    "MYR": 2,
    "NOK": 2,
    "NZD": 2,
    "OMR": 3,
    "PHP": 2,
    "PLN": 2,
    "RON": 2,
    "SAR": 2,
    "SEK": 2,
    "SGD": 2,
    "THB": 2,
    "TND": 3,
    "TRY": 2,
    "USD": 2,
    "ZAR": 2,
}


def get_precision(supported: dict[str, int], code: str) -> int:
    precision = supported.get((code or "").upper())
    if precision is None:
        raise CurrencyNotSupported(f"currency not supported: {code!r}")
    return precision


def format_asset(supported: dict[str, int], code: str) -> str:
    """Return ``CODE/precision`` for a supported currency code."""
    code = (code or "").upper()
    precision = get_precision(supported, code)
    if precision == 0:
        return code
    return f"{code}/{precision}"


def parse_asset(asset: str) -> tuple[str, int]:
    """Split ``USD/2`` into ``("USD", 2)``; ``JPY`` gives ``("JPY", 0)``."""
    if not asset:
        raise ValueError("empty asset")
    code, sep, precision = asset.partition("/")
    if not code.isalpha() or not code.isupper():
        raise ValueError(f"invalid asset code: {asset!r}")
    if not sep:
        return code, 0
    if not precision.isdigit():
        raise ValueError(f"invalid asset precision: {asset!r}")
    return code, int(precision)


def is_valid_asset(asset: str) -> bool:
    try:
        parse_asset(asset)
    except ValueError:
        return False
    return True


def amount_from_string(value: str, precision: int) -> int:
    """Scale a vendor decimal string to minor units without rounding.

    ``amount_from_string("12.5", 2) == 1250``.  More fractional digits than
    the precision allows is an error rather than a silent rounding.
    """
    try:
        dec = Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"invalid amount: {value!r}") from exc
    if not dec.is_finite():
        raise ValueError(f"invalid amount: {value!r}")

    scaled = dec.scaleb(precision)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"amount {value!r} has more than {precision} decimal places"
        )
    return int(scaled)


def amount_to_string(amount: int, precision: int) -> str:
    """Inverse of ``amount_from_string``: ``amount_to_string(1250, 2) == "12.50"``."""
    dec = Decimal(amount).scaleb(-precision)
    return f"{dec:.{precision}f}"
