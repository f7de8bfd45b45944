from ...currency import ISO4217_CURRENCIES

# Adyen settles in every ISO 4217 currency we know the precision of.
SUPPORTED_CURRENCIES: dict[str, int] = dict(ISO4217_CURRENCIES)
