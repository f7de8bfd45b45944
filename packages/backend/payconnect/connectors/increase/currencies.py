SUPPORTED_CURRENCIES: dict[str, int] = {
    "USD": 2,
}
