from datetime import datetime

from dateutil.parser import isoparse

# Currencies Modulr accounts can hold, with their minor-unit precision.
SUPPORTED_CURRENCIES: dict[str, int] = {
    "GBP": 2,
    "EUR": 2,
}


def parse_time(value: str) -> datetime:
    """Parse Modulr timestamps such as ``2024-01-02T10:00:00.000+0000``."""
    return isoparse(value)
