from enum import StrEnum
from typing import Final

_SECONDS: Final[dict[str, int]] = {
    "1m": 60,
    "3m": 3 * 60,
    "5m": 5 * 60,
    "15m": 15 * 60,
    "30m": 30 * 60,
    "1h": 3600,
    "2h": 2 * 3600,
    "4h": 4 * 3600,
    "6h": 6 * 3600,
    "8h": 8 * 3600,
    "12h": 12 * 3600,
    "d": 86400,
    "3d": 3 * 86400,
    "w": 7 * 86400,
    "m": 30 * 86400,
}

_ALIASES: Final[dict[str, str]] = {
    "60m": "1h",
    "1d": "d",
    "1w": "w",
    "1mo": "m",
}


class Period(StrEnum):
    """Bar granularity shared by every provider.

    Providers translate these values into their own interval vocabulary and
    reject the ones they cannot serve.
    """

    MIN1 = "1m"
    MIN3 = "3m"
    MIN5 = "5m"
    MIN15 = "15m"
    MIN30 = "30m"
    HOUR1 = "1h"
    HOUR2 = "2h"
    HOUR4 = "4h"
    HOUR6 = "6h"
    HOUR8 = "8h"
    HOUR12 = "12h"
    DAILY = "d"
    DAY3 = "3d"
    WEEKLY = "w"
    MONTHLY = "m"

    @classmethod
    def parse(cls, value: "Period | str") -> "Period":
        """Converts a period value or one of its aliases into a Period.

        Raises:
            ValueError: If the value is not a known period.
        """
        if isinstance(value, Period):
            return value
        key = str(value).strip()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            err_msg = f"Unknown period: {value!r}"
            raise ValueError(err_msg) from None

    @property
    def seconds(self) -> int:
        """Nominal length of one bar in seconds (a month counts as 30 days)."""
        return _SECONDS[self.value]
