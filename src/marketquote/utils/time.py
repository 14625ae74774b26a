from datetime import datetime, timezone
from typing import Any

from loguru import logger

# A heuristic to determine the unit of a numeric timestamp.
# If a timestamp (in seconds) is greater than this, it's likely in milliseconds.
MILLISECONDS_THRESHOLD = 10**10

# Layouts accepted for user supplied dates, tried in order.
DATE_LAYOUTS: tuple[str, ...] = (
    "%Y-%m-%d",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y%m%d",
)


def utc_now() -> datetime:
    """Returns the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt_obj: datetime) -> datetime:
    """Returns `dt_obj` as an aware UTC datetime. Naive values are assumed UTC."""
    if dt_obj.tzinfo is None:
        return dt_obj.replace(tzinfo=timezone.utc)
    return dt_obj.astimezone(timezone.utc)


def parse_date(value: Any, default: datetime | None = None) -> datetime:
    """Parses a user supplied date into an aware UTC datetime.

    This function can handle:
    - None or "": returns `default` (or the current time when no default).
    - datetime: naive datetimes are assumed to be UTC.
    - str: 'YYYY-MM-DD', 'YYYY-MM-DD HH:MM', 'YYYYMMDD' or any ISO 8601 string,
           including a trailing 'Z'.

    Args:
        value: The date to parse.
        default: Returned when `value` is empty.

    Returns:
        The parsed datetime in UTC.

    Raises:
        ValueError: If the value cannot be parsed.
    """
    if value is None or value == "":
        return ensure_utc(default) if default is not None else utc_now()

    if isinstance(value, datetime):
        return ensure_utc(value)

    if not isinstance(value, str):
        err_msg = f"Unsupported date type: {type(value).__name__}"
        raise ValueError(err_msg)

    text = value.strip()
    for layout in DATE_LAYOUTS:
        try:
            return datetime.strptime(text, layout).replace(tzinfo=timezone.utc)
        except ValueError:
            continue

    try:
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError as e:
        logger.debug(f"Could not parse date string '{value}': {e}")
        err_msg = f"Invalid or unrecognized date format: {value}"
        raise ValueError(err_msg) from e


def from_timestamp(timestamp: int | float) -> datetime:
    """Converts a Unix timestamp in seconds or milliseconds to a UTC datetime."""
    ts_seconds = timestamp / 1_000 if timestamp > MILLISECONDS_THRESHOLD else timestamp
    try:
        return datetime.fromtimestamp(ts_seconds, tz=timezone.utc)
    except (OSError, OverflowError, ValueError) as e:
        err_msg = f"Numeric timestamp '{timestamp}' is out of range."
        raise ValueError(err_msg) from e


def to_epoch_seconds(dt_obj: datetime) -> int:
    """Returns the Unix timestamp of `dt_obj` in whole seconds."""
    return int(ensure_utc(dt_obj).timestamp())


def to_epoch_ms(dt_obj: datetime) -> int:
    """Returns the Unix timestamp of `dt_obj` in milliseconds."""
    return int(ensure_utc(dt_obj).timestamp() * 1000)


def format_rfc3339(dt_obj: datetime) -> str:
    """Formats a datetime as an RFC3339 string in UTC with second precision.

    Example: "2023-10-27T10:00:00Z"
    """
    return ensure_utc(dt_obj).isoformat(timespec="seconds").replace("+00:00", "Z")
