"""Text encoders for Quote and Quotes.

Four layouts are supported:
- CSV: `datetime,open,high,low,close,volume`, one bar per line.
- JSON: an object of parallel arrays, or an array of such objects.
- Highstock: an array of `[epoch_ms,open,high,low,close,volume]` rows, the
  layout expected by the Highcharts stock chart loader.
- Amibroker: CSV with separate `date` and `time` columns.

Prices are printed fixed-point using the precision carried by each quote.
"""

import json
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from marketquote.utils.time import format_rfc3339, to_epoch_ms

if TYPE_CHECKING:
    from marketquote.quote import Quote

CSV_HEADER = "datetime,open,high,low,close,volume"
AMIBROKER_HEADER = "date,time,open,high,low,close,volume"

DATETIME_FORMAT = "%Y-%m-%d %H:%M"
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"


def _fixed(quote: "Quote", values: Sequence[float]) -> str:
    return ",".join(f"{v:.{quote.precision}f}" for v in values)


def _csv_rows(quote: "Quote", prefix: str = "") -> list[str]:
    return [
        f"{prefix}{dt.strftime(DATETIME_FORMAT)},{_fixed(quote, (o, h, lo, c, v))}\n"
        for dt, o, h, lo, c, v in quote.bars()
    ]


def _amibroker_rows(quote: "Quote", prefix: str = "") -> list[str]:
    return [
        f"{prefix}{dt.strftime(DATE_FORMAT)},{dt.strftime(TIME_FORMAT)},"
        f"{_fixed(quote, (o, h, lo, c, v))}\n"
        for dt, o, h, lo, c, v in quote.bars()
    ]


def _highstock_rows(quote: "Quote") -> list[str]:
    return [
        f"[{to_epoch_ms(dt)},{_fixed(quote, (o, h, lo, c, v))}]"
        for dt, o, h, lo, c, v in quote.bars()
    ]


def quote_to_dict(quote: "Quote") -> dict[str, Any]:
    """Returns the JSON-ready mapping for a quote, values rounded to its precision."""
    precision = quote.precision

    def rounded(values: Sequence[float]) -> list[float]:
        return [round(v, precision) for v in values]

    return {
        "symbol": quote.symbol,
        "precision": precision,
        "date": [format_rfc3339(dt) for dt in quote.dates],
        "open": rounded(quote.open),
        "high": rounded(quote.high),
        "low": rounded(quote.low),
        "close": rounded(quote.close),
        "volume": rounded(quote.volume),
    }


def _dump(payload: Any, indent: bool) -> str:
    if indent:
        return json.dumps(payload, indent=2)
    return json.dumps(payload, separators=(",", ":"))


# --- Single quote ---


def quote_to_csv(quote: "Quote") -> str:
    return CSV_HEADER + "\n" + "".join(_csv_rows(quote))


def quote_to_json(quote: "Quote", indent: bool = False) -> str:
    return _dump(quote_to_dict(quote), indent)


def quote_to_highstock(quote: "Quote") -> str:
    rows = _highstock_rows(quote)
    if not rows:
        return "[\n]\n"
    return "[\n" + ",\n".join(rows) + "\n]\n"


def quote_to_amibroker(quote: "Quote") -> str:
    return AMIBROKER_HEADER + "\n" + "".join(_amibroker_rows(quote))


# --- Multiple quotes ---


def quotes_to_csv(quotes: Sequence["Quote"]) -> str:
    lines = [f"symbol,{CSV_HEADER}\n"]
    for quote in quotes:
        lines.extend(_csv_rows(quote, prefix=f"{quote.symbol},"))
    return "".join(lines)


def quotes_to_json(quotes: Sequence["Quote"], indent: bool = False) -> str:
    return _dump([quote_to_dict(q) for q in quotes], indent)


def quotes_to_highstock(quotes: Sequence["Quote"]) -> str:
    """Encodes quotes as a JSON object keyed by symbol, one bar array per symbol."""
    if not quotes:
        return "{\n}\n"
    blocks = []
    for quote in quotes:
        key = json.dumps(quote.symbol)
        rows = _highstock_rows(quote)
        if rows:
            blocks.append(f"{key}: [\n" + ",\n".join(rows) + "\n]")
        else:
            blocks.append(f"{key}: []")
    return "{\n" + ",\n".join(blocks) + "\n}\n"


def quotes_to_amibroker(quotes: Sequence["Quote"]) -> str:
    lines = [f"symbol,{AMIBROKER_HEADER}\n"]
    for quote in quotes:
        lines.extend(_amibroker_rows(quote, prefix=f"{quote.symbol},"))
    return "".join(lines)
