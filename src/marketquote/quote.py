import csv
import io
import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from marketquote import formats
from marketquote.exceptions import ParseError, QuoteError
from marketquote.utils.time import ensure_utc, parse_date

# Tickers containing any of these substrings are quoted with wide precision.
WIDE_PRECISION_MARKERS: tuple[str, ...] = ("BTC", "ETH", "USD")
WIDE_PRECISION = 8
DEFAULT_PRECISION = 2

_SERIES = ("dates", "open", "high", "low", "close", "volume")


def precision_for(symbol: str) -> int:
    """Returns the number of decimals used to display prices for `symbol`."""
    upper = symbol.upper()
    if any(marker in upper for marker in WIDE_PRECISION_MARKERS):
        return WIDE_PRECISION
    return DEFAULT_PRECISION


@dataclass
class Quote:
    """OHLCV history for a single symbol.

    The six series are index-aligned: bar `i` is
    (dates[i], open[i], high[i], low[i], close[i], volume[i]).
    Dates are aware UTC datetimes in ascending order.
    """

    symbol: str
    dates: list[datetime] = field(default_factory=list)
    open: list[float] = field(default_factory=list)
    high: list[float] = field(default_factory=list)
    low: list[float] = field(default_factory=list)
    close: list[float] = field(default_factory=list)
    volume: list[float] = field(default_factory=list)
    precision: int | None = None

    def __post_init__(self) -> None:
        if self.precision is None:
            self.precision = precision_for(self.symbol)
        lengths = {name: len(getattr(self, name)) for name in _SERIES}
        if len(set(lengths.values())) > 1:
            err_msg = f"Quote series for '{self.symbol}' are not aligned: {lengths}"
            raise QuoteError(err_msg, details=lengths)

    def __len__(self) -> int:
        return len(self.dates)

    def append_bar(
        self,
        date: datetime,
        open_: float,
        high: float,
        low: float,
        close: float,
        volume: float,
    ) -> None:
        """Appends one bar to every series.

        All values are converted before any series is touched, so a bad value
        leaves the quote unchanged.
        """
        bar = (
            ensure_utc(date),
            float(open_),
            float(high),
            float(low),
            float(close),
            float(volume),
        )
        for name, value in zip(_SERIES, bar, strict=True):
            getattr(self, name).append(value)

    def bars(self) -> Iterable[tuple[datetime, float, float, float, float, float]]:
        """Iterates over the bars as (date, open, high, low, close, volume)."""
        return zip(
            self.dates, self.open, self.high, self.low, self.close, self.volume,
            strict=True,
        )

    # --- Encoders ---

    def to_csv(self) -> str:
        return formats.quote_to_csv(self)

    def to_json(self, indent: bool = False) -> str:
        return formats.quote_to_json(self, indent=indent)

    def to_highstock(self) -> str:
        return formats.quote_to_highstock(self)

    def to_amibroker(self) -> str:
        return formats.quote_to_amibroker(self)

    # --- Decoders ---

    @classmethod
    def from_csv(cls, symbol: str, text: str) -> "Quote":
        """Builds a Quote from the `datetime,open,high,low,close,volume` layout.

        The header row is optional. Dates may carry a time ('YYYY-MM-DD HH:MM')
        or not ('YYYY-MM-DD').

        Raises:
            ParseError: If a row is malformed.
        """
        quote = cls(symbol=symbol)
        for line_no, row, first in _csv_rows(text):
            if first and row[0].strip().lower() in ("datetime", "date"):
                continue
            _append_csv_row(quote, row, line_no)
        return quote

    @classmethod
    def from_json(cls, text: str) -> "Quote":
        """Builds a Quote from the layout produced by `to_json`.

        Raises:
            ParseError: If the text is not valid JSON or lacks required keys.
        """
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            err_msg = f"Invalid quote JSON: {e}"
            raise ParseError(err_msg) from e
        return cls.from_dict(payload)

    @classmethod
    def from_dict(cls, payload: Any) -> "Quote":
        """Builds a Quote from an already decoded JSON object."""
        if not isinstance(payload, dict) or "symbol" not in payload:
            err_msg = "Quote JSON must be an object with a 'symbol' key."
            raise ParseError(err_msg)
        try:
            return cls(
                symbol=str(payload["symbol"]),
                precision=payload.get("precision"),
                dates=[parse_date(d) for d in payload.get("date", [])],
                open=[float(v) for v in payload.get("open", [])],
                high=[float(v) for v in payload.get("high", [])],
                low=[float(v) for v in payload.get("low", [])],
                close=[float(v) for v in payload.get("close", [])],
                volume=[float(v) for v in payload.get("volume", [])],
            )
        except QuoteError as e:
            raise ParseError(e.message, details=e.details) from e
        except (TypeError, ValueError) as e:
            err_msg = f"Invalid value in quote JSON for '{payload['symbol']}': {e}"
            raise ParseError(err_msg) from e


def _csv_rows(text: str) -> Iterator[tuple[int, list[str], bool]]:
    """Yields (line number, cells, is first non-blank row) for non-blank rows."""
    first = True
    for line_no, row in enumerate(csv.reader(io.StringIO(text)), start=1):
        if not row or not "".join(row).strip():
            continue
        yield line_no, row, first
        first = False


def _append_csv_row(quote: Quote, row: list[str], line_no: int) -> None:
    if len(row) < 6:
        err_msg = f"Line {line_no}: expected 6 columns, got {len(row)}"
        raise ParseError(err_msg)
    if not row[0].strip():
        err_msg = f"Line {line_no}: missing date"
        raise ParseError(err_msg)
    try:
        quote.append_bar(
            parse_date(row[0]),
            *(float(cell) for cell in row[1:6]),
        )
    except ValueError as e:
        err_msg = f"Line {line_no}: {e}"
        raise ParseError(err_msg) from e


class Quotes(list[Quote]):
    """A collection of quotes encoded together for multi-symbol output."""

    def symbols(self) -> list[str]:
        return [q.symbol for q in self]

    def to_csv(self) -> str:
        return formats.quotes_to_csv(self)

    def to_json(self, indent: bool = False) -> str:
        return formats.quotes_to_json(self, indent=indent)

    def to_highstock(self) -> str:
        return formats.quotes_to_highstock(self)

    def to_amibroker(self) -> str:
        return formats.quotes_to_amibroker(self)

    @classmethod
    def from_csv(cls, text: str) -> "Quotes":
        """Builds Quotes from the `symbol,datetime,open,...` layout.

        Rows are grouped by symbol in order of first appearance.
        """
        by_symbol: dict[str, Quote] = {}
        for line_no, row, first in _csv_rows(text):
            if first and row[0].strip().lower() == "symbol":
                continue
            symbol = row[0].strip()
            if symbol not in by_symbol:
                by_symbol[symbol] = Quote(symbol=symbol)
            _append_csv_row(by_symbol[symbol], row[1:], line_no)
        return cls(by_symbol.values())

    @classmethod
    def from_json(cls, text: str) -> "Quotes":
        """Builds Quotes from a JSON array of quote objects."""
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            err_msg = f"Invalid quotes JSON: {e}"
            raise ParseError(err_msg) from e
        if not isinstance(payload, list):
            err_msg = "Quotes JSON must be an array of quote objects."
            raise ParseError(err_msg)
        return cls(Quote.from_dict(item) for item in payload)
