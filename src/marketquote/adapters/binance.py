from datetime import datetime

from marketquote.adapters.base import QuoteProvider
from marketquote.periods import Period
from marketquote.quote import Quote
from marketquote.utils.time import from_timestamp, to_epoch_ms


class BinanceProvider(QuoteProvider):
    """Provider for the Binance spot klines REST API."""

    _BASE_API_URL: str = "https://api.binance.com/api/v3"
    MAX_CANDLES_PER_REQUEST: int = 1000

    _INTERVALS: dict[Period, str] = {
        Period.MIN1: "1m",
        Period.MIN3: "3m",
        Period.MIN5: "5m",
        Period.MIN15: "15m",
        Period.MIN30: "30m",
        Period.HOUR1: "1h",
        Period.HOUR2: "2h",
        Period.HOUR4: "4h",
        Period.HOUR6: "6h",
        Period.HOUR8: "8h",
        Period.HOUR12: "12h",
        Period.DAILY: "1d",
        Period.DAY3: "3d",
        Period.WEEKLY: "1w",
        Period.MONTHLY: "1M",
    }
    supported_periods = frozenset(_INTERVALS)

    @property
    def provider_name(self) -> str:
        """Returns the unique, lowercase identifier for the provider."""
        return "binance"

    @staticmethod
    def normalize_symbol(symbol: str) -> str:
        """Converts a 'BASE/QUOTE' or 'BASE-QUOTE' symbol to Binance's 'BASEQUOTE'."""
        return symbol.replace("/", "").replace("-", "").upper()

    async def _fetch_quote(
        self, symbol: str, start_dt: datetime, end_dt: datetime, period: Period
    ) -> Quote:
        venue_symbol = self.normalize_symbol(symbol)
        quote = Quote(symbol=symbol)

        current_start_ms = to_epoch_ms(start_dt)
        end_ms = to_epoch_ms(end_dt)
        first = True

        while current_start_ms <= end_ms:
            if not first:
                await self._pause()
            first = False

            params = {
                "symbol": venue_symbol,
                "interval": self._INTERVALS[period],
                "startTime": current_start_ms,
                "endTime": end_ms,
                "limit": self.MAX_CANDLES_PER_REQUEST,
            }
            data = await self._get_json(f"{self._BASE_API_URL}/klines", params=params)
            if not isinstance(data, list):
                raise self._payload_error("Expected a JSON array", data)
            if not data:
                break  # No more data

            for c in data:
                # Candle format: [Open time, Open, High, Low, Close, Volume, ...]
                try:
                    quote.append_bar(
                        from_timestamp(c[0]), c[1], c[2], c[3], c[4], c[5]
                    )
                except (IndexError, TypeError, ValueError) as e:
                    raise self._payload_error(f"Malformed kline: {e}", c) from e

            if len(data) < self.MAX_CANDLES_PER_REQUEST:
                break
            # Move to the next time window
            current_start_ms = int(data[-1][0]) + 1

        return quote
