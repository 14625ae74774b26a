from datetime import datetime, timedelta
from typing import Any

from loguru import logger

from marketquote.adapters.base import QuoteProvider
from marketquote.periods import Period
from marketquote.quote import Quote
from marketquote.utils.time import format_rfc3339, from_timestamp


class CoinbaseProvider(QuoteProvider):
    """Provider for the Coinbase Exchange (formerly Coinbase Pro) candles API.

    The API returns at most 300 candles per request, newest first, so the
    requested range is walked forward in 300-candle windows.
    """

    _BASE_API_URL: str = "https://api.exchange.coinbase.com"
    MAX_CANDLES_PER_REQUEST: int = 300

    _GRANULARITY: dict[Period, int] = {
        Period.MIN1: 60,
        Period.MIN5: 300,
        Period.MIN15: 900,
        Period.HOUR1: 3600,
        Period.HOUR6: 21600,
        Period.DAILY: 86400,
    }
    supported_periods = frozenset(_GRANULARITY)

    @property
    def provider_name(self) -> str:
        """Returns the unique, lowercase identifier for the provider."""
        return "coinbase"

    @staticmethod
    def normalize_symbol(symbol: str) -> str:
        """Converts 'BTC/USD' or 'btc-usd' to Coinbase's 'BTC-USD' product id."""
        return symbol.replace("/", "-").upper()

    async def _fetch_quote(
        self, symbol: str, start_dt: datetime, end_dt: datetime, period: Period
    ) -> Quote:
        product_id = self.normalize_symbol(symbol)
        granularity = self._GRANULARITY[period]
        step = timedelta(seconds=granularity)
        window = step * (self.MAX_CANDLES_PER_REQUEST - 1)

        rows_by_time: dict[int, list[Any]] = {}
        window_start = start_dt
        first = True
        while window_start <= end_dt:
            window_end = min(window_start + window, end_dt)
            if not first:
                await self._pause()
            first = False

            params = {
                "start": format_rfc3339(window_start),
                "end": format_rfc3339(window_end),
                "granularity": granularity,
            }
            data = await self._get_json(
                f"{self._BASE_API_URL}/products/{product_id}/candles", params=params
            )
            if not isinstance(data, list):
                message = data.get("message") if isinstance(data, dict) else None
                raise self._payload_error(message or "Expected a JSON array", data)

            logger.debug(
                f"[{self.provider_name}] {len(data)} candles for {product_id} "
                f"in window starting {params['start']}"
            )
            for row in data:
                # Candle format: [time, low, high, open, close, volume]
                try:
                    rows_by_time[int(row[0])] = row
                except (IndexError, TypeError, ValueError) as e:
                    raise self._payload_error(f"Malformed candle: {e}", row) from e

            window_start = window_end + step

        quote = Quote(symbol=symbol)
        for ts in sorted(rows_by_time):
            row = rows_by_time[ts]
            try:
                quote.append_bar(
                    from_timestamp(ts), row[3], row[2], row[1], row[4], row[5]
                )
            except (IndexError, TypeError, ValueError) as e:
                raise self._payload_error(f"Malformed candle: {e}", row) from e
        return quote
