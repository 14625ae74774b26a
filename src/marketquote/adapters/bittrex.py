from datetime import datetime

from marketquote.adapters.base import QuoteProvider
from marketquote.periods import Period
from marketquote.quote import Quote
from marketquote.utils.time import parse_date


class BittrexProvider(QuoteProvider):
    """Provider for the Bittrex v3 candles API.

    Bittrex only serves the most recent candles for a market, so the response
    is filtered down to the requested range.
    """

    _BASE_API_URL: str = "https://api.bittrex.com/v3"

    _INTERVALS: dict[Period, str] = {
        Period.MIN1: "MINUTE_1",
        Period.MIN5: "MINUTE_5",
        Period.HOUR1: "HOUR_1",
        Period.DAILY: "DAY_1",
    }
    supported_periods = frozenset(_INTERVALS)

    @property
    def provider_name(self) -> str:
        """Returns the unique, lowercase identifier for the provider."""
        return "bittrex"

    @staticmethod
    def normalize_symbol(symbol: str) -> str:
        """Converts 'BTC/USD' to Bittrex's 'BTC-USD' market symbol."""
        return symbol.replace("/", "-").upper()

    async def _fetch_quote(
        self, symbol: str, start_dt: datetime, end_dt: datetime, period: Period
    ) -> Quote:
        market = self.normalize_symbol(symbol)
        data = await self._get_json(
            f"{self._BASE_API_URL}/markets/{market}/candles/"
            f"{self._INTERVALS[period]}/recent"
        )
        if not isinstance(data, list):
            raise self._payload_error("Expected a JSON array", data)

        quote = Quote(symbol=symbol)
        for candle in data:
            try:
                starts_at = parse_date(candle["startsAt"])
                if not start_dt <= starts_at <= end_dt:
                    continue
                quote.append_bar(
                    starts_at,
                    candle["open"],
                    candle["high"],
                    candle["low"],
                    candle["close"],
                    candle["volume"],
                )
            except (KeyError, TypeError, ValueError) as e:
                raise self._payload_error(f"Malformed candle: {e}", candle) from e
        return quote
