from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
from loguru import logger

from marketquote.adapters.base import QuoteProvider
from marketquote.config import Settings
from marketquote.periods import Period
from marketquote.quote import Quote
from marketquote.utils.time import to_epoch_seconds


class YahooProvider(QuoteProvider):
    """Provider for the Yahoo Finance chart API (daily, weekly and monthly bars).

    Yahoo reports raw prices alongside a dividend and split adjusted close.
    With `adjust` on (by default the `fetch.adjust_prices` setting) the open,
    high, low and close of every bar are scaled by `adjclose / close` so the
    whole bar is on the adjusted basis.
    """

    _BASE_API_URL: str = "https://query1.finance.yahoo.com/v8/finance/chart"

    _INTERVALS: dict[Period, str] = {
        Period.DAILY: "1d",
        Period.WEEKLY: "1wk",
        Period.MONTHLY: "1mo",
    }
    supported_periods = frozenset(_INTERVALS)

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        adjust: bool | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(http_client, **kwargs)
        if adjust is None:
            adjust = Settings.get_instance().fetch.adjust_prices
        self.adjust = adjust

    @property
    def provider_name(self) -> str:
        """Returns the unique, lowercase identifier for the provider."""
        return "yahoo"

    async def _fetch_quote(
        self, symbol: str, start_dt: datetime, end_dt: datetime, period: Period
    ) -> Quote:
        params = {
            "period1": to_epoch_seconds(start_dt),
            "period2": to_epoch_seconds(end_dt),
            "interval": self._INTERVALS[period],
            "events": "div|split",
            "includeAdjustedClose": "true",
        }
        payload = await self._get_json(
            f"{self._BASE_API_URL}/{symbol.upper()}", params=params
        )
        return self._parse_chart(symbol, payload)

    def _parse_chart(self, symbol: str, payload: Any) -> Quote:
        """Maps a chart API response onto a Quote."""
        try:
            chart = payload["chart"]
        except (KeyError, TypeError):
            raise self._payload_error("Response has no 'chart' object") from None

        if not isinstance(chart, dict):
            raise self._payload_error("Response 'chart' is not an object", chart)

        error = chart.get("error")
        if error and isinstance(error, dict):
            raise self._payload_error(
                f"{error.get('code', 'Error')}: {error.get('description', '')}"
            )
        if error:
            raise self._payload_error(str(error))

        results = chart.get("result") or []
        if not isinstance(results, list):
            raise self._payload_error("Chart result is not an array", results)
        quote = Quote(symbol=symbol)
        if not results:
            return quote

        result = results[0]
        if not isinstance(result, dict):
            raise self._payload_error("Chart result is not an object", result)
        timestamps = result.get("timestamp") or []
        if not isinstance(timestamps, list):
            raise self._payload_error("Chart timestamps are not an array", timestamps)
        if not timestamps:
            return quote

        try:
            bars = result["indicators"]["quote"][0]
            adjcloses = (result["indicators"].get("adjclose") or [{}])[0].get(
                "adjclose"
            )
        except (KeyError, IndexError, TypeError):
            raise self._payload_error("Response has no quote indicators") from None

        # Daily and longer bars are stamped at the exchange's local midnight.
        meta = result.get("meta") or {}
        try:
            gmt_offset = timedelta(seconds=meta.get("gmtoffset") or 0)
        except (AttributeError, TypeError):
            raise self._payload_error("Malformed chart meta", meta) from None
        adjcloses = adjcloses if isinstance(adjcloses, list) else []

        skipped = 0
        for i, ts in enumerate(timestamps):
            try:
                values = [bars[key][i] for key in ("open", "high", "low", "close")]
                volume = bars["volume"][i] or 0
            except (KeyError, IndexError, TypeError):
                raise self._payload_error(
                    f"Quote indicators are shorter than the timestamps for {symbol}"
                ) from None
            if any(v is None for v in values):
                skipped += 1
                continue
            # Bars past the end of a short adjclose series stay unadjusted.
            adjclose = adjcloses[i] if i < len(adjcloses) else None
            try:
                open_, high, low, close = (float(v) for v in values)
                if self.adjust and adjclose is not None and close:
                    factor = float(adjclose) / close
                    open_, high, low = open_ * factor, high * factor, low * factor
                    close = float(adjclose)

                local_day = datetime.fromtimestamp(ts, tz=timezone.utc) + gmt_offset
                date = datetime(
                    local_day.year, local_day.month, local_day.day, tzinfo=timezone.utc
                )
                quote.append_bar(date, open_, high, low, close, volume)
            except (OverflowError, OSError, TypeError, ValueError) as e:
                raise self._payload_error(f"Malformed bar {i} for {symbol}: {e}") from e

        if skipped:
            logger.debug(
                f"[{self.provider_name}] Skipped {skipped} incomplete bars for {symbol}."
            )
        return quote
