from datetime import datetime
from typing import Any

import httpx
from loguru import logger

from marketquote.adapters.base import QuoteProvider
from marketquote.config import get_api_token
from marketquote.exceptions import ProviderError
from marketquote.periods import Period
from marketquote.quote import Quote
from marketquote.utils.time import parse_date

TIINGO_API_URL = "https://api.tiingo.com/tiingo"


class _TiingoBase(QuoteProvider):
    """Shared token handling for the Tiingo end-of-day and crypto endpoints.

    The token is passed as-is on every request; when none is given it is looked
    up under the 'tiingo' name (keyring, then TIINGO_API_TOKEN).
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        token: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(http_client, **kwargs)
        self.token = token if token is not None else get_api_token("tiingo")

    def _auth_headers(self) -> dict[str, str]:
        if not self.token:
            err_msg = "No API token configured (set TIINGO_API_TOKEN or use the keyring)"
            raise ProviderError(err_msg, self.provider_name)
        # Sinks set up by setup_logging redact the bound token.
        logger.bind(provider=self.provider_name, token=self.token).debug(
            f"[{self.provider_name}] Authenticating with a static API token."
        )
        return {
            "Authorization": f"Token {self.token}",
            "Content-Type": "application/json",
        }

    def _check_rows(self, payload: Any) -> list[Any]:
        # Tiingo reports lookup failures as {"detail": "..."} objects.
        if isinstance(payload, dict):
            raise self._payload_error(payload.get("detail", "Unexpected response"))
        if not isinstance(payload, list):
            raise self._payload_error("Expected a JSON array", payload)
        return payload


class TiingoProvider(_TiingoBase):
    """Provider for Tiingo end-of-day stock prices.

    Tiingo returns both raw and adjusted values; the adjusted ones
    (adjOpen, adjHigh, adjLow, adjClose, adjVolume) are used.
    """

    supported_periods = frozenset({Period.DAILY})

    @property
    def provider_name(self) -> str:
        """Returns the unique, lowercase identifier for the provider."""
        return "tiingo"

    async def _fetch_quote(
        self, symbol: str, start_dt: datetime, end_dt: datetime, period: Period
    ) -> Quote:
        headers = self._auth_headers()
        params = {
            "startDate": start_dt.strftime("%Y-%m-%d"),
            "endDate": end_dt.strftime("%Y-%m-%d"),
            "format": "json",
        }
        payload = await self._get_json(
            f"{TIINGO_API_URL}/daily/{symbol.lower()}/prices",
            params=params,
            headers=headers,
        )

        quote = Quote(symbol=symbol)
        for row in self._check_rows(payload):
            try:
                quote.append_bar(
                    parse_date(row["date"]),
                    row["adjOpen"],
                    row["adjHigh"],
                    row["adjLow"],
                    row["adjClose"],
                    row["adjVolume"],
                )
            except (KeyError, TypeError, ValueError) as e:
                raise self._payload_error(f"Malformed price row: {e}", row) from e
        return quote


class TiingoCryptoProvider(_TiingoBase):
    """Provider for Tiingo crypto prices, resampled on the server."""

    _RESAMPLE_FREQ: dict[Period, str] = {
        Period.MIN1: "1min",
        Period.MIN3: "3min",
        Period.MIN5: "5min",
        Period.MIN15: "15min",
        Period.MIN30: "30min",
        Period.HOUR1: "1hour",
        Period.HOUR2: "2hour",
        Period.HOUR4: "4hour",
        Period.HOUR6: "6hour",
        Period.HOUR8: "8hour",
        Period.HOUR12: "12hour",
        Period.DAILY: "1day",
        Period.DAY3: "3day",
        Period.WEEKLY: "7day",
        Period.MONTHLY: "30day",
    }
    supported_periods = frozenset(_RESAMPLE_FREQ)

    @property
    def provider_name(self) -> str:
        """Returns the unique, lowercase identifier for the provider."""
        return "tiingo-crypto"

    @classmethod
    def resample_freq(cls, period: Period | str) -> str:
        """Maps a period onto Tiingo's resampleFreq string (e.g. 1h -> '1hour')."""
        return cls._RESAMPLE_FREQ[Period.parse(period)]

    async def _fetch_quote(
        self, symbol: str, start_dt: datetime, end_dt: datetime, period: Period
    ) -> Quote:
        headers = self._auth_headers()
        params = {
            "tickers": symbol.lower().replace("/", "").replace("-", ""),
            "startDate": start_dt.strftime("%Y-%m-%d"),
            "endDate": end_dt.strftime("%Y-%m-%d"),
            "resampleFreq": self.resample_freq(period),
        }
        payload = await self._get_json(
            f"{TIINGO_API_URL}/crypto/prices", params=params, headers=headers
        )

        quote = Quote(symbol=symbol)
        rows = self._check_rows(payload)
        if not rows:
            return quote

        if not isinstance(rows[0], dict):
            raise self._payload_error("Expected an object per ticker", rows[0])
        for bar in rows[0].get("priceData") or []:
            try:
                quote.append_bar(
                    parse_date(bar["date"]),
                    bar["open"],
                    bar["high"],
                    bar["low"],
                    bar["close"],
                    bar["volume"],
                )
            except (KeyError, TypeError, ValueError) as e:
                raise self._payload_error(f"Malformed price row: {e}", bar) from e
        return quote
