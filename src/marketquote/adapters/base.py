import abc
import asyncio
from datetime import datetime, timedelta
from typing import Any, ClassVar

import httpx
from loguru import logger

from marketquote.exceptions import ProviderError
from marketquote.periods import Period
from marketquote.quote import Quote
from marketquote.utils.time import parse_date, utc_now

# Range used when the caller gives no start date.
DEFAULT_LOOKBACK = timedelta(days=5 * 365)

# Longest slice of an error body quoted in a ProviderError message.
MAX_ERROR_BODY_CHARS = 200


class QuoteProvider(abc.ABC):
    """An abstract base class for all historical quote providers.

    A provider turns (symbol, date range, period) into a freshly built Quote.
    The public `fetch_quote` validates its arguments and logs the outcome;
    subclasses implement `_fetch_quote` with the provider-specific URL
    construction and response parsing.

    Providers never retry. Any transport, HTTP status or payload failure is
    raised as a ProviderError.
    """

    supported_periods: ClassVar[frozenset[Period]] = frozenset(Period)

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        page_delay: float = 0.0,
    ) -> None:
        """Initializes the provider.

        Args:
            http_client: A shared httpx.AsyncClient for making REST API calls.
            page_delay: Seconds to pause between the pages of a paginated fetch.
        """
        self.http_client = http_client
        self.page_delay = page_delay

    @property
    @abc.abstractmethod
    def provider_name(self) -> str:
        """A unique, lowercase identifier for the provider (e.g., 'yahoo')."""
        raise NotImplementedError

    def check_period(self, period: Period | str) -> Period:
        """Parses `period` and ensures this provider can serve it.

        Raises:
            ValueError: If the period is unknown or unsupported here.
        """
        parsed = Period.parse(period)
        if parsed not in self.supported_periods:
            supported = ", ".join(p.value for p in Period if p in self.supported_periods)
            err_msg = (
                f"Unsupported period for {self.provider_name}: {parsed.value} "
                f"(supported: {supported})"
            )
            raise ValueError(err_msg)
        return parsed

    async def fetch_quote(
        self,
        symbol: str,
        start: datetime | str | None = None,
        end: datetime | str | None = None,
        period: Period | str = Period.DAILY,
    ) -> Quote:
        """Fetches the OHLCV history of `symbol` between `start` and `end`.

        Args:
            symbol: The ticker or trading pair, in the provider's notation.
            start: Start of the range. Defaults to five years before `end`.
            end: End of the range. Defaults to now.
            period: Bar granularity.

        Returns:
            A Quote with bars in ascending date order.

        Raises:
            ValueError: If the period or the date range is invalid.
            ProviderError: If the request fails or the payload is unusable.
        """
        parsed_period = self.check_period(period)
        end_dt = parse_date(end, default=utc_now())
        start_dt = parse_date(start, default=end_dt - DEFAULT_LOOKBACK)
        if start_dt > end_dt:
            err_msg = f"Start date {start_dt} is after end date {end_dt}"
            raise ValueError(err_msg)

        logger.info(
            f"[{self.provider_name}] Fetching {parsed_period.value} bars for "
            f"{symbol} from {start_dt:%Y-%m-%d %H:%M} to {end_dt:%Y-%m-%d %H:%M}"
        )
        quote = await self._fetch_quote(symbol, start_dt, end_dt, parsed_period)
        logger.success(
            f"[{self.provider_name}] Fetched {len(quote)} bars for {symbol}."
        )
        return quote

    @abc.abstractmethod
    async def _fetch_quote(
        self, symbol: str, start_dt: datetime, end_dt: datetime, period: Period
    ) -> Quote:
        """Requests and parses the bars for one symbol.

        Args:
            symbol: The symbol as given by the caller.
            start_dt: The start datetime for the data range (UTC).
            end_dt: The end datetime for the data range (UTC).
            period: A period already validated against `supported_periods`.
        """
        raise NotImplementedError

    async def _get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Issues a GET request with the shared client and decodes the JSON body."""
        return await request_json(
            self.http_client, url, self.provider_name, params=params, headers=headers
        )

    async def _pause(self) -> None:
        """Sleeps between paginated requests when a page delay is configured."""
        if self.page_delay > 0:
            await asyncio.sleep(self.page_delay)

    def _payload_error(self, message: str, payload: Any = None) -> ProviderError:
        details = {"payload": payload} if payload is not None else None
        return ProviderError(message, self.provider_name, details=details)


async def request_json(
    http_client: httpx.AsyncClient,
    url: str,
    source: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
) -> Any:
    """Issues a GET request and decodes the JSON body.

    Args:
        http_client: The client to issue the request with.
        url: The absolute URL to fetch.
        source: The provider or list name reported in errors.
        params: Query string parameters.
        headers: Extra request headers.

    Raises:
        ProviderError: On transport errors, non-2xx responses or bodies
            that are not JSON.
    """
    try:
        response = await http_client.get(url, params=params, headers=headers)
        response.raise_for_status()
    except httpx.HTTPStatusError as e:
        body = e.response.text[:MAX_ERROR_BODY_CHARS]
        err_msg = f"Request to {e.request.url.path} failed: {body}"
        raise ProviderError(
            err_msg, source, status_code=e.response.status_code
        ) from e
    except httpx.HTTPError as e:
        err_msg = f"Request to {url} failed: {type(e).__name__}: {e}"
        raise ProviderError(err_msg, source) from e

    try:
        return response.json()
    except ValueError as e:
        err_msg = f"Response from {url} is not valid JSON"
        raise ProviderError(err_msg, source) from e
