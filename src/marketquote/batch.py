import asyncio
import re
from collections.abc import Iterable
from datetime import datetime

from loguru import logger

from marketquote.adapters.base import QuoteProvider
from marketquote.config import Settings
from marketquote.exceptions import ProviderError
from marketquote.periods import Period
from marketquote.quote import Quotes

_SEPARATORS = re.compile(r"[\s,]+")


def load_symbols(text: str) -> list[str]:
    """Parses a symbol list such as the contents of a symbols file.

    Symbols may be separated by newlines, whitespace or commas. Anything after
    a '#' on a line is a comment. Duplicates are dropped, order is kept.
    """
    symbols: list[str] = []
    seen: set[str] = set()
    for line in text.splitlines():
        line = line.split("#", 1)[0]
        for token in _SEPARATORS.split(line):
            if token and token not in seen:
                seen.add(token)
                symbols.append(token)
    return symbols


async def fetch_quotes(
    provider: QuoteProvider,
    symbols: Iterable[str],
    start: datetime | str | None = None,
    end: datetime | str | None = None,
    period: Period | str | None = None,
    delay: float | None = None,
) -> Quotes:
    """Fetches quotes for several symbols, one after the other.

    Requests are never issued concurrently. The driver sleeps `delay` seconds
    between symbols to stay under the provider's rate limit. A symbol whose
    fetch fails is logged and left out of the result; it is not retried.

    Args:
        provider: The provider to fetch from.
        symbols: The symbols to fetch, in output order.
        start: Start of the range, passed through to the provider.
        end: End of the range, passed through to the provider.
        period: Bar granularity. Defaults to the configured
            `fetch.default_period`.
        delay: Seconds between symbols. Defaults to the configured
            `fetch.delay_seconds`.

    Returns:
        The successfully fetched quotes, in input order.

    Raises:
        ValueError: If the period is not supported by the provider.
    """
    fetch_settings = Settings.get_instance().fetch
    period = provider.check_period(
        period if period is not None else fetch_settings.default_period
    )
    if delay is None:
        delay = fetch_settings.delay_seconds

    quotes = Quotes()
    failed: list[str] = []
    for i, symbol in enumerate(symbols):
        if i > 0 and delay > 0:
            await asyncio.sleep(delay)
        try:
            quote = await provider.fetch_quote(symbol, start, end, period)
        except (ProviderError, ValueError) as e:
            logger.error(f"[{provider.provider_name}] Error downloading {symbol}: {e}")
            failed.append(symbol)
            continue
        quotes.append(quote)

    if failed:
        logger.warning(
            f"[{provider.provider_name}] {len(failed)} symbol(s) failed: "
            f"{', '.join(failed)}"
        )
    return quotes
