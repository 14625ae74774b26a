"""Symbol lists for equity markets and crypto exchanges.

Equity lists come from the Nasdaq stock screener, which serves its results in
pages; `fetch_market_list` walks the pages with `limit`/`offset` until every
record has been collected. Exchange lists come from each exchange's market
metadata endpoint in a single request.
"""

import asyncio
from typing import Any, Final

import httpx
from loguru import logger

from marketquote.adapters.base import request_json
from marketquote.adapters.tiingo import TIINGO_API_URL
from marketquote.config import get_api_token
from marketquote.exceptions import ProviderError

NASDAQ_SCREENER_URL: Final = "https://api.nasdaq.com/api/screener"
SCREENER_PAGE_SIZE: Final = 1000

# The screener rejects requests without browser-like headers.
SCREENER_HEADERS: Final[dict[str, str]] = {
    "User-Agent": "Mozilla/5.0 (X11; Linux x86_64)",
    "Accept": "application/json, text/plain, */*",
}

EXCHANGE_MARKETS: Final[dict[str, str]] = {
    "nasdaq": "nasdaq",
    "nyse": "nyse",
    "amex": "amex",
}

CAP_MARKETS: Final[dict[str, str]] = {
    "megacap": "mega",
    "largecap": "large",
    "midcap": "mid",
    "smallcap": "small",
    "microcap": "micro",
    "nanocap": "nano",
}

CRYPTO_MARKETS: Final = ("binance", "coinbase", "bittrex", "tiingo-crypto")

MARKETS: Final[tuple[str, ...]] = (
    *EXCHANGE_MARKETS,
    *CAP_MARKETS,
    "etf",
    *CRYPTO_MARKETS,
)


def _screener_page(payload: Any) -> tuple[list[dict[str, Any]], int | None]:
    """Extracts (rows, total record count) from one screener response.

    Stock pages keep their rows under data.table.rows; ETF pages nest them
    under data.records.data.rows.
    """
    data = (payload or {}).get("data") or {}
    if "records" in data:
        records = data.get("records") or {}
        rows = ((records.get("data") or {}).get("rows")) or []
        total = records.get("totalrecords")
    else:
        rows = ((data.get("table") or {}).get("rows")) or []
        total = data.get("totalrecords")
    return rows, int(total) if total is not None else None


async def _fetch_screener(
    http_client: httpx.AsyncClient,
    market: str,
    endpoint: str,
    filters: dict[str, str],
    page_delay: float,
) -> list[str]:
    symbols: list[str] = []
    offset = 0
    while True:
        params: dict[str, Any] = {
            "tableonly": "true",
            "download": "false",
            "limit": SCREENER_PAGE_SIZE,
            "offset": offset,
            **filters,
        }
        payload = await request_json(
            http_client,
            f"{NASDAQ_SCREENER_URL}/{endpoint}",
            market,
            params=params,
            headers=SCREENER_HEADERS,
        )
        rows, total = _screener_page(payload)
        if not rows:
            break

        symbols.extend(
            str(row["symbol"]).strip() for row in rows if row.get("symbol")
        )
        offset += len(rows)
        logger.debug(f"[{market}] Collected {offset} of {total} screener rows.")
        if total is not None and offset >= total:
            break
        if page_delay > 0:
            await asyncio.sleep(page_delay)
    return symbols


async def _fetch_exchange_symbols(
    http_client: httpx.AsyncClient, market: str
) -> list[str]:
    if market == "binance":
        payload = await request_json(
            http_client, "https://api.binance.com/api/v3/exchangeInfo", market
        )
        return [
            s["symbol"]
            for s in (payload or {}).get("symbols", [])
            if s.get("status") == "TRADING"
        ]

    if market == "coinbase":
        payload = await request_json(
            http_client, "https://api.exchange.coinbase.com/products", market
        )
        return [
            p["id"]
            for p in payload or []
            if p.get("status", "online") == "online" and not p.get("trading_disabled")
        ]

    if market == "bittrex":
        payload = await request_json(
            http_client, "https://api.bittrex.com/v3/markets", market
        )
        return [m["symbol"] for m in payload or [] if m.get("status") == "ONLINE"]

    # tiingo-crypto
    token = get_api_token("tiingo")
    if not token:
        err_msg = "No API token configured (set TIINGO_API_TOKEN or use the keyring)"
        raise ProviderError(err_msg, market)
    payload = await request_json(
        http_client,
        f"{TIINGO_API_URL}/crypto",
        market,
        headers={"Authorization": f"Token {token}"},
    )
    return [t["ticker"] for t in payload or [] if t.get("ticker")]


async def fetch_market_list(
    http_client: httpx.AsyncClient, market: str, page_delay: float = 0.0
) -> list[str]:
    """Returns the sorted, de-duplicated symbol list of a market.

    Args:
        http_client: A shared httpx.AsyncClient.
        market: One of MARKETS, e.g. 'nasdaq', 'megacap', 'etf' or 'binance'.
        page_delay: Seconds to pause between screener pages.

    Raises:
        ValueError: If the market name is unknown.
        ProviderError: If a request fails or returns an unusable payload.
    """
    market = market.lower()
    if market not in MARKETS:
        err_msg = f"Unknown market: {market!r} (known: {', '.join(MARKETS)})"
        raise ValueError(err_msg)

    logger.info(f"[{market}] Fetching symbol list...")
    try:
        if market in EXCHANGE_MARKETS:
            symbols = await _fetch_screener(
                http_client, market, "stocks",
                {"exchange": EXCHANGE_MARKETS[market]}, page_delay,
            )
        elif market in CAP_MARKETS:
            symbols = await _fetch_screener(
                http_client, market, "stocks",
                {"marketcap": CAP_MARKETS[market]}, page_delay,
            )
        elif market == "etf":
            symbols = await _fetch_screener(
                http_client, market, "etf", {}, page_delay
            )
        else:
            symbols = await _fetch_exchange_symbols(http_client, market)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        err_msg = f"Unexpected symbol list payload: {type(e).__name__}: {e}"
        raise ProviderError(err_msg, market) from e

    result = sorted(set(symbols))
    logger.success(f"[{market}] Fetched {len(result)} symbols.")
    return result
