"""This package contains the provider-specific fetch routines.

Each provider is a self-contained module responsible for building the request
for one external data source, issuing it, and mapping the response onto the
common Quote record.

All providers inherit from the `QuoteProvider` abstract base class defined
in `marketquote.adapters.base`. Use `get_provider` to construct one by its
source name.
"""

from typing import Any

import httpx

from marketquote.adapters.base import QuoteProvider
from marketquote.adapters.binance import BinanceProvider
from marketquote.adapters.bittrex import BittrexProvider
from marketquote.adapters.coinbase import CoinbaseProvider
from marketquote.adapters.tiingo import TiingoCryptoProvider, TiingoProvider
from marketquote.adapters.yahoo import YahooProvider

PROVIDERS: dict[str, type[QuoteProvider]] = {
    "yahoo": YahooProvider,
    "tiingo": TiingoProvider,
    "tiingo-crypto": TiingoCryptoProvider,
    "coinbase": CoinbaseProvider,
    "binance": BinanceProvider,
    "bittrex": BittrexProvider,
}


def get_provider(
    name: str, http_client: httpx.AsyncClient, **kwargs: Any
) -> QuoteProvider:
    """Builds the provider registered under `name`.

    Extra keyword arguments are passed to the provider's constructor
    (e.g. `token=` for Tiingo, `adjust=` for Yahoo, `page_delay=` for any).

    Raises:
        ValueError: If no provider has that name.
    """
    try:
        provider_cls = PROVIDERS[name.lower()]
    except KeyError:
        known = ", ".join(sorted(PROVIDERS))
        err_msg = f"Unknown provider: {name!r} (known: {known})"
        raise ValueError(err_msg) from None
    return provider_cls(http_client, **kwargs)


__all__ = [
    "PROVIDERS",
    "BinanceProvider",
    "BittrexProvider",
    "CoinbaseProvider",
    "QuoteProvider",
    "TiingoCryptoProvider",
    "TiingoProvider",
    "YahooProvider",
    "get_provider",
]
