# src/marketquote/__init__.py
"""marketquote: a historical market quote downloader.

Fetches OHLCV bars for stocks and crypto pairs from several data providers,
normalizes them into a common `Quote` record, and encodes quotes as CSV, JSON,
Highstock JSON or Amibroker CSV.

Key sub-packages and modules:
- `adapters`: Fetch routines for the individual data providers.
- `quote` and `formats`: The common record and its text encoders.
- `batch`: Sequential multi-symbol fetching.
- `markets`: Symbol lists for equity markets and crypto exchanges.
"""

import importlib.metadata

try:
    __version__: str = importlib.metadata.version("marketquote")
except importlib.metadata.PackageNotFoundError:
    __version__ = "0.0.0-dev"

from marketquote.adapters import PROVIDERS, QuoteProvider, get_provider  # noqa: E402
from marketquote.batch import fetch_quotes, load_symbols  # noqa: E402
from marketquote.config import create_http_client  # noqa: E402
from marketquote.exceptions import ParseError, ProviderError, QuoteError  # noqa: E402
from marketquote.markets import MARKETS, fetch_market_list  # noqa: E402
from marketquote.periods import Period  # noqa: E402
from marketquote.quote import Quote, Quotes, precision_for  # noqa: E402

__all__ = [
    "MARKETS",
    "PROVIDERS",
    "ParseError",
    "Period",
    "ProviderError",
    "Quote",
    "QuoteError",
    "QuoteProvider",
    "Quotes",
    "__version__",
    "create_http_client",
    "fetch_market_list",
    "fetch_quotes",
    "get_provider",
    "load_symbols",
    "precision_for",
]
