import httpx
import pytest
from pytest_mock import MockerFixture

from marketquote.exceptions import ProviderError
from marketquote.markets import MARKETS, fetch_market_list


def stock_page(symbols: list[str], total: int | None) -> dict:
    return {
        "data": {
            "table": {"rows": [{"symbol": s, "name": f"{s} Inc."} for s in symbols]},
            "totalrecords": total,
        },
        "status": {"rCode": 200},
    }


@pytest.mark.asyncio
async def test_nasdaq_list_is_paged_until_total(make_client, mocker: MockerFixture) -> None:
    mocker.patch("marketquote.markets.SCREENER_PAGE_SIZE", 2)
    pages = {0: ["MSFT", "AAPL"], 2: ["AMZN"]}

    def handler(request: httpx.Request) -> httpx.Response:
        offset = int(request.url.params["offset"])
        return httpx.Response(200, json=stock_page(pages[offset], total=3))

    client, requests = make_client(handler)

    symbols = await fetch_market_list(client, "NASDAQ")

    assert symbols == ["AAPL", "AMZN", "MSFT"]
    assert [r.url.params["offset"] for r in requests] == ["0", "2"]
    assert all(r.url.params["exchange"] == "nasdaq" for r in requests)
    assert all(r.url.params["limit"] == "2" for r in requests)
    assert requests[0].url.path == "/api/screener/stocks"


@pytest.mark.asyncio
async def test_screener_stops_on_empty_page(make_client) -> None:
    responses = [stock_page(["IBM", "GE"], total=None), stock_page([], total=None)]
    client, requests = make_client(lambda r: httpx.Response(200, json=responses.pop(0)))

    symbols = await fetch_market_list(client, "nyse")

    assert symbols == ["GE", "IBM"]
    assert len(requests) == 2


@pytest.mark.asyncio
async def test_cap_tier_uses_marketcap_filter(make_client) -> None:
    client, requests = make_client(
        lambda r: httpx.Response(200, json=stock_page(["AAPL", "NVDA"], total=2))
    )

    assert await fetch_market_list(client, "megacap") == ["AAPL", "NVDA"]
    assert requests[0].url.params["marketcap"] == "mega"
    assert "exchange" not in requests[0].url.params


@pytest.mark.asyncio
async def test_etf_list_reads_nested_records(make_client) -> None:
    payload = {
        "data": {
            "records": {
                "totalrecords": 2,
                "data": {"rows": [{"symbol": "SPY"}, {"symbol": "QQQ"}]},
            }
        }
    }
    client, requests = make_client(lambda r: httpx.Response(200, json=payload))

    assert await fetch_market_list(client, "etf") == ["QQQ", "SPY"]
    assert requests[0].url.path == "/api/screener/etf"


@pytest.mark.asyncio
async def test_binance_list_keeps_trading_symbols(make_client) -> None:
    payload = {
        "symbols": [
            {"symbol": "ETHBTC", "status": "TRADING"},
            {"symbol": "BTCUSDT", "status": "TRADING"},
            {"symbol": "OLDBTC", "status": "BREAK"},
        ]
    }
    client, _ = make_client(lambda r: httpx.Response(200, json=payload))

    assert await fetch_market_list(client, "binance") == ["BTCUSDT", "ETHBTC"]


@pytest.mark.asyncio
async def test_coinbase_list_skips_disabled_products(make_client) -> None:
    payload = [
        {"id": "BTC-USD", "status": "online", "trading_disabled": False},
        {"id": "ETH-USD", "status": "online"},
        {"id": "OLD-USD", "status": "delisted"},
        {"id": "HALT-USD", "status": "online", "trading_disabled": True},
    ]
    client, _ = make_client(lambda r: httpx.Response(200, json=payload))

    assert await fetch_market_list(client, "coinbase") == ["BTC-USD", "ETH-USD"]


@pytest.mark.asyncio
async def test_bittrex_list_keeps_online_markets(make_client) -> None:
    payload = [
        {"symbol": "BTC-USD", "status": "ONLINE"},
        {"symbol": "DOGE-BTC", "status": "OFFLINE"},
    ]
    client, _ = make_client(lambda r: httpx.Response(200, json=payload))

    assert await fetch_market_list(client, "bittrex") == ["BTC-USD"]


@pytest.mark.asyncio
async def test_tiingo_crypto_list_requires_token(make_client, mocker: MockerFixture) -> None:
    mocker.patch("marketquote.markets.get_api_token", return_value=None)
    client, requests = make_client(lambda r: httpx.Response(200, json=[]))

    with pytest.raises(ProviderError, match="No API token"):
        await fetch_market_list(client, "tiingo-crypto")
    assert requests == []


@pytest.mark.asyncio
async def test_tiingo_crypto_list(make_client, mocker: MockerFixture) -> None:
    mocker.patch("marketquote.markets.get_api_token", return_value="abc")
    payload = [{"ticker": "btcusd"}, {"ticker": "ethusd"}, {"name": "no ticker"}]
    client, requests = make_client(lambda r: httpx.Response(200, json=payload))

    assert await fetch_market_list(client, "tiingo-crypto") == ["btcusd", "ethusd"]
    assert requests[0].headers["Authorization"] == "Token abc"


@pytest.mark.asyncio
async def test_unexpected_payload_shape_is_provider_error(make_client) -> None:
    client, _ = make_client(lambda r: httpx.Response(200, json=["not", "an", "object"]))

    with pytest.raises(ProviderError, match="Unexpected symbol list payload"):
        await fetch_market_list(client, "binance")


@pytest.mark.asyncio
async def test_non_numeric_total_is_provider_error(make_client) -> None:
    client, _ = make_client(
        lambda r: httpx.Response(200, json=stock_page(["AAPL"], total="n/a"))  # type: ignore[arg-type]
    )

    with pytest.raises(ProviderError, match="Unexpected symbol list payload"):
        await fetch_market_list(client, "nasdaq")


@pytest.mark.asyncio
async def test_unknown_market(make_client) -> None:
    client, _ = make_client(lambda r: httpx.Response(200, json=[]))

    with pytest.raises(ValueError, match="Unknown market"):
        await fetch_market_list(client, "lse")
    assert "nasdaq" in MARKETS
    assert "tiingo-crypto" in MARKETS
