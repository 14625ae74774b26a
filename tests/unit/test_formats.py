import json
from datetime import datetime, timezone

import pytest

from marketquote.quote import Quote, Quotes


@pytest.fixture()
def aapl() -> Quote:
    """Provides a two bar daily quote for a stock (precision 2)."""
    quote = Quote(symbol="AAPL")
    quote.append_bar(
        datetime(2024, 1, 2, tzinfo=timezone.utc), 185.5, 186, 183.25, 185.64, 82488700
    )
    quote.append_bar(
        datetime(2024, 1, 3, tzinfo=timezone.utc), 184.22, 185.88, 183.43, 184.25, 58414500
    )
    return quote


@pytest.fixture()
def btc() -> Quote:
    """Provides a one bar intraday quote for a crypto pair (precision 8)."""
    quote = Quote(symbol="BTC-USD")
    quote.append_bar(
        datetime(2024, 1, 2, 15, 4, tzinfo=timezone.utc), 45000.5, 45100, 44900.25, 45050, 1.5
    )
    return quote


def test_csv(aapl: Quote) -> None:
    assert aapl.to_csv() == (
        "datetime,open,high,low,close,volume\n"
        "2024-01-02 00:00,185.50,186.00,183.25,185.64,82488700.00\n"
        "2024-01-03 00:00,184.22,185.88,183.43,184.25,58414500.00\n"
    )


def test_csv_uses_wide_precision_for_crypto(btc: Quote) -> None:
    assert btc.to_csv() == (
        "datetime,open,high,low,close,volume\n"
        "2024-01-02 15:04,45000.50000000,45100.00000000,44900.25000000,"
        "45050.00000000,1.50000000\n"
    )


def test_empty_quote_csv_is_header_only() -> None:
    assert Quote(symbol="AAPL").to_csv() == "datetime,open,high,low,close,volume\n"


def test_amibroker(aapl: Quote) -> None:
    assert aapl.to_amibroker() == (
        "date,time,open,high,low,close,volume\n"
        "2024-01-02,00:00,185.50,186.00,183.25,185.64,82488700.00\n"
        "2024-01-03,00:00,184.22,185.88,183.43,184.25,58414500.00\n"
    )


def test_highstock(aapl: Quote) -> None:
    assert aapl.to_highstock() == (
        "[\n"
        "[1704153600000,185.50,186.00,183.25,185.64,82488700.00],\n"
        "[1704240000000,184.22,185.88,183.43,184.25,58414500.00]\n"
        "]\n"
    )
    # The output must also be valid JSON for the chart loader.
    assert json.loads(aapl.to_highstock())[0][0] == 1704153600000


def test_highstock_empty() -> None:
    assert json.loads(Quote(symbol="AAPL").to_highstock()) == []


def test_json(aapl: Quote) -> None:
    payload = json.loads(aapl.to_json())
    assert payload == {
        "symbol": "AAPL",
        "precision": 2,
        "date": ["2024-01-02T00:00:00Z", "2024-01-03T00:00:00Z"],
        "open": [185.5, 184.22],
        "high": [186.0, 185.88],
        "low": [183.25, 183.43],
        "close": [185.64, 184.25],
        "volume": [82488700.0, 58414500.0],
    }
    assert "\n" not in aapl.to_json()


def test_json_indent(aapl: Quote) -> None:
    text = aapl.to_json(indent=True)
    assert text.startswith('{\n  "symbol": "AAPL"')
    assert json.loads(text) == json.loads(aapl.to_json())


def test_json_rounds_to_precision() -> None:
    quote = Quote(symbol="AAPL")
    quote.append_bar(datetime(2024, 1, 2, tzinfo=timezone.utc), 1.23456, 2, 1, 1.5, 10)
    assert json.loads(quote.to_json())["open"] == [1.23]


def test_quotes_csv_prefixes_symbol(aapl: Quote, btc: Quote) -> None:
    lines = Quotes([aapl, btc]).to_csv().splitlines()
    assert lines[0] == "symbol,datetime,open,high,low,close,volume"
    assert lines[1] == "AAPL,2024-01-02 00:00,185.50,186.00,183.25,185.64,82488700.00"
    assert lines[3].startswith("BTC-USD,2024-01-02 15:04,45000.50000000,")
    assert len(lines) == 4


def test_quotes_amibroker_prefixes_symbol(aapl: Quote) -> None:
    lines = Quotes([aapl]).to_amibroker().splitlines()
    assert lines[0] == "symbol,date,time,open,high,low,close,volume"
    assert lines[2] == "AAPL,2024-01-03,00:00,184.22,185.88,183.43,184.25,58414500.00"


def test_quotes_json_is_array(aapl: Quote, btc: Quote) -> None:
    payload = json.loads(Quotes([aapl, btc]).to_json())
    assert [item["symbol"] for item in payload] == ["AAPL", "BTC-USD"]
    assert payload[1]["precision"] == 8


def test_quotes_highstock_is_keyed_by_symbol(aapl: Quote, btc: Quote) -> None:
    empty = Quote(symbol="MSFT")
    payload = json.loads(Quotes([aapl, btc, empty]).to_highstock())
    assert list(payload) == ["AAPL", "BTC-USD", "MSFT"]
    assert payload["AAPL"][1] == [1704240000000, 184.22, 185.88, 183.43, 184.25, 58414500.0]
    assert payload["MSFT"] == []
    assert json.loads(Quotes().to_highstock()) == {}


def test_quotes_csv_round_trip(aapl: Quote, btc: Quote) -> None:
    decoded = Quotes.from_csv(Quotes([aapl, btc]).to_csv())
    assert decoded.symbols() == ["AAPL", "BTC-USD"]
    assert decoded[0].close == aapl.close
    assert decoded[1].dates == btc.dates
