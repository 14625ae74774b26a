import pytest

from marketquote.periods import Period


def test_parse_canonical_values() -> None:
    """Every canonical value parses to its own member."""
    for period in Period:
        assert Period.parse(period.value) is period
        assert Period.parse(period) is period


@pytest.mark.parametrize(
    ("alias", "expected"),
    [("60m", Period.HOUR1), ("1d", Period.DAILY), ("1w", Period.WEEKLY), ("1mo", Period.MONTHLY)],
)
def test_parse_aliases(alias: str, expected: Period) -> None:
    assert Period.parse(alias) is expected


def test_parse_rejects_unknown_period() -> None:
    with pytest.raises(ValueError, match="Unknown period"):
        Period.parse("2w")


def test_minute_and_month_are_distinct() -> None:
    assert Period.parse("1m") is Period.MIN1
    assert Period.parse("m") is Period.MONTHLY


def test_seconds() -> None:
    assert Period.MIN1.seconds == 60
    assert Period.HOUR4.seconds == 4 * 3600
    assert Period.DAILY.seconds == 86400
    assert Period.MONTHLY.seconds == 30 * 86400
