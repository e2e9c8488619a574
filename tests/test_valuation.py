import pytest

from models import Asset, AssetType, Currency, ExchangeRate
from services.valuation import (
    HIDDEN_AMOUNT,
    conversion_factor,
    distribution_by_type,
    format_amount,
    group_by_type,
    summarize,
    total_value_in_home,
    value_in_home,
)


def make_asset(asset_id, asset_type, symbol, shares, price, currency):
    return Asset(id=asset_id, type=asset_type, symbol=symbol, name=symbol,
                 shares=shares, price=price, currency=currency)


@pytest.mark.parametrize("currency,expected", [
    (Currency.TWD, 1.0),
    (Currency.USD, 32.0),
    (Currency.JPY, 0.2),
])
def test_conversion_factor(rates, currency, expected):
    assert conversion_factor(currency, rates) == expected


def test_unknown_currency_is_valued_at_par(rates):
    assert conversion_factor("EUR", rates) == 1.0


def test_value_in_home_is_shares_times_price_times_factor(rates):
    jpy_cash = make_asset("c1", AssetType.CASH, "CASH-JPY", 1, 500_000, Currency.JPY)
    tw_stock = make_asset("s1", AssetType.TW_STOCK, "2330", 1000, 580.5, Currency.TWD)

    assert value_in_home(jpy_cash, rates) == pytest.approx(100_000)
    assert value_in_home(tw_stock, rates) == 1000 * 580.5


def test_example_scenario_total(tsla, rates):
    assert total_value_in_home([tsla], rates) == 64000


def test_empty_portfolio(rates):
    assert total_value_in_home([], rates) == 0
    assert distribution_by_type([], rates) == []
    assert summarize([], rates).total_value == 0


def test_distribution_omits_empty_groups_and_keeps_type_order(rates):
    assets = [
        make_asset("a", AssetType.CASH, "CASH-TWD", 1, 36000, Currency.TWD),
        make_asset("b", AssetType.US_STOCK, "AAPL", 1, 1000, Currency.USD),
        make_asset("c", AssetType.OTHER, "OTHER", 1, 0, Currency.TWD),
    ]

    allocations = distribution_by_type(assets, rates)

    assert [a.type for a in allocations] == [AssetType.US_STOCK, AssetType.CASH]
    assert allocations[0].value == 32000
    assert allocations[0].weight == pytest.approx(32000 / 68000)
    assert sum(a.weight for a in allocations) == pytest.approx(1.0)
    assert allocations[0].label == "美股"


def test_group_by_type_keeps_insertion_order():
    first = make_asset("1", AssetType.TW_STOCK, "2330", 1, 1, Currency.TWD)
    cash = make_asset("2", AssetType.CASH, "CASH-USD", 1, 1, Currency.USD)
    second = make_asset("3", AssetType.TW_STOCK, "0050", 1, 1, Currency.TWD)

    grouped = group_by_type([first, cash, second])

    assert list(grouped) == list(AssetType)
    assert [a.id for a in grouped[AssetType.TW_STOCK]] == ["1", "3"]
    assert grouped[AssetType.OTHER] == []


def test_summarize_reports_rate_timestamp(tsla):
    rates = ExchangeRate(usd_to_twd=30.0, jpy_to_twd=0.2, last_update=123)

    summary = summarize([tsla], rates)

    assert summary.total_value == 60000
    assert summary.asset_count == 1
    assert summary.rates_last_update == 123
    assert summary.base_currency == "TWD"


def test_format_amount():
    assert format_amount(1234567.89) == "$1,234,568"
    assert format_amount(1234567.89, hidden=True) == HIDDEN_AMOUNT
