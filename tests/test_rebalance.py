import pytest

from portfolio_engine.portfolio.models import Asset, AssetType
from portfolio_engine.portfolio.rebalance import (
    calculate_after_tax_rebalancing,
    calculate_rebalancing,
    is_valid_allocation,
)
from portfolio_engine.tax.profiles import Country, TaxSettings


def _assets() -> list[Asset]:
    return [
        Asset(id="a", name="Apple", ticker="AAPL", current_value=700.0, target_allocation=50.0, cost_basis=350.0),
        Asset(id="b", name="Bonds", ticker="BND", current_value=300.0, target_allocation=50.0),
    ]


def test_rebalancing_actions() -> None:
    summary = calculate_rebalancing(_assets())
    actions = {action.asset_id: action for action in summary.actions}
    assert summary.total_value == 1000.0
    assert not summary.is_balanced
    assert actions["a"].action == "SELL"
    assert actions["a"].amount == 200.0
    assert actions["a"].percentage == -20.0
    assert actions["b"].action == "BUY"
    assert actions["b"].target_value == 500.0


def test_rebalancing_edge_cases() -> None:
    empty = calculate_rebalancing([])
    assert empty.actions == []
    assert empty.is_balanced

    zero = calculate_rebalancing([Asset(id="a", name="A", current_value=0.0, target_allocation=100.0)])
    assert not zero.is_balanced
    assert zero.actions == []


def test_allocation_sum_check() -> None:
    assert is_valid_allocation(_assets())
    assert not is_valid_allocation([Asset(id="a", name="A", current_value=1.0, target_allocation=90.0)])
    assert is_valid_allocation([])


def test_after_tax_rebalancing_attaches_tax_to_sells() -> None:
    holdings = _assets() + [Asset(id="home", name="Home", current_value=5000.0, asset_type=AssetType.ILLIQUID)]
    summary = calculate_after_tax_rebalancing(holdings, TaxSettings(selected_country=Country.USA))
    actions = {action.asset_id: action for action in summary.actions}
    assert "home" not in actions
    assert summary.total_illiquid_value == 5000.0
    sell = actions["a"]
    assert sell.action == "SELL"
    assert sell.tax_impact is not None
    assert sell.tax_impact.capital_gains == pytest.approx(100.0)
    assert sell.tax_impact.tax_amount == pytest.approx(20.0)
    assert sell.tax_impact.trade_fee == pytest.approx(0.2)
    assert summary.total_tax_impact == pytest.approx(20.0)
    assert summary.total_net_benefit == pytest.approx(79.8)
    assert actions["b"].tax_impact is None


def test_after_tax_rebalancing_can_skip_tax() -> None:
    summary = calculate_after_tax_rebalancing(_assets(), TaxSettings(include_in_calculations=False))
    assert all(action.tax_impact is None for action in summary.actions)
    assert summary.total_tax_impact == 0.0
