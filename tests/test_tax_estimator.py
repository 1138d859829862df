import pytest

from portfolio_engine.tax.estimator import TaxEstimator, TaxRates, estimate_tax, infer_tax_asset_type


def test_infer_tax_asset_type() -> None:
    assert infer_tax_asset_type("005930") == "kr_stock"
    assert infer_tax_asset_type("035720.KQ") == "kr_stock"
    assert infer_tax_asset_type("BTC") == "crypto"
    assert infer_tax_asset_type("PEPE-USD") == "crypto"
    assert infer_tax_asset_type("aapl") == "us_stock"
    assert infer_tax_asset_type("BRK.B") == "other"
    assert infer_tax_asset_type(None) == "other"


def test_korean_stock_estimate() -> None:
    estimate = estimate_tax("005930", 10_000_000, 90_000, 100_000, 100)
    assert estimate.transaction_tax == 18000
    assert estimate.brokerage_fee == 1499
    assert estimate.capital_gains_tax == 0
    assert estimate.total_cost == 19499
    assert estimate.net_proceeds == 9_980_501
    assert estimate.asset_type_label == "Korean stock"


def test_us_stock_tax_applies_to_excess_gain_only() -> None:
    estimate = estimate_tax("AAPL", 50_000_000, 100_000, 150_000, 100)
    assert estimate.gain == 5_000_000
    assert estimate.capital_gains_tax == 550_000
    assert estimate.brokerage_fee == 125_000
    assert "exemption" in estimate.note


def test_us_stock_gain_within_exemption_is_tax_free() -> None:
    estimate = estimate_tax("AAPL", 11_000_000, 100_000, 110_000, 100)
    assert estimate.capital_gains_tax == 0
    assert "tax free" in estimate.note

    loss = estimate_tax("AAPL", 9_000_000, 100_000, 90_000, 100)
    assert loss.capital_gains_tax == 0
    assert loss.note == "No taxable gain"


def test_crypto_and_other_pay_brokerage_only() -> None:
    crypto = estimate_tax("ETH", 1_000_000, 1, 2, 1_000_000)
    assert crypto.brokerage_fee == 1000
    assert crypto.capital_gains_tax == 0
    assert "deferred" in crypto.note

    other = estimate_tax("BRK.B", 1_000_000, 1, 2, 10)
    assert other.total_cost == 1000
    assert other.cost_rate == pytest.approx(0.1)


def test_zero_sell_amount_has_zero_cost_rate() -> None:
    estimate = estimate_tax("AAPL", 0, 100, 100, 0)
    assert estimate.total_cost == 0
    assert estimate.cost_rate == 0.0


def test_custom_rate_table() -> None:
    flat = TaxRates(transaction_tax=0.0, brokerage_fee=0.01, capital_gains_tax=0.0, capital_gains_exemption=0.0)
    estimator = TaxEstimator({"kr_stock": flat, "us_stock": flat, "crypto": flat, "other": flat})
    assert estimator.estimate("AAPL", 1_000, 1, 1, 1).brokerage_fee == 10
