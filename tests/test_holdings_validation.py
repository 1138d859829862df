import pytest

from portfolio_engine.validation.holdings import (
    HoldingsRules,
    HoldingsValidator,
    correct_price_confusion,
    normalize_parsed_records,
    validate_parsed_holdings,
)
from portfolio_engine.validation.models import ParsedAsset


def test_total_value_read_as_price_is_corrected() -> None:
    records = [ParsedAsset(ticker="005930", name="Samsung Electronics", amount=10, price=50_000_000)]
    result = validate_parsed_holdings(records, 50_000_000)
    corrected = result.corrected_assets[0]
    assert corrected.price == 5_000_000
    assert corrected.needs_review
    assert result.is_valid
    assert result.total_calculated == 50_000_000
    assert records[0].price == 50_000_000


def test_matching_batch_is_left_untouched() -> None:
    records = [
        ParsedAsset(ticker="NVDA", name="NVIDIA", amount=229.4, price=200_000),
        ParsedAsset(ticker="TSLA", name="Tesla", amount=51.9, price=500_000),
    ]
    trusted = 229.4 * 200_000 + 51.9 * 500_000
    result = validate_parsed_holdings(records, trusted * 1.03)
    assert result.is_valid
    assert result.error_message is None
    assert [asset.price for asset in result.corrected_assets] == [200_000, 500_000]
    assert not any(asset.needs_review for asset in result.corrected_assets)


def test_correction_is_idempotent() -> None:
    first = validate_parsed_holdings([ParsedAsset(ticker="AAPL", name="Apple", amount=4, price=12_000_000)], 12_000_000)
    second = validate_parsed_holdings(first.corrected_assets, 12_000_000)
    assert second.is_valid
    assert second.corrected_assets == first.corrected_assets


def test_suspicious_price_uses_reported_total_value() -> None:
    record = ParsedAsset(ticker="AAPL", name="Apple", amount=5, price=700_000, total_value=1_000_000)
    corrected = correct_price_confusion([record], 6_000_000)[0]
    assert corrected.price == 200_000
    assert corrected.needs_review


def test_single_unit_and_zero_quantity_are_not_corrected() -> None:
    records = [
        ParsedAsset(ticker="BTC", name="Bitcoin", amount=1, price=90_000_000),
        ParsedAsset(ticker="ETH", name="Ethereum", amount=0, price=5_000_000),
    ]
    corrected = correct_price_confusion(records, 50_000_000)
    assert [asset.price for asset in corrected] == [90_000_000, 5_000_000]


def test_non_positive_trusted_total_fails_validation() -> None:
    records = [ParsedAsset(ticker="AAPL", name="Apple", amount=10, price=50_000_000)]
    assert correct_price_confusion(records, 0)[0].price == 50_000_000

    result = validate_parsed_holdings(records, 0)
    assert not result.is_valid
    assert result.error_message
    assert result.corrected_assets[0].price == 50_000_000


def test_large_mismatch_is_reported() -> None:
    result = validate_parsed_holdings([ParsedAsset(ticker="AAPL", name="Apple", amount=1, price=100)], 1_000)
    assert not result.is_valid
    assert result.error_ratio == pytest.approx(0.9)
    assert "review" in result.error_message


def test_tolerance_is_configurable() -> None:
    records = [ParsedAsset(ticker="AAPL", name="Apple", amount=1, price=1_080)]
    assert not validate_parsed_holdings(records, 1_000).is_valid
    assert validate_parsed_holdings(records, 1_000, tolerance=0.1).is_valid
    assert HoldingsValidator(HoldingsRules(tolerance=0.1)).validate(records, 1_000).is_valid


def test_normalize_parsed_records() -> None:
    records = normalize_parsed_records(
        [
            {"ticker": "AAPL", "name": "Apple", "amount": "12.5", "price": "1,234.5"},
            {"name": "Mystery fund", "amount": "n/a", "price": 100},
            {"ticker": "TSLA", "name": "Tesla", "amount": 4, "price": 0, "total_value": 2_000_000},
            {"ticker": "NVDA", "name": "NVIDIA", "amount": 2, "price": 250_000_000},
        ]
    )
    assert records[0].amount == 12.5
    assert records[0].price == 1234.5
    assert not records[0].needs_review

    assert records[1].ticker == "UNKNOWN_Mystery fund"
    assert records[1].amount == 0
    assert records[1].needs_review

    assert records[2].price == 500_000
    assert not records[2].needs_review

    assert records[3].needs_review


def test_revalidating_a_failing_batch_keeps_corrected_prices() -> None:
    records = [
        ParsedAsset(ticker="AAPL", name="Apple", amount=10, price=50_000_000),
        ParsedAsset(ticker="BTC", name="Bitcoin", amount=1, price=30_000_000),
    ]
    first = validate_parsed_holdings(records, 50_000_000)
    assert not first.is_valid
    assert first.corrected_assets[0].price == 5_000_000
    assert first.corrected_assets[0].price_corrected

    second = validate_parsed_holdings(first.corrected_assets, 50_000_000)
    third = validate_parsed_holdings(second.corrected_assets, 50_000_000)
    assert [asset.price for asset in third.corrected_assets] == [5_000_000, 30_000_000]
    assert third.corrected_assets == first.corrected_assets
