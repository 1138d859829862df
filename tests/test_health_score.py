import math

import pytest

from portfolio_engine.config.settings import EngineSettings
from portfolio_engine.portfolio.health_score import (
    HealthScoreConfig,
    HealthScoreEngine,
    grade_for,
    real_estate_diversification_bonus,
    score,
)
from portfolio_engine.portfolio.models import Asset, AssetType


def _stock(asset_id: str, value: float, ticker: str | None = None, **kwargs) -> Asset:
    return Asset(id=asset_id, name=asset_id, current_value=value, ticker=ticker or asset_id, **kwargs)


def _apartment(value: float, debt: float) -> Asset:
    return Asset(id="home", name="Apartment", current_value=value, asset_type=AssetType.ILLIQUID, debt_amount=debt)


def test_grade_thresholds() -> None:
    assert grade_for(100) == "S"
    assert grade_for(90) == "S"
    assert grade_for(89) == "A"
    assert grade_for(75) == "A"
    assert grade_for(60) == "B"
    assert grade_for(40) == "C"
    assert grade_for(39) == "D"


def test_zero_total_returns_neutral_result() -> None:
    result = score([_stock("AAPL", 1000.0)], 0)
    assert result.total_score == 0
    assert result.grade == "D"
    assert len(result.factors) == 6
    assert math.isclose(sum(factor.weight for factor in result.factors), 1.0)

    assert score([], 1000.0).total_score == 0
    assert score([_stock("AAPL", 1000.0)], float("nan")).grade == "D"


def test_single_large_cap_holding() -> None:
    result = score([_stock("AAPL", 1000.0)], 1000.0)
    factors = {factor.label: factor for factor in result.factors}
    assert factors["Allocation drift"].score == 0
    assert factors["Concentration"].score == 0
    assert factors["Correlation"].score == 0
    assert factors["Volatility"].score == 100
    assert factors["Downside risk"].score == 100
    assert factors["Tax efficiency"].score == 100
    assert result.total_score == 40
    assert result.grade == "C"
    assert result.real_estate_bonus is None


def test_target_accepts_string_keys() -> None:
    result = score([_stock("AAPL", 1000.0)], 1000.0, {"large_cap": 100.0})
    assert result.total_score == 65
    assert result.grade == "B"


def test_downside_penalizes_losses_near_stop_loss() -> None:
    losing = _stock("AAPL", 800.0, quantity=10, avg_price=100.0, current_price=80.0)
    result = score([losing], 800.0)
    downside = next(factor for factor in result.factors if factor.label == "Downside risk")
    assert downside.score == 0
    assert "stop-loss" in downside.comment


def test_tax_factor_rewards_harvestable_losses() -> None:
    loser = _stock("AAPL", 450.0, quantity=10, avg_price=50.0, current_price=45.0)
    winner = _stock("MSFT", 550.0, quantity=10, avg_price=55.0, current_price=55.0)
    result = score([loser, winner], 1000.0)
    tax = next(factor for factor in result.factors if factor.label == "Tax efficiency")
    assert tax.score == 100
    assert "harvesting" in tax.comment


def test_diversified_portfolio_scores_within_bounds() -> None:
    assets = [
        _stock("AAPL", 2500.0),
        _stock("MSFT", 2500.0),
        _stock("TLT", 2000.0),
        _stock("BTC", 1000.0),
        _stock("ETH", 500.0),
        Asset(id="cash", name="Savings account", current_value=500.0),
    ]
    result = score(assets, 9000.0)
    assert 0 <= result.total_score <= 100
    assert result.grade == grade_for(result.total_score)
    assert result.total_score > 40
    assert all(0 <= factor.score <= 100 for factor in result.factors)


def test_real_estate_bonus_rules() -> None:
    bonus = real_estate_diversification_bonus([_apartment(300.0, 90.0)], 1000.0)
    assert bonus.bonus == 10.0

    moderate = real_estate_diversification_bonus([_apartment(400.0, 200.0)], 1000.0)
    assert moderate.bonus == 8.0

    leveraged = real_estate_diversification_bonus([_apartment(500.0, 450.0)], 1000.0)
    assert leveraged.bonus == 0.0

    assert real_estate_diversification_bonus([], 1000.0).bonus == 0.0
    assert real_estate_diversification_bonus([_apartment(300.0, 0.0)], 0.0).bonus == 0.0


def test_real_estate_bonus_is_added_to_liquid_score() -> None:
    result = score([_stock("AAPL", 1000.0), _apartment(300.0, 90.0)], 1300.0)
    assert result.real_estate_bonus is not None
    assert result.real_estate_bonus.bonus == 10.0
    assert result.total_score == 50
    assert result.real_estate_summary is not None
    assert result.real_estate_summary.net_value == 210.0


def test_only_illiquid_holdings_return_neutral_result_with_summary() -> None:
    result = score([_apartment(500.0, 100.0)], 500.0)
    assert result.total_score == 0
    assert result.real_estate_summary is not None
    assert result.real_estate_summary.ratio_of_total == pytest.approx(100.0)


def test_factor_weights_must_sum_to_one() -> None:
    with pytest.raises(ValueError, match="sum to 1.0"):
        HealthScoreConfig(
            factor_weights={
                "drift": 0.5,
                "concentration": 0.2,
                "correlation": 0.15,
                "volatility": 0.15,
                "downside": 0.15,
                "tax": 0.1,
            }
        )


def test_custom_config_changes_the_score() -> None:
    config = HealthScoreConfig(
        factor_weights={
            "drift": 0.0,
            "concentration": 0.0,
            "correlation": 0.0,
            "volatility": 0.5,
            "downside": 0.25,
            "tax": 0.25,
        }
    )
    result = HealthScoreEngine(config=config).score([_stock("AAPL", 1000.0)], 1000.0)
    assert result.total_score == 100
    assert result.grade == "S"


def test_stop_loss_threshold_comes_from_settings() -> None:
    config = HealthScoreConfig.from_settings(EngineSettings(stop_loss_threshold_pct=50.0))
    losing = _stock("AAPL", 800.0, quantity=10, avg_price=100.0, current_price=80.0)
    result = HealthScoreEngine(config=config).score([losing], 800.0)
    downside = next(factor for factor in result.factors if factor.label == "Downside risk")
    assert downside.score == 40
    assert downside.comment == "1 holding(s) are at a loss"


def test_worthless_holding_does_not_add_concentration() -> None:
    assets = [_stock("AAPL", 500.0), _stock("MSFT", 500.0), _stock("DELISTED", 0.0)]
    result = score(assets, 1000.0)
    concentration = next(factor for factor in result.factors if factor.label == "Concentration")
    assert concentration.score == 100
