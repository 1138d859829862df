"""Six-factor portfolio health score.

Factors are pure functions of the liquid holdings (net of debt):
allocation drift, concentration (HHI), category correlation, volatility
exposure, downside risk and tax efficiency. Illiquid holdings are reported
separately and can only add a small diversification bonus.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

import numpy as np
import pandas as pd

from portfolio_engine.config.settings import DEFAULT_STOP_LOSS_THRESHOLD_PCT, EngineSettings
from portfolio_engine.portfolio.classification import AssetClassifier
from portfolio_engine.portfolio.correlation import CorrelationModel
from portfolio_engine.portfolio.holdings import build_holdings_frame, category_weights, symbol_weights
from portfolio_engine.portfolio.models import (
    Asset,
    AssetCategory,
    FactorResult,
    HealthGrade,
    HealthScoreResult,
    RealEstateBonus,
    RealEstateSummary,
    normalize_target,
)

LOGGER = logging.getLogger(__name__)

GRADE_S_MIN = 90
GRADE_A_MIN = 75
GRADE_B_MIN = 60
GRADE_C_MIN = 40
GRADE_THRESHOLDS: tuple[tuple[HealthGrade, int], ...] = (
    ("S", GRADE_S_MIN),
    ("A", GRADE_A_MIN),
    ("B", GRADE_B_MIN),
    ("C", GRADE_C_MIN),
)
GRADE_CONFIG: Mapping[str, tuple[str, str]] = MappingProxyType(
    {
        "S": ("#4CAF50", "Optimal"),
        "A": ("#66BB6A", "Healthy"),
        "B": ("#FFB74D", "Fair"),
        "C": ("#FF8A65", "Caution"),
        "D": ("#CF6679", "Needs work"),
    }
)

DEFAULT_TARGET: Mapping[AssetCategory, float] = MappingProxyType(
    {
        AssetCategory.LARGE_CAP: 50.0,
        AssetCategory.BOND: 20.0,
        AssetCategory.BITCOIN: 10.0,
        AssetCategory.ALTCOIN: 5.0,
        AssetCategory.REALESTATE: 10.0,
        AssetCategory.CASH: 5.0,
        AssetCategory.GOLD: 0.0,
        AssetCategory.COMMODITY: 0.0,
    }
)

# Annualized volatility per category, percent.
VOLATILITY_MAP: Mapping[AssetCategory, float] = MappingProxyType(
    {
        AssetCategory.CASH: 1.0,
        AssetCategory.BOND: 6.0,
        AssetCategory.LARGE_CAP: 18.0,
        AssetCategory.REALESTATE: 15.0,
        AssetCategory.BITCOIN: 70.0,
        AssetCategory.ALTCOIN: 100.0,
        AssetCategory.GOLD: 15.0,
        AssetCategory.COMMODITY: 20.0,
    }
)

DEFAULT_FACTOR_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "drift": 0.25,
        "concentration": 0.20,
        "correlation": 0.15,
        "volatility": 0.15,
        "downside": 0.15,
        "tax": 0.10,
    }
)

DRIFT_PENALTY_PER_POINT = 4.0
CORRELATION_FLOOR = -0.3
CORRELATION_SPAN = 1.1
VOLATILITY_BENCHMARK_PCT = 18.0
VOLATILITY_PENALTY_PER_POINT = 1.5
DOWNSIDE_PENALTY_PER_POINT = 3.0
STOP_LOSS_ZONE_PCT = 5.0
STOP_LOSS_ZONE_PENALTY = 50.0
GAIN_CONCENTRATION_WEIGHT = 0.20
GAIN_PENALTY_PER_POINT = 2.0
HARVEST_MIN_LOSS_PCT = 5.0
HARVEST_CREDIT_PER_POINT = 2.0
HARVEST_CREDIT_CAP = 20.0

RE_SHARE_SWEET_MIN = 10.0
RE_SHARE_SWEET_MAX = 50.0
RE_SHARE_MAX = 70.0
RE_LTV_LOW = 40.0
RE_LTV_MODERATE = 60.0
RE_LTV_EXCESSIVE = 80.0
RE_BONUS_CAP = 10.0


@dataclass(frozen=True)
class HealthScoreConfig:
    factor_weights: Mapping[str, float] = field(default_factory=lambda: DEFAULT_FACTOR_WEIGHTS)
    default_target: Mapping[AssetCategory, float] = field(default_factory=lambda: DEFAULT_TARGET)
    volatility: Mapping[AssetCategory, float] = field(default_factory=lambda: VOLATILITY_MAP)
    stop_loss_threshold_pct: float = DEFAULT_STOP_LOSS_THRESHOLD_PCT

    def __post_init__(self) -> None:
        missing = set(DEFAULT_FACTOR_WEIGHTS) - set(self.factor_weights)
        if missing:
            raise ValueError(f"Missing factor weights: {sorted(missing)}")
        total = sum(self.factor_weights.values())
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Factor weights must sum to 1.0, received {total:.4f}.")

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> HealthScoreConfig:
        return cls(stop_loss_threshold_pct=settings.stop_loss_threshold_pct)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def grade_for(score: int) -> HealthGrade:
    for grade, minimum in GRADE_THRESHOLDS:
        if score >= minimum:
            return grade
    return "D"


def real_estate_diversification_bonus(real_estate_assets: Iterable[Asset], total_net_assets: float) -> RealEstateBonus:
    holdings = list(real_estate_assets)
    if not holdings or total_net_assets <= 0:
        return RealEstateBonus(bonus=0.0, reason="No real estate holdings")

    gross = sum(asset.market_value for asset in holdings)
    debt = sum(asset.debt for asset in holdings)
    net = sum(asset.net_value for asset in holdings)
    share = net / total_net_assets * 100.0
    ltv = debt / gross * 100.0 if gross > 0 else 0.0

    if ltv > RE_LTV_EXCESSIVE:
        return RealEstateBonus(bonus=0.0, reason=f"Loan-to-value {ltv:.0f}% is too high for a bonus")
    if RE_SHARE_SWEET_MIN <= share <= RE_SHARE_SWEET_MAX:
        bonus = 6.0
    elif 0 < share <= RE_SHARE_MAX:
        bonus = 3.0
    else:
        bonus = 0.0
    if bonus > 0:
        if ltv <= RE_LTV_LOW:
            bonus += 4.0
        elif ltv <= RE_LTV_MODERATE:
            bonus += 2.0
    bonus = min(RE_BONUS_CAP, bonus)

    if bonus == 0:
        reason = f"Real estate is {share:.0f}% of net assets, outside the diversifying range"
    else:
        reason = f"Real estate at {share:.0f}% of net assets with {ltv:.0f}% loan-to-value"
    return RealEstateBonus(bonus=bonus, reason=reason)


def _real_estate_summary(frame: pd.DataFrame, total_net_assets: float) -> RealEstateSummary | None:
    illiquid = frame[~frame["Liquid"]]
    if illiquid.empty:
        return None
    gross = float(illiquid["Market_Value"].sum())
    debt = float(illiquid["Debt"].sum())
    net = gross - debt
    ratio = net / total_net_assets * 100.0 if total_net_assets > 0 else 0.0
    message = (
        "Real estate is the stable base of your portfolio"
        if ratio >= 50
        else "Real estate is anchoring your long-term assets"
    )
    return RealEstateSummary(total_value=gross, total_debt=debt, net_value=net, ratio_of_total=ratio, message=message)


class HealthScoreEngine:
    def __init__(
        self,
        classifier: AssetClassifier | None = None,
        correlation: CorrelationModel | None = None,
        config: HealthScoreConfig | None = None,
    ) -> None:
        self._classifier = classifier or AssetClassifier()
        self._correlation = correlation or CorrelationModel()
        self._config = config or HealthScoreConfig()

    def _factor(self, key: str, label: str, icon: str, penalty: float, comment: str) -> FactorResult:
        penalty = _clamp(penalty)
        return FactorResult(
            label=label,
            icon=icon,
            score=int(round(100 - penalty)),
            weight=self._config.factor_weights[key],
            raw_penalty=penalty,
            comment=comment,
        )

    def _drift_factor(self, weights: Mapping[AssetCategory, float], target: Mapping[AssetCategory, float]) -> FactorResult:
        liquid_target = {cat: float(value) for cat, value in target.items() if cat != AssetCategory.REALESTATE}
        target_sum = sum(liquid_target.values())
        if target_sum > 0:
            liquid_target = {cat: value / target_sum * 100.0 for cat, value in liquid_target.items()}
        categories = set(liquid_target) | {cat for cat, weight in weights.items() if weight > 0}
        drift = sum(abs(weights.get(cat, 0.0) * 100.0 - liquid_target.get(cat, 0.0)) for cat in categories) / 2
        comment = "On track with your target allocation" if drift < 3 else f"{drift:.1f}% away from your target"
        return self._factor("drift", "Allocation drift", "🎯", drift * DRIFT_PENALTY_PER_POINT, comment)

    def _concentration_factor(self, weights: pd.Series) -> FactorResult:
        n = len(weights)
        values = weights.to_numpy(dtype=float)
        hhi = float(np.sum(np.square(values)))
        if n <= 1:
            penalty = 100.0
        else:
            min_hhi = 1.0 / n
            penalty = (hhi - min_hhi) / (1.0 - min_hhi) * 100.0
        top_symbol = str(weights.idxmax()) if n else ""
        top_pct = float(weights.max()) * 100.0 if n else 0.0
        comment = "Holdings are well spread out" if penalty < 20 else f"{top_symbol} makes up {top_pct:.0f}% of the portfolio"
        return self._factor("concentration", "Concentration", "⚖️", penalty, comment)

    def _correlation_factor(self, weights: Mapping[AssetCategory, float]) -> FactorResult:
        held = [cat for cat, weight in weights.items() if weight > 0]
        # A single category moves entirely with itself.
        avg = 1.0 if len(held) == 1 else self._correlation.average_pairwise_correlation(held)
        penalty = (avg - CORRELATION_FLOOR) / CORRELATION_SPAN * 100.0
        if len(held) <= 1:
            comment = "Only one kind of asset is held"
        elif avg > 0.4:
            comment = "Many holdings move together"
        elif avg < 0.1:
            comment = "Holdings offset each other well"
        else:
            comment = "Correlation is at a reasonable level"
        return self._factor("correlation", "Correlation", "🔗", penalty, comment)

    def _volatility_factor(self, weights: Mapping[AssetCategory, float]) -> FactorResult:
        weighted_vol = sum(self._config.volatility.get(cat, 0.0) * weight for cat, weight in weights.items())
        excess = max(0.0, weighted_vol - VOLATILITY_BENCHMARK_PCT)
        if weighted_vol < 15:
            comment = "Low volatility, steady mix"
        elif weighted_vol <= 25:
            comment = f"Volatility {weighted_vol:.0f}% is within a normal range"
        else:
            comment = f"Volatility {weighted_vol:.0f}% is on the high side"
        return self._factor("volatility", "Volatility", "📈", excess * VOLATILITY_PENALTY_PER_POINT, comment)

    def _downside_factor(self, liquid: pd.DataFrame, total: float) -> FactorResult:
        losing = liquid[liquid["Loss_Percent"] > 0]
        weighted_loss = float((losing["Loss_Percent"] * losing["Net_Value"]).sum()) / total
        zone_floor = self._config.stop_loss_threshold_pct - STOP_LOSS_ZONE_PCT
        near_stop = liquid[(liquid["Loss_Percent"] > 0) & (liquid["Loss_Percent"] >= zone_floor)]
        near_share = float(near_stop["Net_Value"].sum()) / total
        penalty = weighted_loss * DOWNSIDE_PENALTY_PER_POINT + near_share * STOP_LOSS_ZONE_PENALTY
        if losing.empty:
            comment = "Every holding is in profit"
        elif not near_stop.empty:
            comment = f"{len(near_stop)} holding(s) near the {self._config.stop_loss_threshold_pct:.0f}% stop-loss line"
        else:
            comment = f"{len(losing)} holding(s) are at a loss"
        return self._factor("downside", "Downside risk", "🛡️", penalty, comment)

    def _tax_factor(self, liquid: pd.DataFrame, total: float) -> FactorResult:
        weights = liquid["Net_Value"] / total
        concentrated = liquid[(weights > GAIN_CONCENTRATION_WEIGHT) & (liquid["PnL"] > 0)]
        gain_pct = float(concentrated["PnL"].sum()) / total * 100.0
        harvestable = liquid[liquid["Loss_Percent"] >= HARVEST_MIN_LOSS_PCT]
        harvest_pct = float(-harvestable["PnL"].sum()) / total * 100.0
        credit = min(HARVEST_CREDIT_CAP, harvest_pct * HARVEST_CREDIT_PER_POINT)
        penalty = gain_pct * GAIN_PENALTY_PER_POINT - credit
        if not concentrated.empty:
            comment = f"Large embedded gains in {len(concentrated)} position(s) would be taxed on rebalance"
        elif not harvestable.empty:
            comment = f"{len(harvestable)} holding(s) offer tax-loss harvesting"
        else:
            comment = "No significant tax drag"
        return self._factor("tax", "Tax efficiency", "💰", penalty, comment)

    def _empty_result(self, real_estate_summary: RealEstateSummary | None = None) -> HealthScoreResult:
        comment = "Add assets to see this factor"
        factors = [
            FactorResult(label, icon, 0, self._config.factor_weights[key], 0.0, comment)
            for key, label, icon in (
                ("drift", "Allocation drift", "🎯"),
                ("concentration", "Concentration", "⚖️"),
                ("correlation", "Correlation", "🔗"),
                ("volatility", "Volatility", "📈"),
                ("downside", "Downside risk", "🛡️"),
                ("tax", "Tax efficiency", "💰"),
            )
        ]
        color, label = GRADE_CONFIG["D"]
        return HealthScoreResult(
            total_score=0,
            grade="D",
            grade_color=color,
            grade_label=label,
            summary="Add liquid assets to see your portfolio health",
            factors=factors,
            real_estate_summary=real_estate_summary,
        )

    def score(
        self,
        assets: Iterable[Asset],
        total_value: float,
        target: Mapping[AssetCategory, float] | None = None,
    ) -> HealthScoreResult:
        holdings = list(assets)
        if not math.isfinite(total_value) or total_value <= 0 or not holdings:
            return self._empty_result()

        frame = build_holdings_frame(holdings, self._classifier)
        total_net_assets = float(frame["Net_Value"].sum())
        re_summary = _real_estate_summary(frame, total_net_assets)
        liquid = frame[frame["Liquid"]]
        liquid_total = float(liquid["Net_Value"].sum())
        if liquid_total <= 0:
            return self._empty_result(re_summary)

        weights = category_weights(liquid, liquid_total)
        factors = [
            self._drift_factor(weights, normalize_target(target if target is not None else self._config.default_target)),
            self._concentration_factor(symbol_weights(liquid, liquid_total)),
            self._correlation_factor(weights),
            self._volatility_factor(weights),
            self._downside_factor(liquid, liquid_total),
            self._tax_factor(liquid, liquid_total),
        ]
        total_penalty = sum(factor.weighted_penalty for factor in factors)
        base_score = int(_clamp(round(100 - total_penalty)))

        bonus = None
        total_score = base_score
        real_estate = [asset for asset in holdings if not asset.is_liquid]
        if real_estate:
            bonus = real_estate_diversification_bonus(real_estate, total_net_assets)
            total_score = int(min(100, base_score + round(bonus.bonus)))

        grade = grade_for(total_score)
        color, label = GRADE_CONFIG[grade]
        worst = max(factors, key=lambda factor: factor.raw_penalty)
        if total_score >= GRADE_S_MIN:
            summary = "Your portfolio is in excellent shape"
        elif total_score >= GRADE_A_MIN:
            summary = f"Mostly healthy. Improve {worst.label.lower()} to reach the top grade"
        elif total_score >= GRADE_B_MIN:
            summary = f"{worst.label} needs attention: {worst.comment}"
        else:
            summary = f"Your portfolio needs a check-up: {worst.comment}"

        LOGGER.debug(
            "health score: holdings=%s liquid_total=%.2f base=%s bonus=%s total=%s grade=%s",
            len(holdings),
            liquid_total,
            base_score,
            bonus.bonus if bonus else 0,
            total_score,
            grade,
        )
        return HealthScoreResult(
            total_score=total_score,
            grade=grade,
            grade_color=color,
            grade_label=label,
            summary=summary,
            factors=factors,
            real_estate_summary=re_summary,
            real_estate_bonus=bonus,
        )


def score(
    assets: Iterable[Asset],
    total_value: float,
    target: Mapping[AssetCategory, float] | None = None,
) -> HealthScoreResult:
    return HealthScoreEngine().score(assets, total_value, target)
