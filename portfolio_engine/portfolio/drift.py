"""Category drift against a target allocation."""

from __future__ import annotations

import logging
import math
from typing import Iterable, Mapping

from portfolio_engine.config.settings import DEFAULT_DRIFT_TOLERANCE_PCT, EngineSettings
from portfolio_engine.portfolio.classification import AssetClassifier
from portfolio_engine.portfolio.holdings import build_holdings_frame, category_totals
from portfolio_engine.portfolio.models import CATEGORY_ORDER, Action, Asset, AssetCategory, DriftItem, normalize_target

LOGGER = logging.getLogger(__name__)

BALANCED_MAX_DRIFT = 5.0
SLIGHT_MAX_DRIFT = 15.0


def total_drift(items: Iterable[DriftItem]) -> float:
    return sum(abs(item.drift_pct) for item in items) / 2


def drift_status(total: float) -> str:
    if total <= BALANCED_MAX_DRIFT:
        return "balanced"
    if total <= SLIGHT_MAX_DRIFT:
        return "slightly off target"
    return "rebalance needed"


class DriftCalculator:
    def __init__(
        self,
        classifier: AssetClassifier | None = None,
        tolerance_pct: float = DEFAULT_DRIFT_TOLERANCE_PCT,
    ) -> None:
        self._classifier = classifier or AssetClassifier()
        self._tolerance_pct = tolerance_pct

    @classmethod
    def from_settings(cls, settings: EngineSettings, classifier: AssetClassifier | None = None) -> DriftCalculator:
        return cls(classifier=classifier, tolerance_pct=settings.drift_tolerance_pct)

    def drift(
        self,
        assets: Iterable[Asset],
        total_value: float,
        target: Mapping[AssetCategory, float],
    ) -> list[DriftItem]:
        if not math.isfinite(total_value) or total_value <= 0:
            return []

        frame = build_holdings_frame(assets, self._classifier)
        current = category_totals(frame, "Current_Value")
        targets = normalize_target(target)
        items: list[DriftItem] = []
        for category in CATEGORY_ORDER:
            current_value = current.get(category, 0.0)
            current_pct = current_value / total_value * 100.0
            target_pct = targets.get(category, 0.0)
            target_value = target_pct / 100.0 * total_value
            drift_pct = current_pct - target_pct
            action: Action
            if abs(drift_pct) <= self._tolerance_pct:
                action = "HOLD"
            elif drift_pct < 0:
                action = "BUY"
            else:
                action = "SELL"
            items.append(
                DriftItem(
                    category=category,
                    current_value=current_value,
                    target_value=round(target_value, 2),
                    current_pct=current_pct,
                    target_pct=target_pct,
                    drift_pct=drift_pct,
                    action=action,
                    amount=round(abs(target_value - current_value), 2),
                )
            )
        LOGGER.debug("drift computed: total_value=%.2f total_drift=%.2f", total_value, total_drift(items))
        return items


def drift(
    assets: Iterable[Asset],
    total_value: float,
    target: Mapping[AssetCategory, float],
) -> list[DriftItem]:
    return DriftCalculator().drift(assets, total_value, target)
