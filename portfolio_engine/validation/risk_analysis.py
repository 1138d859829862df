"""Sanity checks for AI-produced risk analysis payloads.

The model output is untrusted JSON. Rules:
1. panic_shield_index and every score in SUB_SCORE_KEYS / fomo_alerts are clamped to 0-100
2. panic_shield_level must be SAFE, CAUTION or DANGER; otherwise it is re-derived from the index
3. portfolio_snapshot.total_value must be within the trusted total +/- band; otherwise replaced
4. personalized_advice is truncated to a fixed number of entries

Corrections are applied to a copy and reported as warnings.
"""

from __future__ import annotations

import copy
import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping

from portfolio_engine.config.settings import DEFAULT_AI_TOTAL_BAND, DEFAULT_MAX_ADVICE_ITEMS, EngineSettings
from portfolio_engine.lib.formatters import fmt_amount, fmt_raw
from portfolio_engine.validation.models import ValidationResult

LOGGER = logging.getLogger(__name__)

VALID_LEVELS = ("SAFE", "CAUTION", "DANGER")
SAFE_MIN_INDEX = 70
CAUTION_MIN_INDEX = 40
DEFAULT_SCORE = 50
SUB_SCORE_KEYS = (
    "portfolio_loss",
    "concentration_risk",
    "volatility_exposure",
    "stop_loss_proximity",
    "market_sentiment",
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _in_range(value: Any) -> bool:
    return _is_number(value) and 0 <= value <= 100


def clamp_score(value: Any, low: int = 0, high: int = 100) -> int:
    if not _is_number(value):
        return DEFAULT_SCORE
    return int(max(low, min(high, round(value))))


def level_for_index(index: float) -> str:
    if index >= SAFE_MIN_INDEX:
        return "SAFE"
    if index >= CAUTION_MIN_INDEX:
        return "CAUTION"
    return "DANGER"


@dataclass(frozen=True)
class RiskAnalysisRules:
    total_band: float = DEFAULT_AI_TOTAL_BAND
    max_advice_items: int = DEFAULT_MAX_ADVICE_ITEMS

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> RiskAnalysisRules:
        return cls(total_band=settings.ai_total_band, max_advice_items=settings.max_advice_items)


class RiskAnalysisValidator:
    def __init__(self, rules: RiskAnalysisRules | None = None) -> None:
        self._rules = rules or RiskAnalysisRules()

    def validate(self, result: Mapping[str, Any], trusted_total: float) -> tuple[dict[str, Any], ValidationResult]:
        corrected: dict[str, Any] = copy.deepcopy(dict(result))
        warnings: list[str] = []

        index = result.get("panic_shield_index")
        index_fixed = False
        if not _in_range(index):
            corrected["panic_shield_index"] = clamp_score(index)
            warnings.append(f"panic_shield_index out of range ({fmt_raw(index)}) -> {corrected['panic_shield_index']}")
            index_fixed = True

        level = result.get("panic_shield_level")
        if level not in VALID_LEVELS:
            corrected["panic_shield_level"] = level_for_index(corrected["panic_shield_index"])
            warnings.append(f"panic_shield_level invalid ({fmt_raw(level)}) -> {corrected['panic_shield_level']}")
        elif index_fixed:
            derived = level_for_index(corrected["panic_shield_index"])
            if derived != level:
                corrected["panic_shield_level"] = derived
                warnings.append(f"panic_shield_level {level} re-derived from corrected index -> {derived}")

        alerts = result.get("fomo_alerts")
        if isinstance(alerts, list):
            fixed_alerts = []
            for alert in corrected["fomo_alerts"]:
                if isinstance(alert, dict) and not _in_range(alert.get("overvaluation_score")):
                    raw = alert.get("overvaluation_score")
                    alert = {**alert, "overvaluation_score": clamp_score(raw)}
                    warnings.append(f"fomo_alert {alert.get('ticker')}: overvaluation_score corrected ({fmt_raw(raw)})")
                fixed_alerts.append(alert)
            corrected["fomo_alerts"] = fixed_alerts

        sub_scores = result.get("panic_sub_scores")
        if isinstance(sub_scores, dict):
            fixed_subs = dict(corrected["panic_sub_scores"])
            for key in SUB_SCORE_KEYS:
                if key in fixed_subs and not _in_range(fixed_subs[key]):
                    raw = fixed_subs[key]
                    fixed_subs[key] = clamp_score(raw)
                    warnings.append(f"panic_sub_scores.{key} corrected ({fmt_raw(raw)})")
            corrected["panic_sub_scores"] = fixed_subs

        snapshot = result.get("portfolio_snapshot")
        if isinstance(snapshot, dict) and _is_number(trusted_total) and trusted_total > 0:
            ai_total = snapshot.get("total_value")
            ratio = ai_total / trusted_total if _is_number(ai_total) else None
            if ratio is None or ratio < 1 - self._rules.total_band or ratio > 1 + self._rules.total_band:
                deviation = f"{round((ratio - 1) * 100)}%" if ratio is not None else "unreadable"
                warnings.append(
                    f"AI total value ({fmt_raw(ai_total)}) differs from actual ({fmt_amount(trusted_total)}) "
                    f"by {deviation} -> replaced with actual"
                )
                corrected["portfolio_snapshot"] = {**corrected["portfolio_snapshot"], "total_value": trusted_total}

        advice = result.get("personalized_advice")
        if isinstance(advice, list) and len(advice) > self._rules.max_advice_items:
            corrected["personalized_advice"] = list(advice[: self._rules.max_advice_items])
            warnings.append(f"personalized_advice {len(advice)} items -> limited to {self._rules.max_advice_items}")

        for warning in warnings:
            LOGGER.warning("risk analysis corrected: %s", warning)
        return corrected, ValidationResult(is_valid=not warnings, warnings=warnings, corrected=bool(warnings))


def validate_risk_analysis(result: Mapping[str, Any], trusted_total: float) -> tuple[dict[str, Any], ValidationResult]:
    return RiskAnalysisValidator().validate(result, trusted_total)
