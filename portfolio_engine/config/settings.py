"""Environment-driven engine settings."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_DRIFT_TOLERANCE_PCT = 0.5
DEFAULT_AI_TOTAL_BAND = 0.5
DEFAULT_HOLDINGS_TOLERANCE = 0.05
DEFAULT_MAX_ADVICE_ITEMS = 10
DEFAULT_MAX_REASONABLE_PRICE = 100_000_000.0
DEFAULT_STOP_LOSS_THRESHOLD_PCT = 20.0
DEFAULT_COUNTRY = "US"


@dataclass(frozen=True)
class EngineSettings:
    """Tunable thresholds shared by the scoring and validation components."""

    drift_tolerance_pct: float = DEFAULT_DRIFT_TOLERANCE_PCT
    ai_total_band: float = DEFAULT_AI_TOTAL_BAND
    holdings_tolerance: float = DEFAULT_HOLDINGS_TOLERANCE
    max_advice_items: int = DEFAULT_MAX_ADVICE_ITEMS
    max_reasonable_price: float = DEFAULT_MAX_REASONABLE_PRICE
    stop_loss_threshold_pct: float = DEFAULT_STOP_LOSS_THRESHOLD_PCT
    default_country: str = DEFAULT_COUNTRY


def _as_int(value: str | None, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _as_float(value: str | None, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except ValueError:
        return default


def get_settings() -> EngineSettings:
    """Load engine settings from environment variables."""
    load_dotenv()

    return EngineSettings(
        drift_tolerance_pct=_as_float(os.getenv("PORTFOLIO_DRIFT_TOLERANCE_PCT"), DEFAULT_DRIFT_TOLERANCE_PCT),
        ai_total_band=_as_float(os.getenv("PORTFOLIO_AI_TOTAL_BAND"), DEFAULT_AI_TOTAL_BAND),
        holdings_tolerance=_as_float(os.getenv("PORTFOLIO_HOLDINGS_TOLERANCE"), DEFAULT_HOLDINGS_TOLERANCE),
        max_advice_items=_as_int(os.getenv("PORTFOLIO_MAX_ADVICE_ITEMS"), DEFAULT_MAX_ADVICE_ITEMS),
        max_reasonable_price=_as_float(os.getenv("PORTFOLIO_MAX_REASONABLE_PRICE"), DEFAULT_MAX_REASONABLE_PRICE),
        stop_loss_threshold_pct=_as_float(
            os.getenv("PORTFOLIO_STOP_LOSS_THRESHOLD_PCT"),
            DEFAULT_STOP_LOSS_THRESHOLD_PCT,
        ),
        default_country=os.getenv("PORTFOLIO_DEFAULT_COUNTRY", DEFAULT_COUNTRY).strip().upper() or DEFAULT_COUNTRY,
    )
