"""Typed portfolio models."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Literal, Mapping

from portfolio_engine.tax.impact import TaxImpact

LOGGER = logging.getLogger(__name__)

Action = Literal["BUY", "SELL", "HOLD"]
HealthGrade = Literal["S", "A", "B", "C", "D"]


class AssetType(str, Enum):
    LIQUID = "liquid"
    ILLIQUID = "illiquid"


class AssetCategory(str, Enum):
    CASH = "cash"
    BOND = "bond"
    LARGE_CAP = "large_cap"
    REALESTATE = "realestate"
    BITCOIN = "bitcoin"
    ALTCOIN = "altcoin"
    GOLD = "gold"
    COMMODITY = "commodity"


# Display order used by drift rows and matrix views.
CATEGORY_ORDER: tuple[AssetCategory, ...] = (
    AssetCategory.LARGE_CAP,
    AssetCategory.BOND,
    AssetCategory.BITCOIN,
    AssetCategory.ALTCOIN,
    AssetCategory.REALESTATE,
    AssetCategory.GOLD,
    AssetCategory.COMMODITY,
    AssetCategory.CASH,
)


def _finite(value: float | None) -> float:
    if value is None:
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


@dataclass(frozen=True)
class Asset:
    """A single holding as supplied by the caller. Never mutated here."""

    id: str
    name: str
    current_value: float
    target_allocation: float = 0.0
    asset_type: AssetType = AssetType.LIQUID
    ticker: str | None = None
    quantity: float | None = None
    avg_price: float | None = None
    current_price: float | None = None
    cost_basis: float | None = None
    purchase_date: datetime | None = None
    debt_amount: float | None = None
    custom_tax_rate: float | None = None
    category: AssetCategory | None = None

    @property
    def is_liquid(self) -> bool:
        return self.asset_type != AssetType.ILLIQUID

    @property
    def market_value(self) -> float:
        quantity = _finite(self.quantity)
        price = _finite(self.current_price)
        if quantity > 0 and price > 0:
            return quantity * price
        return _finite(self.current_value)

    @property
    def debt(self) -> float:
        return max(0.0, _finite(self.debt_amount))

    @property
    def net_value(self) -> float:
        return max(0.0, self.market_value - self.debt)

    @property
    def ltv_percent(self) -> float:
        gross = self.market_value
        if gross <= 0 or self.debt <= 0:
            return 0.0
        return self.debt / gross * 100.0

    @property
    def cost(self) -> float:
        """Purchase cost: quantity*avg_price, then cost_basis, then current value."""
        quantity = _finite(self.quantity)
        avg_price = _finite(self.avg_price)
        if quantity > 0 and avg_price > 0:
            return quantity * avg_price
        basis = _finite(self.cost_basis)
        if basis > 0:
            return basis
        return _finite(self.current_value)

    @property
    def unrealized_pnl(self) -> float:
        return self.market_value - self.cost

    @property
    def unrealized_loss_percent(self) -> float:
        cost = self.cost
        value = self.market_value
        if cost <= 0 or value >= cost:
            return 0.0
        return (cost - value) / cost * 100.0


@dataclass
class FactorResult:
    label: str
    icon: str
    score: int
    weight: float
    raw_penalty: float
    comment: str

    @property
    def weighted_penalty(self) -> float:
        return self.raw_penalty * self.weight


@dataclass
class RealEstateSummary:
    total_value: float
    total_debt: float
    net_value: float
    ratio_of_total: float
    message: str


@dataclass
class RealEstateBonus:
    bonus: float
    reason: str


@dataclass
class HealthScoreResult:
    total_score: int
    grade: HealthGrade
    grade_color: str
    grade_label: str
    summary: str
    factors: list[FactorResult]
    real_estate_summary: RealEstateSummary | None = None
    real_estate_bonus: RealEstateBonus | None = None


@dataclass
class DriftItem:
    category: AssetCategory
    current_value: float
    target_value: float
    current_pct: float
    target_pct: float
    drift_pct: float
    action: Action
    amount: float


@dataclass
class RebalanceAction:
    asset_id: str
    asset_name: str
    action: Action
    current_value: float
    target_value: float
    amount: float
    percentage: float
    tax_impact: TaxImpact | None = None


@dataclass
class PortfolioSummary:
    total_value: float = 0.0
    total_allocation_percentage: float = 0.0
    actions: list[RebalanceAction] = field(default_factory=list)
    is_balanced: bool = True
    total_liquid_value: float = 0.0
    total_illiquid_value: float = 0.0
    total_tax_impact: float = 0.0
    total_trade_fees: float = 0.0
    total_net_benefit: float = 0.0


def normalize_target(target: Mapping[AssetCategory | str, float]) -> dict[AssetCategory, float]:
    """Key a caller-supplied target allocation by category, skipping unknown keys."""
    normalized: dict[AssetCategory, float] = {}
    for key, value in target.items():
        try:
            category = AssetCategory(key)
        except ValueError:
            LOGGER.warning("unknown category in target allocation ignored: key=%s", key)
            continue
        normalized[category] = normalized.get(category, 0.0) + _finite(value)
    return normalized
