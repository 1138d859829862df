"""Per-holding rebalancing actions, with optional after-tax totals."""

from __future__ import annotations

import logging
import math
from typing import Iterable

from portfolio_engine.config.settings import DEFAULT_DRIFT_TOLERANCE_PCT
from portfolio_engine.portfolio.models import Action, Asset, PortfolioSummary, RebalanceAction
from portfolio_engine.tax.impact import TaxImpact, TaxImpactCalculator
from portfolio_engine.tax.profiles import TaxSettings

LOGGER = logging.getLogger(__name__)

ALLOCATION_SUM_TOLERANCE = 0.1


def _safe(value: float | None) -> float:
    if value is None:
        return 0.0
    number = float(value)
    return number if math.isfinite(number) else 0.0


def _round2(value: float) -> float:
    return round(value, 2)


def total_allocation(assets: Iterable[Asset]) -> float:
    return sum(_safe(asset.target_allocation) for asset in assets)


def is_valid_allocation(assets: Iterable[Asset]) -> bool:
    holdings = list(assets)
    if not holdings:
        return True
    return abs(total_allocation(holdings) - 100.0) < ALLOCATION_SUM_TOLERANCE


def calculate_rebalancing(
    assets: Iterable[Asset],
    tolerance_pct: float = DEFAULT_DRIFT_TOLERANCE_PCT,
) -> PortfolioSummary:
    holdings = list(assets)
    if not holdings:
        return PortfolioSummary()

    total_value = sum(_safe(asset.current_value) for asset in holdings)
    if total_value <= 0:
        return PortfolioSummary(is_balanced=False)

    actions: list[RebalanceAction] = []
    for asset in holdings:
        current_value = _safe(asset.current_value)
        target_alloc = _safe(asset.target_allocation)
        current_pct = current_value / total_value * 100.0
        target_value = target_alloc / 100.0 * total_value
        difference = target_value - current_value
        pct_difference = target_alloc - current_pct

        action: Action
        if abs(pct_difference) <= tolerance_pct:
            action = "HOLD"
        elif difference > 0:
            action = "BUY"
        else:
            action = "SELL"
        actions.append(
            RebalanceAction(
                asset_id=asset.id,
                asset_name=asset.name,
                action=action,
                current_value=current_value,
                target_value=_round2(target_value),
                amount=_round2(abs(difference)),
                percentage=_round2(pct_difference),
            )
        )

    liquid_value = sum(_safe(asset.current_value) for asset in holdings if asset.is_liquid)
    illiquid_value = sum(_safe(asset.current_value) for asset in holdings if not asset.is_liquid)
    return PortfolioSummary(
        total_value=_round2(total_value),
        total_allocation_percentage=_round2(total_allocation(holdings)),
        actions=actions,
        is_balanced=all(item.action == "HOLD" for item in actions),
        total_liquid_value=_round2(liquid_value),
        total_illiquid_value=_round2(illiquid_value),
    )


def calculate_after_tax_rebalancing(
    assets: Iterable[Asset],
    tax_settings: TaxSettings,
    tolerance_pct: float = DEFAULT_DRIFT_TOLERANCE_PCT,
    calculator: TaxImpactCalculator | None = None,
) -> PortfolioSummary:
    """Rebalance liquid holdings only; every SELL carries its tax impact."""
    holdings = list(assets)
    calculator = calculator or TaxImpactCalculator()
    liquid = [asset for asset in holdings if asset.is_liquid]
    liquid_value = sum(_safe(asset.current_value) for asset in liquid)
    illiquid_value = sum(_safe(asset.current_value) for asset in holdings if not asset.is_liquid)

    actions: list[RebalanceAction] = []
    total_tax = 0.0
    total_fees = 0.0
    total_benefit = 0.0
    if liquid_value > 0:
        for asset in liquid:
            current_value = _safe(asset.current_value)
            target_value = _safe(asset.target_allocation) / 100.0 * liquid_value
            difference = target_value - current_value
            pct_difference = difference / current_value * 100.0 if current_value > 0 else 100.0

            action: Action = "HOLD"
            amount = 0.0
            impact: TaxImpact | None = None
            if abs(pct_difference) > tolerance_pct:
                amount = _round2(abs(difference))
                if difference > 0:
                    action = "BUY"
                else:
                    action = "SELL"
                    if tax_settings.include_in_calculations and amount > 0:
                        impact = calculator.tax_impact(asset, amount, tax_settings)
                        total_tax += impact.tax_amount
                        total_fees += impact.trade_fee
                        total_benefit += impact.net_benefit
            actions.append(
                RebalanceAction(
                    asset_id=asset.id,
                    asset_name=asset.name,
                    action=action,
                    current_value=current_value,
                    target_value=target_value,
                    amount=amount,
                    percentage=pct_difference,
                    tax_impact=impact,
                )
            )

    LOGGER.debug(
        "after-tax rebalance: liquid=%.2f sells=%s tax=%.2f fees=%.2f",
        liquid_value,
        sum(1 for item in actions if item.action == "SELL"),
        total_tax,
        total_fees,
    )
    return PortfolioSummary(
        total_value=liquid_value + illiquid_value,
        total_allocation_percentage=total_allocation(holdings),
        actions=actions,
        is_balanced=all(item.action == "HOLD" for item in actions),
        total_liquid_value=liquid_value,
        total_illiquid_value=illiquid_value,
        total_tax_impact=total_tax,
        total_trade_fees=total_fees,
        total_net_benefit=total_benefit,
    )
