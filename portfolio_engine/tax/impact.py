"""Capital-gains and fee impact of selling part of a holding."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Mapping

from portfolio_engine.tax.profiles import (
    COUNTRY_TAX_PROFILES,
    DEFAULT_TRADE_FEE_PERCENT,
    Country,
    CountryTaxProfile,
    TaxSettings,
    resolve_country,
)

if TYPE_CHECKING:
    from portfolio_engine.portfolio.models import Asset

LOGGER = logging.getLogger(__name__)


class UnknownCountryError(ValueError):
    def __init__(self, country: object) -> None:
        self.country = country
        super().__init__(f"Unknown tax profile for country: {country}")


@dataclass
class TaxImpact:
    capital_gains: float
    tax_amount: float
    effective_tax_rate: float
    trade_fee: float
    net_proceeds: float
    net_benefit: float
    proportional_basis: float = 0.0
    holding_period_days: int | None = None


def _zero_impact(sell_amount: float) -> TaxImpact:
    return TaxImpact(
        capital_gains=0.0,
        tax_amount=0.0,
        effective_tax_rate=0.0,
        trade_fee=0.0,
        net_proceeds=sell_amount,
        net_benefit=0.0,
    )


def _holding_period_days(purchase_date: datetime, as_of: datetime | None) -> int:
    now = as_of or datetime.now(timezone.utc)
    if (purchase_date.tzinfo is None) != (now.tzinfo is None):
        purchase_date = purchase_date.replace(tzinfo=now.tzinfo)
    return (now - purchase_date).days


class TaxImpactCalculator:
    def __init__(self, profiles: Mapping[Country, CountryTaxProfile] | None = None) -> None:
        self._profiles = profiles if profiles is not None else COUNTRY_TAX_PROFILES

    def profile_for(self, country: Country | str) -> CountryTaxProfile:
        code = resolve_country(country)
        profile = self._profiles.get(code) if code is not None else None
        if profile is None:
            raise UnknownCountryError(country)
        return profile

    def tax_impact(
        self,
        asset: Asset,
        sell_amount: float,
        tax_settings: TaxSettings,
        as_of: datetime | None = None,
    ) -> TaxImpact:
        profile = self.profile_for(tax_settings.selected_country)

        if not asset.cost_basis or sell_amount == 0 or asset.current_value <= 0:
            return _zero_impact(sell_amount)

        rate = asset.custom_tax_rate
        if rate is None:
            rate = tax_settings.custom_tax_rate
        if rate is None:
            rate = profile.capital_gains_tax_rate

        fee_percent = tax_settings.custom_trade_fee
        if fee_percent is None:
            fee_percent = profile.trade_fee_percent
        if fee_percent is None:
            fee_percent = DEFAULT_TRADE_FEE_PERCENT

        proportional_basis = sell_amount / asset.current_value * asset.cost_basis
        capital_gains = sell_amount - proportional_basis
        # Losses carry no tax credit here.
        tax_amount = max(0.0, capital_gains * rate / 100.0)
        trade_fee = max(0.0, sell_amount * fee_percent / 100.0)
        net_proceeds = sell_amount - tax_amount - trade_fee

        holding_days = None
        if asset.purchase_date is not None:
            holding_days = _holding_period_days(asset.purchase_date, as_of)

        LOGGER.debug(
            "tax impact: asset=%s country=%s sell=%s gain=%.2f rate=%s tax=%.2f fee=%.2f",
            asset.id,
            profile.code.value,
            sell_amount,
            capital_gains,
            rate,
            tax_amount,
            trade_fee,
        )
        return TaxImpact(
            capital_gains=capital_gains,
            tax_amount=tax_amount,
            effective_tax_rate=rate,
            trade_fee=trade_fee,
            net_proceeds=net_proceeds,
            net_benefit=net_proceeds - proportional_basis,
            proportional_basis=proportional_basis,
            holding_period_days=holding_days,
        )


def tax_impact(
    asset: Asset,
    sell_amount: float,
    tax_settings: TaxSettings,
    as_of: datetime | None = None,
) -> TaxImpact:
    return TaxImpactCalculator().tax_impact(asset, sell_amount, tax_settings, as_of=as_of)
