"""Capital-gains tax profiles for the supported jurisdictions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from portfolio_engine.config.settings import EngineSettings

DEFAULT_TRADE_FEE_PERCENT = 0.1


class Country(str, Enum):
    USA = "US"
    CHINA = "CN"
    GERMANY = "DE"
    JAPAN = "JP"
    INDIA = "IN"
    UK = "GB"
    FRANCE = "FR"
    ITALY = "IT"
    BRAZIL = "BR"
    CANADA = "CA"
    SOUTH_KOREA = "KR"


@dataclass(frozen=True)
class CountryTaxProfile:
    code: Country
    name: str
    capital_gains_tax_rate: float
    trade_fee_percent: float
    currency: str
    notes: str = ""


@dataclass(frozen=True)
class TaxSettings:
    selected_country: Country | str = Country.USA
    custom_tax_rate: float | None = None
    custom_trade_fee: float | None = None
    include_in_calculations: bool = True

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> TaxSettings:
        return cls(selected_country=settings.default_country)


# Long-term rates in percent, approximate national averages.
_PROFILES = (
    CountryTaxProfile(Country.USA, "United States", 20.0, 0.1, "USD", "Federal long-term rate; state taxes vary"),
    CountryTaxProfile(Country.CHINA, "China", 20.0, 0.1, "CNY", "Simplified assumption for PRC investment income"),
    CountryTaxProfile(Country.GERMANY, "Germany", 26.375, 0.1, "EUR", "Flat 25% plus 5.5% solidarity surcharge"),
    CountryTaxProfile(Country.JAPAN, "Japan", 20.315, 0.1, "JPY", "Combined national, local and special rate"),
    CountryTaxProfile(Country.INDIA, "India", 15.0, 0.1, "INR", "Listed securities held over one year"),
    CountryTaxProfile(Country.UK, "United Kingdom", 20.0, 0.1, "GBP", "Standard rate after annual exemption"),
    CountryTaxProfile(Country.FRANCE, "France", 30.0, 0.1, "EUR", "PFU flat tax including social charges"),
    CountryTaxProfile(Country.ITALY, "Italy", 26.0, 0.1, "EUR", "Fixed capital gains rate"),
    CountryTaxProfile(Country.BRAZIL, "Brazil", 15.0, 0.1, "BRL", "Stock trading rate; varies by transaction type"),
    CountryTaxProfile(Country.CANADA, "Canada", 25.0, 0.1, "CAD", "50% inclusion at a ~50% marginal rate"),
    CountryTaxProfile(Country.SOUTH_KOREA, "South Korea", 22.0, 0.1, "KRW", "20% national plus 2% local"),
)

COUNTRY_TAX_PROFILES: Mapping[Country, CountryTaxProfile] = MappingProxyType(
    {profile.code: profile for profile in _PROFILES}
)


def country_codes() -> list[Country]:
    return list(COUNTRY_TAX_PROFILES)


def resolve_country(value: Country | str) -> Country | None:
    if isinstance(value, Country):
        return value
    try:
        return Country(str(value).strip().upper())
    except ValueError:
        return None
