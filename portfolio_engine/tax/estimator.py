"""Sell-side tax and fee estimates keyed by ticker shape.

Supported classes:
- kr_stock: 0.18% transaction tax + 0.015% brokerage, no capital-gains tax
- us_stock: 0.25% brokerage + 22% capital-gains tax above a 2,500,000 annual exemption
- crypto: 0.1% brokerage, capital-gains tax deferred
- other: 0.1% brokerage

Estimates are indicative only; actual liabilities depend on personal circumstances.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Literal, Mapping

from portfolio_engine.lib.formatters import fmt_amount

TaxAssetType = Literal["kr_stock", "us_stock", "crypto", "other"]

KR_STOCK_PATTERN = re.compile(r"^\d{6}$")
US_STOCK_PATTERN = re.compile(r"^[A-Z]{1,5}$")
KR_SUFFIXES = (".KS", ".KQ")
CRYPTO_SUFFIXES = ("-USD", "USDT")
CRYPTO_TICKERS = frozenset(
    {"BTC", "ETH", "XRP", "SOL", "ADA", "DOGE", "AVAX", "DOT", "MATIC", "LINK", "UNI", "ATOM"}
)


@dataclass(frozen=True)
class TaxRates:
    transaction_tax: float
    brokerage_fee: float
    capital_gains_tax: float
    capital_gains_exemption: float


DEFAULT_TAX_RATES: Mapping[str, TaxRates] = MappingProxyType(
    {
        "kr_stock": TaxRates(transaction_tax=0.0018, brokerage_fee=0.00015, capital_gains_tax=0.0, capital_gains_exemption=0.0),
        "us_stock": TaxRates(transaction_tax=0.0, brokerage_fee=0.0025, capital_gains_tax=0.22, capital_gains_exemption=2_500_000.0),
        "crypto": TaxRates(transaction_tax=0.0, brokerage_fee=0.001, capital_gains_tax=0.0, capital_gains_exemption=0.0),
        "other": TaxRates(transaction_tax=0.0, brokerage_fee=0.001, capital_gains_tax=0.0, capital_gains_exemption=0.0),
    }
)

TYPE_LABELS: Mapping[str, str] = MappingProxyType(
    {
        "kr_stock": "Korean stock",
        "us_stock": "Overseas stock",
        "crypto": "Crypto asset",
        "other": "Other",
    }
)


@dataclass
class TaxEstimate:
    asset_type: TaxAssetType
    asset_type_label: str
    sell_amount: float
    gain: float
    transaction_tax: int
    brokerage_fee: int
    capital_gains_tax: int
    total_cost: int
    net_proceeds: float
    cost_rate: float
    note: str


def infer_tax_asset_type(ticker: str | None) -> TaxAssetType:
    if not ticker:
        return "other"
    symbol = ticker.strip().upper()
    if KR_STOCK_PATTERN.match(symbol) or symbol.endswith(KR_SUFFIXES):
        return "kr_stock"
    if symbol in CRYPTO_TICKERS or symbol.endswith(CRYPTO_SUFFIXES):
        return "crypto"
    if US_STOCK_PATTERN.match(symbol):
        return "us_stock"
    return "other"


class TaxEstimator:
    def __init__(self, rates: Mapping[str, TaxRates] | None = None) -> None:
        self._rates = rates if rates is not None else DEFAULT_TAX_RATES

    def estimate(
        self,
        ticker: str,
        sell_amount: float,
        avg_price: float,
        current_price: float,
        quantity: float,
    ) -> TaxEstimate:
        asset_type = infer_tax_asset_type(ticker)
        rates = self._rates[asset_type]

        gain = (current_price - avg_price) * quantity
        transaction_tax = max(0, math.floor(sell_amount * rates.transaction_tax))
        brokerage_fee = max(0, math.floor(sell_amount * rates.brokerage_fee))

        capital_gains_tax = 0
        note = ""
        if asset_type == "us_stock":
            if gain > 0:
                taxable_gain = max(0.0, gain - rates.capital_gains_exemption)
                capital_gains_tax = math.floor(taxable_gain * rates.capital_gains_tax)
                if gain <= rates.capital_gains_exemption:
                    note = f"Within the annual {fmt_amount(rates.capital_gains_exemption)} exemption (tax free)"
                else:
                    note = (
                        f"{rates.capital_gains_tax * 100:.0f}% on {fmt_amount(taxable_gain)} "
                        f"after the {fmt_amount(rates.capital_gains_exemption)} exemption"
                    )
            else:
                note = "No taxable gain"
        elif asset_type == "kr_stock":
            note = "Capital gains exempt for minority shareholders"
        elif asset_type == "crypto":
            note = "Capital gains tax on crypto assets is deferred"

        total_cost = transaction_tax + brokerage_fee + capital_gains_tax
        cost_rate = total_cost / sell_amount * 100.0 if sell_amount > 0 else 0.0
        return TaxEstimate(
            asset_type=asset_type,
            asset_type_label=TYPE_LABELS[asset_type],
            sell_amount=sell_amount,
            gain=gain,
            transaction_tax=transaction_tax,
            brokerage_fee=brokerage_fee,
            capital_gains_tax=capital_gains_tax,
            total_cost=total_cost,
            net_proceeds=sell_amount - total_cost,
            cost_rate=cost_rate,
            note=note,
        )


def estimate_tax(
    ticker: str,
    sell_amount: float,
    avg_price: float,
    current_price: float,
    quantity: float,
) -> TaxEstimate:
    return TaxEstimator().estimate(ticker, sell_amount, avg_price, current_price, quantity)
