"""Tabular views over a holdings snapshot."""

from __future__ import annotations

from typing import Iterable

import pandas as pd

from portfolio_engine.portfolio.classification import AssetClassifier
from portfolio_engine.portfolio.models import CATEGORY_ORDER, Asset, AssetCategory

HOLDINGS_COLUMNS = [
    "Asset_Id",
    "Name",
    "Symbol",
    "Category",
    "Liquid",
    "Current_Value",
    "Market_Value",
    "Debt",
    "Net_Value",
    "Cost",
    "PnL",
    "Loss_Percent",
]


def build_holdings_frame(assets: Iterable[Asset], classifier: AssetClassifier) -> pd.DataFrame:
    rows = [
        {
            "Asset_Id": asset.id,
            "Name": asset.name,
            "Symbol": (asset.ticker or asset.name or asset.id).strip().upper(),
            "Category": classifier.classify(asset),
            "Liquid": asset.is_liquid,
            "Current_Value": asset.current_value,
            "Market_Value": asset.market_value,
            "Debt": asset.debt,
            "Net_Value": asset.net_value,
            "Cost": asset.cost,
            "PnL": asset.unrealized_pnl,
            "Loss_Percent": asset.unrealized_loss_percent,
        }
        for asset in assets
    ]
    return pd.DataFrame(rows, columns=HOLDINGS_COLUMNS)


def category_totals(frame: pd.DataFrame, column: str = "Net_Value") -> dict[AssetCategory, float]:
    totals = {category: 0.0 for category in CATEGORY_ORDER}
    if frame.empty:
        return totals
    for category, value in frame.groupby("Category")[column].sum().items():
        totals[AssetCategory(category)] = float(value)
    return totals


def category_weights(frame: pd.DataFrame, total: float, column: str = "Net_Value") -> dict[AssetCategory, float]:
    if total <= 0:
        return {category: 0.0 for category in CATEGORY_ORDER}
    return {category: value / total for category, value in category_totals(frame, column).items()}


def symbol_weights(frame: pd.DataFrame, total: float, column: str = "Net_Value") -> pd.Series:
    if frame.empty or total <= 0:
        return pd.Series(dtype=float)
    sums = frame.groupby("Symbol")[column].sum()
    return sums[sums > 0] / total
