"""Sanity checks for AI-suggested portfolio actions."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable, Mapping

from portfolio_engine.validation.models import PortfolioActionItem

LOGGER = logging.getLogger(__name__)

VALID_ACTIONS = ("BUY", "SELL", "HOLD", "WATCH")
VALID_PRIORITIES = ("HIGH", "MEDIUM", "LOW")
DEFAULT_PRIORITY = "LOW"


def _as_item(item: PortfolioActionItem | Mapping[str, Any]) -> PortfolioActionItem:
    if isinstance(item, PortfolioActionItem):
        return replace(item)
    return PortfolioActionItem(
        ticker=str(item.get("ticker") or ""),
        name=str(item.get("name") or ""),
        action=str(item.get("action") or ""),
        reason=str(item.get("reason") or ""),
        priority=str(item.get("priority") or ""),
    )


def validate_portfolio_actions(
    items: Iterable[PortfolioActionItem | Mapping[str, Any]],
) -> list[PortfolioActionItem]:
    """Keep the first entry per ticker with a known action; unknown priorities become LOW."""
    seen: set[str] = set()
    valid: list[PortfolioActionItem] = []
    for raw in items:
        item = _as_item(raw)
        if item.ticker in seen:
            LOGGER.warning("duplicate action dropped: ticker=%s", item.ticker)
            continue
        seen.add(item.ticker)
        if item.action not in VALID_ACTIONS:
            LOGGER.warning("invalid action dropped: ticker=%s action=%s", item.ticker, item.action)
            continue
        if item.priority not in VALID_PRIORITIES:
            item.priority = DEFAULT_PRIORITY
        valid.append(item)
    return valid
