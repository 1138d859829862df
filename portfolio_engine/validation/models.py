"""Validation result models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

ActionType = Literal["BUY", "SELL", "HOLD", "WATCH"]
Priority = Literal["HIGH", "MEDIUM", "LOW"]


@dataclass
class ValidationResult:
    is_valid: bool
    warnings: list[str] = field(default_factory=list)
    corrected: bool = False


@dataclass
class ParsedAsset:
    ticker: str
    name: str
    amount: float
    price: float
    total_value: float | None = None
    needs_review: bool = False
    price_corrected: bool = False


@dataclass
class HoldingsValidationResult:
    corrected_assets: list[ParsedAsset]
    is_valid: bool
    total_calculated: float
    error_ratio: float | None = None
    error_message: str | None = None


@dataclass
class PortfolioActionItem:
    ticker: str
    name: str
    action: str
    reason: str = ""
    priority: str = "LOW"
