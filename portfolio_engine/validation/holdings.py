"""Checks for holdings parsed from screenshots or model output.

A common parsing failure reads a position's total value as its unit price.
Records are corrected against a trusted total and the batch is accepted only
when the recomputed sum lands within tolerance of that total.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping

from portfolio_engine.config.settings import DEFAULT_HOLDINGS_TOLERANCE, DEFAULT_MAX_REASONABLE_PRICE, EngineSettings
from portfolio_engine.lib.formatters import fmt_amount, fmt_number, fmt_percent
from portfolio_engine.validation.models import HoldingsValidationResult, ParsedAsset

LOGGER = logging.getLogger(__name__)

UNKNOWN_TICKER_PREFIX = "UNKNOWN_"
UNKNOWN_ASSET_NAME = "Unknown asset"
MIN_AMOUNT_FOR_PRICE = 0.0001
SUSPICIOUS_SHARE = 0.5
PLAUSIBLE_SHARE = 0.3
NON_NUMERIC = re.compile(r"[^0-9.]")
MISMATCH_MESSAGE = "Parsed holdings do not add up to the reported total; please review them manually."
NO_TOTAL_MESSAGE = "No reported total available to check the parsed holdings against."


def _parse_positive(value: Any) -> float:
    """Lenient number parsing; anything unusable becomes 0."""
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        try:
            number = float(NON_NUMERIC.sub("", str(value)))
        except ValueError:
            return 0.0
    return number if math.isfinite(number) and number > 0 else 0.0


def normalize_parsed_records(
    raw_records: Iterable[Mapping[str, Any]],
    max_reasonable_price: float = DEFAULT_MAX_REASONABLE_PRICE,
) -> list[ParsedAsset]:
    records: list[ParsedAsset] = []
    for item in raw_records:
        name = str(item.get("name") or UNKNOWN_ASSET_NAME)
        ticker = str(item.get("ticker") or f"{UNKNOWN_TICKER_PREFIX}{item.get('name') or 'ASSET'}")
        # Unparseable quantities stay 0 so a total is never mistaken for a unit price.
        amount = _parse_positive(item.get("amount"))
        price = _parse_positive(item.get("price"))
        total_value = _parse_positive(item.get("total_value")) or None

        if price == 0 and total_value and amount > MIN_AMOUNT_FOR_PRICE:
            price = total_value / amount
            LOGGER.debug("price derived from total: name=%s total=%s amount=%s", name, total_value, amount)

        if price > max_reasonable_price and amount > 0:
            LOGGER.warning("implausible unit price: name=%s price=%s", name, fmt_amount(price))

        records.append(
            ParsedAsset(
                ticker=ticker,
                name=name,
                amount=amount,
                price=price,
                total_value=total_value,
                needs_review=(
                    ticker.startswith(UNKNOWN_TICKER_PREFIX)
                    or price == 0
                    or amount == 0
                    or price > max_reasonable_price
                ),
            )
        )
    return records


def total_of(records: Iterable[ParsedAsset]) -> float:
    return sum(record.amount * record.price for record in records)


def correct_price_confusion(records: Iterable[ParsedAsset], trusted_total: float) -> list[ParsedAsset]:
    """Return copies where a total value parsed as a unit price is divided back out."""
    items = list(records)
    if not math.isfinite(trusted_total) or trusted_total <= 0:
        LOGGER.info("price correction skipped: no trusted total")
        return [replace(record) for record in items]

    corrected: list[ParsedAsset] = []
    for record in items:
        # Corrected prices are already unit prices.
        if record.amount <= 1 or record.price_corrected:
            corrected.append(replace(record))
            continue

        calculated = record.amount * record.price
        source = record.total_value or record.price
        candidate = source / record.amount
        confused = calculated > trusted_total or (
            calculated > trusted_total * SUSPICIOUS_SHARE
            and record.amount * candidate < trusted_total * PLAUSIBLE_SHARE
        )
        if not confused:
            corrected.append(replace(record))
            continue

        LOGGER.warning(
            "price confusion corrected: ticker=%s price=%s new_price=%s",
            record.ticker,
            fmt_number(record.price),
            fmt_number(candidate),
        )
        corrected.append(replace(record, price=candidate, needs_review=True, price_corrected=True))
    return corrected


@dataclass(frozen=True)
class HoldingsRules:
    tolerance: float = DEFAULT_HOLDINGS_TOLERANCE
    max_reasonable_price: float = DEFAULT_MAX_REASONABLE_PRICE

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> HoldingsRules:
        return cls(tolerance=settings.holdings_tolerance, max_reasonable_price=settings.max_reasonable_price)


class HoldingsValidator:
    def __init__(self, rules: HoldingsRules | None = None) -> None:
        self._rules = rules or HoldingsRules()

    def _within_tolerance(self, calculated: float, trusted_total: float) -> tuple[bool, float]:
        error_ratio = abs(calculated / trusted_total - 1)
        return error_ratio <= self._rules.tolerance, error_ratio

    def validate(self, records: Iterable[ParsedAsset], trusted_total: float) -> HoldingsValidationResult:
        items = list(records)
        if not math.isfinite(trusted_total) or trusted_total <= 0:
            return HoldingsValidationResult(
                corrected_assets=[replace(record) for record in items],
                is_valid=False,
                total_calculated=total_of(items),
                error_message=NO_TOTAL_MESSAGE,
            )

        # A batch that already matches the trusted total is left untouched.
        ok, error_ratio = self._within_tolerance(total_of(items), trusted_total)
        corrected = [replace(record) for record in items] if ok else correct_price_confusion(items, trusted_total)
        total_calculated = total_of(corrected)
        ok, error_ratio = self._within_tolerance(total_calculated, trusted_total)

        LOGGER.info(
            "holdings check: trusted=%s calculated=%s error=%s valid=%s",
            fmt_amount(trusted_total),
            fmt_amount(total_calculated),
            fmt_percent(error_ratio * 100),
            ok,
        )
        return HoldingsValidationResult(
            corrected_assets=corrected,
            is_valid=ok,
            total_calculated=total_calculated,
            error_ratio=error_ratio,
            error_message=None if ok else MISMATCH_MESSAGE,
        )


def validate_parsed_holdings(
    records: Iterable[ParsedAsset],
    trusted_total: float,
    tolerance: float = DEFAULT_HOLDINGS_TOLERANCE,
) -> HoldingsValidationResult:
    return HoldingsValidator(HoldingsRules(tolerance=tolerance)).validate(records, trusted_total)
