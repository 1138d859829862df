"""Static category correlation table and diversification summaries."""

from __future__ import annotations

from itertools import combinations
from typing import Iterable, Mapping

import numpy as np
import pandas as pd

from portfolio_engine.portfolio.models import CATEGORY_ORDER, AssetCategory

EXCELLENT_MAX_CORRELATION = 0.15
GOOD_MAX_CORRELATION = 0.35

_C = AssetCategory

# One entry per unordered pair; the reverse direction is derived, never listed.
DEFAULT_CORRELATION_PAIRS: Mapping[tuple[AssetCategory, AssetCategory], float] = {
    (_C.CASH, _C.BOND): 0.10,
    (_C.CASH, _C.LARGE_CAP): -0.05,
    (_C.CASH, _C.REALESTATE): 0.05,
    (_C.CASH, _C.BITCOIN): 0.00,
    (_C.CASH, _C.ALTCOIN): 0.00,
    (_C.CASH, _C.GOLD): 0.05,
    (_C.CASH, _C.COMMODITY): 0.00,
    (_C.BOND, _C.LARGE_CAP): -0.20,
    (_C.BOND, _C.REALESTATE): 0.15,
    (_C.BOND, _C.BITCOIN): 0.05,
    (_C.BOND, _C.ALTCOIN): 0.05,
    (_C.BOND, _C.GOLD): 0.10,
    (_C.BOND, _C.COMMODITY): -0.10,
    (_C.LARGE_CAP, _C.REALESTATE): 0.55,
    (_C.LARGE_CAP, _C.BITCOIN): 0.35,
    (_C.LARGE_CAP, _C.ALTCOIN): 0.45,
    (_C.LARGE_CAP, _C.GOLD): 0.00,
    (_C.LARGE_CAP, _C.COMMODITY): 0.25,
    (_C.REALESTATE, _C.BITCOIN): 0.20,
    (_C.REALESTATE, _C.ALTCOIN): 0.25,
    (_C.REALESTATE, _C.GOLD): 0.15,
    (_C.REALESTATE, _C.COMMODITY): 0.30,
    (_C.BITCOIN, _C.ALTCOIN): 0.80,
    (_C.BITCOIN, _C.GOLD): 0.15,
    (_C.BITCOIN, _C.COMMODITY): 0.10,
    (_C.ALTCOIN, _C.GOLD): 0.05,
    (_C.ALTCOIN, _C.COMMODITY): 0.05,
    (_C.GOLD, _C.COMMODITY): 0.60,
}


def diversification_label(avg_correlation: float) -> str:
    if avg_correlation < EXCELLENT_MAX_CORRELATION:
        return "excellent"
    if avg_correlation < GOOD_MAX_CORRELATION:
        return "good"
    return "needs improvement"


class CorrelationModel:
    def __init__(
        self,
        pairs: Mapping[tuple[AssetCategory, AssetCategory], float] = DEFAULT_CORRELATION_PAIRS,
        categories: Iterable[AssetCategory] = CATEGORY_ORDER,
    ) -> None:
        self._categories = tuple(categories)
        self._index = {category: idx for idx, category in enumerate(self._categories)}
        self._matrix = self._build_matrix(pairs)

    def _build_matrix(self, pairs: Mapping[tuple[AssetCategory, AssetCategory], float]) -> np.ndarray:
        size = len(self._categories)
        matrix = np.full((size, size), np.nan)
        np.fill_diagonal(matrix, 1.0)
        for (left, right), value in pairs.items():
            if left not in self._index or right not in self._index:
                raise ValueError(f"Correlation pair references unknown category: {left}/{right}")
            if left == right:
                raise ValueError(f"Diagonal correlation is fixed at 1.0: {left}")
            if not -1.0 <= float(value) <= 1.0:
                raise ValueError(f"Correlation must be within [-1, 1]: {left}/{right}={value}")
            i, j = self._index[left], self._index[right]
            existing = matrix[i, j]
            if not np.isnan(existing) and not np.isclose(existing, value):
                raise ValueError(f"Conflicting correlation values for {left}/{right}: {existing} vs {value}")
            matrix[i, j] = matrix[j, i] = float(value)
        missing = [
            f"{self._categories[i].value}/{self._categories[j].value}"
            for i, j in zip(*np.where(np.isnan(matrix)))
            if i < j
        ]
        if missing:
            raise ValueError(f"Correlation table is incomplete: {', '.join(missing)}")
        matrix.setflags(write=False)
        return matrix

    @property
    def categories(self) -> tuple[AssetCategory, ...]:
        return self._categories

    def corr(self, left: AssetCategory, right: AssetCategory) -> float:
        return float(self._matrix[self._index[left], self._index[right]])

    def average_pairwise_correlation(self, categories: Iterable[AssetCategory]) -> float:
        present = sorted({category for category in categories if category in self._index}, key=self._index.get)
        if len(present) < 2:
            return 0.0
        values = [self.corr(left, right) for left, right in combinations(present, 2)]
        return float(np.mean(values))

    def weighted_average_correlation(self, weights: Mapping[AssetCategory, float]) -> float:
        active = [(category, weight) for category, weight in weights.items() if weight > 0 and category in self._index]
        weighted = 0.0
        total_weight = 0.0
        for (left, w_left), (right, w_right) in combinations(active, 2):
            pair_weight = w_left * w_right
            weighted += self.corr(left, right) * pair_weight
            total_weight += pair_weight
        return weighted / total_weight if total_weight > 0 else 0.0

    def matrix(self, categories: Iterable[AssetCategory] | None = None) -> pd.DataFrame:
        selected = list(categories) if categories is not None else list(self._categories)
        idx = [self._index[category] for category in selected]
        labels = [category.value for category in selected]
        return pd.DataFrame(self._matrix[np.ix_(idx, idx)], index=labels, columns=labels)
