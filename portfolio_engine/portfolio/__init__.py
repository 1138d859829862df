"""Portfolio scoring domain package."""

from portfolio_engine.portfolio.classification import AssetClassifier, classify
from portfolio_engine.portfolio.correlation import CorrelationModel
from portfolio_engine.portfolio.drift import DriftCalculator, drift
from portfolio_engine.portfolio.health_score import HealthScoreEngine, score
from portfolio_engine.portfolio.models import Asset, AssetCategory, AssetType

__all__ = [
    "Asset",
    "AssetCategory",
    "AssetClassifier",
    "AssetType",
    "CorrelationModel",
    "DriftCalculator",
    "HealthScoreEngine",
    "classify",
    "drift",
    "score",
]
