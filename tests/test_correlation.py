import pytest

from portfolio_engine.portfolio.correlation import (
    DEFAULT_CORRELATION_PAIRS,
    CorrelationModel,
    diversification_label,
)
from portfolio_engine.portfolio.models import AssetCategory


def test_correlation_is_symmetric_with_unit_diagonal() -> None:
    model = CorrelationModel()
    for left in model.categories:
        assert model.corr(left, left) == 1.0
        for right in model.categories:
            assert model.corr(left, right) == model.corr(right, left)
    frame = model.matrix()
    assert frame.shape == (8, 8)
    assert (frame.to_numpy() == frame.to_numpy().T).all()


def test_average_pairwise_correlation() -> None:
    model = CorrelationModel()
    assert model.average_pairwise_correlation([AssetCategory.LARGE_CAP]) == 0.0
    assert model.average_pairwise_correlation([]) == 0.0
    avg = model.average_pairwise_correlation([AssetCategory.BITCOIN, AssetCategory.ALTCOIN])
    assert avg == pytest.approx(0.80)
    avg = model.average_pairwise_correlation([AssetCategory.LARGE_CAP, AssetCategory.BOND, AssetCategory.CASH])
    assert avg == pytest.approx((-0.20 - 0.05 + 0.10) / 3)


def test_diversification_labels() -> None:
    assert diversification_label(0.05) == "excellent"
    assert diversification_label(0.15) == "good"
    assert diversification_label(0.34) == "good"
    assert diversification_label(0.35) == "needs improvement"


def test_incomplete_table_is_rejected() -> None:
    pairs = dict(DEFAULT_CORRELATION_PAIRS)
    pairs.pop((AssetCategory.GOLD, AssetCategory.COMMODITY))
    with pytest.raises(ValueError, match="incomplete"):
        CorrelationModel(pairs)


def test_conflicting_and_out_of_range_values_are_rejected() -> None:
    pairs = dict(DEFAULT_CORRELATION_PAIRS)
    pairs[(AssetCategory.COMMODITY, AssetCategory.GOLD)] = 0.1
    with pytest.raises(ValueError, match="Conflicting"):
        CorrelationModel(pairs)

    with pytest.raises(ValueError, match="within"):
        CorrelationModel({(AssetCategory.CASH, AssetCategory.BOND): 1.5}, categories=[AssetCategory.CASH, AssetCategory.BOND])


def test_fixture_table_can_be_injected() -> None:
    model = CorrelationModel(
        {(AssetCategory.CASH, AssetCategory.BOND): 0.3},
        categories=[AssetCategory.CASH, AssetCategory.BOND],
    )
    assert model.corr(AssetCategory.BOND, AssetCategory.CASH) == 0.3
    assert model.weighted_average_correlation({AssetCategory.CASH: 0.5, AssetCategory.BOND: 0.5}) == pytest.approx(0.3)
