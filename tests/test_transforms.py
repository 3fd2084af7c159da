"""
Tests for value transformations.
"""

import numpy as np
import pytest

from exprlab.core.dataset import SynchronizedDataset
from exprlab.transforms import CenterFeatures, LogTransform


class TestLogTransform:
    """log transform with pseudocount."""

    def test_log2(self):
        ds = SynchronizedDataset(np.array([[1.0, 2.0, 8.0]]), sample_ids=['a', 'b', 'c'])
        result = LogTransform()(ds)
        np.testing.assert_allclose(result.expression, [[0.0, 1.0, 3.0]])

    def test_pseudocount_and_base(self):
        ds = SynchronizedDataset(np.array([[0.0, 9.0]]), sample_ids=['a', 'b'])
        result = LogTransform(base=10, pseudocount=1.0)(ds)
        np.testing.assert_allclose(result.expression, [[0.0, 1.0]])

    def test_preserves_alignment(self, small_dataset):
        result = LogTransform()(small_dataset)
        assert result.covariates.equals(small_dataset.covariates)
        assert list(result.feature_ids) == list(small_dataset.feature_ids)
        assert result.metadata == small_dataset.metadata

    def test_input_not_modified(self, small_dataset):
        before = small_dataset.expression.copy()
        LogTransform()(small_dataset)
        np.testing.assert_array_equal(small_dataset.expression, before)

    def test_nan_passes_through(self):
        ds = SynchronizedDataset(np.array([[np.nan, 4.0]]), sample_ids=['a', 'b'])
        result = LogTransform()(ds)
        assert np.isnan(result.expression[0, 0])
        assert result.expression[0, 1] == pytest.approx(2.0)

    def test_nonpositive_rejected(self):
        ds = SynchronizedDataset(np.array([[0.0, 4.0]]), sample_ids=['a', 'b'])
        with pytest.raises(ValueError, match="<= 0"):
            LogTransform()(ds)

    def test_validate_reports(self):
        ds = SynchronizedDataset(np.array([[-1.0, 0.0]]), sample_ids=['a', 'b'])
        errors = LogTransform().validate(ds)
        assert len(errors) == 1
        assert "2 values" in errors[0]

    @pytest.mark.parametrize("base", [0, -2, 1])
    def test_bad_base(self, base):
        with pytest.raises(ValueError, match="base"):
            LogTransform(base=base)

    def test_empty_dataset_rejected(self):
        ds = SynchronizedDataset(np.zeros((0, 2)), sample_ids=['a', 'b'])
        with pytest.raises(ValueError, match="empty"):
            LogTransform()(ds)

    def test_repr(self):
        assert repr(LogTransform()) == "LogTransform(base=2.0, pseudocount=0.0)"


class TestCenterFeatures:
    """Row centering and scaling."""

    def test_center(self):
        ds = SynchronizedDataset(np.array([[1.0, 2.0, 3.0], [10.0, 10.0, 10.0]]),
                                 sample_ids=['a', 'b', 'c'])
        result = CenterFeatures()(ds)
        np.testing.assert_allclose(result.expression, [[-1.0, 0.0, 1.0], [0.0, 0.0, 0.0]])

    def test_scale(self):
        ds = SynchronizedDataset(np.array([[1.0, 2.0, 3.0], [5.0, 5.0, 5.0]]),
                                 sample_ids=['a', 'b', 'c'])
        result = CenterFeatures(scale=True)(ds)
        np.testing.assert_allclose(result.expression, [[-1.0, 0.0, 1.0], [0.0, 0.0, 0.0]])

    def test_nan_aware(self):
        ds = SynchronizedDataset(np.array([[1.0, np.nan, 3.0]]), sample_ids=['a', 'b', 'c'])
        result = CenterFeatures(scale=True)(ds)
        assert np.isnan(result.expression[0, 1])
        np.testing.assert_allclose(result.expression[0, [0, 2]], [-0.70710678, 0.70710678])

    def test_scaled_rows_have_unit_sd(self, small_dataset):
        result = CenterFeatures(scale=True)(small_dataset)
        np.testing.assert_allclose(result.expression.mean(axis=1), 0.0, atol=1e-10)
        np.testing.assert_allclose(result.expression.std(axis=1, ddof=1), 1.0)
