"""
Tests for SynchronizedDataset: construction, alignment and subsetting.
"""

import numpy as np
import pandas as pd
import pytest

from exprlab.core.covariates import CovariateTable
from exprlab.core.dataset import SynchronizedDataset
from exprlab.core.errors import AlignmentError, CardinalityError, MissingIdentifierError
from exprlab.core.experiment import ExperimentInfo


def assert_aligned(ds: SynchronizedDataset):
    """Covariate rows match expression columns, in order; feature ids match rows."""
    assert list(ds.covariates.index) == list(ds.sample_ids)
    assert len(ds.covariates) == ds.expression.shape[1]
    if ds.feature_ids is not None:
        assert len(ds.feature_ids) == ds.expression.shape[0]


class TestConstruction:
    """Building datasets from DataFrames and arrays."""

    def test_from_dataframe(self, tiny_dataset):
        assert tiny_dataset.shape == (3, 3)
        assert list(tiny_dataset.sample_ids) == ['s1', 's2', 's3']
        assert list(tiny_dataset.feature_ids) == ['f1', 'f2', 'f3']
        assert list(tiny_dataset.covariates.columns) == ['group', 'age']
        assert tiny_dataset.metadata.title == 'tiny'
        assert_aligned(tiny_dataset)

    def test_from_array_defaults(self):
        ds = SynchronizedDataset(np.arange(6).reshape(2, 3))
        assert list(ds.sample_ids) == ['0', '1', '2']
        assert ds.feature_ids is None
        assert len(ds.covariates) == 3
        assert len(ds.covariates.columns) == 0
        assert ds.metadata.is_empty()

    def test_range_index_is_not_feature_ids(self):
        frame = pd.DataFrame({'s1': [1.0, 2.0], 's2': [3.0, 4.0]})
        ds = SynchronizedDataset(frame)
        assert ds.feature_ids is None

    def test_explicit_feature_ids(self):
        ds = SynchronizedDataset(np.zeros((2, 2)), feature_ids=['a', 'b'], sample_ids=['x', 'y'])
        assert list(ds.feature_ids) == ['a', 'b']

    def test_expression_is_read_only(self, tiny_dataset):
        with pytest.raises(ValueError):
            tiny_dataset.expression[0, 0] = 99.0

    def test_input_array_is_copied(self):
        values = np.ones((2, 2))
        ds = SynchronizedDataset(values, sample_ids=['a', 'b'])
        values[0, 0] = 5.0
        assert ds.expression[0, 0] == 1.0

    def test_feature_ids_list_is_copied(self):
        ids = ['a', 'b']
        ds = SynchronizedDataset(np.zeros((2, 1)), feature_ids=ids, sample_ids=['x'])
        ids[0] = 'z'
        ids.append('c')
        assert list(ds.feature_ids) == ['a', 'b']

    def test_covariate_frame_input_is_copied(self):
        covariates = pd.DataFrame({'group': [0, 1]}, index=['x', 'y'])
        ds = SynchronizedDataset(np.zeros((1, 2)), covariates, sample_ids=['x', 'y'])
        covariates.loc['x', 'group'] = 9
        covariates['batch'] = [1, 2]
        covariates.index = ['p', 'q']
        assert ds.covariate('group').tolist() == [0, 1]
        assert list(ds.covariates.columns) == ['group']
        assert list(ds.covariates.index) == ['x', 'y']

    def test_expression_frame_input_is_copied(self, tiny_dataset):
        frame = tiny_dataset.to_frame()
        ds = SynchronizedDataset(frame)
        frame.iloc[0, 0] = 99.0
        assert ds.expression[0, 0] == 1.0

    def test_non_2d_rejected(self):
        with pytest.raises(ValueError, match="2D"):
            SynchronizedDataset(np.zeros(5))

    def test_non_numeric_rejected(self):
        with pytest.raises(TypeError):
            SynchronizedDataset([['a', 'b'], ['c', 'd']])

    def test_duplicate_sample_ids_rejected(self):
        with pytest.raises(ValueError, match="unique"):
            SynchronizedDataset(np.zeros((1, 2)), sample_ids=['a', 'a'])

    def test_sample_ids_length_mismatch(self):
        with pytest.raises(ValueError, match="sample_ids length"):
            SynchronizedDataset(np.zeros((1, 2)), sample_ids=['a'])

    def test_cardinality_error(self):
        with pytest.raises(CardinalityError) as excinfo:
            SynchronizedDataset(np.zeros((3, 2)), feature_ids=['a', 'b'])
        assert excinfo.value.expected == 3
        assert excinfo.value.actual == 2
        assert isinstance(excinfo.value, ValueError)

    def test_duplicate_feature_ids_rejected(self):
        with pytest.raises(ValueError, match="Feature identifiers must be unique"):
            SynchronizedDataset(np.zeros((2, 1)), feature_ids=['a', 'a'])

    def test_bad_covariates_type(self):
        with pytest.raises(TypeError):
            SynchronizedDataset(np.zeros((1, 2)), covariates={'group': [1, 2]})

    def test_metadata_mapping_coerced(self):
        ds = SynchronizedDataset(np.zeros((1, 1)), metadata={'lab': 'Lab X', 'platform': 'GPL570'})
        assert isinstance(ds.metadata, ExperimentInfo)
        assert ds.metadata.lab == 'Lab X'
        assert ds.metadata.other['platform'] == 'GPL570'


class TestAlignment:
    """Covariate rows must match expression columns."""

    def test_rejection_names_both_sides(self):
        expression = pd.DataFrame(np.ones((2, 3)), columns=['s1', 's2', 's3'])
        covariates = pd.DataFrame({'group': [1, 2, 3]}, index=['s1', 's2', 's4'])

        with pytest.raises(AlignmentError) as excinfo:
            SynchronizedDataset(expression, covariates)

        assert excinfo.value.expression_only == ['s3']
        assert excinfo.value.covariate_only == ['s4']
        assert "'s3'" in str(excinfo.value)
        assert "'s4'" in str(excinfo.value)

    def test_row_count_mismatch(self):
        expression = pd.DataFrame(np.ones((2, 3)), columns=['s1', 's2', 's3'])
        covariates = pd.DataFrame({'group': [1, 2]}, index=['s1', 's2'])

        with pytest.raises(AlignmentError) as excinfo:
            SynchronizedDataset(expression, covariates)
        assert excinfo.value.expression_only == ['s3']
        assert excinfo.value.covariate_only == []

    def test_alignment_error_is_value_error(self):
        assert issubclass(AlignmentError, ValueError)

    def test_permutation_is_reordered(self):
        expression = pd.DataFrame(np.ones((1, 3)), columns=['s1', 's2', 's3'])
        covariates = pd.DataFrame({'group': ['c', 'a', 'b']}, index=['s3', 's1', 's2'])

        ds = SynchronizedDataset(expression, covariates)

        assert list(ds.covariates.index) == ['s1', 's2', 's3']
        assert list(ds.covariate('group')) == ['a', 'b', 'c']

    def test_descriptions_survive_reordering(self):
        expression = pd.DataFrame(np.ones((1, 2)), columns=['s1', 's2'])
        table = CovariateTable(
            pd.DataFrame({'group': [1, 0]}, index=['s2', 's1']),
            descriptions={'group': 'case status'},
        )
        ds = SynchronizedDataset(expression, table)
        assert ds.covariates.description('group') == 'case status'

    def test_covariate_frame_is_a_copy(self, tiny_dataset):
        frame = tiny_dataset.covariate_frame
        frame.drop(index='s1', inplace=True)
        assert len(tiny_dataset.covariates) == 3
        assert_aligned(tiny_dataset)


class TestReplaceCovariates:
    """In-place and immutable covariate replacement."""

    def test_replace_success(self, tiny_dataset):
        new = pd.DataFrame({'batch': [1, 1, 2]}, index=['s1', 's2', 's3'])
        tiny_dataset.replace_covariates(new)
        assert list(tiny_dataset.covariates.columns) == ['batch']
        assert_aligned(tiny_dataset)

    def test_replace_failure_leaves_state(self, tiny_dataset):
        before = tiny_dataset.covariate_frame
        bad = pd.DataFrame({'batch': [1, 1, 2]}, index=['s1', 's2', 's9'])

        with pytest.raises(AlignmentError):
            tiny_dataset.replace_covariates(bad)

        pd.testing.assert_frame_equal(tiny_dataset.covariate_frame, before)
        assert_aligned(tiny_dataset)

    def test_replace_reorders_permutation(self, tiny_dataset):
        new = pd.DataFrame({'batch': [3, 1, 2]}, index=['s3', 's1', 's2'])
        tiny_dataset.replace_covariates(new)
        assert list(tiny_dataset.covariate('batch')) == [1, 2, 3]

    def test_replace_type_error(self, tiny_dataset):
        with pytest.raises(TypeError):
            tiny_dataset.replace_covariates([1, 2, 3])

    def test_with_covariates_leaves_original(self, tiny_dataset):
        new = pd.DataFrame({'batch': [1, 1, 2]}, index=['s1', 's2', 's3'])
        replaced = tiny_dataset.with_covariates(new)
        assert list(replaced.covariates.columns) == ['batch']
        assert list(tiny_dataset.covariates.columns) == ['group', 'age']


class TestSelectSamples:
    """Sample subsetting keeps covariates aligned."""

    def test_order_preserved(self, tiny_dataset):
        sub = tiny_dataset.select_samples([2, 0, 1])

        assert list(sub.sample_ids) == ['s3', 's1', 's2']
        np.testing.assert_array_equal(sub.expression[0], [3.0, 1.0, 2.0])
        assert list(sub.covariates.index) == ['s3', 's1', 's2']
        assert list(sub.covariate('age')) == [50, 30, 40]
        assert_aligned(sub)

    def test_by_identifier(self, tiny_dataset):
        sub = tiny_dataset.select_samples(['s2', 's1'])
        assert list(sub.sample_ids) == ['s2', 's1']
        np.testing.assert_array_equal(sub.expression[:, 0], [2.0, 5.0, 8.0])
        assert_aligned(sub)

    def test_single_identifier_string(self, tiny_dataset):
        sub = tiny_dataset.select_samples('s2')
        assert sub.shape == (3, 1)

    def test_boolean_mask(self, tiny_dataset):
        sub = tiny_dataset.select_samples(tiny_dataset.covariate('group') == 'a')
        assert list(sub.sample_ids) == ['s1', 's3']
        assert_aligned(sub)

    def test_labeled_mask_aligned_by_identifier(self, tiny_dataset):
        mask = pd.Series([False, False, True], index=['s3', 's2', 's1'])
        sub = tiny_dataset.select_samples(mask)
        assert list(sub.sample_ids) == ['s1']
        assert sub.covariate('age').tolist() == [30]
        assert_aligned(sub)

    def test_mask_from_reordered_sheet(self, tiny_dataset):
        sheet = tiny_dataset.covariate_frame.sort_values('age', ascending=False)
        sub = tiny_dataset.select_samples(sheet['age'] < 45)
        assert list(sub.sample_ids) == ['s1', 's2']
        np.testing.assert_array_equal(sub.expression[0], [1.0, 2.0])

    def test_unlabeled_series_mask_is_positional(self, tiny_dataset):
        sub = tiny_dataset.select_samples(pd.Series([True, False, True]))
        assert list(sub.sample_ids) == ['s1', 's3']

    def test_labeled_mask_unknown_identifier(self, tiny_dataset):
        mask = pd.Series([True, True, True, False], index=['s1', 's2', 's3', 's9'])
        with pytest.raises(MissingIdentifierError) as excinfo:
            tiny_dataset.select_samples(mask)
        assert excinfo.value.missing == ['s9']

    def test_labeled_mask_must_cover_all_samples(self, tiny_dataset):
        mask = pd.Series([True, False], index=['s2', 's1'])
        with pytest.raises(ValueError, match="no value"):
            tiny_dataset.select_samples(mask)

    def test_nullable_mask_without_missing(self, tiny_dataset):
        sub = tiny_dataset.select_samples(pd.Series([True, False, True], dtype='boolean'))
        assert list(sub.sample_ids) == ['s1', 's3']

    def test_nullable_mask_with_missing_rejected(self, tiny_dataset):
        with pytest.raises(ValueError, match="missing values") as excinfo:
            tiny_dataset.select_samples(pd.Series([True, pd.NA, False], dtype='boolean'))
        assert not isinstance(excinfo.value, LookupError)

    def test_nullable_array_with_missing_rejected(self, tiny_dataset):
        with pytest.raises(ValueError, match="missing values"):
            tiny_dataset.select_samples(pd.array([True, pd.NA, False], dtype='boolean'))

    def test_predicate_on_covariate_row(self, tiny_dataset):
        sub = tiny_dataset.select_samples(lambda row: row['age'] >= 40)
        assert list(sub.sample_ids) == ['s2', 's3']

    def test_predicate_sees_sample_id(self, tiny_dataset):
        sub = tiny_dataset.select_samples(lambda row: row.name != 's2')
        assert list(sub.sample_ids) == ['s1', 's3']

    def test_slice(self, tiny_dataset):
        sub = tiny_dataset.select_samples(slice(1, None))
        assert list(sub.sample_ids) == ['s2', 's3']

    def test_negative_position(self, tiny_dataset):
        sub = tiny_dataset.select_samples([-1])
        assert list(sub.sample_ids) == ['s3']

    def test_empty_selection(self, tiny_dataset):
        sub = tiny_dataset.select_samples([])
        assert sub.shape == (3, 0)
        assert len(sub.covariates) == 0
        assert list(sub.covariates.columns) == ['group', 'age']
        assert_aligned(sub)

    def test_all_false_mask(self, tiny_dataset):
        sub = tiny_dataset.select_samples(np.zeros(3, dtype=bool))
        assert sub.n_samples == 0

    def test_missing_identifier(self, tiny_dataset):
        with pytest.raises(LookupError) as excinfo:
            tiny_dataset.select_samples(['s9'])
        assert isinstance(excinfo.value, MissingIdentifierError)
        assert excinfo.value.missing == ['s9']
        assert excinfo.value.axis == 'sample'
        assert 's9' in str(excinfo.value)

    def test_missing_identifier_reports_all(self, tiny_dataset):
        with pytest.raises(MissingIdentifierError) as excinfo:
            tiny_dataset.select_samples(['s1', 's8', 's9'])
        assert excinfo.value.missing == ['s8', 's9']

    def test_position_out_of_range(self, tiny_dataset):
        with pytest.raises(IndexError):
            tiny_dataset.select_samples([3])

    def test_mask_length_mismatch(self, tiny_dataset):
        with pytest.raises(ValueError, match="mask length"):
            tiny_dataset.select_samples([True, False])

    def test_duplicates_rejected(self, tiny_dataset):
        with pytest.raises(ValueError, match="duplicates"):
            tiny_dataset.select_samples([0, 0])

    def test_no_op_subset_is_equal(self, tiny_dataset):
        same = tiny_dataset.select_samples(list(tiny_dataset.sample_ids))
        assert same.equals(tiny_dataset)
        assert same is not tiny_dataset

    def test_subset_does_not_touch_original(self, tiny_dataset):
        tiny_dataset.select_samples([0])
        assert tiny_dataset.shape == (3, 3)
        assert_aligned(tiny_dataset)

    def test_metadata_carried(self, tiny_dataset):
        assert tiny_dataset.select_samples([0]).metadata == tiny_dataset.metadata


class TestSelectFeatures:
    """Feature subsetting keeps feature ids aligned."""

    def test_by_identifier(self, tiny_dataset):
        sub = tiny_dataset.select_features(['f3', 'f1'])
        assert list(sub.feature_ids) == ['f3', 'f1']
        np.testing.assert_array_equal(sub.expression[:, 0], [7.0, 1.0])
        assert list(sub.sample_ids) == ['s1', 's2', 's3']
        assert_aligned(sub)

    def test_labeled_mask_aligned_by_identifier(self, tiny_dataset):
        means = tiny_dataset.to_frame().mean(axis=1).sort_values(ascending=False)
        sub = tiny_dataset.select_features(means > 3.0)
        assert list(sub.feature_ids) == ['f2', 'f3']
        assert_aligned(sub)

    def test_predicate_on_identifier(self, small_dataset):
        sub = small_dataset.select_features(lambda fid: fid.startswith('100'))
        assert all(fid.startswith('100') for fid in sub.feature_ids)
        assert sub.n_features == 10

    def test_predicate_on_position_without_ids(self):
        ds = SynchronizedDataset(np.arange(8.0).reshape(4, 2), sample_ids=['a', 'b'])
        sub = ds.select_features(lambda i: i % 2 == 0)
        np.testing.assert_array_equal(sub.expression[:, 0], [0.0, 4.0])

    def test_identifier_without_ids(self):
        ds = SynchronizedDataset(np.zeros((2, 2)), sample_ids=['a', 'b'])
        with pytest.raises(MissingIdentifierError):
            ds.select_features(['probe1'])

    def test_empty_selection(self, tiny_dataset):
        sub = tiny_dataset.select_features([])
        assert sub.shape == (0, 3)
        assert len(sub.feature_ids) == 0
        assert_aligned(sub)

    def test_covariates_unchanged(self, tiny_dataset):
        sub = tiny_dataset.select_features([0])
        assert sub.covariates.equals(tiny_dataset.covariates)


class TestCombinedSubset:
    """Subsetting both axes at once."""

    def test_axes_independent(self, small_dataset):
        sub = small_dataset.subset(features=slice(0, 10), samples=[3, 1])
        assert sub.shape == (10, 2)
        assert list(sub.sample_ids) == [small_dataset.sample_ids[3], small_dataset.sample_ids[1]]
        assert list(sub.feature_ids) == list(small_dataset.feature_ids[:10])
        assert_aligned(sub)

    def test_row_subset_keeps_columns(self, small_dataset):
        sub = small_dataset.subset(features=[5, 6])
        assert list(sub.sample_ids) == list(small_dataset.sample_ids)

    def test_column_subset_keeps_rows(self, small_dataset):
        sub = small_dataset.subset(samples=[0])
        assert list(sub.feature_ids) == list(small_dataset.feature_ids)

    def test_getitem_tuple(self, tiny_dataset):
        sub = tiny_dataset[['f2'], ['s3', 's1']]
        np.testing.assert_array_equal(sub.expression, [[6.0, 4.0]])
        assert list(sub.covariate('group')) == ['a', 'a']

    def test_getitem_features_only(self, tiny_dataset):
        sub = tiny_dataset[0:2]
        assert sub.shape == (2, 3)

    def test_getitem_too_many(self, tiny_dataset):
        with pytest.raises(IndexError):
            tiny_dataset[0, 0, 0]

    def test_mask_predicate_equivalent(self, small_dataset):
        by_mask = small_dataset.select_samples(small_dataset.covariate('group') == 1)
        by_predicate = small_dataset.select_samples(lambda row: row['group'] == 1)
        assert by_mask.equals(by_predicate)


class TestDerived:
    """with_expression, copy, equality and representation."""

    def test_with_expression(self, tiny_dataset):
        doubled = tiny_dataset.with_expression(tiny_dataset.expression * 2)
        assert doubled.expression[2, 2] == 18.0
        assert doubled.covariates.equals(tiny_dataset.covariates)
        assert list(doubled.feature_ids) == list(tiny_dataset.feature_ids)

    def test_with_expression_shape_check(self, tiny_dataset):
        with pytest.raises(ValueError, match="shape"):
            tiny_dataset.with_expression(np.zeros((2, 3)))

    def test_copy_is_equal_and_independent(self, tiny_dataset):
        copy = tiny_dataset.copy()
        assert copy.equals(tiny_dataset)
        copy.replace_covariates(pd.DataFrame(index=['s1', 's2', 's3']))
        assert list(tiny_dataset.covariates.columns) == ['group', 'age']

    def test_equals_with_nan(self):
        values = np.array([[1.0, np.nan]])
        a = SynchronizedDataset(values, sample_ids=['x', 'y'])
        b = SynchronizedDataset(values, sample_ids=['x', 'y'])
        assert a.equals(b)

    def test_not_equal_on_order(self, tiny_dataset):
        assert not tiny_dataset.select_samples([1, 0, 2]).equals(tiny_dataset)

    def test_to_frame(self, tiny_dataset):
        frame = tiny_dataset.to_frame()
        assert frame.loc['f2', 's3'] == 6.0

    def test_repr(self, tiny_dataset):
        text = repr(tiny_dataset)
        assert "3 features" in text
        assert "s1...s3" in text
        assert "['group', 'age']" in text
