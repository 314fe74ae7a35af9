"""Tests for ROI grouping."""

import numpy as np
import pytest

from idm_meta.roi import group_rois


class TestGroupRois:
    """Tests for group_rois."""

    def test_partition(self):
        """Test groups cover every column exactly once."""
        labels = np.array([5, 2, 5, 9, 2, 2, 9, 5])
        groups = group_rois(labels)
        all_columns = np.concatenate(groups.roi_columns)
        assert sorted(all_columns.tolist()) == list(range(len(labels)))
        assert len(all_columns) == len(set(all_columns.tolist()))

    def test_sorted_ids_and_columns(self):
        """Test ROI ids are sorted and columns ascend inside each group."""
        labels = np.array([5, 2, 5, 9, 2, 2, 9, 5])
        groups = group_rois(labels)
        assert groups.roi_ids.tolist() == [2, 5, 9]
        assert groups.roi_columns[0].tolist() == [1, 4, 5]
        assert groups.roi_columns[1].tolist() == [0, 2, 7]
        assert groups.roi_columns[2].tolist() == [3, 6]

    def test_columns_carry_label(self):
        """Test every column of a group carries that group's label."""
        rng = np.random.default_rng(0)
        labels = rng.integers(1, 6, size=200)
        for label, columns in group_rois(labels):
            assert np.all(labels[columns] == label)

    def test_single_label(self):
        """Test a uniform label gives one ROI containing all columns."""
        groups = group_rois(np.ones(10, dtype=np.uint8))
        assert groups.n_rois == 1
        assert groups.roi_columns[0].tolist() == list(range(10))

    def test_empty(self):
        """Test no labels give no ROI."""
        groups = group_rois(np.array([], dtype=np.int32))
        assert groups.n_rois == 0
        assert groups.roi_columns == ()
        assert list(groups) == []

    def test_columns_for(self):
        """Test looking a group up by label."""
        groups = group_rois(np.array([4, 1, 4]))
        assert groups.columns_for(4).tolist() == [0, 2]
        assert groups.columns_for(1).tolist() == [1]

    def test_columns_for_missing(self):
        """Test looking up an absent label raises KeyError."""
        groups = group_rois(np.array([4, 1, 4]))
        with pytest.raises(KeyError):
            groups.columns_for(3)
        with pytest.raises(KeyError):
            groups.columns_for(10)

    def test_len_and_iter(self):
        """Test the container protocol."""
        groups = group_rois(np.array([3, 3, 8]))
        assert len(groups) == 2
        assert [label for label, _ in groups] == [3, 8]
