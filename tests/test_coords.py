"""Tests for the column <-> coordinate indexer."""

import numpy as np
import pytest

from idm_meta.coords import NOT_SELECTED, build_coord_to_col, index_mask


class TestIndexMask:
    """Tests for index_mask."""

    def test_count_consistency(self, labelled_mask):
        """Test that m matches the mask and every table."""
        index = index_mask(labelled_mask)
        m = int(np.count_nonzero(labelled_mask > 0))
        assert index.n_voxels == m
        assert index.col_to_coord.shape == (m, 3)
        assert index.indices_in_3d.shape == (m,)
        assert index.labels.shape == (m,)

    def test_column_bijection(self, labelled_mask):
        """Test coord_to_col and col_to_coord are inverse mappings."""
        index = index_mask(labelled_mask)
        cols = index.coord_to_col[
            index.col_to_coord[:, 0], index.col_to_coord[:, 1], index.col_to_coord[:, 2]
        ]
        np.testing.assert_array_equal(cols, np.arange(index.n_voxels))

        for coord in np.argwhere(labelled_mask > 0):
            col = index.coord_to_col[tuple(coord)]
            np.testing.assert_array_equal(index.col_to_coord[col], coord)

    def test_unselected_cells(self, labelled_mask):
        """Test that unselected voxels map to NOT_SELECTED."""
        index = index_mask(labelled_mask)
        assert np.all(index.coord_to_col[labelled_mask == 0] == NOT_SELECTED)
        assert np.all(index.coord_to_col[labelled_mask > 0] >= 0)

    def test_column_major_order(self):
        """Test that columns follow Fortran scan order (x fastest)."""
        mask = np.zeros((2, 2, 2), dtype=np.uint8)
        mask[1, 0, 0] = 1
        mask[0, 1, 0] = 1
        mask[0, 0, 1] = 1
        index = index_mask(mask)
        np.testing.assert_array_equal(
            index.col_to_coord, [[1, 0, 0], [0, 1, 0], [0, 0, 1]]
        )
        np.testing.assert_array_equal(index.indices_in_3d, [1, 2, 4])

    def test_linear_indices(self, labelled_mask):
        """Test indices_in_3d address the voxels in a Fortran-flattened volume."""
        index = index_mask(labelled_mask)
        expected = np.ravel_multi_index(
            tuple(index.col_to_coord.T), labelled_mask.shape, order="F"
        )
        np.testing.assert_array_equal(index.indices_in_3d, expected)
        np.testing.assert_array_equal(
            labelled_mask.ravel(order="F")[index.indices_in_3d], index.labels
        )

    def test_labels(self, labelled_mask):
        """Test labels hold the mask values in column order."""
        index = index_mask(labelled_mask)
        expected = labelled_mask[tuple(index.col_to_coord.T)]
        np.testing.assert_array_equal(index.labels, expected)

    def test_boolean_mask(self):
        """Test that boolean masks are accepted and give label 1."""
        mask = np.zeros((3, 3, 3), dtype=bool)
        mask[1, 1, 1] = True
        index = index_mask(mask)
        assert index.n_voxels == 1
        assert index.labels.tolist() == [1]

    def test_empty_mask(self):
        """Test that a mask with no selected voxel is legal."""
        index = index_mask(np.zeros((4, 3, 2)))
        assert index.n_voxels == 0
        assert index.col_to_coord.shape == (0, 3)
        assert index.indices_in_3d.shape == (0,)
        assert np.all(index.coord_to_col == NOT_SELECTED)

    def test_dimensions(self, labelled_mask):
        """Test dimensions are the mask shape as ints."""
        index = index_mask(labelled_mask)
        assert index.dimensions == (6, 5, 4)
        assert all(isinstance(d, int) for d in index.dimensions)

    def test_not_3d(self):
        """Test that non-3D masks are rejected."""
        with pytest.raises(ValueError, match="3D"):
            index_mask(np.ones((3, 3)))

    def test_empty_axis(self):
        """Test that masks with a zero-length axis are rejected."""
        with pytest.raises(ValueError, match=">= 1"):
            index_mask(np.ones((3, 0, 3)))

    def test_negative_labels(self):
        """Test that negative labels are rejected."""
        mask = np.zeros((2, 2, 2), dtype=np.int8)
        mask[0, 0, 0] = -1
        with pytest.raises(ValueError, match="non-negative"):
            index_mask(mask)


class TestBuildCoordToCol:
    """Tests for build_coord_to_col."""

    def test_lookup(self):
        """Test the lookup holds the row index of each coordinate."""
        coords = np.array([[0, 0, 0], [2, 1, 0], [1, 1, 1]])
        lookup = build_coord_to_col(coords, (3, 2, 2))
        assert lookup[0, 0, 0] == 0
        assert lookup[2, 1, 0] == 1
        assert lookup[1, 1, 1] == 2
        assert np.count_nonzero(lookup != NOT_SELECTED) == 3

    def test_out_of_bounds(self):
        """Test that coordinates outside the volume are rejected."""
        with pytest.raises(ValueError, match="outside"):
            build_coord_to_col(np.array([[3, 0, 0]]), (3, 3, 3))

    def test_duplicates(self):
        """Test that duplicate coordinates are rejected."""
        with pytest.raises(ValueError, match="duplicate"):
            build_coord_to_col(np.array([[1, 1, 1], [1, 1, 1]]), (3, 3, 3))
