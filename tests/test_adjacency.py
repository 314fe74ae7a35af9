"""Tests for the sparse adjacency matrix."""

import numpy as np
from scipy import sparse

from idm_meta.adjacency import build_adjacency
from idm_meta.coords import index_mask
from idm_meta.neighbors import NeighborTable, empty_table, find_neighbors


def neighbor_table(mask) -> NeighborTable:
    index = index_mask(mask)
    return find_neighbors(
        index.col_to_coord, index.dimensions, coord_to_col=index.coord_to_col
    )


class TestBuildAdjacency:
    """Tests for build_adjacency."""

    def test_shape_and_dtype(self, labelled_mask):
        """Test the matrix is m x m boolean sparse."""
        table = neighbor_table(labelled_mask)
        adjacency = build_adjacency(table)
        assert sparse.issparse(adjacency)
        assert adjacency.shape == (table.n_voxels, table.n_voxels)
        assert adjacency.dtype == bool

    def test_matches_neighbors(self, random_mask):
        """Test (i, j) is set iff j is a neighbour of i."""
        table = neighbor_table(random_mask)
        adjacency = build_adjacency(table)
        for i, nbrs in enumerate(table.as_lists()):
            row = adjacency[i].indices
            assert sorted(row.tolist()) == sorted(nbrs.tolist())
        assert adjacency.nnz == int(table.counts.sum())

    def test_symmetric(self, random_mask):
        """Test the adjacency matrix is symmetric with an empty diagonal."""
        adjacency = build_adjacency(neighbor_table(random_mask))
        assert (adjacency != adjacency.T).nnz == 0
        assert not adjacency.diagonal().any()

    def test_cube(self, cube_mask):
        """Test the full 3x3x3 cube adjacency."""
        adjacency = build_adjacency(neighbor_table(cube_mask))
        degrees = np.asarray(adjacency.sum(axis=1)).ravel()
        assert degrees.max() == 26
        assert degrees.min() == 7

    def test_no_neighbors(self):
        """Test a table without neighbours gives an all-zero matrix."""
        adjacency = build_adjacency(empty_table(4))
        assert adjacency.shape == (4, 4)
        assert adjacency.nnz == 0

    def test_empty(self):
        """Test an empty table gives a 0 x 0 matrix."""
        adjacency = build_adjacency(empty_table(0))
        assert adjacency.shape == (0, 0)
