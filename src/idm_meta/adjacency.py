"""Sparse adjacency matrix over data matrix columns."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
from scipy import sparse

if TYPE_CHECKING:
    from .neighbors import NeighborTable

logger = logging.getLogger(__name__)


def build_adjacency(table: NeighborTable) -> sparse.csr_matrix:
    """Build the ``(m, m)`` boolean adjacency matrix of a neighbour table.

    Entry ``(i, j)`` is True iff ``j`` is a neighbour of ``i``. The matrix is
    symmetric because the neighbour relation is.

    Parameters
    ----------
    table : NeighborTable
        Neighbour lists of the ``m`` columns.

    Returns
    -------
    scipy.sparse.csr_matrix
        Boolean adjacency matrix.
    """
    n_voxels = table.n_voxels
    rows = np.repeat(np.arange(n_voxels, dtype=np.intp), table.counts)
    if table.max_count:
        valid = np.arange(table.max_count) < table.counts[:, None]
        cols = table.neighbors[valid]
    else:
        cols = np.empty(0, dtype=np.intp)

    adjacency = sparse.csr_matrix(
        (np.ones(len(rows), dtype=bool), (rows, cols)),
        shape=(n_voxels, n_voxels),
    )
    logger.info(
        f"Built {n_voxels:,} x {n_voxels:,} adjacency matrix with "
        f"{adjacency.nnz:,} non-zero entries"
    )
    return adjacency
