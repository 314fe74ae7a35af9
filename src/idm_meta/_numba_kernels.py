"""Compiled neighbour search kernels.

Importing this module requires numba. Both kernels walk the offsets in the
order given, so they list neighbours exactly as the numpy search does.
"""

from __future__ import annotations

from numba import njit, prange
from numba.core.errors import NumbaError

__all__ = ["NumbaError", "count_neighbors", "fill_neighbors"]


@njit(inline="always")
def _lookup(coord_to_col, x, y, z):
    nx, ny, nz = coord_to_col.shape
    if x < 0 or y < 0 or z < 0 or x >= nx or y >= ny or z >= nz:
        return -1
    return coord_to_col[x, y, z]


@njit(parallel=True)
def count_neighbors(col_to_coord, coord_to_col, offsets, counts):
    """Store in ``counts[v]`` the number of selected voxels around voxel ``v``."""
    for v in prange(col_to_coord.shape[0]):
        x = col_to_coord[v, 0]
        y = col_to_coord[v, 1]
        z = col_to_coord[v, 2]
        n = 0
        for t in range(offsets.shape[0]):
            c = _lookup(
                coord_to_col, x + offsets[t, 0], y + offsets[t, 1], z + offsets[t, 2]
            )
            if c >= 0:
                n += 1
        counts[v] = n


@njit(parallel=True)
def fill_neighbors(col_to_coord, coord_to_col, offsets, neighbors):
    """Write the neighbour columns of voxel ``v`` into row ``v`` of ``neighbors``."""
    for v in prange(col_to_coord.shape[0]):
        x = col_to_coord[v, 0]
        y = col_to_coord[v, 1]
        z = col_to_coord[v, 2]
        n = 0
        for t in range(offsets.shape[0]):
            c = _lookup(
                coord_to_col, x + offsets[t, 0], y + offsets[t, 1], z + offsets[t, 2]
            )
            if c >= 0:
                neighbors[v, n] = c
                n += 1
