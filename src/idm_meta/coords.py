"""Mapping between data matrix columns and voxel coordinates.

Columns are numbered from 0 in column-major (Fortran) scan order of the mask:
``x`` varies fastest, then ``y``, then ``z``. Linear indices refer to the
volume flattened in the same order, so ``volume.ravel(order="F")[indices]``
returns the selected voxels in column order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)

# Value of coord_to_col at voxels that are not in the data matrix
NOT_SELECTED = -1

Dimensions = tuple[int, int, int]


@dataclass(frozen=True)
class CoordinateIndex:
    """Column <-> coordinate tables for the selected voxels of a mask.

    Attributes
    ----------
    dimensions : tuple[int, int, int]
        Shape of the volume, ``(dimx, dimy, dimz)``.
    col_to_coord : NDArray[np.intp]
        ``(m, 3)`` voxel coordinates, one row per column.
    coord_to_col : NDArray[np.intp]
        Dense lookup of shape ``dimensions`` holding the column of each
        selected voxel and ``NOT_SELECTED`` elsewhere.
    indices_in_3d : NDArray[np.intp]
        ``(m,)`` Fortran-order linear indices of the selected voxels.
    labels : NDArray
        ``(m,)`` mask values at the selected voxels, in column order.
    """

    dimensions: Dimensions
    col_to_coord: NDArray[np.intp]
    coord_to_col: NDArray[np.intp]
    indices_in_3d: NDArray[np.intp]
    labels: NDArray

    @property
    def n_voxels(self) -> int:
        """Number of selected voxels (columns)."""
        return int(self.indices_in_3d.shape[0])


def validate_mask(mask: ArrayLike) -> np.ndarray:
    """Return ``mask`` as an array after checking it describes a 3D volume.

    Raises
    ------
    ValueError
        If the mask is not 3D, has an empty axis, or holds negative values.
    """
    mask = np.asarray(mask)
    if mask.ndim != 3:
        raise ValueError(f"Expected a 3D mask, got shape {mask.shape}")
    if min(mask.shape) < 1:
        raise ValueError(f"Mask dimensions must all be >= 1, got {mask.shape}")
    if mask.dtype.kind not in "biuf":
        raise ValueError(f"Mask must hold numeric labels, got dtype {mask.dtype}")
    if mask.dtype.kind in "if" and mask.size and mask.min() < 0:
        raise ValueError("Mask labels must be non-negative")
    return mask


def index_mask(mask: ArrayLike, validate: bool = True) -> CoordinateIndex:
    """Build the column <-> coordinate tables for a labelled mask.

    Parameters
    ----------
    mask : array-like
        3D array of non-negative labels. Voxels with a value > 0 are
        selected; booleans are accepted.
    validate : bool, default=True
        Check the mask with :func:`validate_mask`. Callers that already
        validated it can skip the extra pass over the volume.

    Returns
    -------
    CoordinateIndex
        Tables for the ``m`` selected voxels. ``m`` may be 0.
    """
    mask = validate_mask(mask) if validate else np.asarray(mask)
    dims: Dimensions = tuple(int(d) for d in mask.shape)

    flat = mask.ravel(order="F")
    indices_in_3d = np.flatnonzero(flat > 0).astype(np.intp, copy=False)
    n_voxels = indices_in_3d.shape[0]

    col_to_coord = np.column_stack(
        np.unravel_index(indices_in_3d, dims, order="F")
    ).astype(np.intp, copy=False)
    col_to_coord = col_to_coord.reshape(n_voxels, 3)

    coord_to_col = build_coord_to_col(col_to_coord, dims)

    labels = flat[indices_in_3d]
    if labels.dtype == np.bool_:
        labels = labels.astype(np.uint8)

    logger.debug(
        f"Indexed mask of shape {dims}: {n_voxels:,} selected voxels "
        f"out of {mask.size:,}"
    )

    return CoordinateIndex(
        dimensions=dims,
        col_to_coord=col_to_coord,
        coord_to_col=coord_to_col,
        indices_in_3d=indices_in_3d,
        labels=labels,
    )


def build_coord_to_col(
    col_to_coord: NDArray[np.intp], dimensions: Dimensions
) -> NDArray[np.intp]:
    """Build the dense coordinate -> column lookup from a coordinate table.

    Raises
    ------
    ValueError
        If a coordinate falls outside ``dimensions`` or appears twice.
    """
    col_to_coord = np.asarray(col_to_coord, dtype=np.intp).reshape(-1, 3)
    dims = np.asarray(dimensions, dtype=np.intp)
    if len(col_to_coord) and (
        (col_to_coord < 0).any() or (col_to_coord >= dims).any()
    ):
        raise ValueError(f"Coordinates fall outside the volume {tuple(dimensions)}")

    coord_to_col = np.full(tuple(dimensions), NOT_SELECTED, dtype=np.intp)
    coord_to_col[col_to_coord[:, 0], col_to_coord[:, 1], col_to_coord[:, 2]] = (
        np.arange(len(col_to_coord), dtype=np.intp)
    )
    if np.count_nonzero(coord_to_col != NOT_SELECTED) != len(col_to_coord):
        raise ValueError("Coordinate table contains duplicate coordinates")
    return coord_to_col
