"""Grouping of data matrix columns into regions of interest by mask label."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoiGroups:
    """Partition of the columns by mask label.

    Attributes
    ----------
    roi_ids : NDArray
        Sorted distinct labels found at the selected voxels.
    roi_columns : tuple[NDArray[np.intp], ...]
        Ascending column indices for each entry of ``roi_ids``.
    """

    roi_ids: NDArray
    roi_columns: tuple[NDArray[np.intp], ...]

    @property
    def n_rois(self) -> int:
        return int(len(self.roi_ids))

    def columns_for(self, label) -> NDArray[np.intp]:
        """Return the columns carrying ``label``.

        Raises
        ------
        KeyError
            If no selected voxel carries ``label``.
        """
        pos = int(np.searchsorted(self.roi_ids, label))
        if pos >= self.n_rois or self.roi_ids[pos] != label:
            raise KeyError(f"No ROI with label {label!r}")
        return self.roi_columns[pos]

    def __iter__(self) -> Iterator[tuple[object, NDArray[np.intp]]]:
        return iter(zip(self.roi_ids.tolist(), self.roi_columns))

    def __len__(self) -> int:
        return self.n_rois


def group_rois(labels: ArrayLike) -> RoiGroups:
    """Group column indices by the mask label of their voxel.

    Parameters
    ----------
    labels : array-like
        ``(m,)`` positive mask values at the selected voxels, in column
        order.

    Returns
    -------
    RoiGroups
        One group per distinct label. Every column belongs to exactly one
        group.
    """
    labels = np.asarray(labels).ravel()
    roi_ids, inverse, sizes = np.unique(labels, return_inverse=True, return_counts=True)

    # Stable sort keeps columns ascending inside each group
    order = np.argsort(inverse.ravel(), kind="stable").astype(np.intp, copy=False)
    roi_columns = tuple(np.split(order, np.cumsum(sizes)[:-1])) if len(sizes) else ()

    logger.debug(
        f"Grouped {labels.size:,} columns into {len(roi_ids)} ROI(s): "
        f"{dict(zip(roi_ids.tolist(), sizes.tolist()))}"
    )
    return RoiGroups(roi_ids=roi_ids, roi_columns=roi_columns)
