"""The meta structure relating data matrix columns to voxels in a volume.

A data set in IDM form is a matrix with ``n`` examples (time points) by ``m``
voxels, and generally only a subset of the voxels in the volume is present.
:class:`VoxelMeta` keeps the mapping between the columns of that matrix and
their 3D positions, the spatial neighbours of each column, and the grouping
of columns into ROIs.

The easiest way to create one is from a labelled 3D mask::

    meta = create_meta_from_mask(mask, radius=1, build_adjacency=True)

    volume = meta.to_volume(p_values)  # NaN outside the mask
    for label, columns in meta.iter_rois():
        ...
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import numpy as np

from .adjacency import build_adjacency
from .config import MetaConfig
from .coords import NOT_SELECTED, Dimensions, index_mask, validate_mask
from .errors import DegenerateInputWarning, warn
from .neighbors import NeighborTable, find_neighbors, select_strategy
from .roi import RoiGroups, group_rois

if TYPE_CHECKING:
    from numpy.typing import ArrayLike, NDArray
    from scipy import sparse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoxelMeta:
    """Column <-> voxel bookkeeping for a masked volume.

    Attributes
    ----------
    dimensions : tuple[int, int, int]
        Shape of the imaging volume, ``(dimx, dimy, dimz)``.
    col_to_coord : NDArray[np.intp]
        ``(m, 3)`` coordinates of each column's voxel.
    coord_to_col : NDArray[np.intp]
        Column of each voxel, ``-1`` for voxels not in the data matrix.
    indices_in_3d : NDArray[np.intp]
        Fortran-order linear indices of the columns' voxels.
    neighbors : NeighborTable
        Neighbours of each column within ``radius``.
    rois : RoiGroups
        Columns grouped by mask label.
    adjacency : scipy.sparse.csr_matrix or None
        Boolean column adjacency, only present when it was requested and
        ``radius == 1``.
    config : MetaConfig
        Options the structure was built with.
    """

    dimensions: Dimensions
    col_to_coord: NDArray[np.intp]
    coord_to_col: NDArray[np.intp]
    indices_in_3d: NDArray[np.intp]
    neighbors: NeighborTable
    rois: RoiGroups
    adjacency: sparse.csr_matrix | None
    config: MetaConfig

    # -- Shape ---------------------------------------------------------------

    @property
    def dimx(self) -> int:
        return self.dimensions[0]

    @property
    def dimy(self) -> int:
        return self.dimensions[1]

    @property
    def dimz(self) -> int:
        return self.dimensions[2]

    @property
    def n_voxels(self) -> int:
        """Number of columns ``m``."""
        return int(self.indices_in_3d.shape[0])

    @property
    def radius(self) -> int:
        return self.config.radius

    @property
    def strategy(self) -> str:
        """Name of the neighbour search strategy that was used."""
        return self.neighbors.strategy

    # -- Neighbours ----------------------------------------------------------

    @property
    def voxels_to_neighbours(self) -> NDArray[np.intp]:
        """``(m, max_count)`` neighbour table padded with ``-1``."""
        return self.neighbors.neighbors

    @property
    def number_of_neighbours(self) -> NDArray[np.intp]:
        return self.neighbors.counts

    def neighbors_of(self, col: int) -> NDArray[np.intp]:
        """Return the neighbour columns of column ``col``."""
        return self.neighbors.neighbors_of(col)

    # -- ROIs ----------------------------------------------------------------

    @property
    def roi_ids(self) -> NDArray:
        return self.rois.roi_ids

    @property
    def roi_columns(self) -> tuple[NDArray[np.intp], ...]:
        return self.rois.roi_columns

    @property
    def n_rois(self) -> int:
        return self.rois.n_rois

    def iter_rois(self) -> Iterator[tuple[Any, NDArray[np.intp]]]:
        """Yield ``(label, columns)`` for each ROI in ascending label order."""
        return iter(self.rois)

    def roi_indices_in_3d(self, label) -> NDArray[np.intp]:
        """Return the linear indices of the voxels of ROI ``label``."""
        return self.indices_in_3d[self.rois.columns_for(label)]

    # -- Coordinates ---------------------------------------------------------

    def column_of(self, x: int, y: int, z: int) -> int:
        """Return the column of voxel ``(x, y, z)``, or ``-1`` if absent."""
        if not all(0 <= c < d for c, d in zip((x, y, z), self.dimensions)):
            return NOT_SELECTED
        return int(self.coord_to_col[x, y, z])

    def coord_of(self, col: int) -> tuple[int, int, int]:
        """Return the ``(x, y, z)`` coordinate of column ``col``."""
        x, y, z = self.col_to_coord[col]
        return int(x), int(y), int(z)

    # -- Projection ----------------------------------------------------------

    def to_volume(self, values: ArrayLike, fill: float = np.nan) -> np.ndarray:
        """Place a length-``m`` vector into a full volume.

        Parameters
        ----------
        values : array-like
            One value per column, e.g. the p-values of a test on each voxel.
        fill : float, default=np.nan
            Value given to voxels outside the data matrix.

        Returns
        -------
        np.ndarray
            Volume of shape ``dimensions``.
        """
        values = np.asarray(values)
        if values.shape != (self.n_voxels,):
            raise ValueError(
                f"Expected {self.n_voxels} values, got array of shape {values.shape}"
            )
        dtype = np.result_type(values, fill)
        flat = np.full(int(np.prod(self.dimensions)), fill, dtype=dtype)
        flat[self.indices_in_3d] = values
        return flat.reshape(self.dimensions, order="F")

    def from_volume(self, volume: ArrayLike) -> np.ndarray:
        """Read the length-``m`` vector of column values out of a volume."""
        volume = np.asarray(volume)
        if volume.shape != self.dimensions:
            raise ValueError(
                f"Expected a volume of shape {self.dimensions}, got {volume.shape}"
            )
        return volume.ravel(order="F")[self.indices_in_3d]

    def to_matrix(self, volumes: ArrayLike) -> np.ndarray:
        """Convert a stack of volumes into an ``(n, m)`` data matrix.

        Parameters
        ----------
        volumes : array-like
            Array of shape ``(n, dimx, dimy, dimz)``, one volume per example.
        """
        volumes = np.asarray(volumes)
        if volumes.ndim != 4 or volumes.shape[1:] != self.dimensions:
            raise ValueError(
                f"Expected volumes of shape (n, *{self.dimensions}), "
                f"got {volumes.shape}"
            )
        return volumes.reshape(len(volumes), -1, order="F")[:, self.indices_in_3d]


def _freeze(array: np.ndarray) -> np.ndarray:
    array.flags.writeable = False
    return array


def create_meta_from_mask(
    mask: ArrayLike,
    config: MetaConfig | None = None,
    **options: Any,
) -> VoxelMeta:
    """Create the meta structure for the voxels selected by ``mask``.

    Parameters
    ----------
    mask : array-like
        3D array of non-negative labels. Voxels > 0 become columns, and
        voxels sharing a label form an ROI. A binary mask gives a single ROI.
    config : MetaConfig, optional
        Options; defaults to ``MetaConfig()``.
    **options
        Individual options overriding ``config``: ``radius``,
        ``build_adjacency``, ``accelerate``, ``metric`` (and the aliases
        ``adjacency`` and ``useMEX``).

    Returns
    -------
    VoxelMeta
        Immutable meta structure.

    Raises
    ------
    ConfigurationError
        If an option is not recognised or has an invalid value. Nothing is
        computed in that case.
    ValueError
        If ``mask`` is not a 3D array of non-negative labels.

    Warns
    -----
    DegenerateInputWarning
        If the adjacency matrix is requested with ``radius > 1``; it is not
        built.
    AccelerationUnavailableWarning
        If ``accelerate=True`` but numba cannot be used, or if the compiled
        search fails and the numpy search is used instead.
    """
    config = (config or MetaConfig()).with_options(**options)
    mask = validate_mask(mask)

    if config.build_adjacency and not config.adjacency_enabled:
        warn(
            logger,
            f"radius={config.radius} > 1, turning off construction of the "
            "adjacency matrix",
            DegenerateInputWarning,
        )

    # 1) mappings between 3D positions and data matrix columns
    index = index_mask(mask, validate=False)
    logger.info(
        f"Mask {index.dimensions}: {index.n_voxels:,} voxels selected"
    )

    # 2) neighbours of each voxel within the radius
    strategy = select_strategy(config.accelerate, stacklevel=3)
    neighbors = find_neighbors(
        index.col_to_coord,
        index.dimensions,
        radius=config.radius,
        metric=config.metric,
        strategy=strategy,
        coord_to_col=index.coord_to_col,
        stacklevel=3,
    )

    # 3) ROIs
    rois = group_rois(index.labels)
    logger.info(f"Found {rois.n_rois} ROI(s): {rois.roi_ids.tolist()}")

    # 4) adjacency matrix, if requested
    adjacency = build_adjacency(neighbors) if config.adjacency_enabled else None

    for array in (
        index.col_to_coord,
        index.coord_to_col,
        index.indices_in_3d,
        neighbors.neighbors,
        neighbors.counts,
        rois.roi_ids,
        *rois.roi_columns,
    ):
        _freeze(array)

    return VoxelMeta(
        dimensions=index.dimensions,
        col_to_coord=index.col_to_coord,
        coord_to_col=index.coord_to_col,
        indices_in_3d=index.indices_in_3d,
        neighbors=neighbors,
        rois=rois,
        adjacency=adjacency,
        config=config,
    )
