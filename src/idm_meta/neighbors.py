"""Neighbour search over the selected voxels of a mask.

Instead of comparing every pair of voxels, each voxel visits the lattice
offsets inside the searchlight radius and looks the candidate coordinate up
in the dense coordinate -> column table. The cost per voxel is therefore
``O((2r + 1) ** 3)`` regardless of how many voxels are selected.

Two interchangeable strategies implement the search:

- :class:`ReferenceStrategy` uses vectorised numpy and is always available.
- :class:`NumbaStrategy` runs a compiled, parallel kernel when numba is
  installed.

Both walk the offsets in the same order and return identical tables.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from functools import lru_cache
from types import ModuleType
from typing import TYPE_CHECKING

import numpy as np

from .config import METRICS, is_integral
from .coords import NOT_SELECTED, Dimensions, build_coord_to_col
from .errors import AccelerationUnavailableWarning, warn

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

# Upper bound on (voxel, offset) candidates examined per numpy block
DEFAULT_BLOCK_CANDIDATES = 1 << 21


class AccelerationError(RuntimeError):
    """The accelerated kernel failed to compile or run."""


@dataclass(frozen=True)
class NeighborTable:
    """Ragged neighbour lists stored as a padded fixed-width table.

    Attributes
    ----------
    neighbors : NDArray[np.intp]
        ``(m, max_count)`` neighbour columns. Row ``i`` is valid up to
        ``counts[i]``; the remaining slots hold ``NOT_SELECTED``.
    counts : NDArray[np.intp]
        ``(m,)`` number of neighbours of each column.
    strategy : str
        Name of the strategy that produced the table.
    """

    neighbors: NDArray[np.intp]
    counts: NDArray[np.intp]
    strategy: str = "reference"

    @property
    def n_voxels(self) -> int:
        return int(self.counts.shape[0])

    @property
    def max_count(self) -> int:
        """Width of the table, the largest neighbour count observed."""
        return int(self.neighbors.shape[1])

    def neighbors_of(self, col: int) -> NDArray[np.intp]:
        """Return the neighbour columns of ``col``."""
        return self.neighbors[col, : self.counts[col]]

    def as_lists(self) -> list[NDArray[np.intp]]:
        """Return one array of neighbour columns per column."""
        return [self.neighbors[i, :n] for i, n in enumerate(self.counts)]

    def to_sets(self) -> list[frozenset[int]]:
        """Return the neighbour relation as one set per column."""
        return [frozenset(row.tolist()) for row in self.as_lists()]

    @classmethod
    def from_candidates(cls, candidates: NDArray[np.intp]) -> NeighborTable:
        """Compact a candidate table into a neighbour table.

        Parameters
        ----------
        candidates : NDArray[np.intp]
            ``(m, k)`` column per (voxel, offset) pair, ``NOT_SELECTED``
            where the offset does not land on a selected voxel.
        """
        valid = candidates != NOT_SELECTED
        counts = valid.sum(axis=1).astype(np.intp)
        width = int(counts.max()) if counts.size else 0
        # Stable sort moves valid entries to the front, keeping offset order
        order = np.argsort(~valid, axis=1, kind="stable")
        packed = np.take_along_axis(candidates, order, axis=1)[:, :width]
        return cls(neighbors=np.ascontiguousarray(packed), counts=counts)

    @classmethod
    def concatenate(cls, tables: list[NeighborTable]) -> NeighborTable:
        """Stack tables for consecutive blocks of columns."""
        if not tables:
            return empty_table(0)
        counts = np.concatenate([t.counts for t in tables])
        width = max(t.max_count for t in tables)
        neighbors = np.full((counts.shape[0], width), NOT_SELECTED, dtype=np.intp)
        start = 0
        for t in tables:
            neighbors[start : start + t.n_voxels, : t.max_count] = t.neighbors
            start += t.n_voxels
        return cls(neighbors=neighbors, counts=counts)


def empty_table(n_voxels: int) -> NeighborTable:
    """Return a table where no column has neighbours."""
    return NeighborTable(
        neighbors=np.empty((n_voxels, 0), dtype=np.intp),
        counts=np.zeros(n_voxels, dtype=np.intp),
    )


def neighbor_offsets(
    radius: int,
    metric: str = "chebyshev",
    dimensions: Dimensions | None = None,
) -> NDArray[np.intp]:
    """Enumerate the lattice offsets within ``radius`` of a voxel.

    Parameters
    ----------
    radius : int
        Searchlight radius, a positive integer.
    metric : {"chebyshev", "euclidean"}
        ``"chebyshev"`` keeps the full ``(2r + 1) ** 3`` box,
        ``"euclidean"`` keeps offsets with ``dx**2 + dy**2 + dz**2 <= r**2``.
    dimensions : tuple[int, int, int], optional
        Volume shape. Offsets that cannot land inside the volume along some
        axis are dropped, which keeps very large radii tractable.

    Returns
    -------
    NDArray[np.intp]
        ``(k, 3)`` offsets in lexicographic ``(dx, dy, dz)`` order, without
        the zero offset.
    """
    if isinstance(radius, bool) or not is_integral(radius) or radius < 1:
        raise ValueError(f"radius must be a positive integer, got {radius!r}")
    if metric not in METRICS:
        raise ValueError(f"metric must be one of {METRICS}, got {metric!r}")
    radius = int(radius)

    if dimensions is None:
        reach = (radius, radius, radius)
    else:
        reach = tuple(min(radius, int(d) - 1) for d in dimensions)

    axes = [np.arange(-r, r + 1, dtype=np.intp) for r in reach]
    grid = np.stack(np.meshgrid(*axes, indexing="ij"), axis=-1).reshape(-1, 3)

    keep = np.any(grid != 0, axis=1)
    if metric == "euclidean":
        keep &= np.sum(grid * grid, axis=1) <= radius * radius
    return np.ascontiguousarray(grid[keep])


class NeighborStrategy(ABC):
    """Interface of a neighbour search implementation."""

    name: str = "abstract"

    def is_available(self) -> bool:
        """Return True if this strategy can run in the current environment."""
        return True

    @abstractmethod
    def find(
        self,
        col_to_coord: NDArray[np.intp],
        coord_to_col: NDArray[np.intp],
        offsets: NDArray[np.intp],
    ) -> NeighborTable:
        """Return the neighbour table for ``col_to_coord``.

        Neighbours of each voxel must be listed in the order of ``offsets``.
        """

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ReferenceStrategy(NeighborStrategy):
    """Vectorised numpy neighbour search.

    Voxels are processed in blocks so that at most ``block_candidates``
    (voxel, offset) pairs are materialised at once.
    """

    name = "reference"

    def __init__(self, block_candidates: int = DEFAULT_BLOCK_CANDIDATES):
        if block_candidates < 1:
            raise ValueError("block_candidates must be >= 1")
        self.block_candidates = int(block_candidates)

    def find(self, col_to_coord, coord_to_col, offsets):
        n_voxels = len(col_to_coord)
        if n_voxels == 0 or len(offsets) == 0:
            return empty_table(n_voxels)

        dims = np.asarray(coord_to_col.shape, dtype=np.intp)
        block = max(1, self.block_candidates // len(offsets))

        tables = []
        for start in range(0, n_voxels, block):
            coords = col_to_coord[start : start + block]
            candidates = coords[:, None, :] + offsets[None, :, :]
            inside = np.all((candidates >= 0) & (candidates < dims), axis=2)

            cols = np.full(inside.shape, NOT_SELECTED, dtype=np.intp)
            hits = candidates[inside]
            cols[inside] = coord_to_col[hits[:, 0], hits[:, 1], hits[:, 2]]
            tables.append(NeighborTable.from_candidates(cols))

        return NeighborTable.concatenate(tables)


@lru_cache(maxsize=1)
def _load_numba_kernels() -> ModuleType | None:
    """Import the compiled kernels, or return None if numba is not installed."""
    try:
        from . import _numba_kernels
    except ImportError:
        logger.debug("numba is not installed; accelerated neighbour search disabled")
        return None
    return _numba_kernels


class NumbaStrategy(NeighborStrategy):
    """Parallel compiled neighbour search using numba.

    Runs two passes over the voxels: the first counts neighbours to size the
    table, the second fills it. Each voxel only writes its own row.
    """

    name = "numba"

    def is_available(self) -> bool:
        return _load_numba_kernels() is not None

    def find(self, col_to_coord, coord_to_col, offsets):
        kernels = _load_numba_kernels()
        if kernels is None:
            raise AccelerationError("numba is not installed")

        n_voxels = len(col_to_coord)
        if n_voxels == 0 or len(offsets) == 0:
            return empty_table(n_voxels)

        col_to_coord = np.ascontiguousarray(col_to_coord, dtype=np.intp)
        coord_to_col = np.ascontiguousarray(coord_to_col, dtype=np.intp)
        offsets = np.ascontiguousarray(offsets, dtype=np.intp)

        counts = np.zeros(n_voxels, dtype=np.intp)
        try:
            kernels.count_neighbors(col_to_coord, coord_to_col, offsets, counts)
            neighbors = np.full(
                (n_voxels, int(counts.max())), NOT_SELECTED, dtype=np.intp
            )
            kernels.fill_neighbors(col_to_coord, coord_to_col, offsets, neighbors)
        except kernels.NumbaError as exc:
            raise AccelerationError(f"numba kernel failed: {exc}") from exc

        return NeighborTable(neighbors=neighbors, counts=counts)


def select_strategy(
    accelerate: bool | None = None, stacklevel: int = 2
) -> NeighborStrategy:
    """Pick the neighbour search strategy.

    Parameters
    ----------
    accelerate : bool or None, default=None
        ``None`` returns :class:`NumbaStrategy` if numba is installed and
        the reference strategy otherwise. ``True`` does the same but emits an
        :class:`~idm_meta.errors.AccelerationUnavailableWarning` when numba
        is missing. ``False`` always returns the reference strategy.
    stacklevel : int, default=2
        Frame the warning is attributed to, counted as for
        :func:`warnings.warn` from this function.
    """
    if accelerate is not None and not accelerate:
        return ReferenceStrategy()

    strategy = NumbaStrategy()
    if strategy.is_available():
        return strategy

    if accelerate is None:
        logger.debug("numba is not installed; using the reference strategy")
    else:
        warn(
            logger,
            "Accelerated neighbour search requested but numba is not installed; "
            "using the reference strategy",
            AccelerationUnavailableWarning,
            stacklevel=stacklevel + 1,
        )
    return ReferenceStrategy()


def find_neighbors(
    col_to_coord: NDArray[np.intp],
    dimensions: Dimensions,
    radius: int = 1,
    metric: str = "chebyshev",
    strategy: NeighborStrategy | None = None,
    coord_to_col: NDArray[np.intp] | None = None,
    stacklevel: int = 2,
) -> NeighborTable:
    """Find, for every voxel, the other voxels within ``radius``.

    Parameters
    ----------
    col_to_coord : NDArray[np.intp]
        ``(m, 3)`` coordinates of the selected voxels.
    dimensions : tuple[int, int, int]
        Shape of the volume the coordinates live in.
    radius : int, default=1
        Searchlight radius, a positive integer.
    metric : {"chebyshev", "euclidean"}, default="chebyshev"
        Distance used for the radius test.
    strategy : NeighborStrategy, optional
        Search implementation, :class:`ReferenceStrategy` by default. If an
        accelerated strategy fails, the search is repeated with the
        reference strategy and an
        :class:`~idm_meta.errors.AccelerationUnavailableWarning` is emitted.
    coord_to_col : NDArray[np.intp], optional
        Precomputed dense lookup; built from ``col_to_coord`` if omitted.
    stacklevel : int, default=2
        Frame a fallback warning is attributed to, counted as for
        :func:`warnings.warn` from this function.

    Returns
    -------
    NeighborTable
        Neighbours of each voxel, in the order of :func:`neighbor_offsets`.
    """
    col_to_coord = np.asarray(col_to_coord, dtype=np.intp).reshape(-1, 3)
    dimensions = tuple(int(d) for d in dimensions)
    if coord_to_col is None:
        coord_to_col = build_coord_to_col(col_to_coord, dimensions)
    elif coord_to_col.shape != dimensions:
        raise ValueError(
            f"coord_to_col has shape {coord_to_col.shape}, expected {dimensions}"
        )
    if strategy is None:
        strategy = ReferenceStrategy()

    offsets = neighbor_offsets(radius, metric, dimensions)
    logger.debug(
        f"Searching {len(offsets)} offsets per voxel for {len(col_to_coord):,} "
        f"voxels with the {strategy.name} strategy"
    )

    used = strategy.name
    try:
        table = strategy.find(col_to_coord, coord_to_col, offsets)
    except AccelerationError as exc:
        warn(
            logger,
            f"Accelerated neighbour search unavailable ({exc}); "
            "using the reference strategy",
            AccelerationUnavailableWarning,
            stacklevel=stacklevel + 1,
        )
        table = ReferenceStrategy().find(col_to_coord, coord_to_col, offsets)
        used = ReferenceStrategy.name

    if table.n_voxels:
        logger.info(
            f"Found neighbours for {table.n_voxels:,} voxels "
            f"(radius={radius}, metric={metric}): "
            f"max {table.max_count}, mean {table.counts.mean():.1f}"
        )
    return replace(table, strategy=used)
