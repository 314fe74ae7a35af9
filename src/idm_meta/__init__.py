"""idm-meta: column <-> voxel bookkeeping for masked 3D imaging data."""

try:
    from ._version import version as __version__
except ImportError:
    __version__ = "unknown"

from .adjacency import build_adjacency
from .config import MetaConfig, adjacency_is_practical
from .coords import NOT_SELECTED, CoordinateIndex, build_coord_to_col, index_mask
from .errors import (
    AccelerationUnavailableWarning,
    ConfigurationError,
    DegenerateInputWarning,
)
from .meta import VoxelMeta, create_meta_from_mask
from .neighbors import (
    NeighborStrategy,
    NeighborTable,
    NumbaStrategy,
    ReferenceStrategy,
    find_neighbors,
    neighbor_offsets,
    select_strategy,
)
from .roi import RoiGroups, group_rois

__all__ = [
    "__version__",
    # Meta structure
    "VoxelMeta",
    "MetaConfig",
    "create_meta_from_mask",
    # Coordinate indexing
    "NOT_SELECTED",
    "CoordinateIndex",
    "index_mask",
    "build_coord_to_col",
    # Neighbour search
    "NeighborTable",
    "NeighborStrategy",
    "ReferenceStrategy",
    "NumbaStrategy",
    "find_neighbors",
    "neighbor_offsets",
    "select_strategy",
    # ROIs and adjacency
    "RoiGroups",
    "group_rois",
    "build_adjacency",
    "adjacency_is_practical",
    # Errors
    "ConfigurationError",
    "DegenerateInputWarning",
    "AccelerationUnavailableWarning",
]
