"""Options accepted by the meta structure builder.

Options are held in an immutable :class:`MetaConfig` and validated as soon as
it is created, so a misspelled or invalid option aborts the build before any
voxel is touched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields, replace
from typing import Any

import numpy as np

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

METRICS = ("chebyshev", "euclidean")

# Option spellings of the original MATLAB interface, mapped to field names
_ALIASES = {
    "adjacency": "build_adjacency",
    "buildAdjacency": "build_adjacency",
    "useMEX": "accelerate",
    "use_mex": "accelerate",
}


@dataclass(frozen=True)
class MetaConfig:
    """Configuration for :func:`idm_meta.create_meta_from_mask`.

    Parameters
    ----------
    radius : int, default=1
        Searchlight radius in voxels. Must be a positive integer.
    build_adjacency : bool, default=False
        Build the sparse column adjacency matrix. Only honoured for
        ``radius == 1``.
    accelerate : bool or None, default=None
        Use the numba neighbour search. ``None`` uses it when numba is
        installed and silently falls back otherwise; ``True`` warns if it
        cannot be used; ``False`` always uses the numpy search.
    metric : {"chebyshev", "euclidean"}, default="chebyshev"
        Distance used to decide whether two voxels are neighbours.
    """

    radius: int = 1
    build_adjacency: bool = False
    accelerate: bool | None = None
    metric: str = "chebyshev"

    def __post_init__(self) -> None:
        # bool is an int subclass; radius=True is almost certainly a mistake
        if isinstance(self.radius, (bool, np.bool_)) or not is_integral(self.radius):
            raise ConfigurationError(
                f"Option 'radius' must be a positive integer, got {self.radius!r}"
            )
        if self.radius < 1:
            raise ConfigurationError(
                f"Option 'radius' must be a positive integer, got {self.radius!r}"
            )
        object.__setattr__(self, "radius", int(self.radius))
        object.__setattr__(
            self, "build_adjacency", _as_flag("build_adjacency", self.build_adjacency)
        )
        if self.accelerate is not None:
            object.__setattr__(
                self, "accelerate", _as_flag("accelerate", self.accelerate)
            )

        if self.metric not in METRICS:
            raise ConfigurationError(
                f"Option 'metric' must be one of {METRICS}, got {self.metric!r}"
            )

    @classmethod
    def from_options(cls, **options: Any) -> MetaConfig:
        """Build a configuration from keyword options.

        Accepts the field names plus the original option spellings
        ``adjacency``, ``buildAdjacency``, ``useMEX`` and ``use_mex``.

        Raises
        ------
        ConfigurationError
            If an option name is not recognised or a value is invalid.
        """
        return cls().with_options(**options)

    def with_options(self, **options: Any) -> MetaConfig:
        """Return a copy of this configuration with ``options`` applied."""
        if not options:
            return self

        known = {f.name for f in fields(self)}
        resolved: dict[str, Any] = {}
        unknown = []
        for name, value in options.items():
            field_name = _ALIASES.get(name, name)
            if field_name not in known:
                unknown.append(name)
                continue
            if field_name in resolved:
                raise ConfigurationError(
                    f"Option '{field_name}' was given more than once "
                    f"(as '{name}' and an alias)"
                )
            resolved[field_name] = value

        if unknown:
            names = ", ".join(repr(n) for n in sorted(unknown))
            raise ConfigurationError(
                f"Unrecognized option(s): {names}. "
                f"Valid options are: {', '.join(sorted(known))}"
            )

        logger.debug(f"Applying options {resolved}")
        return replace(self, **resolved)

    @property
    def adjacency_enabled(self) -> bool:
        """Whether the adjacency matrix will actually be built."""
        return self.build_adjacency and adjacency_is_practical(self.radius)


def adjacency_is_practical(radius: int) -> bool:
    """Return True if an adjacency matrix is sensible at this radius.

    Candidate neighbour counts grow with the cube of the radius, so the
    adjacency matrix is only built for immediately adjacent voxels.
    """
    return radius <= 1


def is_integral(value: Any) -> bool:
    try:
        return int(value) == value
    except (TypeError, ValueError, OverflowError):
        return False


def _as_flag(name: str, value: Any) -> bool:
    # "false" is truthy
    if not isinstance(value, (bool, np.bool_)):
        raise ConfigurationError(
            f"Option '{name}' must be True or False, got {value!r}"
        )
    return bool(value)
