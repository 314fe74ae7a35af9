"""Exceptions and warning categories raised while building meta structures."""

from __future__ import annotations

import logging
import warnings


class ConfigurationError(ValueError):
    """An option passed to the meta builder is unknown or has an invalid value."""


class DegenerateInputWarning(UserWarning):
    """The requested combination of options was corrected automatically."""


class AccelerationUnavailableWarning(UserWarning):
    """The accelerated neighbour search could not be used."""


def warn(
    logger: logging.Logger,
    message: str,
    category: type[Warning],
    stacklevel: int = 3,
) -> None:
    """Report an advisory condition on the module logger and as a Python warning.

    Parameters
    ----------
    logger : logging.Logger
        Logger of the module reporting the condition.
    message : str
        Human readable message.
    category : type[Warning]
        Warning category, so callers can filter or assert on it.
    stacklevel : int
        Passed through to :func:`warnings.warn`.
    """
    logger.warning(message)
    warnings.warn(message, category, stacklevel=stacklevel)
