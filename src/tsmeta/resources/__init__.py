"""Packaged data files for :mod:`tsmeta` (defaults and stub catalog)."""

from __future__ import annotations

from importlib import resources
from importlib.resources.abc import Traversable


def get_resource(relative_path: str) -> Traversable:
    """Return a traversable handle to a packaged resource.

    Raises:
        FileNotFoundError: If no resource exists at ``relative_path``.

    Example:
        >>> get_resource("tsmeta.defaults.toml").name
        'tsmeta.defaults.toml'
    """

    candidate = resources.files(__package__)
    for part in relative_path.split("/"):
        candidate = candidate.joinpath(part)
    if not (candidate.is_file() or candidate.is_dir()):
        raise FileNotFoundError(relative_path)
    return candidate


__all__ = ["get_resource"]
