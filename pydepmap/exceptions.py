"""
Exception hierarchy for pydepmap.

Everything raised on purpose inherits from `DepMapError` so the command line
can report it uniformly and exit with a non-zero status.
"""

from __future__ import annotations

from typing import Optional


class DepMapError(Exception):
    """Base exception for all pydepmap errors."""


class UsageError(DepMapError):
    """The command line was given unusable arguments."""


class ManifestError(DepMapError):
    """The project manifest could not be used."""

    def __init__(self, message: str, path: object = None):
        self.path = path
        super().__init__(message)


class ManifestReadError(ManifestError):
    """The manifest file is missing or unreadable."""


class ManifestParseError(ManifestError):
    """The manifest file is not valid TOML or lacks required fields."""


class UnitResolutionError(DepMapError):
    """
    A unit name could not be turned into unit facts.

    The metadata resolver raises it with `name` and `reason`. The traversal
    re-raises it with `depth` and `importer` filled in so the message shows
    where in the graph the failure happened.
    """

    def __init__(
        self,
        name: str,
        reason: str,
        depth: Optional[int] = None,
        importer: Optional[str] = None,
    ):
        self.name = name
        self.reason = reason
        self.depth = depth
        self.importer = importer
        if depth is None:
            message = f"cannot resolve {name}: {reason}"
        else:
            by = importer or "<root>"
            message = f"failed to import {name} (imported at level {depth} by {by}):\n{reason}"
        super().__init__(message)
