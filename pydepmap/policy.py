from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .resolver import Unit

__all__ = ["Category", "VisibilityPolicy"]


class Category(str, Enum):
    """Color bucket of a rendered unit."""

    BUILTIN = "builtin"
    NATIVE = "native"
    DECLARED_DEPENDENCY = "declared-dependency"
    ERROR = "error"
    INTERNAL = "internal"

    @property
    def color(self) -> str:
        return _COLORS[self]


_COLORS = {
    Category.BUILTIN: "palegreen",
    Category.NATIVE: "darkgoldenrod1",
    Category.DECLARED_DEPENDENCY: "palegoldenrod",
    Category.ERROR: "red",
    Category.INTERNAL: "paleturquoise",
}


@dataclass(frozen=True)
class VisibilityPolicy:
    """
    Decides which units are rendered and how they are colored.

    required:
        Entries of the project's required-dependency list. A unit matches when
        any entry is a substring of its name.
    honor_manifest:
        If True, units matching `required` are filtered from the output.
        Standard-library units are filtered either way.
    """

    required: Sequence[str] = ()
    honor_manifest: bool = True

    def matches_required(self, name: str) -> bool:
        return any(entry in name for entry in self.required)

    def is_filtered(self, unit: "Unit") -> bool:
        if self.honor_manifest and self.matches_required(unit.name):
            return True
        return unit.is_stdlib

    def category(self, unit: "Unit") -> Category:
        """First match wins; native code outranks a declared dependency."""
        if unit.is_stdlib:
            return Category.BUILTIN
        if unit.has_native:
            return Category.NATIVE
        if unit.is_declared:
            return Category.DECLARED_DEPENDENCY
        if unit.failed:
            return Category.ERROR
        return Category.INTERNAL
