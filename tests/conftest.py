from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from pydepmap.exceptions import UnitResolutionError
from pydepmap.metadata import UnitFacts


class FakeMetadata:
    """
    In-memory metadata resolver.

    `units` maps a name to its facts. Names listed in `broken` raise
    `UnitResolutionError`; any other unknown name raises too.
    """

    def __init__(self, units: Dict[str, UnitFacts], broken: Tuple[str, ...] = ()) -> None:
        self.units = units
        self.broken = broken
        self.calls: List[Tuple[str, Optional[Path]]] = []

    def resolve(self, name: str, search_dir: Optional[Path]) -> UnitFacts:
        self.calls.append((name, search_dir))
        if name in self.broken or name not in self.units:
            raise UnitResolutionError(name, f"no such unit {name}")
        return self.units[name]

    def resolved_names(self) -> List[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def make_metadata():
    """
    Build a `FakeMetadata` from a plain adjacency dict.

    Keyword arguments become per-unit overrides, e.g.
    ``make_metadata({"a": ["b"]}, native={"b"})``.
    """

    def factory(
        adjacency: Dict[str, List[str]],
        tests: Optional[Dict[str, List[str]]] = None,
        native=(),
        stdlib=(),
        broken=(),
    ) -> FakeMetadata:
        tests = tests or {}
        names = set(adjacency) | set(tests)
        units = {
            name: UnitFacts(
                name=name,
                directory=Path("/src") / name,
                search_root=Path("/src"),
                imports=tuple(adjacency.get(name, ())),
                test_imports=tuple(tests.get(name, ())),
                is_stdlib=name in stdlib,
                has_native=name in native,
            )
            for name in names
        }
        return FakeMetadata(units, broken=tuple(broken))

    return factory
