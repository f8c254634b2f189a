from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .exceptions import UnitResolutionError
from .metadata import MetadataResolver, UnitFacts
from .policy import VisibilityPolicy

__all__ = [
    "FailurePolicy",
    "Resolved",
    "Failed",
    "Outcome",
    "Unit",
    "ResolvedGraph",
    "ResolverConfig",
    "resolve_units",
]

logger = logging.getLogger(__name__)


class FailurePolicy(str, Enum):
    """What to do when a unit cannot be resolved."""

    ABORT = "abort"
    CONTINUE = "continue"


@dataclass(frozen=True)
class Resolved:
    """The unit was resolved by the metadata collaborator."""


@dataclass(frozen=True)
class Failed:
    """Resolution failed; `reason` is the collaborator's message."""

    reason: str


Outcome = Union[Resolved, Failed]


@dataclass(frozen=True)
class Unit:
    """
    A resolved source unit.

    - `dependencies`: declared dependency names, deduplicated, in declaration
      order, never containing `name` itself
    - `is_declared` : the name matches the project's required-dependency list
    - `outcome`     : `Resolved()` or `Failed(reason)`
    """

    name: str
    directory: Optional[Path] = None
    search_root: Optional[Path] = None
    dependencies: Tuple[str, ...] = ()
    is_stdlib: bool = False
    has_native: bool = False
    is_declared: bool = False
    outcome: Outcome = Resolved()

    @property
    def failed(self) -> bool:
        return isinstance(self.outcome, Failed)


@dataclass
class ResolvedGraph:
    """
    The output of the resolver: every unit reached, keyed by name, in the
    order the traversal first reached them.

    Edges are not stored separately. A unit's edges are its dependencies that
    were themselves reached, which keeps the adjacency independent of which
    parent happened to reach a shared unit first.
    """

    units: Dict[str, Unit] = field(default_factory=dict)

    def __contains__(self, name: object) -> bool:
        return name in self.units

    def dependencies_of(self, name: str) -> List[str]:
        unit = self.units[name]
        return [dep for dep in unit.dependencies if dep in self.units]

    def edges(self) -> List[Tuple[str, str]]:
        return [(name, dep) for name in self.units for dep in self.dependencies_of(name)]

    @property
    def failed(self) -> List[str]:
        """Names of units whose resolution failed."""
        return [name for name, unit in self.units.items() if unit.failed]


@dataclass
class ResolverConfig:
    """
    Configuration for the traversal.

    max_depth:
        Roots sit at depth 0. Units deeper than this are silently dropped.
    on_failure:
        `FailurePolicy.ABORT` stops the run at the first failure;
        `FailurePolicy.CONTINUE` records the failed unit and goes on.
    include_tests:
        Also follow test-scope imports.
    search_dir:
        Directory roots are looked up in first.
    allow_missing_declared:
        Under `FailurePolicy.ABORT`, record a unit that fails to resolve but
        is hidden by the manifest filter instead of stopping. Off by default.
    """

    max_depth: int = 256
    on_failure: FailurePolicy = FailurePolicy.ABORT
    include_tests: bool = False
    search_dir: Optional[Path] = None
    allow_missing_declared: bool = False


def resolve_units(
    roots: Sequence[str],
    metadata: MetadataResolver,
    config: Optional[ResolverConfig] = None,
    policy: Optional[VisibilityPolicy] = None,
) -> ResolvedGraph:
    """
    Discover every unit reachable from `roots`.

    Parameters
    ----------
    roots:
        Unit names to start from, processed in order.
    metadata:
        The collaborator that turns a name into `UnitFacts`.
    config:
        Optional :class:`ResolverConfig`. If omitted, defaults are used.
    policy:
        Optional visibility policy. Filtered units are recorded but their
        dependencies are not followed. If omitted, only standard-library
        units are filtered.

    Raises
    ------
    UnitResolutionError
        Under `FailurePolicy.ABORT`, on the first unit that fails to resolve.
    """
    if config is None:
        config = ResolverConfig()
    if policy is None:
        policy = VisibilityPolicy()
    if config.max_depth < 0:
        raise ValueError(f"max_depth must be >= 0, got {config.max_depth}")

    context = _Traversal(metadata=metadata, config=config, policy=policy)
    context.run(roots)
    return context.graph


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class _Visit:
    name: str
    search_dir: Optional[Path]
    depth: int
    importer: Optional[str]


class _Traversal:
    """
    State for one resolution run.

    Uses an explicit stack instead of recursion. Children are pushed in
    reverse so they are popped in declaration order, which gives the same
    visit order as a recursive depth-first walk.
    """

    def __init__(self, metadata: MetadataResolver, config: ResolverConfig, policy: VisibilityPolicy):
        self.metadata = metadata
        self.config = config
        self.policy = policy
        self.graph = ResolvedGraph()

    def run(self, roots: Iterable[str]) -> None:
        stack: List[_Visit] = [
            _Visit(name=root, search_dir=self.config.search_dir, depth=0, importer=None)
            for root in reversed(list(roots))
        ]
        while stack:
            visit = stack.pop()
            if visit.depth > self.config.max_depth:
                logger.debug("depth %d exceeds max, not following %s", visit.depth, visit.name)
                continue
            if visit.name in self.graph:
                continue

            unit = self._resolve(visit)
            if unit.name in self.graph:
                # a root that canonicalized to an already visited unit
                continue
            self.graph.units[unit.name] = unit

            if unit.failed or self.policy.is_filtered(unit):
                continue
            for dep in reversed(unit.dependencies):
                if dep not in self.graph:
                    stack.append(
                        _Visit(name=dep, search_dir=unit.search_root, depth=visit.depth + 1, importer=unit.name)
                    )

    def _resolve(self, visit: _Visit) -> Unit:
        try:
            facts = self.metadata.resolve(visit.name, visit.search_dir)
        except UnitResolutionError as exc:
            unit = Unit(
                name=visit.name,
                search_root=visit.search_dir,
                is_declared=self.policy.matches_required(visit.name),
                outcome=Failed(exc.reason),
            )
            hidden = self.policy.is_filtered(unit)
            if self.config.on_failure is FailurePolicy.ABORT and not (
                hidden and self.config.allow_missing_declared
            ):
                raise UnitResolutionError(
                    visit.name, exc.reason, depth=visit.depth, importer=visit.importer
                ) from exc
            if hidden:
                logger.debug("declared dependency %s not resolvable: %s", visit.name, exc.reason)
            else:
                logger.warning("failed to resolve %s (imported by %s): %s", visit.name, visit.importer or "<root>", exc.reason)
            return unit
        return self._make_unit(facts)

    def _make_unit(self, facts: UnitFacts) -> Unit:
        return Unit(
            name=facts.name,
            directory=facts.directory,
            search_root=facts.search_root,
            dependencies=_declared_dependencies(facts, self.config.include_tests),
            is_stdlib=facts.is_stdlib,
            has_native=facts.has_native,
            is_declared=self.policy.matches_required(facts.name),
        )


def _declared_dependencies(facts: UnitFacts, include_tests: bool) -> Tuple[str, ...]:
    """Imports (plus test imports), deduplicated, without self-references."""
    names = list(facts.imports)
    if include_tests:
        names.extend(facts.test_imports)
    seen: List[str] = []
    for name in names:
        if name == facts.name or name in seen:
            continue
        seen.append(name)
    return tuple(seen)
