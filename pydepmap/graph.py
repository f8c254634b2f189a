from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .policy import Category, VisibilityPolicy
from .resolver import ResolvedGraph

__all__ = [
    "IdentifierTable",
    "GraphNode",
    "GraphEdge",
    "DependencyGraph",
    "build_dependency_graph",
    "dot_escape",
]


class IdentifierTable:
    """
    Memoized map from unit name to DOT node identifier.

    The identifier is the quoted name with backslashes and quotes escaped, so
    distinct names never share an identifier.
    """

    def __init__(self) -> None:
        self._ids: Dict[str, str] = {}

    def __getitem__(self, name: str) -> str:
        ident = self._ids.get(name)
        if ident is None:
            ident = _derive_id(name)
            self._ids[name] = ident
        return ident

    def __len__(self) -> int:
        return len(self._ids)


@dataclass
class GraphNode:
    """
    A rendered unit.

    - id       : DOT identifier from the `IdentifierTable`
    - label    : the unit name
    - category : color bucket picked by the `VisibilityPolicy`
    """

    id: str
    label: str
    category: Category

    @property
    def color(self) -> str:
        return self.category.color


@dataclass(frozen=True)
class GraphEdge:
    """A directed edge between two rendered units, by unit name."""

    src: str
    dst: str


@dataclass
class DependencyGraph:
    """
    Graph model derived from a `ResolvedGraph`.

    `nodes` is ordered by unit name; `edges` follows node order and, per
    node, the order its dependencies were declared in.
    """

    nodes: Dict[str, GraphNode]
    edges: List[GraphEdge]
    ids: IdentifierTable = field(default_factory=IdentifierTable)


def build_dependency_graph(
    resolved: ResolvedGraph,
    policy: Optional[VisibilityPolicy] = None,
    ids: Optional[IdentifierTable] = None,
) -> DependencyGraph:
    """
    Build a `DependencyGraph` from a `ResolvedGraph`.

    Filtered units are dropped along with every edge touching them. This
    function is deterministic and pure: the node and edge order depends only
    on the unit names and their declared dependencies.
    """
    if policy is None:
        policy = VisibilityPolicy()
    if ids is None:
        ids = IdentifierTable()

    visible = sorted(name for name, unit in resolved.units.items() if not policy.is_filtered(unit))

    nodes: Dict[str, GraphNode] = {}
    for name in visible:
        unit = resolved.units[name]
        nodes[name] = GraphNode(id=ids[name], label=name, category=policy.category(unit))

    edges: List[GraphEdge] = []
    for name in visible:
        for dep in resolved.dependencies_of(name):
            if dep in nodes and dep != name:
                edges.append(GraphEdge(src=name, dst=dep))

    return DependencyGraph(nodes=nodes, edges=edges, ids=ids)


def dot_escape(text: str) -> str:
    """Escape backslashes and double quotes for a quoted DOT string."""
    return text.replace("\\", "\\\\").replace('"', '\\"')


def _derive_id(name: str) -> str:
    return f'"{dot_escape(name)}"'
