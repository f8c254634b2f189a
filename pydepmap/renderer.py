# pydepmap/renderer.py
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List

from .graph import DependencyGraph, dot_escape


@dataclass
class RendererConfig:
    """
    Controls how the dependency graph is written as DOT.

    horizontal:
        If True, lay the graph out left to right instead of top to bottom.
    graph_name:
        Name of the DOT digraph.
    """

    horizontal: bool = False
    graph_name: str = "pydepmap"


def build_dot(graph: DependencyGraph, renderer_config: RendererConfig) -> str:
    """
    Build a Graphviz DOT string from a dependency graph.

    Each node declaration is followed by that node's outgoing edges. This is
    a pure function: it does not touch the filesystem or run Graphviz.
    """
    ids = graph.ids

    outgoing: Dict[str, List[str]] = {}
    for edge in graph.edges:
        outgoing.setdefault(edge.src, []).append(edge.dst)

    lines: List[str] = []
    lines.append(f"digraph {_sanitize_name(renderer_config.graph_name)} {{")
    if renderer_config.horizontal:
        lines.append('  rankdir="LR";')
    lines.append("  splines=spline;")
    lines.append("  nodesep=0.4;")
    lines.append("  ranksep=0.8;")
    lines.append('  node [shape="box", style="rounded,filled"];')
    lines.append('  edge [arrowsize="0.5"];')

    for name, node in graph.nodes.items():
        lines.append(
            f'  {node.id} [label="{dot_escape(node.label)}", color="{node.color}", target="_blank"];'
        )
        for dst in outgoing.get(name, ()):
            lines.append(f"  {node.id} -> {ids[dst]};")

    lines.append("}")
    return "\n".join(lines) + "\n"


def write_svg(dot: str, output: Path) -> None:  # pragma: no cover
    """Render DOT to `output` as SVG. Needs the Graphviz `dot` binary."""
    from graphviz import Source

    output.write_bytes(Source(dot, format="svg").pipe())


def _sanitize_name(name: str) -> str:
    """Keep a graph name usable as a bare DOT identifier."""
    cleaned = "".join(ch if ch.isalnum() or ch == "_" else "_" for ch in name)
    if not cleaned or cleaned[0].isdigit():
        cleaned = f"g_{cleaned}"
    return cleaned
