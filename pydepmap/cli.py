# pydepmap/cli.py
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from .exceptions import DepMapError, UsageError
from .graph import build_dependency_graph
from .manifest import read_manifest
from .metadata import SourceTreeConfig, SourceTreeResolver, default_search_path
from .policy import VisibilityPolicy
from .renderer import RendererConfig, build_dot, write_svg
from .resolver import FailurePolicy, ResolvedGraph, ResolverConfig, resolve_units

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pydepmap",
        description=(
            "Walk the import graph of Python packages in a project and print it "
            "as a Graphviz DOT digraph."
        ),
    )
    parser.add_argument(
        "roots",
        nargs="+",
        metavar="ROOT",
        help="Dotted name of a package or module to start from.",
    )

    # Traversal options
    parser.add_argument(
        "-m",
        "--mod",
        action=argparse.BooleanOptionalAction,
        default=True,
        help=(
            "Hide packages listed as dependencies in pyproject.toml (default: on). "
            "Each listed distribution also hides the import names it provides in the "
            "current environment, so results can differ between environments; see "
            "--no-installed-names."
        ),
    )
    parser.add_argument(
        "--no-installed-names",
        action="store_true",
        help="Match dependencies by their pyproject.toml names only, ignoring installed packages.",
    )
    parser.add_argument(
        "--stop-on-error",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Stop at the first package that cannot be resolved (default: on).",
    )
    parser.add_argument(
        "--allow-missing-deps",
        action="store_true",
        help=(
            "With --stop-on-error, do not stop on declared dependencies that cannot be "
            "resolved (e.g. not installed); they are hidden anyway."
        ),
    )
    parser.add_argument(
        "-t",
        "--with-tests",
        action="store_true",
        help="Also follow imports made by test files.",
    )
    parser.add_argument(
        "-l",
        "--max-level",
        type=int,
        default=256,
        help="Maximum depth of the dependency graph; roots are level 0 (default: 256).",
    )
    parser.add_argument(
        "--project-root",
        type=str,
        default=".",
        help="Directory holding pyproject.toml; also searched first for packages (default: .).",
    )

    # Output options
    parser.add_argument(
        "--horizontal",
        action="store_true",
        help="Lay out the graph left to right instead of top to bottom.",
    )
    parser.add_argument(
        "--format",
        choices=("dot", "json", "svg"),
        default="dot",
        help="Output format: 'dot' (Graphviz DOT), 'json' (resolved units), or 'svg'. Default: dot.",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        help="Output file path. DOT and JSON default to stdout, SVG to depgraph.svg.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log each resolved package to stderr.",
    )

    return parser


def main(argv: Any | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        return _run(args)
    except DepMapError as exc:
        parser.exit(1, f"{parser.prog}: error: {exc}\n")


def _run(args: argparse.Namespace) -> int:
    roots = [r.strip() for r in args.roots]
    if not all(roots):
        raise UsageError("need at least one non-empty package name to process")
    if args.max_level < 0:
        raise UsageError(f"--max-level must be >= 0, got {args.max_level}")

    project_root = Path(args.project_root)
    manifest = read_manifest(project_root, distributions={} if args.no_installed_names else None)
    logger.info("project %s", manifest.module)

    policy = VisibilityPolicy(required=manifest.required, honor_manifest=args.mod)
    metadata = SourceTreeResolver(SourceTreeConfig(search_path=default_search_path(project_root)))
    resolver_cfg = ResolverConfig(
        max_depth=args.max_level,
        on_failure=FailurePolicy.ABORT if args.stop_on_error else FailurePolicy.CONTINUE,
        include_tests=args.with_tests,
        search_dir=project_root,
        allow_missing_declared=args.allow_missing_deps,
    )

    resolved = resolve_units(roots, metadata, resolver_cfg, policy)

    if args.format == "json":
        data = _resolved_graph_to_jsonable(resolved, policy)
        _emit(json.dumps(data, indent=2, ensure_ascii=False) + "\n", args.output)
        return 0

    graph = build_dependency_graph(resolved, policy)
    dot = build_dot(graph, RendererConfig(horizontal=args.horizontal))

    if args.format == "dot":
        _emit(dot, args.output)
        return 0

    # args.format == "svg"
    output = Path(args.output) if args.output else Path("depgraph.svg")
    write_svg(dot, output)
    print(f"Wrote SVG to {output}")
    return 0


def _emit(text: str, output: str | None) -> None:
    if output is None:
        sys.stdout.write(text)
        return
    Path(output).write_text(text, encoding="utf-8")
    print(f"Wrote {output}")


def _resolved_graph_to_jsonable(resolved: ResolvedGraph, policy: VisibilityPolicy) -> Dict[str, Any]:
    units: List[Dict[str, Any]] = []
    for name in sorted(resolved.units):
        unit = resolved.units[name]
        units.append(
            {
                "name": unit.name,
                "directory": str(unit.directory) if unit.directory else None,
                "dependencies": resolved.dependencies_of(name),
                "category": policy.category(unit).value,
                "filtered": policy.is_filtered(unit),
                "error": getattr(unit.outcome, "reason", None),
            }
        )
    return {"units": units}


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
