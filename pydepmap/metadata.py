from __future__ import annotations

import ast
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from .exceptions import UnitResolutionError

__all__ = [
    "UnitFacts",
    "MetadataResolver",
    "SourceTreeConfig",
    "SourceTreeResolver",
    "default_search_path",
    "is_stdlib_name",
]

logger = logging.getLogger(__name__)

STDLIB_NAMES = frozenset(sys.stdlib_module_names) | frozenset(sys.builtin_module_names)

NATIVE_SUFFIXES = (".c", ".cc", ".cpp", ".cxx", ".h", ".pyx", ".pxd", ".so", ".pyd")
EXTENSION_SUFFIXES = (".so", ".pyd")


@dataclass(frozen=True)
class UnitFacts:
    """
    Everything the traversal needs to know about one unit.

    `name` is the canonical unit name, which may differ from the name that was
    asked for (``pkg.mod`` canonicalizes to its package ``pkg``).
    `search_root` is the search path entry the unit was found under; imports
    of this unit are looked up there first.
    """

    name: str
    directory: Optional[Path] = None
    search_root: Optional[Path] = None
    imports: Tuple[str, ...] = ()
    test_imports: Tuple[str, ...] = ()
    is_stdlib: bool = False
    has_native: bool = False


class MetadataResolver(Protocol):
    """Turns a unit name plus a search directory into `UnitFacts`."""

    def resolve(self, name: str, search_dir: Optional[Path]) -> UnitFacts:
        """Raise `UnitResolutionError` when the unit cannot be resolved."""
        ...


@dataclass
class SourceTreeConfig:
    """
    Configuration for `SourceTreeResolver`.

    search_path:
        Directories searched, in order, after the per-call search directory.
    exclude:
        Directory names that are never treated as packages.
    follow_symlinks:
        Whether symlinked source files are parsed.
    """

    search_path: Sequence[Path] = field(default_factory=tuple)
    follow_symlinks: bool = False
    exclude: Sequence[str] = (
        ".git",
        ".hg",
        ".svn",
        "__pycache__",
        ".mypy_cache",
        ".pytest_cache",
        ".venv",
        "venv",
        "env",
    )


def default_search_path(project_root: Path) -> List[Path]:
    """Project root, its ``src/`` directory when present, then ``sys.path``."""
    root = Path(project_root)
    paths: List[Path] = [root]
    if (root / "src").is_dir():
        paths.append(root / "src")
    for entry in sys.path:
        if not entry:
            continue
        path = Path(entry)
        if path.is_dir() and path not in paths:
            paths.append(path)
    return paths


def is_stdlib_name(name: str) -> bool:
    return name.split(".", 1)[0] in STDLIB_NAMES


@dataclass(frozen=True)
class _Location:
    name: str
    root: Path
    path: Path
    is_package: bool


class SourceTreeResolver:
    """
    Resolve units by looking at Python sources on disk.

    A unit is a package directory or a top-level single-file module. Its
    imports come from the ``.py`` files directly inside the directory, parsed
    with :mod:`ast`, and are canonicalized to unit names.
    """

    def __init__(self, config: Optional[SourceTreeConfig] = None) -> None:
        self.config = config if config is not None else SourceTreeConfig()
        self._locations: Dict[Tuple[str, bool, Tuple[Path, ...]], Optional[_Location]] = {}

    def resolve(self, name: str, search_dir: Optional[Path]) -> UnitFacts:
        if is_stdlib_name(name):
            return UnitFacts(name=name.split(".", 1)[0], is_stdlib=True)

        roots = self._roots(search_dir)
        loc = self._locate(name, roots, strict=True)
        if loc is None:
            searched = ", ".join(str(r) for r in roots) or "<empty search path>"
            raise UnitResolutionError(name, f"cannot find {name!r} in {searched}")

        if loc.is_package:
            files = self._source_files(loc.path)
            has_native = _has_native_files(loc.path)
            directory = loc.path
        elif loc.path.suffix == ".py":
            files = [loc.path]
            has_native = False
            directory = loc.path.parent
        else:
            # extension module: nothing to parse
            files = []
            has_native = True
            directory = loc.path.parent

        package = loc.name if loc.is_package else None
        imports: List[str] = []
        test_imports: List[str] = []
        for path in files:
            tree = _parse_file(loc.name, path)
            target = test_imports if _is_test_file(path.name) else imports
            for dep in self._iter_imports(tree, package, roots):
                if dep not in target:
                    target.append(dep)

        logger.debug("resolved %s at %s (%d files)", loc.name, loc.path, len(files))
        return UnitFacts(
            name=loc.name,
            directory=directory,
            search_root=loc.root,
            imports=tuple(imports),
            test_imports=tuple(test_imports),
            has_native=has_native,
        )

    # --- lookup ----------------------------------------------------------

    def _roots(self, search_dir: Optional[Path]) -> Tuple[Path, ...]:
        roots: List[Path] = []
        for path in ([search_dir] if search_dir is not None else []) + list(self.config.search_path):
            path = Path(path)
            if path not in roots:
                roots.append(path)
        return tuple(roots)

    def _locate(self, name: str, roots: Tuple[Path, ...], strict: bool) -> Optional[_Location]:
        key = (name, strict, roots)
        if key not in self._locations:
            self._locations[key] = self._search(name, roots, strict)
        return self._locations[key]

    def _search(self, name: str, roots: Tuple[Path, ...], strict: bool) -> Optional[_Location]:
        parts = name.split(".")
        if not all(part.isidentifier() for part in parts):
            return None
        for root in roots:
            loc = self._search_root(parts, root, strict)
            if loc is not None:
                return loc
        return None

    def _search_root(self, parts: List[str], root: Path, strict: bool) -> Optional[_Location]:
        """
        Walk `parts` below `root`.

        Packages are descended into; a module file ends the walk and belongs
        to the enclosing package, or is its own unit at the top level. In
        non-strict mode a trailing part that is neither is taken to be an
        attribute of the enclosing package.
        """
        current = root
        found: Optional[_Location] = None
        for i, part in enumerate(parts):
            candidate = current / part
            if self._is_package_dir(candidate):
                found = _Location(".".join(parts[: i + 1]), root, candidate, True)
                current = candidate
                continue
            module_file = _module_file(current, part)
            if module_file is not None:
                if found is None:
                    return _Location(part, root, module_file, False)
                return found
            if found is None or strict:
                return None
            return found
        return found

    def _is_package_dir(self, path: Path) -> bool:
        return path.name not in self.config.exclude and path.is_dir()

    def _source_files(self, directory: Path) -> List[Path]:
        files = []
        for path in sorted(directory.iterdir()):
            if path.suffix != ".py" or not path.is_file():
                continue
            if not self.config.follow_symlinks and path.is_symlink():
                continue
            files.append(path)
        return files

    # --- imports ---------------------------------------------------------

    def _iter_imports(
        self,
        tree: ast.AST,
        package: Optional[str],
        roots: Tuple[Path, ...],
    ) -> Iterable[str]:
        visitor = _ImportVisitor(package)
        visitor.visit(tree)
        for module, from_name in visitor.requests:
            yield self._canonical(module, from_name, roots)

    def _canonical(self, module: str, from_name: Optional[str], roots: Tuple[Path, ...]) -> str:
        """Map an imported module (plus an optional ``from`` name) to its unit name."""
        if is_stdlib_name(module):
            return module.split(".", 1)[0]
        loc = self._locate(module, roots, strict=True)
        if loc is None:
            return module
        if from_name and loc.is_package and loc.name == module:
            sub = self._locate(f"{module}.{from_name}", roots, strict=False)
            if sub is not None:
                return sub.name
        return loc.name


class _ImportVisitor(ast.NodeVisitor):
    """
    Collect ``(module, from_name)`` pairs in source order.

    `from_name` is None for plain ``import`` statements and star imports.
    """

    def __init__(self, package: Optional[str]) -> None:
        self.package = package
        self.requests: List[Tuple[str, Optional[str]]] = []

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            self.requests.append((alias.name, None))

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        if node.level:
            module = _resolve_relative(self.package, node.level, node.module)
            if module is None:
                logger.debug("skipping relative import beyond top-level package (line %s)", node.lineno)
                return
        else:
            module = node.module or ""
        for alias in node.names:
            self.requests.append((module, None if alias.name == "*" else alias.name))


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _resolve_relative(package: Optional[str], level: int, module: Optional[str]) -> Optional[str]:
    """
    Resolve ``from ..x import y`` against the importing package.

    >>> _resolve_relative("pkg.sub", 2, "x")
    'pkg.x'
    """
    if not package:
        return None
    parts = package.split(".")
    if level - 1 >= len(parts):
        return None
    base = parts[: len(parts) - (level - 1)]
    if module:
        base.extend(module.split("."))
    return ".".join(base)


def _module_file(directory: Path, part: str) -> Optional[Path]:
    source = directory / f"{part}.py"
    if source.is_file():
        return source
    if not directory.is_dir():
        return None
    for path in sorted(directory.glob(f"{part}.*")):
        if path.suffix in EXTENSION_SUFFIXES and path.name.split(".", 1)[0] == part:
            return path
    return None


def _has_native_files(directory: Path) -> bool:
    return any(p.suffix in NATIVE_SUFFIXES and p.is_file() for p in directory.iterdir())


def _is_test_file(filename: str) -> bool:
    return filename.startswith("test_") or filename.endswith("_test.py") or filename == "conftest.py"


def _parse_file(unit: str, path: Path) -> ast.AST:
    try:
        source = path.read_text(encoding="utf-8")
        return ast.parse(source, filename=str(path))
    except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as exc:
        raise UnitResolutionError(unit, f"{path}: {exc}") from exc
