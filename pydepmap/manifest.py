from __future__ import annotations

import logging
import re
import tomllib
from dataclasses import dataclass
from importlib import metadata as importlib_metadata
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .exceptions import ManifestParseError, ManifestReadError

__all__ = [
    "Manifest",
    "MANIFEST_FILENAME",
    "read_manifest",
    "parse_manifest",
    "normalize_name",
]

logger = logging.getLogger(__name__)

MANIFEST_FILENAME = "pyproject.toml"

_REQUIREMENT_NAME = re.compile(r"^([A-Za-z0-9][A-Za-z0-9._-]*)")


@dataclass(frozen=True)
class Manifest:
    """
    What the project declares about itself.

    - `module`  : the project name from ``[project].name``
    - `required`: normalized external dependency names, each followed by the
                  import names its installed distribution provides
    """

    module: str
    required: Tuple[str, ...] = ()


def read_manifest(
    project_root: Path,
    distributions: Optional[Mapping[str, List[str]]] = None,
) -> Manifest:
    """
    Read ``pyproject.toml`` under `project_root`.

    `distributions` maps top-level import names to distribution names, in the
    shape of :func:`importlib.metadata.packages_distributions`. It defaults to
    the current environment.

    Raises
    ------
    ManifestReadError
        If the file is missing or cannot be read.
    ManifestParseError
        If the file is not TOML or has no ``[project].name``.
    """
    path = Path(project_root) / MANIFEST_FILENAME
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestReadError(f"cannot read {path}: {exc}", path=path) from exc

    manifest = parse_manifest(text, path=path, distributions=distributions)
    logger.info(
        "manifest %s: module %s, %d required entries",
        path,
        manifest.module,
        len(manifest.required),
    )
    return manifest


def parse_manifest(
    text: str,
    path: object = MANIFEST_FILENAME,
    distributions: Optional[Mapping[str, List[str]]] = None,
) -> Manifest:
    """Parse manifest text. See :func:`read_manifest`."""
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestParseError(f"failed to parse {path}: {exc}", path=path) from exc

    project = data.get("project")
    if not isinstance(project, dict):
        raise ManifestParseError(f"{path} has no [project] table", path=path)

    module = project.get("name")
    if not isinstance(module, str) or not module.strip():
        raise ManifestParseError(f"{path} has no [project].name", path=path)

    names = [_requirement_name(req, path) for req in _iter_requirements(project, path)]

    if distributions is None:
        distributions = importlib_metadata.packages_distributions()

    return Manifest(
        module=module.strip(),
        required=_expand_with_import_names(names, distributions),
    )


def normalize_name(name: str) -> str:
    """
    Normalize a distribution name so it can be compared against module names.

    >>> normalize_name("Typing-Extensions")
    'typing_extensions'
    """
    return re.sub(r"[-_.]+", "_", name).lower()


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _iter_requirements(project: dict, path: object) -> Iterable[str]:
    dependencies = project.get("dependencies", [])
    if not isinstance(dependencies, list):
        raise ManifestParseError(f"{path}: [project].dependencies must be a list", path=path)
    yield from dependencies

    optional = project.get("optional-dependencies", {})
    if not isinstance(optional, dict):
        raise ManifestParseError(
            f"{path}: [project.optional-dependencies] must be a table", path=path
        )
    for group in optional.values():
        if not isinstance(group, list):
            raise ManifestParseError(
                f"{path}: optional dependency groups must be lists", path=path
            )
        yield from group


def _requirement_name(requirement: object, path: object) -> str:
    """Extract the distribution name from a PEP 508 requirement string."""
    if not isinstance(requirement, str):
        raise ManifestParseError(f"{path}: requirement {requirement!r} is not a string", path=path)
    match = _REQUIREMENT_NAME.match(requirement.strip())
    if match is None:
        raise ManifestParseError(f"{path}: invalid requirement {requirement!r}", path=path)
    return normalize_name(match.group(1))


def _expand_with_import_names(
    names: List[str],
    distributions: Mapping[str, List[str]],
) -> Tuple[str, ...]:
    # Invert import name -> distributions into distribution -> import names.
    provides: Dict[str, List[str]] = {}
    for import_name, dists in distributions.items():
        for dist in dists:
            provides.setdefault(normalize_name(dist), []).append(import_name)

    required: List[str] = []
    for name in names:
        for entry in [name, *sorted(provides.get(name, ()))]:
            if entry not in required:
                required.append(entry)
    return tuple(required)
