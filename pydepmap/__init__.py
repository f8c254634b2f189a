
from .exceptions import (
    DepMapError,
    UsageError,
    ManifestError,
    ManifestReadError,
    ManifestParseError,
    UnitResolutionError,
)

from .manifest import Manifest, read_manifest

from .metadata import (
    UnitFacts,
    MetadataResolver,
    SourceTreeConfig,
    SourceTreeResolver,
    default_search_path,
)

from .policy import Category, VisibilityPolicy

from .resolver import (
    FailurePolicy,
    Resolved,
    Failed,
    Unit,
    ResolvedGraph,
    ResolverConfig,
    resolve_units,
)

from .graph import (
    IdentifierTable,
    GraphNode,
    GraphEdge,
    DependencyGraph,
    build_dependency_graph,
)

from .renderer import RendererConfig, build_dot, write_svg

__all__ = [
    "DepMapError",
    "UsageError",
    "ManifestError",
    "ManifestReadError",
    "ManifestParseError",
    "UnitResolutionError",
    "Manifest",
    "read_manifest",
    "UnitFacts",
    "MetadataResolver",
    "SourceTreeConfig",
    "SourceTreeResolver",
    "default_search_path",
    "Category",
    "VisibilityPolicy",
    "FailurePolicy",
    "Resolved",
    "Failed",
    "Unit",
    "ResolvedGraph",
    "ResolverConfig",
    "resolve_units",
    "IdentifierTable",
    "GraphNode",
    "GraphEdge",
    "DependencyGraph",
    "build_dependency_graph",
    "RendererConfig",
    "build_dot",
    "write_svg",
]

__version__ = "0.1.0"
