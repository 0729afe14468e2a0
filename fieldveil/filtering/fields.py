"""Per-schema binding of path resolution, access tiers and pruning."""
from __future__ import annotations

from typing import Any, Dict, FrozenSet, Optional, Tuple

import structlog

from fieldveil.config import FilterOptions
from fieldveil.observability.metrics import MetricsRegistry
from fieldveil.prune.nodes import NodeKind, classify
from fieldveil.prune.pruner import DocumentPruner, sealed
from fieldveil.resolve.access import AccessIndex, Roles, role_set
from fieldveil.resolve.catalog import PathCatalogResolver, PathCatalogue
from fieldveil.schema.model import SchemaSpec
from fieldveil.schema.registry import SchemaRegistry

LOGGER = structlog.get_logger(__name__)


class FieldFilter:
    """Owns the catalogue and access caches of one schema.

    Nothing is resolved at construction; the first call that needs paths
    resolves the catalogue, which also surfaces missing reference targets.
    """

    def __init__(
        self,
        schema: SchemaSpec,
        registry: Optional[SchemaRegistry] = None,
        options: Optional[FilterOptions] = None,
        *,
        metrics: Optional[MetricsRegistry] = None,
    ) -> None:
        self.schema = schema
        self.options = options or FilterOptions()
        self.registry = registry or SchemaRegistry()
        self.metrics = metrics
        self.resolver = PathCatalogResolver(
            schema,
            self.registry,
            access_key=self.options.access_key,
            max_depth=self.options.depth,
        )
        self.index = AccessIndex(self.paths)
        self.pruner = DocumentPruner(virtuals=self.options.virtuals)
        self._prune_paths: Dict[Optional[Tuple[str, ...]], FrozenSet[str]] = {}

    def paths(self) -> PathCatalogue:
        first = self.metrics is not None and not self.resolver.is_resolved
        catalogue = self.resolver.resolve()
        if first:
            self.metrics.incr("catalogs_resolved")
        return catalogue

    def public_paths(self) -> FrozenSet[str]:
        return self.index.public_paths()

    def access_paths(self, roles: Roles) -> FrozenSet[str]:
        return self.index.paths_for_roles(roles)

    def allowed_paths(self, roles: Optional[Roles] = None) -> FrozenSet[str]:
        return self.index.allowed_paths(roles)

    def prune_paths(self, roles: Optional[Roles] = None) -> FrozenSet[str]:
        """Allowed paths, minus those below hidden references, plus reference seals.

        A hidden reference hides its whole subtree even where the target has
        public fields. A visible reference with no visible field below it
        (its target fields are all hidden, or it sits at the depth ceiling)
        comes out as an empty document when populated; an unpopulated
        reference value is kept.
        """
        key = None if roles is None else role_set(roles)
        paths = self._prune_paths.get(key)
        if paths is None:
            allowed = self.allowed_paths(roles)
            references = [descriptor.name for descriptor in self.paths() if descriptor.is_reference]
            hidden = tuple(f"{name}." for name in references if name not in allowed)
            visible = frozenset(path for path in allowed if not path.startswith(hidden))
            seals = {
                sealed(name)
                for name in references
                if name in visible and not any(path.startswith(f"{name}.") for path in visible)
            }
            paths = visible | seals
            self._prune_paths[key] = paths
        return paths

    def apply(self, value: Any, roles: Optional[Roles] = None) -> Any:
        """Prune one document or a sequence of documents for a role context.

        ``roles=None`` is the anonymous, public view. When the caller may see
        no path at all, documents come back empty rather than unfiltered.
        """
        allowed = self.prune_paths(roles)
        if not allowed:
            LOGGER.info("no_visible_paths", schema=self.schema.name, roles=roles)
            result = self.pruner.redact(value)
        else:
            result = self.pruner.prune(value, allowed)
        if self.metrics is not None:
            kind = classify(value)
            if kind is NodeKind.SEQUENCE:
                self.metrics.incr("documents_filtered", len(value))
            elif kind is NodeKind.DOCUMENT:
                self.metrics.incr("documents_filtered")
        return result
