"""Flatten a schema graph into the catalogue of addressable field paths."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

import structlog

from fieldveil.schema.model import FieldSpec, SchemaSpec, VirtualSpec
from fieldveil.schema.registry import SchemaRegistry

LOGGER = structlog.get_logger(__name__)

PUBLIC = "public"
PRIVATE = "private"

AccessRoles = Union[str, Tuple[str, ...]]


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """One addressable path of a schema with its resolved access classification.

    ``access_roles`` is either a tuple of role identifiers or one of the
    literals ``"public"`` / ``"private"``.
    """

    name: str
    type: Optional[str]
    is_reference: bool
    reference_target: Optional[str]
    is_private: bool
    access_roles: AccessRoles
    depth: int = 0

    def role_list(self) -> Tuple[str, ...]:
        """Classification as a role tuple; the private literal matches no role."""
        if self.access_roles == PRIVATE:
            return ()
        if isinstance(self.access_roles, str):
            return (self.access_roles,)
        return self.access_roles


PathCatalogue = Tuple[FieldDescriptor, ...]


def classify_access(value: Any, *, is_private: bool, path: str = "") -> AccessRoles:
    """Normalise raw access metadata.

    Missing metadata follows the private flag. Unrecognised shapes are
    classified private.
    """
    if value is None:
        return PRIVATE if is_private else PUBLIC
    if isinstance(value, str):
        return value if value in (PUBLIC, PRIVATE) else (value,)
    if isinstance(value, (list, tuple, set, frozenset)) and all(isinstance(item, str) for item in value):
        roles = sorted(value) if isinstance(value, (set, frozenset)) else list(value)
        return tuple(dict.fromkeys(roles))
    LOGGER.warning("access_metadata_unrecognized", path=path, value=repr(value))
    return PRIVATE


class PathCatalogResolver:
    """Resolves and caches the path catalogue of one schema.

    Reference fields are expanded inline with their target's paths while the
    number of reference hops is below ``max_depth``; container nesting does
    not count towards the depth.
    """

    def __init__(
        self,
        schema: SchemaSpec,
        registry: SchemaRegistry,
        *,
        access_key: str = "access",
        max_depth: int = 3,
    ) -> None:
        self.schema = schema
        self._registry = registry
        self._access_key = access_key
        self._max_depth = max_depth
        self._catalogue: Optional[PathCatalogue] = None

    @property
    def is_resolved(self) -> bool:
        return self._catalogue is not None

    def resolve(self) -> PathCatalogue:
        """Return the catalogue, computing it on first use."""
        if self._catalogue is None:
            self._catalogue = tuple(self.traverse(self.schema))
            LOGGER.debug(
                "catalog_resolved",
                schema=self.schema.name,
                paths=len(self._catalogue),
                max_depth=self._max_depth,
            )
        return self._catalogue

    def traverse(self, schema: SchemaSpec, prefix: str = "", depth: int = 0) -> List[FieldDescriptor]:
        paths: List[FieldDescriptor] = []
        for field in schema.fields:
            name = prefix + field.name
            if field.is_reference:
                target = self._registry.get(field.ref)
                paths.append(self._describe(field, name, depth))
                if depth < self._max_depth:
                    paths.extend(self.traverse(target, f"{name}.", depth + 1))
                continue
            if field.is_container:
                paths.extend(self.traverse(field.subschema, f"{name}.", depth))
                continue
            paths.append(self._describe(field, name, depth))
        for virtual in schema.virtuals:
            paths.append(self._describe(virtual, prefix + virtual.name, depth))
        return paths

    def _describe(self, spec: Union[FieldSpec, VirtualSpec], name: str, depth: int) -> FieldDescriptor:
        is_field = isinstance(spec, FieldSpec)
        return FieldDescriptor(
            name=name,
            type=spec.type if is_field else None,
            is_reference=is_field and spec.is_reference,
            reference_target=spec.ref if is_field else None,
            is_private=spec.private,
            access_roles=classify_access(spec.options.get(self._access_key), is_private=spec.private, path=name),
            depth=depth,
        )
