"""Per-role visibility tiers derived from a path catalogue."""
from __future__ import annotations

from typing import Callable, Dict, FrozenSet, Iterable, Optional, Tuple, Union

import structlog

from fieldveil.resolve.catalog import PUBLIC, PathCatalogue

LOGGER = structlog.get_logger(__name__)

ROLE_KEY_SEPARATOR = ":"

Roles = Union[str, Iterable[str]]


def normalize_roles(roles: Optional[Roles]) -> Tuple[str, ...]:
    """Accept a single role identifier or any iterable of them."""
    if roles is None:
        return ()
    if isinstance(roles, str):
        return (roles,)
    return tuple(roles)


def role_set(roles: Optional[Roles]) -> Tuple[str, ...]:
    """Order-insensitive cache key for a role set."""
    return tuple(sorted(set(normalize_roles(roles))))


def role_key(roles: Optional[Roles]) -> str:
    """Readable form of a role set for log events."""
    return ROLE_KEY_SEPARATOR.join(role_set(roles))


class AccessIndex:
    """Answers which paths are visible publicly and to a given role set.

    The catalogue is pulled through ``catalogue_source`` the first time a
    tier is needed, so a binding can be built before its references resolve.
    """

    def __init__(self, catalogue_source: Callable[[], PathCatalogue]) -> None:
        self._catalogue_source = catalogue_source
        self._public: Optional[FrozenSet[str]] = None
        self._by_roles: Dict[Tuple[str, ...], FrozenSet[str]] = {}

    @classmethod
    def for_catalogue(cls, catalogue: PathCatalogue) -> "AccessIndex":
        return cls(lambda: catalogue)

    def public_paths(self) -> FrozenSet[str]:
        """Paths classified exactly ``"public"`` that are not flagged private."""
        if self._public is None:
            self._public = frozenset(
                descriptor.name
                for descriptor in self._catalogue_source()
                if not descriptor.is_private and descriptor.access_roles == PUBLIC
            )
        return self._public

    def paths_for_roles(self, roles: Optional[Roles], *, include_public: bool = False) -> FrozenSet[str]:
        """Paths whose roles overlap ``roles``; optionally with the public tier."""
        requested = normalize_roles(roles)
        key = role_set(requested)
        paths = self._by_roles.get(key)
        if paths is None:
            wanted = set(requested)
            paths = frozenset(
                descriptor.name
                for descriptor in self._catalogue_source()
                if wanted.intersection(descriptor.role_list())
            )
            self._by_roles[key] = paths
            LOGGER.debug("access_tier_cached", roles=role_key(key), paths=len(paths))
        if include_public:
            return paths | self.public_paths()
        return paths

    def allowed_paths(self, roles: Optional[Roles] = None) -> FrozenSet[str]:
        """Everything a caller may see: public tier, public-tagged paths and role matches."""
        allowed = self.public_paths() | self.paths_for_roles(PUBLIC)
        if roles is not None:
            allowed |= self.paths_for_roles(roles)
        return allowed
