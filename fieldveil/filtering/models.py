"""Query wrappers that apply field filtering to document store results."""
from __future__ import annotations

import contextlib
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Protocol, Sequence, Tuple

import structlog
from structlog.contextvars import bound_contextvars

from fieldveil.filtering.fields import FieldFilter
from fieldveil.observability.metrics import record_duration
from fieldveil.resolve.access import Roles, normalize_roles, role_set

LOGGER = structlog.get_logger(__name__)

Conditions = Mapping[str, Any]


class DocumentStore(Protocol):
    """Query surface of the underlying document store."""

    def find(self, conditions: Conditions, projection: Optional[Sequence[str]] = None) -> List[Any]:
        ...

    def find_one(self, conditions: Conditions, projection: Optional[Sequence[str]] = None) -> Optional[Any]:
        ...


def _is_empty(result: Any) -> bool:
    return result is None or (isinstance(result, list) and not result)


@contextlib.contextmanager
def _timed(field_filter: FieldFilter) -> Iterator[None]:
    if field_filter.metrics is None:
        yield
        return
    with record_duration(field_filter.metrics, "filter_duration_ms"):
        yield


def _run_query(
    model: "FilteredModel",
    fetch: Callable[[Conditions, Optional[Sequence[str]]], Any],
    conditions: Optional[Conditions],
    projection: Optional[Sequence[str]],
    *,
    filtered: bool,
    roles: Optional[Tuple[str, ...]] = None,
) -> Any:
    field_filter = model.field_filter
    metrics = field_filter.metrics
    if filtered:
        # schema errors must surface before any document is read
        field_filter.paths()
    result = fetch(conditions or {}, projection)
    if _is_empty(result):
        return result
    if not filtered:
        if metrics is not None:
            metrics.incr("queries_unfiltered")
        return result
    with bound_contextvars(model=model.name, roles=list(roles) if roles is not None else None):
        with _timed(field_filter):
            pruned = field_filter.apply(result, roles)
        LOGGER.debug("query_filtered", documents=len(result) if isinstance(result, list) else 1)
    if metrics is not None:
        metrics.incr("queries_filtered")
    return pruned


class FilteredModel:
    """A named collection whose queries can be filtered by field access.

    Plain queries return raw store results unless ``filter=True`` asks for the
    public view. :meth:`by_access` returns a role-bound :class:`AccessHandle`.
    The method name configured as ``accessor_method`` is an alias of
    :meth:`by_access`.
    """

    has_access_context = False

    def __init__(
        self,
        name: str,
        store: DocumentStore,
        field_filter: FieldFilter,
        *,
        discriminators: Optional[Mapping[str, "FilteredModel"]] = None,
    ) -> None:
        self.name = name
        self.store = store
        self.field_filter = field_filter
        self.discriminators: Dict[str, FilteredModel] = dict(discriminators or {})
        self._handles: Dict[Tuple[str, ...], AccessHandle] = {}

    def find(
        self,
        conditions: Optional[Conditions] = None,
        projection: Optional[Sequence[str]] = None,
        *,
        filter: bool = False,
    ) -> List[Any]:
        return _run_query(self, self.store.find, conditions, projection, filtered=filter)

    def find_one(
        self,
        conditions: Optional[Conditions] = None,
        projection: Optional[Sequence[str]] = None,
        *,
        filter: bool = False,
    ) -> Optional[Any]:
        return _run_query(self, self.store.find_one, conditions, projection, filtered=filter)

    def by_access(self, roles: Roles) -> AccessHandle:
        """Return the handle bound to ``roles``, reusing it for equivalent role sets."""
        key = role_set(roles)
        handle = self._handles.get(key)
        if handle is None:
            handle = AccessHandle(self, roles)
            self._handles[key] = handle
        return handle

    def __getattr__(self, name: str) -> Any:
        field_filter = self.__dict__.get("field_filter")
        if field_filter is not None and name == field_filter.options.accessor_method:
            return self.by_access
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __repr__(self) -> str:
        return f"FilteredModel({self.name!r})"


class AccessHandle:
    """A model bound to a fixed role context; every query is filtered.

    Discriminator variants of the base model are bound to the same roles up
    front and exposed through :attr:`discriminators`.
    """

    has_access_context = True

    def __init__(self, model: FilteredModel, roles: Roles) -> None:
        self.model = model
        self.roles = normalize_roles(roles)
        self.discriminators: Dict[str, AccessHandle] = {
            key: variant.by_access(self.roles) for key, variant in model.discriminators.items()
        }

    @property
    def name(self) -> str:
        return self.model.name

    def get_access(self) -> Tuple[str, ...]:
        return self.roles

    def find(self, conditions: Optional[Conditions] = None, projection: Optional[Sequence[str]] = None) -> List[Any]:
        return _run_query(self.model, self.model.store.find, conditions, projection, filtered=True, roles=self.roles)

    def find_one(
        self,
        conditions: Optional[Conditions] = None,
        projection: Optional[Sequence[str]] = None,
    ) -> Optional[Any]:
        return _run_query(self.model, self.model.store.find_one, conditions, projection, filtered=True, roles=self.roles)

    def __getattr__(self, name: str) -> Any:
        model = self.__dict__.get("model")
        if model is not None and name == model.field_filter.options.access_id_getter:
            return self.get_access
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    def __repr__(self) -> str:
        return f"AccessHandle({self.model.name!r}, roles={list(self.roles)!r})"
