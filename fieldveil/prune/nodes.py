"""Boundary classification of values entering the pruner."""
from __future__ import annotations

import enum
from typing import Any, Dict, Mapping, Protocol, runtime_checkable

from pydantic import BaseModel


@runtime_checkable
class SupportsToObject(Protocol):
    """A live document that can render itself as a plain mapping."""

    def to_object(self, *, virtuals: bool = True) -> Mapping[str, Any]:
        ...


class NodeKind(enum.Enum):
    DOCUMENT = "document"
    SEQUENCE = "sequence"
    SCALAR = "scalar"


def classify(value: Any) -> NodeKind:
    """Tag a value as a structured document, a sequence or an opaque scalar."""
    if isinstance(value, (list, tuple)):
        return NodeKind.SEQUENCE
    if isinstance(value, (Mapping, BaseModel, SupportsToObject)):
        return NodeKind.DOCUMENT
    return NodeKind.SCALAR


def to_plain(document: Any, *, virtuals: bool) -> Dict[str, Any]:
    """Render a document-kind value as a fresh dict.

    Pydantic computed fields count as virtuals and are left out when
    ``virtuals`` is false.
    """
    if isinstance(document, SupportsToObject):
        return dict(document.to_object(virtuals=virtuals))
    if isinstance(document, BaseModel):
        exclude = None if virtuals else set(type(document).model_computed_fields)
        return document.model_dump(exclude=exclude)
    return dict(document)
