"""Pydantic models describing a schema graph."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

CONTAINER_TYPES = frozenset({"Array", "Embedded"})


class VirtualSpec(BaseModel):
    """A computed field; it has options but no storage type."""

    name: str = Field(min_length=1)
    private: bool = False
    options: Dict[str, Any] = Field(default_factory=dict)


class FieldSpec(BaseModel):
    """A directly declared field of a schema."""

    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1)
    type: str = "Mixed"
    ref: Optional[str] = None
    private: bool = False
    options: Dict[str, Any] = Field(default_factory=dict)
    subschema: Optional[SchemaSpec] = Field(default=None, alias="schema")

    @property
    def is_reference(self) -> bool:
        return bool(self.ref)

    @property
    def is_container(self) -> bool:
        """True for arrays of sub-documents and embedded sub-documents."""
        return self.type in CONTAINER_TYPES and self.subschema is not None


class SchemaSpec(BaseModel):
    """Fields and virtuals of one schema, in declaration order."""

    name: Optional[str] = None
    fields: List[FieldSpec] = Field(default_factory=list)
    virtuals: List[VirtualSpec] = Field(default_factory=list)


FieldSpec.model_rebuild()
SchemaSpec.model_rebuild()
