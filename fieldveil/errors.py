"""Exception types raised by fieldveil."""
from __future__ import annotations

from typing import List, Optional


class FieldVeilError(Exception):
    """Base class for all fieldveil failures."""


class MissingSchemaError(FieldVeilError, LookupError):
    """A reference points at a schema the registry does not know."""

    def __init__(self, name: str, *, searched: Optional[str] = None) -> None:
        detail = f"Schema not registered: {name}"
        if searched:
            detail = f"{detail} (searched {searched})"
        super().__init__(detail)
        self.name = name


class SchemaDeclarationError(FieldVeilError, ValueError):
    """A schema declaration document has an invalid shape."""

    def __init__(self, source: str, errors: List[str]) -> None:
        super().__init__(f"Invalid schema declaration {source}: {'; '.join(errors)}")
        self.source = source
        self.errors = errors
