"""Schema lookup used to resolve reference targets."""
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, List, Optional

import orjson
import structlog
import yaml

from fieldveil.errors import MissingSchemaError, SchemaDeclarationError
from fieldveil.schema.declaration import parse_schema
from fieldveil.schema.model import SchemaSpec

LOGGER = structlog.get_logger(__name__)

_SUFFIXES = (".schema.yaml", ".schema.yml", ".schema.json")


class SchemaRegistry:
    """Holds schemas by name, lazily loading declarations from a directory."""

    def __init__(self, root: Optional[Path] = None, schemas: Iterable[SchemaSpec] = ()) -> None:
        self._root = root
        self._cache: Dict[str, SchemaSpec] = {}
        for schema in schemas:
            self.register(schema)

    def register(self, schema: SchemaSpec, *, name: Optional[str] = None) -> SchemaSpec:
        key = name or schema.name
        if not key:
            raise ValueError("A schema needs a name to be registered")
        self._cache[key] = schema
        return schema

    def _candidates(self, name: str) -> List[Path]:
        if self._root is None:
            return []
        return [self._root / f"{name}{suffix}" for suffix in _SUFFIXES]

    def _load(self, name: str) -> Optional[SchemaSpec]:
        for path in self._candidates(name):
            if not path.exists():
                continue
            text = path.read_text(encoding="utf-8")
            try:
                data = orjson.loads(text) if path.suffix == ".json" else yaml.safe_load(text)
            except (orjson.JSONDecodeError, yaml.YAMLError) as exc:
                raise SchemaDeclarationError(str(path), [str(exc)]) from exc
            schema = parse_schema(data, name=name, source=str(path))
            LOGGER.debug("schema_loaded", schema=name, path=str(path))
            return schema
        return None

    def get(self, name: str) -> SchemaSpec:
        """Return the named schema or raise :class:`MissingSchemaError`."""
        if name not in self._cache:
            schema = self._load(name)
            if schema is None:
                raise MissingSchemaError(name, searched=str(self._root) if self._root else None)
            self._cache[name] = schema
        return self._cache[name]

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return name in self._cache or any(path.exists() for path in self._candidates(name))
