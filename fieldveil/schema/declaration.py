"""Parse schema declarations (YAML/JSON documents or mappings) into a SchemaSpec."""
from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import jsonschema
from pydantic import ValidationError

from fieldveil.errors import SchemaDeclarationError
from fieldveil.schema.model import FieldSpec, SchemaSpec, VirtualSpec

STRUCTURAL_KEYS = frozenset({"type", "ref", "private", "schema"})

DECLARATION_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "fields": {
            "type": "object",
            "propertyNames": {"pattern": r"^[^.]+$"},
            "additionalProperties": {"type": ["string", "object", "array"]},
        },
        "virtuals": {
            "type": "object",
            "propertyNames": {"pattern": r"^[^.]+$"},
            "additionalProperties": {"type": ["object", "null"]},
        },
    },
    "required": ["fields"],
    "additionalProperties": False,
}

_VALIDATOR = jsonschema.Draft202012Validator(DECLARATION_SCHEMA)


def validate_declaration(data: Any, *, source: str = "<mapping>") -> None:
    """Raise :class:`SchemaDeclarationError` when the document shape is wrong."""
    errors = [f"{error.json_path}: {error.message}" for error in _VALIDATOR.iter_errors(data)]
    if errors:
        raise SchemaDeclarationError(source, errors)


def parse_schema(data: Mapping[str, Any], *, name: Optional[str] = None, source: str = "<mapping>") -> SchemaSpec:
    """Validate and convert a declaration mapping.

    ``fields`` values may be a type name, an options mapping (it carries
    ``type``, ``ref`` or ``schema``), a nested mapping of fields for an embedded
    sub-document, or a one-element list declaring an array of that element.
    """
    validate_declaration(data, source=source)
    try:
        fields = [_parse_field(key, value, source) for key, value in data["fields"].items()]
        virtuals = [_parse_virtual(key, value, source) for key, value in (data.get("virtuals") or {}).items()]
        return SchemaSpec(name=data.get("name", name), fields=fields, virtuals=virtuals)
    except ValidationError as exc:
        raise SchemaDeclarationError(source, [str(exc)]) from exc


def _is_options(value: Mapping[str, Any]) -> bool:
    return "type" in value or "ref" in value or "schema" in value


def _split_options(value: Mapping[str, Any]) -> Dict[str, Any]:
    return {key: item for key, item in value.items() if key not in STRUCTURAL_KEYS}


def _nested_schema(value: Any, source: str) -> SchemaSpec:
    if not isinstance(value, Mapping):
        raise SchemaDeclarationError(source, [f"nested schema must be a mapping, got {type(value).__name__}"])
    if "fields" not in value:
        value = {"fields": dict(value)}
    return parse_schema(value, source=source)


def _from_options(name: str, value: Mapping[str, Any], source: str, *, array: bool = False) -> FieldSpec:
    private = value.get("private", False)
    if not isinstance(private, bool):
        raise SchemaDeclarationError(source, [f"$.fields.{name}.private: must be a boolean"])
    subschema = _nested_schema(value["schema"], source) if "schema" in value else None
    declared_type = value.get("type")
    if array:
        declared_type = "Array"
    elif declared_type is None:
        declared_type = "Embedded" if subschema is not None else "Mixed"
    if not isinstance(declared_type, str):
        raise SchemaDeclarationError(source, [f"$.fields.{name}.type: must be a string"])
    return FieldSpec(
        name=name,
        type=declared_type,
        ref=value.get("ref"),
        private=private,
        options=_split_options(value),
        subschema=subschema,
    )


def _parse_field(name: str, value: Any, source: str) -> FieldSpec:
    if isinstance(value, str):
        return FieldSpec(name=name, type=value)
    if isinstance(value, list):
        if len(value) != 1:
            raise SchemaDeclarationError(source, [f"$.fields.{name}: array declarations take exactly one element"])
        element = value[0]
        if isinstance(element, str):
            return FieldSpec(name=name, type="Array")
        if isinstance(element, Mapping) and _is_options(element):
            return _from_options(name, element, source, array=True)
        if isinstance(element, Mapping):
            return FieldSpec(name=name, type="Array", subschema=_nested_schema(element, source))
        raise SchemaDeclarationError(source, [f"$.fields.{name}[0]: unsupported element {element!r}"])
    if isinstance(value, Mapping):
        if _is_options(value):
            return _from_options(name, value, source)
        return FieldSpec(name=name, type="Embedded", subschema=_nested_schema(value, source))
    raise SchemaDeclarationError(source, [f"$.fields.{name}: unsupported declaration {value!r}"])


def _parse_virtual(name: str, value: Optional[Mapping[str, Any]], source: str) -> VirtualSpec:
    value = value or {}
    private = value.get("private", False)
    if not isinstance(private, bool):
        raise SchemaDeclarationError(source, [f"$.virtuals.{name}.private: must be a boolean"])
    return VirtualSpec(name=name, private=private, options=_split_options(value))
