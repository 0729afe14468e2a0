"""Filter configuration record and settings loading."""
from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Dict

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

LOGGER = structlog.get_logger(__name__)

DEFAULT_ACCESS_KEY = "access"
DEFAULT_DEPTH = 3


class FilterOptions(BaseModel):
    """Recognised options for a schema binding.

    Accepts both the snake_case field names and the camelCase spellings used
    in settings files (``accessKey``, ``accessorMethod``, ``accessIdGetter``).
    Malformed values fall back to the defaults instead of failing.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    access_key: str = Field(default=DEFAULT_ACCESS_KEY, alias="accessKey")
    depth: int = DEFAULT_DEPTH
    virtuals: bool = True
    accessor_method: str = Field(default="by_access", alias="accessorMethod")
    access_id_getter: str = Field(default="get_access", alias="accessIdGetter")

    @field_validator("depth", mode="before")
    @classmethod
    def _coerce_depth(cls, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            LOGGER.warning("options_fallback", option="depth", value=repr(value), default=DEFAULT_DEPTH)
            return DEFAULT_DEPTH
        try:
            depth = int(value)
        except ValueError:
            depth = -1
        if depth < 0:
            LOGGER.warning("options_fallback", option="depth", value=repr(value), default=DEFAULT_DEPTH)
            return DEFAULT_DEPTH
        return depth

    @field_validator("access_key", mode="before")
    @classmethod
    def _coerce_access_key(cls, value: Any) -> str:
        if not isinstance(value, str) or not value.strip():
            LOGGER.warning("options_fallback", option="access_key", value=repr(value), default=DEFAULT_ACCESS_KEY)
            return DEFAULT_ACCESS_KEY
        return value.strip()

    @field_validator("virtuals", mode="before")
    @classmethod
    def _coerce_virtuals(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "y"}
        LOGGER.warning("options_fallback", option="virtuals", value=repr(value), default=True)
        return True


def load_settings(path: Path) -> Dict[str, Any]:
    """Read the TOML settings file, returning an empty mapping when absent."""
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        return tomllib.load(handle)


def load_options(path: Path) -> FilterOptions:
    """Build :class:`FilterOptions` from the ``[filter]`` table of a settings file."""
    settings = load_settings(path)
    return options_from_settings(settings)


def options_from_settings(settings: Dict[str, Any]) -> FilterOptions:
    table = settings.get("filter", {})
    if not isinstance(table, dict):
        LOGGER.warning("options_fallback", option="filter", value=repr(table), default="defaults")
        table = {}
    return FilterOptions(**table)
