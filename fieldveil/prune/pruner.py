"""Recursive, structure preserving document filter."""
from __future__ import annotations

from typing import AbstractSet, Any, Dict, Iterable, Set

from fieldveil.prune.nodes import NodeKind, classify, to_plain

# No document key uses this segment; listing "key.<SEAL>" keeps "key" but none of its fields.
SEAL = "\x00"


def with_heads(paths: Iterable[str]) -> Set[str]:
    """Add the first segment of every dotted path so containers survive selection."""
    expanded = set(paths)
    expanded.update(path.split(".", 1)[0] for path in list(expanded))
    return expanded


def descendants(paths: AbstractSet[str], key: str) -> Set[str]:
    """Allowed paths below ``key`` with the ``key.`` prefix stripped."""
    prefix = f"{key}."
    return {path[len(prefix):] for path in paths if path.startswith(prefix)}


class DocumentPruner:
    """Restricts documents (or sequences of them) to a set of dotted paths.

    An empty path set means no constraint at that level and the value is
    returned as is; this is how leaves below the deepest listed path pass
    through. Paths that are listed but absent from a document are ignored.
    Documents must be trees: cyclic object graphs are not supported.
    """

    def __init__(self, *, virtuals: bool = True) -> None:
        self.virtuals = virtuals

    def prune(self, value: Any, allowed_paths: Iterable[str]) -> Any:
        return self._prune(value, with_heads(allowed_paths))

    def _prune(self, value: Any, fields: Set[str]) -> Any:
        if not fields:
            return value
        kind = classify(value)
        if kind is NodeKind.SEQUENCE:
            items = [self._prune(item, fields) for item in value]
            return items if isinstance(value, list) else tuple(items)
        if kind is NodeKind.DOCUMENT:
            return self._prune_document(value, fields)
        return value

    def _prune_document(self, document: Any, fields: Set[str]) -> Dict[str, Any]:
        plain = to_plain(document, virtuals=self.virtuals)
        pruned: Dict[str, Any] = {}
        for key, item in plain.items():
            if key not in fields:
                continue
            pruned[key] = self._prune(item, with_heads(descendants(fields, key)))
        return pruned

    def redact(self, value: Any) -> Any:
        """Hide every field: documents become empty, sequence shape is kept."""
        kind = classify(value)
        if kind is NodeKind.SEQUENCE:
            items = [self.redact(item) for item in value]
            return items if isinstance(value, list) else tuple(items)
        if kind is NodeKind.DOCUMENT:
            return {}
        return value


def sealed(path: str) -> str:
    return f"{path}.{SEAL}"
