"""Document store backed by a JSON Lines file."""
from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

import orjson

_MISSING = object()


def _lookup(document: Any, path: str) -> Any:
    current = document
    for segment in path.split("."):
        if not isinstance(current, Mapping) or segment not in current:
            return _MISSING
        current = current[segment]
    return current


def matches(document: Mapping[str, Any], conditions: Mapping[str, Any]) -> bool:
    """Equality match on dotted paths; a list value matches when it contains the expected value."""
    for path, expected in conditions.items():
        actual = _lookup(document, path)
        if actual is _MISSING:
            return False
        if isinstance(actual, list) and not isinstance(expected, list):
            if expected not in actual:
                return False
        elif actual != expected:
            return False
    return True


class JsonlDocumentStore:
    """Loads documents from one JSONL file and answers equality queries."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._documents: Optional[List[Dict[str, Any]]] = None

    def _load(self) -> List[Dict[str, Any]]:
        if self._documents is None:
            documents: List[Dict[str, Any]] = []
            if self._path.exists():
                for number, line in enumerate(self._path.read_text(encoding="utf-8").splitlines(), start=1):
                    if not line.strip():
                        continue
                    try:
                        payload = orjson.loads(line)
                    except orjson.JSONDecodeError as exc:
                        raise ValueError(f"Invalid JSON on line {number} of {self._path}: {exc}") from exc
                    if not isinstance(payload, dict):
                        raise ValueError(f"Line {number} of {self._path} is not a JSON object")
                    documents.append(payload)
            self._documents = documents
        return self._documents

    def insert(self, document: Mapping[str, Any]) -> None:
        """Append a document to the file and the loaded set."""
        documents = self._load()
        payload = dict(document)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(orjson.dumps(payload).decode())
            handle.write("\n")
        documents.append(payload)

    def find(self, conditions: Mapping[str, Any], projection: Optional[Sequence[str]] = None) -> List[Dict[str, Any]]:
        return [_project(doc, projection) for doc in self._load() if matches(doc, conditions)]

    def find_one(self, conditions: Mapping[str, Any], projection: Optional[Sequence[str]] = None) -> Optional[Dict[str, Any]]:
        for doc in self._load():
            if matches(doc, conditions):
                return _project(doc, projection)
        return None

    def __len__(self) -> int:
        return len(self._load())


def _project(document: Dict[str, Any], projection: Optional[Sequence[str]]) -> Dict[str, Any]:
    if not projection:
        return copy.deepcopy(document)
    return {key: copy.deepcopy(value) for key, value in document.items() if key in projection}
