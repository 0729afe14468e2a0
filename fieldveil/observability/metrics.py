"""In-process counters for catalogue resolution and query filtering."""
from __future__ import annotations

import contextlib
import time
from pathlib import Path
from typing import Dict, Iterator

import orjson
import structlog

LOGGER = structlog.get_logger(__name__)

FILTER_COUNTERS = (
    "catalogs_resolved",
    "queries_filtered",
    "queries_unfiltered",
    "documents_filtered",
    "filter_duration_ms",
)


class MetricsRegistry:
    """Named integer counters; the filtering counters start at zero."""

    def __init__(self) -> None:
        self._counters: Dict[str, int] = dict.fromkeys(FILTER_COUNTERS, 0)

    def incr(self, name: str, value: int = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + value

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    def snapshot(self) -> Dict[str, int]:
        """Copy of all counters for reporting."""
        return dict(self._counters)

    def export(self, *, path: Path, label: str) -> Path:
        """Write a labelled counter snapshot as indented JSON."""
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "label": label,
            "generated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
            "counters": self.snapshot(),
        }
        path.write_bytes(orjson.dumps(payload, option=orjson.OPT_INDENT_2))
        LOGGER.debug("metrics_exported", path=str(path), label=label)
        return path


@contextlib.contextmanager
def record_duration(registry: MetricsRegistry, metric_name: str) -> Iterator[None]:
    """Add the wall time of the block, in milliseconds, to ``metric_name``."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = int((time.perf_counter() - start) * 1000)
        registry.incr(metric_name, elapsed_ms)
        LOGGER.debug("timer_stop", metric=metric_name, duration_ms=elapsed_ms)
