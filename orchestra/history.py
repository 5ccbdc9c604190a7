"""Capped, most-recent-first history of orchestration rounds plus derived stats."""

import json
import logging
from collections.abc import Iterable
from pathlib import Path

from orchestra.models import ModelStats, OrchestrationResult

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 50


def compute_model_stats(history: Iterable[OrchestrationResult]) -> dict[str, ModelStats]:
    """Fold every response of every round into per-provider running stats."""
    stats: dict[str, ModelStats] = {}
    for result in history:
        for response in result.responses:
            entry = stats.setdefault(response.model_id, ModelStats())
            entry.record(
                quality=response.quality_score,
                response_time_ms=response.response_time_ms,
                cost=response.cost,
                ok=response.error is None,
            )
        chosen = result.selected_response.model_id
        stats.setdefault(chosen, ModelStats()).times_selected += 1
    return stats


class HistoryStore:
    """Persists rounds as a JSON array, newest first, at most ``limit`` entries.

    ``path=None`` keeps the history in memory only.
    """

    def __init__(self, path: Path | None = None, limit: int = HISTORY_LIMIT) -> None:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self._path = path
        self._limit = limit
        self._items: list[OrchestrationResult] = []
        self._stats: dict[str, ModelStats] | None = None

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def items(self) -> list[OrchestrationResult]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def load(self) -> list[OrchestrationResult]:
        """Read persisted history. A missing or corrupt file yields an empty history."""
        self._items = []
        self._stats = None
        if self._path is None or not self._path.exists():
            return self.items
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(raw, list) or not all(isinstance(r, dict) for r in raw):
                raise ValueError("expected a JSON array of objects")
            self._items = [OrchestrationResult.from_dict(r) for r in raw][: self._limit]
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.error("Failed to load history from %s: %s", self._path, exc)
            self._items = []
        return self.items

    def save(self) -> None:
        """Write the history atomically: a temp file next to the target, then a rename.

        Raises:
            OSError: If the directory or file cannot be written.
        """
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = [r.to_dict() for r in self._items[: self._limit]]
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        tmp_path.replace(self._path)
        logger.debug("History saved to %s (%d entries)", self._path, len(payload))

    def add(self, result: OrchestrationResult) -> None:
        """Prepend ``result``; the oldest entry is evicted past the cap."""
        self._items.insert(0, result)
        evicted = self._items[self._limit:]
        del self._items[self._limit:]
        if evicted:
            logger.debug("History cap reached, evicted %s", [r.id for r in evicted])
        self._stats = None
        self.save()

    def get(self, result_id: str) -> OrchestrationResult | None:
        return next((r for r in self._items if r.id == result_id), None)

    def delete(self, result_id: str) -> bool:
        before = len(self._items)
        self._items = [r for r in self._items if r.id != result_id]
        if len(self._items) == before:
            return False
        self._stats = None
        self.save()
        return True

    def clear(self) -> None:
        self._items = []
        self._stats = None
        self.save()

    def page(self, limit: int = HISTORY_LIMIT, offset: int = 0) -> tuple[list[OrchestrationResult], int, bool]:
        """Return (items, total, has_more) for a slice of the history."""
        if limit < 1 or offset < 0:
            raise ValueError("limit must be >= 1 and offset >= 0")
        total = len(self._items)
        return self._items[offset: offset + limit], total, offset + limit < total

    def model_stats(self) -> dict[str, ModelStats]:
        """Per-provider stats derived from the full history, cached until it changes."""
        if self._stats is None:
            self._stats = compute_model_stats(self._items)
        return self._stats
