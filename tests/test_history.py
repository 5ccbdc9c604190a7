"""Tests for orchestra/history.py."""

import json
from pathlib import Path

import pytest

from orchestra.history import HISTORY_LIMIT, HistoryStore, compute_model_stats
from tests.conftest import make_orchestration_result, make_response


def test_add_prepends_newest_first():
    store = HistoryStore()
    store.add(make_orchestration_result("orch-1"))
    store.add(make_orchestration_result("orch-2"))
    assert [r.id for r in store.items] == ["orch-2", "orch-1"]


def test_cap_evicts_oldest():
    store = HistoryStore()
    for i in range(HISTORY_LIMIT + 1):
        store.add(make_orchestration_result(f"orch-{i}"))

    assert len(store) == 50
    assert store.items[0].id == "orch-50"
    assert store.get("orch-0") is None
    assert store.get("orch-1") is not None


def test_custom_limit():
    store = HistoryStore(limit=2)
    for i in range(3):
        store.add(make_orchestration_result(f"orch-{i}"))
    assert [r.id for r in store.items] == ["orch-2", "orch-1"]


def test_limit_must_be_positive():
    with pytest.raises(ValueError):
        HistoryStore(limit=0)


def test_stats_average_quality():
    """Three observations of 80, 90 and 70 average to 80."""
    store = HistoryStore()
    for i, quality in enumerate([80, 90, 70]):
        store.add(make_orchestration_result(f"orch-{i}", [make_response("openai", quality=quality)]))

    stats = store.model_stats()["openai"]
    assert stats.total_requests == 3
    assert stats.avg_quality == pytest.approx(80.0)
    assert stats.avg_response_time == pytest.approx(1000.0)
    assert stats.total_cost == pytest.approx(0.03)
    assert stats.times_selected == 3


def test_stats_track_selection_and_failures():
    responses = [
        make_response("openai", quality=90),
        make_response("gemini", quality=0, error="timeout"),
    ]
    stats = compute_model_stats([make_orchestration_result("orch-1", responses, selected_index=0)])

    assert stats["openai"].times_selected == 1
    assert stats["gemini"].times_selected == 0
    assert stats["gemini"].success_rate == 0.0
    assert stats["openai"].success_rate == 1.0


def test_stats_cache_invalidated_on_add():
    store = HistoryStore()
    store.add(make_orchestration_result("orch-1"))
    assert store.model_stats()["openai"].total_requests == 1
    store.add(make_orchestration_result("orch-2"))
    assert store.model_stats()["openai"].total_requests == 2


def test_persist_and_reload(tmp_path: Path):
    path = tmp_path / "nested" / "history.json"
    store = HistoryStore(path)
    original = make_orchestration_result(
        "orch-1",
        [make_response("openai", quality=90), make_response("gemini", quality=0, error="boom")],
    )
    store.add(original)

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw[0]["createdAt"] == "2026-01-01T12:00:00+00:00"
    assert raw[0]["responses"][1]["error"] == "boom"

    reloaded = HistoryStore(path).load()
    assert len(reloaded) == 1
    entry = reloaded[0]
    assert entry.id == "orch-1"
    assert entry.created_at == original.created_at
    assert entry.selected_response is entry.responses[0]
    assert entry.responses[1].error == "boom"


def test_load_missing_file_is_empty(tmp_path: Path):
    assert HistoryStore(tmp_path / "missing.json").load() == []


def test_load_corrupt_file_is_empty(tmp_path: Path):
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")
    store = HistoryStore(path)
    assert store.load() == []
    assert len(store) == 0


@pytest.mark.parametrize(
    "payload",
    [
        [1, "x"],
        {"orch-1": {"id": "orch-1"}},
        [{"id": "orch-1", "prompt": "p", "createdAt": "2026-01-01T12:00:00+00:00", "selectedResponse": 5}],
        "just a string",
    ],
)
def test_load_wrong_shape_is_empty(tmp_path: Path, payload):
    """Valid JSON of the wrong shape is treated like a corrupt file."""
    path = tmp_path / "history.json"
    path.write_text(json.dumps(payload), encoding="utf-8")
    store = HistoryStore(path)
    assert store.load() == []
    assert store.model_stats() == {}


def test_save_replaces_file_without_leftovers(tmp_path: Path):
    path = tmp_path / "history.json"
    path.write_text("[]", encoding="utf-8")
    store = HistoryStore(path)
    store.add(make_orchestration_result("orch-1"))
    store.add(make_orchestration_result("orch-2"))

    assert [p.name for p in tmp_path.iterdir()] == ["history.json"]
    assert [r["id"] for r in json.loads(path.read_text(encoding="utf-8"))] == ["orch-2", "orch-1"]


def test_save_error_keeps_previous_file(tmp_path: Path, monkeypatch):
    path = tmp_path / "history.json"
    store = HistoryStore(path)
    store.add(make_orchestration_result("orch-1"))

    def broken_replace(self, target):
        raise OSError("disk full")

    monkeypatch.setattr(Path, "replace", broken_replace)
    with pytest.raises(OSError, match="disk full"):
        store.add(make_orchestration_result("orch-2"))
    monkeypatch.undo()

    assert [r.id for r in HistoryStore(path).load()] == ["orch-1"]


def test_save_into_unwritable_location_raises(tmp_path: Path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")
    store = HistoryStore(blocker / "history.json")
    with pytest.raises(OSError):
        store.add(make_orchestration_result("orch-1"))
    # The in-memory entry is still there.
    assert store.get("orch-1") is not None


def test_load_truncates_to_limit(tmp_path: Path):
    path = tmp_path / "history.json"
    entries = [make_orchestration_result(f"orch-{i}").to_dict() for i in range(5)]
    path.write_text(json.dumps(entries), encoding="utf-8")
    store = HistoryStore(path, limit=3)
    assert [r.id for r in store.load()] == ["orch-0", "orch-1", "orch-2"]


def test_page():
    store = HistoryStore()
    for i in range(5):
        store.add(make_orchestration_result(f"orch-{i}"))

    items, total, has_more = store.page(limit=2, offset=0)
    assert [r.id for r in items] == ["orch-4", "orch-3"]
    assert total == 5
    assert has_more is True

    items, _, has_more = store.page(limit=2, offset=4)
    assert [r.id for r in items] == ["orch-0"]
    assert has_more is False


def test_page_rejects_bad_bounds():
    with pytest.raises(ValueError):
        HistoryStore().page(limit=0)


def test_delete_and_clear(tmp_path: Path):
    path = tmp_path / "history.json"
    store = HistoryStore(path)
    store.add(make_orchestration_result("orch-1"))
    store.add(make_orchestration_result("orch-2"))

    assert store.delete("orch-1") is True
    assert store.delete("orch-1") is False
    assert [r.id for r in HistoryStore(path).load()] == ["orch-2"]

    store.clear()
    assert len(store) == 0
    assert HistoryStore(path).load() == []
