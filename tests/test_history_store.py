import json
from datetime import datetime, timezone

import pytest

from utils.history_store import HistoryStoreError, accumulate, load_history, save_history
from utils.notes_models import BuildRecord, ClassifiedCommit, ReleaseNotesHistory


def _build(revision: str) -> BuildRecord:
    return BuildRecord(timestamp="2026-01-01T00:00:00Z", revision=revision)


def _history(n: int) -> ReleaseNotesHistory:
    return ReleaseNotesHistory(builds=[_build(f"r{i}") for i in range(n)])


def test_absent_history_starts_empty():
    result = accumulate(None, _build("new"), "prepend")
    assert [b.revision for b in result.builds] == ["new"]


def test_prepend_puts_newest_first():
    result = accumulate(_history(2), _build("new"), "prepend")
    assert [b.revision for b in result.builds] == ["new", "r0", "r1"]


def test_append_puts_newest_last():
    result = accumulate(_history(2), _build("new"), "append")
    assert [b.revision for b in result.builds] == ["r0", "r1", "new"]


def test_prepend_at_bound_drops_the_tail():
    result = accumulate(_history(50), _build("new"), "prepend")
    assert len(result.builds) == 50
    assert result.builds[0].revision == "new"
    assert result.builds[-1].revision == "r48"


def test_append_at_bound_drops_the_head():
    result = accumulate(_history(50), _build("new"), "append")
    assert len(result.builds) == 50
    assert result.builds[0].revision == "r1"
    assert result.builds[-1].revision == "new"


@pytest.mark.parametrize("policy", ["prepend", "append"])
def test_never_exceeds_bound(policy):
    history = None
    for i in range(120):
        history = accumulate(history, _build(f"b{i}"), policy)
        assert len(history.builds) <= 50
    assert len(history.builds) == 50


def test_oversized_existing_history_is_truncated():
    result = accumulate(_history(70), _build("new"), "prepend", max_builds=50)
    assert len(result.builds) == 50


def test_input_history_is_not_mutated():
    existing = _history(3)
    accumulate(existing, _build("new"), "prepend")
    assert len(existing.builds) == 3


def test_invalid_policy_and_bound():
    with pytest.raises(ValueError):
        accumulate(None, _build("x"), "sideways")
    with pytest.raises(ValueError):
        accumulate(None, _build("x"), "prepend", max_builds=0)


def test_round_trip_through_file(tmp_path):
    build = BuildRecord.create(
        "deadbeef",
        [ClassifiedCommit(description="Add widget", branch="main", author="Al")],
        [ClassifiedCommit(description="Fix DEFECT-9 crash", branch="feature/x", author="Bo")],
        now=datetime(2026, 3, 4, 5, 6, 7, tzinfo=timezone.utc),
    )
    history = accumulate(_history(2), build, "prepend")
    path = tmp_path / "nested" / "dir" / "dev-release-notes.json"

    save_history(str(path), history)

    assert path.exists()
    assert load_history(str(path)) == history
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["builds"][0]["timestamp"] == "2026-03-04T05:06:07Z"
    assert raw["builds"][0]["defects"][0] == {"description": "Fix DEFECT-9 crash", "branch": "feature/x", "author": "Bo"}


def test_loads_document_written_by_shell_scripts(tmp_path):
    path = tmp_path / "notes.json"
    path.write_text(
        '{"builds":[{"timestamp":"2025-12-01T10:00:00Z","revision":"1.2.0",'
        '"stories":[{"description":"Add","branch":"main","author":"Al"}],"defects":[]}]}\n',
        encoding="utf-8",
    )
    history = load_history(str(path))
    assert history.builds[0].revision == "1.2.0"
    assert history.builds[0].stories[0].branch == "main"


def test_unknown_keys_survive_round_trip(tmp_path):
    path = tmp_path / "notes.json"
    path.write_text('{"builds": [], "product": "core"}', encoding="utf-8")
    history = accumulate(load_history(str(path)), _build("new"), "prepend")
    save_history(str(path), history)
    assert json.loads(path.read_text(encoding="utf-8"))["product"] == "core"


def test_missing_file_loads_as_none(tmp_path):
    assert load_history(str(tmp_path / "absent.json")) is None


def test_malformed_file_raises(tmp_path):
    path = tmp_path / "notes.json"
    path.write_text('{"builds": "nope"}', encoding="utf-8")
    with pytest.raises(HistoryStoreError) as exc:
        load_history(str(path))
    assert exc.value.code == "INVALID"
