from datetime import datetime, timedelta

from folder_monitor.monitor import (
    ChangeEvent,
    ChangeKind,
    FileKind,
    FileRecord,
    Snapshot,
    carry_forward,
    diff,
)

T0 = datetime(2024, 1, 1, 12, 0, 0)
T1 = T0 + timedelta(seconds=30)


def _record(name: str, created: datetime, updated: datetime, modified: datetime) -> FileRecord:
    return FileRecord(
        name=name,
        path=f"/watched/{name}",
        kind=FileKind.TEXT,
        created_time=created,
        updated_time=updated,
        modified_time=modified,
    )


def _fresh(name: str, mtime: datetime) -> FileRecord:
    return _record(name, mtime, mtime, mtime)


def _snapshot(*records: FileRecord, taken_at=None) -> Snapshot:
    return Snapshot(entries={r.name: r for r in records}, taken_at=taken_at)


def test_diff_of_snapshot_with_itself_is_empty() -> None:
    snapshot = _snapshot(_fresh("a.txt", T0), _fresh("b.txt", T1))

    assert diff(snapshot, snapshot) == []


def test_diff_of_empty_snapshots_is_empty() -> None:
    assert diff(Snapshot.empty(), Snapshot.empty()) == []


def test_added_modified_then_removed_order() -> None:
    previous = _snapshot(_fresh("gone.txt", T0), _fresh("m.txt", T0), _fresh("same.txt", T0))
    current = _snapshot(_fresh("new.txt", T1), _fresh("m.txt", T1), _fresh("same.txt", T0), _fresh("z.txt", T1))

    assert diff(previous, current) == [
        ChangeEvent(ChangeKind.ADDED, "new.txt"),
        ChangeEvent(ChangeKind.MODIFIED, "m.txt"),
        ChangeEvent(ChangeKind.ADDED, "z.txt"),
        ChangeEvent(ChangeKind.REMOVED, "gone.txt"),
    ]


def test_modified_compares_observed_time_not_updated_time() -> None:
    # updated_time が異なっても、観測した更新日時が同じなら変更なし
    previous = _snapshot(_record("a.txt", T0, T1, T0))
    current = _snapshot(_fresh("a.txt", T0))

    assert diff(previous, current) == []


def test_carry_forward_keeps_times_for_unchanged_file() -> None:
    previous = _snapshot(_record("a.txt", T0, T0, T0), taken_at=T1)
    current = _snapshot(_fresh("a.txt", T0))

    published = carry_forward(previous, current)

    record = published.get("a.txt")
    assert record.created_time == T0
    assert record.updated_time == T0
    assert published.taken_at == T1


def test_carry_forward_refreshes_updated_time_on_modification() -> None:
    previous = _snapshot(_fresh("a.txt", T0))
    current = _snapshot(_fresh("a.txt", T1))

    record = carry_forward(previous, current).get("a.txt")

    assert record.created_time == T0
    assert record.updated_time == T1
    assert record.modified_time == T1


def test_carry_forward_drops_removed_files() -> None:
    previous = _snapshot(_fresh("a.txt", T0), _fresh("b.txt", T0))
    current = _snapshot(_fresh("a.txt", T0))

    assert list(carry_forward(previous, current).entries) == ["a.txt"]
