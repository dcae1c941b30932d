import os
from datetime import datetime
from pathlib import Path

import pytest
from PIL import Image

from conftest import write_file, write_image
from folder_monitor.monitor import (
    DirectoryScanner,
    FileKind,
    ImageMetadata,
    RootPathError,
    ScanCancelled,
    TextMetadata,
)

MTIME = 1_700_000_000


def test_scan_classifies_and_extracts(root: Path) -> None:
    write_file(root / "a.txt", "one two\nthree\n", mtime=MTIME)
    write_image(root / "b.png", size=(3, 2), mtime=MTIME)
    write_file(root / "c.java", "public class C {\n}\n", mtime=MTIME)
    write_file(root / "d.bin", "binary")

    snapshot = DirectoryScanner().scan(str(root))

    assert list(snapshot.entries) == ["a.txt", "b.png", "c.java"]
    a = snapshot.get("a.txt")
    assert a.kind is FileKind.TEXT
    assert a.metadata == TextMetadata(line_count=2, word_count=3, char_count=14)
    assert a.created_time == a.updated_time == a.modified_time == datetime.fromtimestamp(MTIME)
    assert a.path == os.path.join(str(root), "a.txt")
    assert snapshot.get("b.png").metadata == ImageMetadata(width=3, height=2)
    assert snapshot.get("c.java").kind is FileKind.PROGRAM
    assert "d.bin" not in snapshot
    assert snapshot.taken_at is None
    assert snapshot.warnings == ()


def test_scan_walks_subdirectories_in_name_order(root: Path) -> None:
    write_file(root / "z.txt", "z")
    write_file(root / "b" / "y.py", "y = 1\n")
    write_file(root / "a" / "deep" / "x.txt", "x")

    snapshot = DirectoryScanner().scan(str(root))

    assert list(snapshot.entries) == ["z.txt", "a/deep/x.txt", "b/y.py"]
    for name, record in snapshot.entries.items():
        assert name == record.name


def test_scan_respects_exclude_patterns(root: Path) -> None:
    write_file(root / "keep.txt", "keep")
    write_file(root / "skip.TMP.txt", "skip")
    write_file(root / ".git" / "config.txt", "git")
    write_file(root / "node_modules" / "lib.py", "x = 1\n")

    scanner = DirectoryScanner(exclude_patterns=["*.tmp.txt", ".git", "node_modules"])
    snapshot = scanner.scan(str(root))

    assert list(snapshot.entries) == ["keep.txt"]
    assert scanner.get_stats()["skipped_by_pattern"] == 1


def test_missing_root_raises(tmp_path: Path) -> None:
    with pytest.raises(RootPathError) as excinfo:
        DirectoryScanner().scan(str(tmp_path / "missing"))

    assert isinstance(excinfo.value, OSError)


def test_root_that_is_a_file_raises(tmp_path: Path) -> None:
    path = write_file(tmp_path / "a.txt", "x")

    with pytest.raises(RootPathError):
        DirectoryScanner().scan(str(path))


def test_extraction_error_skips_file(root: Path) -> None:
    write_file(root / "broken.png", "not an image")
    write_file(root / "a.txt", "ok")

    scanner = DirectoryScanner()
    snapshot = scanner.scan(str(root))

    assert list(snapshot.entries) == ["a.txt"]
    assert scanner.get_stats()["extraction_errors"] == 1


def test_oversized_image_skips_file(root: Path, monkeypatch) -> None:
    write_image(root / "huge.png", size=(5, 4))
    write_file(root / "a.txt", "ok")
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 5)

    scanner = DirectoryScanner()
    snapshot = scanner.scan(str(root))

    assert list(snapshot.entries) == ["a.txt"]
    assert scanner.get_stats()["extraction_errors"] == 1


def test_unexpected_extractor_failure_skips_file(root: Path) -> None:
    write_file(root / "a.txt", "ok")
    write_file(root / "b.txt", "bad")
    write_file(root / "sub" / "c.py", "c = 1\n")

    class FlakyExtractor:
        def extract(self, kind, path, created_time):
            if path.endswith("b.txt"):
                raise RuntimeError("extractor bug")
            return TextMetadata()

    scanner = DirectoryScanner(extractor=FlakyExtractor())
    snapshot = scanner.scan(str(root))

    assert list(snapshot.entries) == ["a.txt", "sub/c.py"]
    assert scanner.get_stats()["extraction_errors"] == 1


def test_custom_extractor_is_used(root: Path) -> None:
    write_file(root / "a.txt", "ignored")
    calls = []

    class FixedExtractor:
        def extract(self, kind, path, created_time):
            calls.append((kind, path, created_time))
            return TextMetadata(line_count=99, word_count=0, char_count=0)

    snapshot = DirectoryScanner(extractor=FixedExtractor()).scan(str(root))

    assert snapshot.get("a.txt").metadata.line_count == 99
    assert calls[0][0] is FileKind.TEXT
    assert calls[0][1] == os.path.join(str(root), "a.txt")


def test_unstatable_file_is_recorded_as_warning(root: Path, monkeypatch) -> None:
    write_file(root / "a.txt", "ok")
    bad = write_file(root / "bad.txt", "bad")
    real_lstat = os.lstat

    def flaky_lstat(path, *args, **kwargs):
        if os.fspath(path) == str(bad):
            raise PermissionError(13, "Permission denied", str(bad))
        return real_lstat(path, *args, **kwargs)

    monkeypatch.setattr(os, "lstat", flaky_lstat)
    snapshot = DirectoryScanner().scan(str(root))

    assert list(snapshot.entries) == ["a.txt"]
    assert len(snapshot.warnings) == 1
    assert snapshot.warnings[0].path == str(bad)


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="root はパーミッションを無視して読み取れる",
)
def test_unreadable_subtree_is_recorded_as_warning(root: Path) -> None:
    write_file(root / "a.txt", "ok")
    locked = root / "locked"
    write_file(locked / "secret.txt", "secret")
    locked.chmod(0)
    try:
        snapshot = DirectoryScanner().scan(str(root))
    finally:
        locked.chmod(0o755)

    assert list(snapshot.entries) == ["a.txt"]
    assert [warning.path for warning in snapshot.warnings] == [str(locked)]


def test_should_stop_cancels_scan(root: Path) -> None:
    write_file(root / "a.txt", "ok")

    with pytest.raises(ScanCancelled):
        DirectoryScanner().scan(str(root), should_stop=lambda: True)
