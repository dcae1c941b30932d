import os
from pathlib import Path
from typing import Optional

import pytest
from PIL import Image

from folder_monitor.monitor import FolderMonitor


def write_file(path: Path, content: str = "", mtime: Optional[float] = None) -> Path:
    """ファイルを書き込み、必要なら更新日時を固定する"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


def write_image(path: Path, size=(4, 3), mtime: Optional[float] = None) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    fmt = "JPEG" if path.suffix.lower() == ".jpg" else "PNG"
    Image.new("RGB", size, color=(255, 0, 0)).save(path, format=fmt)
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def root(tmp_path: Path) -> Path:
    watched = tmp_path / "watched"
    watched.mkdir()
    return watched


@pytest.fixture
def monitor(root: Path):
    folder_monitor = FolderMonitor(str(root), interval_seconds=0.1)
    yield folder_monitor
    folder_monitor.stop()
