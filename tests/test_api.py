from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from conftest import write_file, write_image
from folder_monitor import main
from folder_monitor.monitor import FolderMonitor


@pytest.fixture
def client(monitor: FolderMonitor, monkeypatch) -> TestClient:
    # lifespan を通さず、テスト用のモニターを差し込む
    monkeypatch.setattr(main, "monitor", monitor)
    return TestClient(main.app)


def test_scan_returns_events(client: TestClient, root: Path) -> None:
    write_file(root / "a.txt", "hello world")
    write_image(root / "img" / "b.png", size=(5, 4))

    response = client.post("/api/scan")

    assert response.status_code == 200
    body = response.json()
    assert body["events"] == [
        {"kind": "added", "filename": "a.txt"},
        {"kind": "added", "filename": "img/b.png"},
    ]
    assert body["total_files"] == 2
    assert body["warnings"] == []

    assert client.post("/api/scan").json()["events"] == []


def test_file_info(client: TestClient, root: Path) -> None:
    write_image(root / "img" / "b.png", size=(5, 4))
    client.post("/api/scan")

    response = client.get("/api/files/img/b.png")

    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "img/b.png"
    assert body["kind"] == "image"
    assert body["metadata"] == {"width": 5, "height": 4, "size": "5x4"}
    assert body["description"].startswith("Image File: img/b.png")


def test_file_info_not_found(client: TestClient) -> None:
    response = client.get("/api/files/missing.txt")

    assert response.status_code == 404


def test_status_and_commit(client: TestClient, root: Path) -> None:
    write_file(root / "a.txt", "a")
    client.post("/api/scan")

    before = client.get("/api/status").json()
    assert before == {"baseline": None, "files": [{"filename": "a.txt", "changed": True}]}

    response = client.post("/api/commit")
    assert response.status_code == 200
    assert response.json()["success"] is True

    after = client.get("/api/status").json()
    assert after["baseline"] is not None


def test_status_reads_snapshot_once(client: TestClient, root: Path, monkeypatch) -> None:
    write_file(root / "a.txt", "a")
    client.post("/api/scan")
    client.post("/api/commit")

    reads = []
    original = FolderMonitor.snapshot

    def counting_snapshot(self):
        reads.append(1)
        return original.fget(self)

    monkeypatch.setattr(FolderMonitor, "snapshot", property(counting_snapshot))
    body = client.get("/api/status").json()

    # ベースラインとファイル一覧は同じスナップショットから作られる
    assert len(reads) == 1
    assert body["baseline"] is not None
    assert body["files"] == [{"filename": "a.txt", "changed": True}]


def test_scan_with_missing_root_returns_500(client: TestClient, root: Path) -> None:
    root.rmdir()

    response = client.post("/api/scan")

    assert response.status_code == 500


def test_monitor_start_stop(client: TestClient) -> None:
    response = client.post("/api/monitor/start", params={"interval_seconds": 60})
    assert response.json() == {"success": True, "message": "定期スキャンを開始しました"}

    again = client.post("/api/monitor/start")
    assert again.json()["success"] is False

    status = client.get("/api/monitor/status").json()
    assert status["is_running"] is True
    assert status["interval_seconds"] == 60

    assert client.post("/api/monitor/stop").json()["success"] is True
    assert client.get("/api/monitor/status").json()["is_running"] is False


def test_warnings_and_health(client: TestClient) -> None:
    assert client.get("/api/warnings").json() == []
    assert client.get("/api/health").json() == {"status": "healthy", "scheduler": "stopped"}


def test_service_unavailable_without_monitor(monkeypatch) -> None:
    monkeypatch.setattr(main, "monitor", None)
    client = TestClient(main.app)

    assert client.get("/api/status").status_code == 503
    assert client.get("/api/health").json()["status"] == "unavailable"
