# =============================================================================
# Folder Monitor - API ルート
# =============================================================================
# REST API エンドポイントを定義します。
#
# エンドポイント:
#   GET  /api/files/{name}      - ファイル情報取得
#   GET  /api/status            - ベースライン以降の変更状況
#   POST /api/commit            - ベースライン記録
#   POST /api/scan              - スキャンを即座に実行
#   GET  /api/warnings          - 直近スキャンの警告
#   POST /api/monitor/start     - 定期スキャン開始
#   POST /api/monitor/stop      - 定期スキャン停止
#   GET  /api/monitor/status    - スケジューラー状態取得
#   GET  /api/health            - ヘルスチェック
# =============================================================================

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from folder_monitor.monitor.errors import RootPathError

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# ルーターの作成
# ---------------------------------------------------------------------------
router = APIRouter(tags=["API"])


# ---------------------------------------------------------------------------
# レスポンスモデル
# ---------------------------------------------------------------------------
class FileInfoResponse(BaseModel):
    """
    ファイル情報のレスポンスモデル

    Attributes:
        name: スキャンルートからの相対パス
        path: ファイルのフルパス
        kind: ファイル種別（text, image, program）
        created_time: 初回観測時の更新日時
        updated_time: 最後に変更を検出した時点の更新日時
        modified_time: 直近のスキャンで観測した更新日時
        metadata: 種別ごとのメタデータ
        description: 人間が読める形式の説明
    """
    name: str
    path: str
    kind: str
    created_time: str
    updated_time: str
    modified_time: str
    metadata: Dict[str, Any]
    description: str


class FileStatus(BaseModel):
    """1ファイル分の変更状況"""
    filename: str
    changed: bool


class StatusResponse(BaseModel):
    """
    変更状況のレスポンスモデル

    Attributes:
        baseline: commit() で記録したベースライン（未コミットなら None）
        files: ファイルごとの変更状況
    """
    baseline: Optional[str]
    files: List[FileStatus]


class ChangeEventResponse(BaseModel):
    """差分イベント"""
    kind: str
    filename: str


class ScanResponse(BaseModel):
    """
    スキャン結果のレスポンスモデル

    Attributes:
        events: 検出された差分イベント
        total_files: スキャン後のファイル数
        warnings: スキャン中に読み取れなかったエントリ
    """
    events: List[ChangeEventResponse]
    total_files: int
    warnings: List[str]


class SchedulerStatusResponse(BaseModel):
    """
    スケジューラー状態のレスポンスモデル

    Attributes:
        is_running: 定期スキャンが有効かどうか
        is_scanning: スキャン実行中かどうか
        interval_seconds: スキャン間隔（秒）
        last_run: 最後にティックを実行した日時
        next_run: 次回実行予定日時
        ticks: 実行したティック数
        skipped_ticks: スキップしたティック数
        last_error: 直近のティックで発生したエラー
    """
    is_running: bool
    is_scanning: bool
    interval_seconds: float
    last_run: Optional[str]
    next_run: Optional[str]
    ticks: int
    skipped_ticks: int
    last_error: Optional[str]


class MessageResponse(BaseModel):
    """
    汎用メッセージレスポンスモデル

    Attributes:
        success: 成功したかどうか
        message: メッセージ
    """
    success: bool
    message: str


def _get_monitor():
    """グローバルのモニターを取得する（未初期化なら 503）"""
    from folder_monitor.main import monitor

    if not monitor:
        raise HTTPException(status_code=503, detail="モニターサービスが利用できません")
    return monitor


# ---------------------------------------------------------------------------
# 問い合わせ API
# ---------------------------------------------------------------------------
@router.get("/files/{name:path}", response_model=FileInfoResponse)
async def get_file_info(name: str):
    """
    ファイルの情報を取得する

    Args:
        name: スキャンルートからの相対パス（例: docs/a.txt）

    Returns:
        FileInfoResponse: ファイル情報
    """
    monitor = _get_monitor()

    record = monitor.info(name)
    if record is None:
        raise HTTPException(status_code=404, detail=f"ファイルが見つかりません: {name}")

    return FileInfoResponse(**record.to_dict())


@router.get("/status", response_model=StatusResponse)
async def get_status():
    """
    各ファイルがベースライン以降に変更されたかを取得する

    Returns:
        StatusResponse: ベースラインとファイルごとの変更状況
    """
    monitor = _get_monitor()

    # ベースラインと変更状況は同じスナップショットから作る
    snapshot = monitor.snapshot
    baseline = snapshot.taken_at
    return StatusResponse(
        baseline=baseline.isoformat() if baseline else None,
        files=[
            FileStatus(filename=filename, changed=changed)
            for filename, changed in snapshot.status()
        ]
    )


@router.post("/commit", response_model=MessageResponse)
async def commit():
    """
    現在時刻をベースラインとして記録する

    Returns:
        MessageResponse: 実行結果
    """
    monitor = _get_monitor()

    taken_at = monitor.commit()
    return MessageResponse(
        success=True,
        message=f"ベースラインを記録しました: {taken_at.isoformat()}"
    )


@router.get("/warnings", response_model=List[str])
async def get_warnings():
    """直近のスキャンで読み取れなかったエントリを取得する"""
    monitor = _get_monitor()
    return [str(warning) for warning in monitor.warnings()]


# ---------------------------------------------------------------------------
# スキャン制御 API
# ---------------------------------------------------------------------------
@router.post("/scan", response_model=ScanResponse)
def scan_now():
    """
    スキャンを即座に実行する

    定期スケジュールとは別に、その場でスキャンと差分検出を行います。
    実行中のスキャンがある場合は、その完了を待ってから実行します。

    Returns:
        ScanResponse: 検出された差分イベント
    """
    monitor = _get_monitor()

    try:
        events = monitor.scan_once()
    except RootPathError as e:
        logger.error(f"スキャン失敗: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    snapshot = monitor.snapshot
    return ScanResponse(
        events=[ChangeEventResponse(**event.to_dict()) for event in events],
        total_files=len(snapshot),
        warnings=[str(warning) for warning in snapshot.warnings]
    )


@router.post("/monitor/start", response_model=MessageResponse)
async def start_monitor(
    interval_seconds: Optional[float] = Query(None, gt=0, description="スキャン間隔（秒）")
):
    """
    定期スキャンを開始する

    既に実行中の場合は success=False を返します。

    Returns:
        MessageResponse: 実行結果
    """
    monitor = _get_monitor()

    if monitor.start(interval_seconds):
        return MessageResponse(success=True, message="定期スキャンを開始しました")
    return MessageResponse(success=False, message="定期スキャンは既に実行中です")


@router.post("/monitor/stop", response_model=MessageResponse)
def stop_monitor():
    """
    定期スキャンを停止する

    実行中のスキャンがあれば、その終了を待ってから応答します。

    Returns:
        MessageResponse: 実行結果
    """
    monitor = _get_monitor()

    try:
        monitor.stop()
        return MessageResponse(success=True, message="定期スキャンを停止しました")
    except Exception as e:
        logger.error(f"停止エラー: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/monitor/status", response_model=SchedulerStatusResponse)
async def get_monitor_status():
    """
    スケジューラーの状態を取得する

    Returns:
        SchedulerStatusResponse: スケジューラー状態
    """
    monitor = _get_monitor()
    return SchedulerStatusResponse(**monitor.get_scheduler_status())


# ---------------------------------------------------------------------------
# ヘルスチェック API
# ---------------------------------------------------------------------------
@router.get("/health")
async def health_check():
    """
    サービスの健全性をチェックする

    直近のスキャンでエラーが起きていれば degraded を返します。

    Returns:
        dict: ヘルスチェック結果
    """
    from folder_monitor.main import monitor

    if not monitor:
        return {"status": "unavailable", "scheduler": "stopped"}

    status = monitor.get_scheduler_status()
    return {
        "status": "degraded" if status["last_error"] else "healthy",
        "scheduler": "running" if status["is_running"] else "stopped"
    }
