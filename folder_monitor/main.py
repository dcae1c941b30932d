# =============================================================================
# Folder Monitor - FastAPI メインエントリーポイント
# =============================================================================
# アプリケーションの起動、ルーティング設定、定期スキャンの
# 初期化を行うメインモジュールです。
#
# 起動方法:
#   uvicorn folder_monitor.main:app --host 0.0.0.0 --port 8000
# =============================================================================

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from folder_monitor.config import settings
from folder_monitor.api.routes import router as api_router
from folder_monitor.monitor import DefaultExtractor, FolderMonitor


# ---------------------------------------------------------------------------
# ログ設定
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=getattr(logging, settings.logging.level),
    format=settings.logging.format
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# グローバルインスタンス
# ---------------------------------------------------------------------------
# モニターはアプリケーション全体で共有
monitor: Optional[FolderMonitor] = None


def create_monitor() -> FolderMonitor:
    """設定からフォルダモニターを生成する"""
    return FolderMonitor(
        root_path=settings.root_path,
        extractor=DefaultExtractor(max_text_bytes=settings.max_text_bytes),
        exclude_patterns=settings.exclude_patterns,
        interval_seconds=settings.scan_interval_seconds
    )


# ---------------------------------------------------------------------------
# ライフサイクル管理
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    FastAPIアプリケーションのライフサイクルを管理する

    起動時の処理:
    1. フォルダモニターの初期化
    2. 定期スキャンの開始（autostart が有効な場合）

    終了時の処理:
    1. 定期スキャンの停止（実行中のスキャンの終了を待つ）

    Args:
        app: FastAPIアプリケーションインスタンス

    Yields:
        None: コンテキスト内でアプリケーションが実行される
    """
    global monitor

    logger.info("=" * 60)
    logger.info("Folder Monitor を起動しています...")
    logger.info("=" * 60)

    monitor = create_monitor()
    logger.info(f"監視対象: {settings.root_path}")

    if settings.autostart:
        monitor.start()
        logger.info(f"スキャンを {settings.scan_interval_seconds} 秒間隔で実行します")

    logger.info("=" * 60)
    logger.info("Folder Monitor の起動が完了しました")
    logger.info("=" * 60)

    # アプリケーション実行中
    yield

    # シャットダウン処理
    logger.info("Folder Monitor を終了しています...")
    if monitor:
        monitor.stop()
    logger.info("Folder Monitor を終了しました")


# ---------------------------------------------------------------------------
# FastAPIアプリケーションの作成
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Folder Monitor",
    description="ディレクトリツリーの定期スキャンと変更検出",
    version="1.0.0",
    lifespan=lifespan
)


# ---------------------------------------------------------------------------
# ルーターの登録
# ---------------------------------------------------------------------------
# APIルーター（問い合わせ、スキャン制御など）を登録
app.include_router(api_router, prefix="/api")
