# =============================================================================
# Folder Monitor - スキャンスケジューラー
# =============================================================================
# 一定間隔でスキャンと差分検出を実行するスケジューラーです。
#
# 主な機能:
#   - 定期実行（設定可能な間隔、開始直後に初回実行）
#   - 実行中のスキャンがある場合はティックをスキップ（キューに積まない）
#   - 停止時は実行中のスキャンに中断を要求し、終了を待つ
#   - 実行状態の管理
# =============================================================================

import logging
import threading
from datetime import datetime
from typing import Any, Dict, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from folder_monitor.monitor.errors import RootPathError, ScanCancelled

logger = logging.getLogger(__name__)

JOB_ID = 'scan_job'


class MonitorScheduler:
    """
    フォルダモニターの定期スキャンを管理するスケジューラークラス

    このクラスは以下の機能を提供します:
    - 指定間隔での定期スキャン実行
    - 重複実行の防止（前回のスキャンが終わっていなければスキップ）
    - スキャン状態の追跡と報告

    使用例:
        scheduler = MonitorScheduler(monitor)
        scheduler.start(interval_seconds=5)  # 定期実行を開始
        scheduler.stop()  # 停止

    Attributes:
        monitor: スキャン対象の FolderMonitor（try_scan() を持つオブジェクト）
        interval_seconds: 定期実行の間隔（秒）
    """

    def __init__(self, monitor, interval_seconds: float = 5.0):
        self.monitor = monitor
        self.interval_seconds = interval_seconds

        self._scheduler: Optional[BackgroundScheduler] = None

        # 状態管理
        self._stop_requested = threading.Event()
        self._lock = threading.Lock()
        self._ticks = 0
        self._skipped_ticks = 0
        self._last_run: Optional[datetime] = None
        self._last_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._scheduler is not None

    def start(self, interval_seconds: Optional[float] = None) -> bool:
        """
        スケジューラーを開始する

        定期実行ジョブを登録し、バックグラウンドスケジューラーを開始します。
        初回のスキャンは開始直後に実行されます。

        Args:
            interval_seconds: スキャン間隔（秒）

        Returns:
            bool: 開始した場合は True、既に実行中の場合は False
        """
        with self._lock:
            if self._scheduler is not None:
                logger.warning("スケジューラーは既に実行中です")
                return False

            if interval_seconds:
                self.interval_seconds = interval_seconds
            self._stop_requested.clear()

            # 停止後に再開できるよう、開始のたびに新しいスケジューラーを作る
            scheduler = BackgroundScheduler()
            scheduler.add_job(
                self._run_tick,
                trigger=IntervalTrigger(seconds=self.interval_seconds),
                id=JOB_ID,
                name='Folder Scan',
                max_instances=1,
                coalesce=True,
                next_run_time=datetime.now(),
                replace_existing=True
            )
            scheduler.start()
            self._scheduler = scheduler

        logger.info(f"スケジューラーを開始しました（間隔: {self.interval_seconds}秒）")
        return True

    def stop(self) -> None:
        """
        スケジューラーを停止する

        実行中のスキャンがあれば中断を要求し、その終了を待ってから戻ります。
        中断されたスキャンは保持中のスナップショットを変更しません。
        """
        with self._lock:
            scheduler = self._scheduler
            self._scheduler = None

        if scheduler is None:
            return

        self._stop_requested.set()
        scheduler.shutdown(wait=True)
        logger.info("スケジューラーを停止しました")

    def get_status(self) -> Dict[str, Any]:
        """
        スケジューラーの現在の状態を取得する

        Returns:
            dict: 状態情報を含む辞書
                - is_running: スケジューラー実行中かどうか
                - is_scanning: スキャン実行中かどうか
                - interval_seconds: スキャン間隔（秒）
                - last_run: 最後にティックを実行した日時
                - next_run: 次回実行予定日時
                - ticks: 実行したティック数
                - skipped_ticks: スキップしたティック数
                - last_error: 直近のティックで発生したエラー
        """
        with self._lock:
            next_run = None
            if self._scheduler is not None:
                job = self._scheduler.get_job(JOB_ID)
                if job and job.next_run_time:
                    next_run = job.next_run_time

            return {
                "is_running": self._scheduler is not None,
                "is_scanning": self.monitor.is_scanning,
                "interval_seconds": self.interval_seconds,
                "last_run": self._last_run.isoformat() if self._last_run else None,
                "next_run": next_run.isoformat() if next_run else None,
                "ticks": self._ticks,
                "skipped_ticks": self._skipped_ticks,
                "last_error": self._last_error,
            }

    def _run_tick(self) -> None:
        """
        1回分のティックを実行する（内部メソッド）

        スキャン → 差分検出 → イベント通知 → スナップショット置換を行います。
        致命的なエラーが起きても、保持中のスナップショットはそのまま残ります。
        """
        if self._stop_requested.is_set():
            return

        start_time = datetime.now()
        error = None

        try:
            events = self.monitor.try_scan(should_stop=self._stop_requested.is_set)
            if events is None:
                logger.warning("前回のスキャンが実行中のためスキップします")
                with self._lock:
                    self._skipped_ticks += 1
                return
            logger.info(f"スキャン完了: {len(events)} 件の変更 (所要時間: {datetime.now() - start_time})")

        except ScanCancelled:
            logger.info("スキャンは停止要求により中断されました")

        except RootPathError as e:
            error = str(e)
            logger.error(f"スキャンに失敗しました: {e}")

        except Exception as e:
            error = str(e)
            logger.error(f"スキャン中にエラーが発生しました: {e}", exc_info=True)

        with self._lock:
            self._ticks += 1
            self._last_run = datetime.now()
            self._last_error = error
