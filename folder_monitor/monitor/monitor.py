# =============================================================================
# Folder Monitor - フォルダモニター
# =============================================================================
# 保持中のスナップショットを管理し、スキャン・問い合わせ・コミットの
# 操作を提供します。
#
# 主な機能:
#   - scan_once(): スキャン → 差分検出 → イベント通知 → スナップショット置換
#   - info() / status(): 保持中のスナップショットへの問い合わせ
#   - commit(): status() が比較に使うベースライン時刻の記録
#   - start() / stop(): 定期スキャンの開始と停止
# =============================================================================

import logging
import os
import threading
from datetime import datetime
from typing import Callable, List, Optional, Tuple

from folder_monitor.monitor.diff import carry_forward, diff
from folder_monitor.monitor.errors import PartialScanError
from folder_monitor.monitor.extractor import MetadataExtractor
from folder_monitor.monitor.models import ChangeEvent, ChangeKind, FileRecord, Snapshot
from folder_monitor.monitor.scanner import DirectoryScanner
from folder_monitor.monitor.scheduler import MonitorScheduler

logger = logging.getLogger(__name__)

ChangeListener = Callable[[List[ChangeEvent]], None]

DEFAULT_INTERVAL_SECONDS = 5.0


class FolderMonitor:
    """
    1つのディレクトリツリーを監視するクラス

    スナップショットは常に丸ごと置き換えられ、途中の状態が公開されることは
    ありません。問い合わせはスキャン中でも安全に呼び出せます。

    使用例:
        monitor = FolderMonitor("/path/to/watch")
        monitor.add_listener(lambda events: print(events))
        monitor.scan_once()
        monitor.commit()
        print(monitor.status())
        monitor.start(interval_seconds=5)
        ...
        monitor.stop()

    Attributes:
        root_path: 監視対象のディレクトリ
        scanner: ディレクトリスキャナー
    """

    def __init__(
        self,
        root_path: str,
        scanner: Optional[DirectoryScanner] = None,
        extractor: Optional[MetadataExtractor] = None,
        exclude_patterns: List[str] = None,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ):
        """
        FolderMonitor を初期化する

        Args:
            root_path: 監視対象のディレクトリパス
            scanner: 使用するスキャナー（省略時は extractor と exclude_patterns から生成）
            extractor: メタデータ抽出器
            exclude_patterns: 除外するファイル/フォルダのパターン
            interval_seconds: 定期スキャンの既定の間隔（秒）
        """
        self.root_path = root_path
        self.scanner = scanner or DirectoryScanner(
            extractor=extractor,
            exclude_patterns=exclude_patterns,
        )
        self.interval_seconds = interval_seconds

        self._snapshot = Snapshot.empty()
        # スナップショットの参照の読み書きを保護する
        self._lock = threading.Lock()
        # スキャンは同時に1つだけ
        self._scan_lock = threading.Lock()
        self._listeners: List[ChangeListener] = []
        self._scheduler = MonitorScheduler(self, interval_seconds)

    # -----------------------------------------------------------------------
    # スキャン
    # -----------------------------------------------------------------------
    def scan_once(self) -> List[ChangeEvent]:
        """
        スキャンを1回実行し、検出したイベントを返す

        他のスキャンが実行中の場合は、その完了を待ってから実行します。

        Returns:
            list: 検出された ChangeEvent のリスト

        Raises:
            RootPathError: ルートが読み取れない場合（スナップショットは置き換えない）
        """
        with self._scan_lock:
            return self._run_scan()

    def try_scan(self, should_stop: Optional[Callable[[], bool]] = None) -> Optional[List[ChangeEvent]]:
        """
        他のスキャンが実行中でなければスキャンを実行する

        Returns:
            list: 検出されたイベント。スキャン実行中だった場合は None

        Raises:
            RootPathError: ルートが読み取れない場合
            ScanCancelled: should_stop により中断された場合
        """
        if not self._scan_lock.acquire(blocking=False):
            return None
        try:
            return self._run_scan(should_stop)
        finally:
            self._scan_lock.release()

    @property
    def is_scanning(self) -> bool:
        return self._scan_lock.locked()

    def _run_scan(self, should_stop: Optional[Callable[[], bool]] = None) -> List[ChangeEvent]:
        """スキャン → 差分検出 → 置換 → 通知（_scan_lock 取得済みで呼ぶこと）"""
        previous = self.snapshot
        current = self.scanner.scan(self.root_path, should_stop=should_stop)

        events = diff(previous, current)
        published = carry_forward(previous, current)
        self._warn_vanished(previous, events)

        with self._lock:
            # スキャン中に commit() されたベースラインを優先する
            self._snapshot = published.with_baseline(self._snapshot.taken_at)

        self._emit(events)
        return events

    @staticmethod
    def _warn_vanished(previous: Snapshot, events: List[ChangeEvent]) -> None:
        # ディスク上に残っているのに今回のスナップショットから消えたファイル
        # （抽出失敗など）。次に読めたときは Added として作成日時がリセットされる
        for event in events:
            if event.kind is not ChangeKind.REMOVED:
                continue
            record = previous.get(event.filename)
            if record is not None and os.path.exists(record.path):
                logger.warning(
                    f"ファイルは存在しますが読み取れなかったため削除扱いになります: {event.filename}"
                )

    def _emit(self, events: List[ChangeEvent]) -> None:
        for event in events:
            logger.info(event.message())

        if not events:
            return

        for listener in list(self._listeners):
            try:
                listener(events)
            except Exception as e:
                logger.error(f"変更リスナーでエラーが発生しました: {e}", exc_info=True)

    def add_listener(self, listener: ChangeListener) -> None:
        """変更イベントを受け取るコールバックを登録する"""
        self._listeners.append(listener)

    def remove_listener(self, listener: ChangeListener) -> None:
        self._listeners.remove(listener)

    # -----------------------------------------------------------------------
    # 問い合わせ
    # -----------------------------------------------------------------------
    @property
    def snapshot(self) -> Snapshot:
        """現在保持しているスナップショット"""
        with self._lock:
            return self._snapshot

    def info(self, filename: str) -> Optional[FileRecord]:
        """
        ファイルのレコードを取得する

        Args:
            filename: スキャンルートからの相対パス

        Returns:
            FileRecord: 見つかったレコード。存在しない場合は None
        """
        return self.snapshot.get(filename)

    def status(self) -> List[Tuple[str, bool]]:
        """
        各ファイルがベースライン以降に変更されたかを返す

        updated_time をベースライン（commit() の時刻）と比較します。
        commit() を一度も呼んでいない場合、全てのファイルが変更ありになります。

        Returns:
            list: (ファイル名, 変更ありなら True) のリスト
        """
        return self.snapshot.status()

    def commit(self) -> datetime:
        """
        現在時刻をベースラインとして記録する

        Returns:
            datetime: 記録したベースライン時刻
        """
        taken_at = datetime.now()
        with self._lock:
            self._snapshot = self._snapshot.with_baseline(taken_at)
        logger.info(f"ベースラインを記録しました: {taken_at.isoformat()}")
        return taken_at

    def warnings(self) -> Tuple[PartialScanError, ...]:
        """直近のスキャンで読み取れなかったエントリ"""
        return self.snapshot.warnings

    # -----------------------------------------------------------------------
    # 定期実行
    # -----------------------------------------------------------------------
    def start(self, interval_seconds: Optional[float] = None) -> bool:
        """
        定期スキャンを開始する

        Args:
            interval_seconds: スキャン間隔（秒）。省略時は初期化時の値

        Returns:
            bool: 開始した場合は True、既に実行中の場合は False
        """
        return self._scheduler.start(interval_seconds or self.interval_seconds)

    def stop(self) -> None:
        """定期スキャンを停止する（実行中のスキャンの終了を待つ）"""
        self._scheduler.stop()

    @property
    def is_running(self) -> bool:
        return self._scheduler.is_running

    def get_scheduler_status(self) -> dict:
        return self._scheduler.get_status()
