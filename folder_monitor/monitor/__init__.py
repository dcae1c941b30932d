# =============================================================================
# Folder Monitor - モニターパッケージ
# =============================================================================
# ディレクトリツリーを定期的にスキャンし、変更を検出するモジュール群
#
# モジュール構成:
#   - models.py: スナップショット・ファイルレコード・差分イベント
#   - extractor.py: ファイル種別の判定とメタデータ抽出
#   - scanner.py: ファイルシステムの巡回とスナップショット作成
#   - diff.py: スナップショット間の差分検出
#   - monitor.py: 保持中のスナップショットの管理と問い合わせ
#   - scheduler.py: 定期実行スケジューラー
# =============================================================================

from folder_monitor.monitor.diff import carry_forward, diff
from folder_monitor.monitor.errors import (
    ExtractionError,
    MonitorError,
    PartialScanError,
    RootPathError,
    ScanCancelled,
)
from folder_monitor.monitor.extractor import DefaultExtractor, MetadataExtractor, classify
from folder_monitor.monitor.models import (
    ChangeEvent,
    ChangeKind,
    FileKind,
    FileRecord,
    ImageMetadata,
    ProgramMetadata,
    Snapshot,
    TextMetadata,
)
from folder_monitor.monitor.monitor import FolderMonitor
from folder_monitor.monitor.scanner import DirectoryScanner
from folder_monitor.monitor.scheduler import MonitorScheduler

__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "DefaultExtractor",
    "DirectoryScanner",
    "ExtractionError",
    "FileKind",
    "FileRecord",
    "FolderMonitor",
    "ImageMetadata",
    "MetadataExtractor",
    "MonitorError",
    "MonitorScheduler",
    "PartialScanError",
    "ProgramMetadata",
    "RootPathError",
    "ScanCancelled",
    "Snapshot",
    "TextMetadata",
    "carry_forward",
    "classify",
    "diff",
]
