# =============================================================================
# Folder Monitor - ディレクトリスキャナー
# =============================================================================
# 指定されたディレクトリを再帰的に巡回し、新しいスナップショットを作成します。
#
# 主な機能:
#   - ディレクトリの再帰的巡回（名前順で決定的）
#   - 除外パターンによるフィルタリング
#   - 拡張子によるファイル種別の判定とメタデータ抽出
#   - 読み取れないサブツリーを警告として記録し、スキャンを継続
# =============================================================================

import fnmatch
import logging
import os
import stat
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from folder_monitor.monitor.errors import (
    ExtractionError,
    PartialScanError,
    RootPathError,
    ScanCancelled,
)
from folder_monitor.monitor.extractor import DefaultExtractor, MetadataExtractor, classify
from folder_monitor.monitor.models import FileKind, FileRecord, Snapshot

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ディレクトリスキャナークラス
# ---------------------------------------------------------------------------
class DirectoryScanner:
    """
    ファイルシステムを巡回してスナップショットを作成するクラス

    このクラスは以下の機能を提供します:
    - 指定ディレクトリの再帰的スキャン
    - 除外パターンによるファイル/フォルダのフィルタリング
    - ファイル種別ごとのメタデータ抽出（抽出器は差し替え可能）
    - 読み取れないエントリの警告記録

    使用例:
        scanner = DirectoryScanner(exclude_patterns=["*.tmp", ".git"])
        snapshot = scanner.scan("/path/to/directory")
        for name, record in snapshot.entries.items():
            print(name, record.kind)
    """

    def __init__(
        self,
        extractor: Optional[MetadataExtractor] = None,
        exclude_patterns: List[str] = None,
    ):
        """
        DirectoryScanner を初期化する

        Args:
            extractor: メタデータ抽出器（省略時は DefaultExtractor）
            exclude_patterns: 除外するファイル/フォルダのパターンリスト
                             ワイルドカード（*、?）が使用可能
        """
        self.extractor = extractor or DefaultExtractor()
        self.exclude_patterns = exclude_patterns or []

        # スキャン統計情報
        self._stats = self._empty_stats()

    def scan(
        self,
        root_path: str,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> Snapshot:
        """
        指定されたディレクトリを再帰的にスキャンする

        ウォークが完全に終わってからスナップショットを返すため、
        呼び出し側が途中の状態を目にすることはありません。

        Args:
            root_path: スキャン開始ディレクトリのパス
            should_stop: True を返すとスキャンを中断するコールバック

        Returns:
            Snapshot: 新しいスナップショット（ベースラインは未設定）

        Raises:
            RootPathError: ルートが存在しない、ディレクトリでない、読み取れない場合
            ScanCancelled: should_stop により中断された場合

        Note:
            - シンボリックリンクは追跡しません
            - 読み取れないサブツリーは警告として記録し、スキャンを継続します
        """
        root = Path(root_path)
        self._check_root(root)

        logger.info(f"スキャン開始: {root_path}")
        self._stats = self._empty_stats()

        entries: Dict[str, FileRecord] = {}
        warnings: List[PartialScanError] = []

        def on_walk_error(error: OSError) -> None:
            # os.walk が読み取れなかったディレクトリを通知してくる
            path = error.filename or str(root)
            self._record_warning(warnings, str(path), error.strerror or str(error))

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_walk_error, followlinks=False):
            if should_stop and should_stop():
                logger.info(f"スキャンが中断されました: {root_path}")
                raise ScanCancelled(root_path)

            # 除外パターンに一致するディレクトリを削除し、名前順に並べる
            # （os.walk はこのリストを参照して再帰を制御する）
            dirnames[:] = sorted(d for d in dirnames if not self._should_exclude(d))

            for filename in sorted(filenames):
                if self._should_exclude(filename):
                    self._stats["skipped_by_pattern"] += 1
                    continue

                file_path = os.path.join(dirpath, filename)
                record = self._build_record(root, file_path, warnings)
                if record is not None:
                    entries[record.name] = record
                    self._stats["total_files"] += 1

        logger.info(f"スキャン完了: {root_path}")
        logger.info(f"統計: {self._stats}")

        return Snapshot(entries=entries, warnings=tuple(warnings))

    def _check_root(self, root: Path) -> None:
        """ルートパスが読み取り可能なディレクトリか確認する"""
        if not root.exists():
            raise RootPathError(str(root), "存在しません")
        if not root.is_dir():
            raise RootPathError(str(root), "ディレクトリではありません")
        try:
            with os.scandir(root):
                pass
        except OSError as e:
            raise RootPathError(str(root), e.strerror or str(e)) from e

    def _build_record(
        self,
        root: Path,
        file_path: str,
        warnings: List[PartialScanError],
    ) -> Optional[FileRecord]:
        """
        1ファイル分の FileRecord を作成する

        Returns:
            FileRecord: 作成したレコード。対象外・取得失敗の場合は None
        """
        kind = classify(file_path)
        if kind is FileKind.UNCLASSIFIED:
            self._stats["unclassified"] += 1
            return None

        try:
            st = os.lstat(file_path)
        except OSError as e:
            self._stats["skipped_by_error"] += 1
            self._record_warning(warnings, file_path, e.strerror or str(e))
            return None

        # 通常ファイルのみ対象（シンボリックリンク等は除外）
        if not stat.S_ISREG(st.st_mode):
            return None

        modified_time = datetime.fromtimestamp(st.st_mtime)

        try:
            metadata = self.extractor.extract(kind, file_path, modified_time)
        except ExtractionError as e:
            logger.warning(f"メタデータ抽出エラーのためスキップ: {e}")
            self._stats["extraction_errors"] += 1
            return None
        except Exception as e:
            # 抽出器の不具合でもスキャン全体は止めない
            logger.warning(f"メタデータ抽出中に予期しないエラー: {file_path} - {e}", exc_info=True)
            self._stats["extraction_errors"] += 1
            return None

        name = Path(file_path).relative_to(root).as_posix()
        return FileRecord(
            name=name,
            path=file_path,
            kind=kind,
            created_time=modified_time,
            updated_time=modified_time,
            modified_time=modified_time,
            metadata=metadata,
        )

    def _record_warning(self, warnings: List[PartialScanError], path: str, reason: str) -> None:
        warning = PartialScanError(path, reason)
        warnings.append(warning)
        self._stats["warnings"] += 1
        logger.warning(f"読み取れないエントリをスキップ: {warning}")

    def _should_exclude(self, name: str) -> bool:
        """
        ファイル/フォルダが除外パターンに一致するかチェックする

        Args:
            name: チェック対象のファイル名またはフォルダ名

        Returns:
            bool: 除外すべき場合は True
        """
        for pattern in self.exclude_patterns:
            # 例: "*.tmp" は "file.tmp" にマッチ
            # 例: "node_modules" は "node_modules" にマッチ
            if fnmatch.fnmatch(name.lower(), pattern.lower()):
                return True
        return False

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            "total_files": 0,
            "skipped_by_pattern": 0,
            "unclassified": 0,
            "extraction_errors": 0,
            "skipped_by_error": 0,
            "warnings": 0,
        }

    def get_stats(self) -> Dict[str, int]:
        """
        直近のスキャン統計情報を取得する

        Returns:
            dict: 統計情報を含む辞書
        """
        return self._stats.copy()
