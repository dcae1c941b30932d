# =============================================================================
# Folder Monitor - データモデル
# =============================================================================
# スキャン結果を表すイミュータブルなデータ構造を定義します。
#
# 主な型:
#   - FileRecord: 1ファイル分の情報（種別ごとのメタデータを含む）
#   - Snapshot: あるスキャン時点の全ファイルの記録
#   - ChangeEvent: 2つのスナップショット間の差分イベント
# =============================================================================

from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple, Union

from folder_monitor.monitor.errors import PartialScanError

# 表示用の日時フォーマット
TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


class FileKind(str, Enum):
    """ファイル種別"""
    TEXT = "text"
    IMAGE = "image"
    PROGRAM = "program"
    UNCLASSIFIED = "unclassified"


class ChangeKind(str, Enum):
    """差分イベントの種別"""
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"


# ---------------------------------------------------------------------------
# 種別ごとのメタデータ
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class TextMetadata:
    """
    テキストファイルのメタデータ

    Attributes:
        line_count: 行数
        word_count: 単語数（空白区切り）
        char_count: 文字数
    """
    line_count: int = 0
    word_count: int = 0
    char_count: int = 0

    def describe_lines(self):
        return [
            f"Line Count: {self.line_count}",
            f"Word Count: {self.word_count}",
            f"Character Count: {self.char_count}",
        ]


@dataclass(frozen=True)
class ImageMetadata:
    """
    画像ファイルのメタデータ

    Attributes:
        width: 幅（ピクセル）
        height: 高さ（ピクセル）
    """
    width: int = 0
    height: int = 0

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"

    def describe_lines(self):
        return [f"Image Size: {self.size}"]


@dataclass(frozen=True)
class ProgramMetadata:
    """
    ソースコードファイルのメタデータ

    Attributes:
        line_count: 行数
        class_count: クラス（型）定義の数
        method_count: メソッド/関数定義の数
    """
    line_count: int = 0
    class_count: int = 0
    method_count: int = 0

    def describe_lines(self):
        return [
            f"Line Count: {self.line_count}",
            f"Class Count: {self.class_count}",
            f"Method Count: {self.method_count}",
        ]


Metadata = Union[TextMetadata, ImageMetadata, ProgramMetadata]

# describe() の見出し
_KIND_LABELS = {
    FileKind.TEXT: "Text File",
    FileKind.IMAGE: "Image File",
    FileKind.PROGRAM: "Program File",
    FileKind.UNCLASSIFIED: "File",
}


# ---------------------------------------------------------------------------
# ファイルレコード
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class FileRecord:
    """
    スナップショット内の1ファイル分の記録

    Attributes:
        name: スキャンルートからの相対パス（POSIX形式）。スナップショット内で一意
        path: ファイルのフルパス
        kind: ファイル種別
        created_time: 初回観測時の更新日時
        updated_time: 最後に変更を検出した時点の更新日時
        modified_time: このレコードを作ったスキャンで観測した更新日時
        metadata: 種別ごとのメタデータ
    """
    name: str
    path: str
    kind: FileKind
    created_time: datetime
    updated_time: datetime
    modified_time: datetime
    metadata: Optional[Metadata] = None

    def describe(self) -> str:
        """人間が読める形式でレコードの内容を返す"""
        lines = [
            f"{_KIND_LABELS[self.kind]}: {self.name}",
            f"Created Time: {self.created_time.strftime(TIME_FORMAT)}",
            f"Updated Time: {self.updated_time.strftime(TIME_FORMAT)}",
        ]
        if self.metadata is not None:
            lines.extend(self.metadata.describe_lines())
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """API レスポンス用の辞書に変換する"""
        return {
            "name": self.name,
            "path": self.path,
            "kind": self.kind.value,
            "created_time": self.created_time.isoformat(),
            "updated_time": self.updated_time.isoformat(),
            "modified_time": self.modified_time.isoformat(),
            "metadata": _metadata_dict(self.metadata),
            "description": self.describe(),
        }


def _metadata_dict(metadata: Optional[Metadata]) -> dict:
    if metadata is None:
        return {}
    data = asdict(metadata)
    if isinstance(metadata, ImageMetadata):
        data["size"] = metadata.size
    return data


# ---------------------------------------------------------------------------
# スナップショット
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Snapshot:
    """
    あるスキャン時点のディレクトリツリーの記録

    スナップショットは一度公開されたら変更されません。
    スキャンやコミットのたびに新しいインスタンスで丸ごと置き換えます。

    Attributes:
        entries: 名前 → FileRecord の読み取り専用マッピング（ウォーク順）
        taken_at: commit() で設定されるベースライン時刻（未コミットなら None）
        warnings: スキャン中に読み取れなかったエントリ
    """
    entries: Mapping[str, FileRecord] = field(default_factory=dict)
    taken_at: Optional[datetime] = None
    warnings: Tuple[PartialScanError, ...] = ()

    def __post_init__(self):
        # 呼び出し側の辞書をコピーして読み取り専用にする
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))
        for name, record in self.entries.items():
            if name != record.name:
                raise ValueError(f"エントリのキーとレコード名が一致しません: {name} != {record.name}")

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls()

    def get(self, name: str) -> Optional[FileRecord]:
        return self.entries.get(name)

    def with_baseline(self, taken_at: Optional[datetime]) -> "Snapshot":
        """ベースラインだけを差し替えた新しいスナップショットを返す"""
        return replace(self, entries=dict(self.entries), taken_at=taken_at)

    def status(self) -> List[Tuple[str, bool]]:
        """各エントリの updated_time がベースラインと異なるかを返す"""
        return [
            (name, record.updated_time != self.taken_at)
            for name, record in self.entries.items()
        ]

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, name: object) -> bool:
        return name in self.entries


# ---------------------------------------------------------------------------
# 差分イベント
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ChangeEvent:
    """2つのスナップショット間で検出された1件の変更"""
    kind: ChangeKind
    filename: str

    def message(self) -> str:
        if self.kind is ChangeKind.ADDED:
            return f"File '{self.filename}' is added."
        if self.kind is ChangeKind.REMOVED:
            return f"File '{self.filename}' is deleted."
        return f"File '{self.filename}' has been modified."

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "filename": self.filename}
