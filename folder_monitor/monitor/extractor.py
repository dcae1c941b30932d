# =============================================================================
# Folder Monitor - メタデータ抽出
# =============================================================================
# ファイルの種別を判定し、種別ごとのメタデータを抽出します。
#
# サポートする種別:
#   - テキスト (.txt): 行数・単語数・文字数（chardet でエンコーディング検出）
#   - 画像 (.png, .jpg): 幅・高さ（Pillow を使用）
#   - プログラム (.py, .java): 行数・クラス数・メソッド数（字句的に数える）
#
# 抽出器はスキャナーから差し替え可能です。MetadataExtractor の
# extract(kind, path, created_time) を実装したオブジェクトなら何でも使えます。
# =============================================================================

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional, Protocol

import chardet
from PIL import Image, UnidentifiedImageError

from folder_monitor.monitor.errors import ExtractionError
from folder_monitor.monitor.models import (
    FileKind,
    ImageMetadata,
    Metadata,
    ProgramMetadata,
    TextMetadata,
)

logger = logging.getLogger(__name__)


# 拡張子と種別のマッピング
# 拡張子は小文字で、ドット付きで指定
EXTENSION_KINDS: Dict[str, FileKind] = {
    '.txt': FileKind.TEXT,
    '.png': FileKind.IMAGE,
    '.jpg': FileKind.IMAGE,
    '.py': FileKind.PROGRAM,
    '.java': FileKind.PROGRAM,
}


def classify(filename: str) -> FileKind:
    """
    ファイル名の拡張子から種別を判定する

    Args:
        filename: ファイル名またはパス

    Returns:
        FileKind: 判定された種別。対象外の拡張子は UNCLASSIFIED
    """
    ext = Path(filename).suffix.lower()
    return EXTENSION_KINDS.get(ext, FileKind.UNCLASSIFIED)


# ---------------------------------------------------------------------------
# 抽出器インターフェース
# ---------------------------------------------------------------------------
class MetadataExtractor(Protocol):
    """スキャナーが呼び出すメタデータ抽出器のインターフェース"""

    def extract(self, kind: FileKind, path: str, created_time: datetime) -> Metadata:
        """
        種別ごとのメタデータを返す

        Raises:
            ExtractionError: 抽出に失敗した場合
        """
        ...


# ---------------------------------------------------------------------------
# テキストの読み込み
# ---------------------------------------------------------------------------
def read_text(file_path: str, max_size: int) -> str:
    """
    テキストファイルを読み込む

    chardet を使用してエンコーディングを自動検出し、テキストを読み込みます。

    Args:
        file_path: ファイルのパス
        max_size: 読み込みを許可する最大バイト数

    Returns:
        str: ファイルの内容

    Raises:
        ExtractionError: サイズ超過または読み込みに失敗した場合
    """
    try:
        with open(file_path, 'rb') as f:
            raw_data = f.read(max_size + 1)
    except OSError as e:
        raise ExtractionError(file_path, str(e)) from e

    if len(raw_data) > max_size:
        raise ExtractionError(file_path, f"ファイルサイズが上限 {max_size} バイトを超えています")

    if not raw_data:
        return ""

    # エンコーディング検出（先頭10KBのみ使用）
    detected = chardet.detect(raw_data[:10000])
    encoding = detected.get('encoding') or 'utf-8'
    confidence = detected.get('confidence', 0)

    # 信頼度が低い場合は UTF-8 を優先
    if confidence < 0.5:
        encoding = 'utf-8'

    try:
        return raw_data.decode(encoding, errors='replace')
    except LookupError:
        # chardet が Python の知らないエンコーディング名を返した場合
        return raw_data.decode('utf-8', errors='replace')


# ---------------------------------------------------------------------------
# テキストファイル
# ---------------------------------------------------------------------------
def extract_text_stats(file_path: str, max_size: int) -> TextMetadata:
    """テキストファイルの行数・単語数・文字数を数える"""
    text = read_text(file_path, max_size)
    return TextMetadata(
        line_count=len(text.splitlines()),
        word_count=len(text.split()),
        char_count=len(text),
    )


# ---------------------------------------------------------------------------
# 画像ファイル
# ---------------------------------------------------------------------------
def extract_image_size(file_path: str, max_size: int) -> ImageMetadata:
    """
    画像の幅と高さを取得する

    Pillow はヘッダーだけを読むため、画像全体はデコードしません。
    """
    try:
        with Image.open(file_path) as img:
            width, height = img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ExtractionError(file_path, str(e)) from e
    return ImageMetadata(width=width, height=height)


# ---------------------------------------------------------------------------
# プログラムファイル
# ---------------------------------------------------------------------------
_PY_CLASS_RE = re.compile(r"^\s*class\s+[A-Za-z_]\w*\s*[:(]")
_PY_DEF_RE = re.compile(r"^\s*(?:async\s+)?def\s+[A-Za-z_]\w*\s*\(")

_JAVA_TYPE_RE = re.compile(
    r"^\s*(?:@\w+\s+)*"
    r"(?:(?:public|protected|private|abstract|final|static|sealed|non-sealed|strictfp)\s+)*"
    r"(?:class|interface|enum|record)\s+[A-Za-z_]\w*"
)
_JAVA_METHOD_RE = re.compile(
    r"^\s*(?:@\w+(?:\([^)]*\))?\s+)*"
    r"(?:(?:public|protected|private|abstract|final|static|synchronized|native|strictfp|default)\s+)*"
    r"(?:<[^>]+>\s*)?"
    r"(?:[A-Za-z_][\w<>\[\], ?.]*\s+)?"
    r"([A-Za-z_]\w*)\s*\([^)]*\)\s*"
    r"(?:throws\s+[\w.,\s]+)?\s*[{;]"
)
# メソッド呼び出しや制御構文をメソッド定義と誤認しないための除外リスト
_JAVA_METHOD_SKIP = {"if", "for", "while", "switch", "catch", "return", "new", "else", "do", "try", "synchronized"}
_JAVA_COMMENT_RE = re.compile(r"//.*?$|/\*.*?\*/", re.DOTALL | re.MULTILINE)


def _count_python(lines) -> tuple:
    classes = sum(1 for line in lines if _PY_CLASS_RE.match(line))
    methods = sum(1 for line in lines if _PY_DEF_RE.match(line))
    return classes, methods


def _count_java(text: str) -> tuple:
    # コメントを除去してから行単位で判定
    masked = _JAVA_COMMENT_RE.sub("", text)
    classes = 0
    methods = 0
    for line in masked.splitlines():
        if _JAVA_TYPE_RE.match(line):
            classes += 1
            continue
        stripped = line.strip()
        # 本体を持つ宣言のみ数える（抽象メソッドや呼び出し文は除外）
        if stripped.endswith(";"):
            continue
        head = stripped.split("(")[0].split()
        if not head or head[0] in _JAVA_METHOD_SKIP:
            continue
        match = _JAVA_METHOD_RE.match(line)
        if match and match.group(1) not in _JAVA_METHOD_SKIP:
            methods += 1
    return classes, methods


def extract_program_stats(file_path: str, max_size: int) -> ProgramMetadata:
    """ソースコードの行数・クラス数・メソッド数を数える"""
    text = read_text(file_path, max_size)
    lines = text.splitlines()
    if Path(file_path).suffix.lower() == '.java':
        classes, methods = _count_java(text)
    else:
        classes, methods = _count_python(lines)
    return ProgramMetadata(
        line_count=len(lines),
        class_count=classes,
        method_count=methods,
    )


# ---------------------------------------------------------------------------
# デフォルト抽出器クラス
# ---------------------------------------------------------------------------
class DefaultExtractor:
    """
    標準のメタデータ抽出器

    種別に基づいて適切な抽出関数を選択し、メタデータを返します。

    使用例:
        extractor = DefaultExtractor(max_text_bytes=1024 * 1024)
        metadata = extractor.extract(FileKind.TEXT, "/path/to/a.txt", created_time)
        print(metadata.word_count)

    Attributes:
        max_text_bytes: テキスト/プログラムとして読み込む最大バイト数
    """

    EXTRACTORS: Dict[FileKind, Callable[[str, int], Metadata]] = {
        FileKind.TEXT: extract_text_stats,
        FileKind.IMAGE: extract_image_size,
        FileKind.PROGRAM: extract_program_stats,
    }

    def __init__(self, max_text_bytes: int = 10 * 1024 * 1024):
        self.max_text_bytes = max_text_bytes

    def extract(self, kind: FileKind, path: str, created_time: Optional[datetime] = None) -> Metadata:
        """
        ファイルからメタデータを抽出する

        Args:
            kind: ファイル種別
            path: ファイルのパス
            created_time: スキャンで観測した更新日時（標準の抽出器では未使用）

        Returns:
            Metadata: 種別ごとのメタデータ

        Raises:
            ExtractionError: 未対応の種別、または抽出に失敗した場合
        """
        extract_func = self.EXTRACTORS.get(kind)
        if not extract_func:
            raise ExtractionError(path, f"未対応の種別: {kind.value}")

        metadata = extract_func(path, self.max_text_bytes)
        logger.debug(f"メタデータ抽出: {path} -> {metadata}")
        return metadata
