# =============================================================================
# Folder Monitor - 例外定義
# =============================================================================
# スキャンおよびメタデータ抽出で発生する例外を定義します。
#
# 例外の扱い:
#   - RootPathError: ルートが存在しない/読めない。そのスキャンは中断され、
#                    保持中のスナップショットはそのまま残る
#   - PartialScanError: サブツリーが読めない。警告として記録し、スキャン継続
#   - ExtractionError: ファイル単位の抽出失敗。そのファイルはスキップ
#   - ScanCancelled: 停止要求によりスキャンを中断
# =============================================================================


class MonitorError(Exception):
    """フォルダモニターの例外の基底クラス"""


class RootPathError(MonitorError, OSError):
    """
    スキャンのルートパスが存在しない、または読み取れない場合の例外

    OSError のサブクラスなので、呼び出し側は IOError としても捕捉できます。
    """

    def __init__(self, root_path: str, reason: str):
        super().__init__(f"スキャンルートを読み取れません: {root_path} ({reason})")
        self.root_path = root_path
        self.reason = reason


class PartialScanError(MonitorError):
    """
    スキャン中に一部のエントリが読み取れなかったことを表す

    この例外はスキャンの外には送出されず、スナップショットの警告として
    記録されます。

    Attributes:
        path: 読み取れなかったパス
        reason: 失敗理由
    """

    def __init__(self, path: str, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ExtractionError(MonitorError):
    """メタデータ抽出に失敗した場合の例外"""

    def __init__(self, path: str, reason: str):
        super().__init__(f"メタデータ抽出失敗: {path} ({reason})")
        self.path = path
        self.reason = reason


class ScanCancelled(MonitorError):
    """停止要求によりスキャンが中断された場合の例外"""
