# =============================================================================
# Folder Monitor - 設定管理モジュール
# =============================================================================
# config.yaml と環境変数から設定を読み込み、アプリケーション全体で
# 使用可能な設定オブジェクトを提供します。
#
# 使用方法:
#   from folder_monitor.config import settings
#   print(settings.root_path)
# =============================================================================

from pathlib import Path
from typing import List

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


# ---------------------------------------------------------------------------
# ログ設定のデータクラス
# ---------------------------------------------------------------------------
class LoggingConfig(BaseModel):
    """
    ログ出力設定を保持するクラス

    Attributes:
        level: ログレベル（DEBUG, INFO, WARNING, ERROR, CRITICAL）
        format: ログフォーマット文字列
    """
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


# ---------------------------------------------------------------------------
# メイン設定クラス
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """
    アプリケーション全体の設定を管理するクラス

    設定の優先順位:
    1. config.yaml に書かれた値
    2. 環境変数（FOLDERMONITOR_ プレフィックス）
    3. デフォルト値

    Attributes:
        root_path: 監視対象のディレクトリパス
        scan_interval_seconds: 定期スキャンの間隔（秒）
        autostart: 起動時に定期スキャンを開始するかどうか
        exclude_patterns: 除外するファイル/フォルダのパターン
        max_text_bytes: テキスト/プログラムとして読み込む最大バイト数
        logging: ログ設定
    """

    # スキャン設定
    root_path: str = "."
    exclude_patterns: List[str] = Field(default_factory=lambda: [
        ".git", "__pycache__", "*.tmp"
    ])
    max_text_bytes: int = 10 * 1024 * 1024

    # スケジュール設定
    scan_interval_seconds: float = Field(default=5.0, gt=0)
    autostart: bool = True

    # サブ設定
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    class Config:
        """Pydantic設定"""
        env_prefix = "FOLDERMONITOR_"  # 環境変数のプレフィックス


def load_config(config_path: str = "config.yaml") -> Settings:
    """
    設定ファイルを読み込み、Settingsオブジェクトを生成する

    YAML に書かれていない項目は環境変数、さらにデフォルト値の順で補われます。

    Args:
        config_path: 設定ファイルのパス（デフォルト: config.yaml）

    Returns:
        Settings: 読み込まれた設定オブジェクト

    Raises:
        yaml.YAMLError: YAMLの解析に失敗した場合
        pydantic.ValidationError: 設定値が不正な場合
    """
    # 設定ファイルのパスを解決
    config_file = Path(config_path)
    if not config_file.exists():
        # デフォルト設定で動作
        print(f"警告: 設定ファイル {config_path} が見つかりません。デフォルト設定を使用します。")
        return Settings()

    # YAMLファイルを読み込む
    with open(config_file, 'r', encoding='utf-8') as f:
        yaml_config = yaml.safe_load(f) or {}

    # YAML に存在するキーだけを渡し、それ以外は環境変数/デフォルトに任せる
    known_fields = set(Settings.model_fields)
    values = {key: value for key, value in yaml_config.items() if key in known_fields}

    return Settings(**values)


# ---------------------------------------------------------------------------
# グローバル設定インスタンス
# ---------------------------------------------------------------------------
# アプリケーション起動時に一度だけ読み込まれる
# 他のモジュールからは `from folder_monitor.config import settings` でアクセス可能
# ---------------------------------------------------------------------------
settings = load_config()
