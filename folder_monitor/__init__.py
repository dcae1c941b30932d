"""Folder Monitor - ディレクトリツリーの定期スキャンと変更検出"""

__version__ = "1.0.0"
