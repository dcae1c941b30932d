# =============================================================================
# Folder Monitor - 差分検出
# =============================================================================
# 前回のスナップショットと新しいスナップショットを比較し、
# 追加・更新・削除のイベントを検出します。
#
# イベントの順序:
#   1. 追加と更新（新しいスナップショットのウォーク順）
#   2. 削除（前回のスナップショットの順、全ての追加/更新の後）
# =============================================================================

from dataclasses import replace
from typing import Dict, List

from folder_monitor.monitor.models import ChangeEvent, ChangeKind, FileRecord, Snapshot


def diff(previous: Snapshot, current: Snapshot) -> List[ChangeEvent]:
    """
    2つのスナップショットの差分を検出する

    更新の判定には、引き継がれた updated_time ではなく、
    各スキャンで観測した更新日時（modified_time）を比較します。

    Args:
        previous: 前回のスナップショット
        current: 新しくスキャンしたスナップショット

    Returns:
        list: ChangeEvent のリスト（順序は決定的）
    """
    events: List[ChangeEvent] = []

    for name, record in current.entries.items():
        old = previous.get(name)
        if old is None:
            # 前回の状態に存在しない = 新規ファイル
            events.append(ChangeEvent(ChangeKind.ADDED, name))
        elif old.modified_time != record.modified_time:
            # 更新日時が異なる = 更新されたファイル
            events.append(ChangeEvent(ChangeKind.MODIFIED, name))

    # 前回存在したが今回存在しない = 削除されたファイル
    for name in previous.entries:
        if name not in current:
            events.append(ChangeEvent(ChangeKind.REMOVED, name))

    return events


def carry_forward(previous: Snapshot, current: Snapshot) -> Snapshot:
    """
    前回のスナップショットから日時情報を引き継いだ公開用スナップショットを作る

    - created_time は初回観測時の値を引き継ぐ
    - updated_time は更新を検出した場合のみ新しい更新日時に置き換える
    - ベースライン（taken_at）は前回のものを引き継ぐ

    Args:
        previous: 現在保持しているスナップショット
        current: 新しくスキャンしたスナップショット

    Returns:
        Snapshot: 保持中のスナップショットと置き換える新しいスナップショット
    """
    entries: Dict[str, FileRecord] = {}

    for name, record in current.entries.items():
        old = previous.get(name)
        if old is None:
            entries[name] = record
            continue

        if old.modified_time != record.modified_time:
            updated_time = record.modified_time
        else:
            updated_time = old.updated_time

        entries[name] = replace(
            record,
            created_time=old.created_time,
            updated_time=updated_time,
        )

    return Snapshot(entries=entries, taken_at=previous.taken_at, warnings=current.warnings)
