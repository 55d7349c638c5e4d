"""日线序列合并"""
from __future__ import annotations

from itertools import chain
from typing import Dict, Iterable, List, Optional

from .models import DailyBar


def merge_series(
    existing: Optional[Iterable[DailyBar]],
    incoming: Iterable[DailyBar],
) -> List[DailyBar]:
    """
    将新解析的日线合并进已有序列

    每个日期只保留一条：已有数据优先于新数据，新数据内部重复时保留首条；
    结果按日期升序。重复导入同一批数据不会改变结果。

    Args:
        existing: 已持久化的序列，可为 None
        incoming: 新解析的日线

    Returns:
        合并后的序列
    """
    by_date: Dict[str, DailyBar] = {}
    for bar in chain(existing or [], incoming):
        by_date.setdefault(bar.date, bar)
    return sorted(by_date.values(), key=lambda b: b.date)


def new_dates_only(existing: Iterable[DailyBar], incoming: Iterable[DailyBar]) -> List[DailyBar]:
    """返回合并后相对 existing 新增的日线"""
    existing = list(existing)
    known = {bar.date for bar in existing}
    return [bar for bar in merge_series(existing, incoming) if bar.date not in known]
