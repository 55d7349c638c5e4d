"""
通达信 .day 日线文件解析

每条记录 32 字节，依次为 8 个小端 int32：
    日期(YYYYMMDD) 开盘 最高 最低 收盘（单位：分） 成交额（单位：分） 成交量（股） 保留字段
"""
from __future__ import annotations

from pathlib import Path
from typing import Iterable, List, Union

import numpy as np

from .models import DailyBar

RECORD_SIZE = 32
RECORD_DTYPE = np.dtype("<i4")
FIELDS_PER_RECORD = RECORD_SIZE // RECORD_DTYPE.itemsize


class DayFileDecodeError(ValueError):
    """.day 文件长度不是记录长度的整数倍（文件截断或损坏）"""


def format_date(raw: int) -> str:
    s = str(int(raw))
    return f"{s[:4]}-{s[4:6]}-{s[6:8]}"


def decode_day_records(buf: bytes) -> List[DailyBar]:
    """
    将 .day 文件的二进制内容解析为 DailyBar 列表（保持文件顺序）

    Raises:
        DayFileDecodeError: 缓冲区长度不是 32 的整数倍
    """
    if len(buf) % RECORD_SIZE != 0:
        raise DayFileDecodeError(
            f"日线数据长度 {len(buf)} 不是 {RECORD_SIZE} 字节的整数倍，文件可能已损坏"
        )
    if not buf:
        return []

    records = np.frombuffer(buf, dtype=RECORD_DTYPE).reshape(-1, FIELDS_PER_RECORD)

    bars: List[DailyBar] = []
    for date_raw, open_, high, low, close, turnover, volume, _ in records.tolist():
        bars.append(
            DailyBar(
                date=format_date(date_raw),
                open=open_ / 100,
                high=high / 100,
                low=low / 100,
                close=close / 100,
                turnover=turnover / 100,
                volume=volume,
            )
        )
    return bars


def read_day_file(file_path: Union[str, Path]) -> List[DailyBar]:
    """读取 .day 文件"""
    return decode_day_records(Path(file_path).read_bytes())


def encode_day_records(bars: Iterable[DailyBar]) -> bytes:
    """将 DailyBar 编码为 .day 格式，价格按分四舍五入"""
    rows = []
    for bar in bars:
        rows.append([
            int(bar.date.replace("-", "")),
            round(bar.open * 100),
            round(bar.high * 100),
            round(bar.low * 100),
            round(bar.close * 100),
            round(bar.turnover * 100),
            int(bar.volume),
            0,
        ])
    if not rows:
        return b""
    return np.asarray(rows, dtype=RECORD_DTYPE).tobytes()
