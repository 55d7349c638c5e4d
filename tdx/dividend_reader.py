"""
分红送配数据读取
解析大智慧 SPLIT.PWR 除权文件，并以 JSON 形式保存 / 读取
"""
from __future__ import annotations

import json
import logging
import re
import struct
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Union

from .models import DividendRecord

logger = logging.getLogger(__name__)

HEADER_SIZE = 8
BLOCK_SIZE = 120
CODE_TAG = -1

_LEADING_FLOAT = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)")


def _parse_leading_float(text: str) -> float:
    """解析字符串开头的数字，解析失败返回 0"""
    match = _LEADING_FLOAT.match(text.lstrip())
    return float(match.group(0)) if match else 0.0


def _extract_value(desc: str, keyword: str) -> float:
    """从说明文本中提取关键字后面的数值"""
    idx = desc.find(keyword)
    if idx == -1:
        return 0.0
    return _parse_leading_float(desc[idx + 1:idx + 6])


def parse_pwr(data: bytes) -> List[DividendRecord]:
    """
    解析 SPLIT.PWR 二进制内容

    文件头 8 字节，之后每块 120 字节：
        tag == -1 的块在 6..12 字节处为股票代码（GBK）
        其余块为该股票的除权事件，前 4 字节为时间戳（秒），20..52 字节为分红说明（GBK）
    只保留 A 股（0、3、6 开头）。
    """
    result: List[DividendRecord] = []
    current_code = ""
    pos = HEADER_SIZE

    while pos + BLOCK_SIZE <= len(data):
        block = data[pos:pos + BLOCK_SIZE]
        pos += BLOCK_SIZE

        tag = struct.unpack_from("<i", block, 0)[0]
        if tag == CODE_TAG:
            current_code = block[6:12].decode("gbk", errors="ignore").strip("\x00 ").strip()
            continue

        if not current_code or current_code[0] not in "036":
            continue

        date = datetime.fromtimestamp(tag, tz=timezone.utc).strftime("%Y-%m-%d")
        desc = block[20:52].decode("gbk", errors="ignore").strip("\x00 ").strip()

        # 说明文本中的数值通常以“每10股”为单位
        cash = _extract_value(desc, "派") + _extract_value(desc, "红")
        bonus = _extract_value(desc, "送") + _extract_value(desc, "增")
        dispatch = _extract_value(desc, "股")
        price = _extract_value(desc, "价")

        if cash == 0 and bonus == 0 and dispatch == 0 and price == 0:
            bonus = struct.unpack_from("<f", block, 4)[0]
            if bonus == 0:
                raw = struct.unpack_from("<f", block, 16)[0]
                bonus = round(raw, 4)
            if bonus == 0:
                continue

        result.append(
            DividendRecord(
                code=current_code,
                date=date,
                cash=cash,
                bonus=float(bonus),
                dispatch=dispatch,
                # 大智慧以 0 表示无拆股，统一为 1
                splite=1.0,
                price=price,
            )
        )

    return result


def read_pwr_file(file_path: Union[str, Path]) -> List[DividendRecord]:
    """读取大智慧 SPLIT.PWR 文件"""
    records = parse_pwr(Path(file_path).read_bytes())
    logger.info(f"读取分红记录 {len(records)} 条: {file_path}")
    return records


def save_dividends(records: List[DividendRecord], file_path: Union[str, Path]) -> Path:
    """保存分红数据为 JSON"""
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps([r.to_dict() for r in records], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return path


def load_dividends(file_path: Union[str, Path]) -> List[DividendRecord]:
    """
    读取分红数据 JSON

    文件不存在时返回空列表（不复权处理），并记录警告
    """
    path = Path(file_path)
    if not path.exists():
        logger.warning(f"未找到分红数据文件: {path}")
        return []

    items = json.loads(path.read_text(encoding="utf-8"))
    return [DividendRecord.from_dict(item) for item in items]


def group_by_code(records: List[DividendRecord]) -> Dict[str, List[DividendRecord]]:
    """按股票代码分组，保持原有顺序"""
    grouped: Dict[str, List[DividendRecord]] = {}
    for record in records:
        grouped.setdefault(record.code, []).append(record)
    return grouped
