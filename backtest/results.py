"""回测结果文件读写（JSON）"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable, List, Union

from backtest.engine import TradeRecord
from backtest.summary import InstrumentSummary

SUMMARY_FILE = "trade_records_summary.json"


def _write_json(path: Path, data) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    return path


def save_trade_records(records: Iterable[TradeRecord], file_path: Union[str, Path]) -> Path:
    return _write_json(Path(file_path), [r.to_dict() for r in records])


def load_trade_records(file_path: Union[str, Path]) -> List[TradeRecord]:
    items = json.loads(Path(file_path).read_text(encoding="utf-8"))
    return [TradeRecord.from_dict(item) for item in items]


def save_summary(summaries: Iterable[InstrumentSummary], output_dir: Union[str, Path]) -> Path:
    """保存所有股票的回测摘要，顺序与输入一致"""
    return _write_json(Path(output_dir) / SUMMARY_FILE, [s.to_dict() for s in summaries])
