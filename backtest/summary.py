"""回测结果汇总"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Iterable


@dataclass(frozen=True)
class InstrumentSummary:
    """单只股票的回测汇总"""
    code: str
    name: str
    exchange: str
    total_return_pct: float   # 各笔收益率之和
    trade_count: int
    avg_return_pct: float     # 无交易时为 0
    total_hold_days: int

    def to_dict(self) -> Dict:
        d = asdict(self)
        return {
            "code": d["code"],
            "name": d["name"],
            "exchange": d["exchange"],
            "totalReturnPct": d["total_return_pct"],
            "tradeCount": d["trade_count"],
            "avgReturnPct": d["avg_return_pct"],
            "totalHoldDays": d["total_hold_days"],
        }


def summarize_trades(code: str, name: str, exchange: str, trades: Iterable) -> InstrumentSummary:
    """
    汇总单只股票的交易记录

    Args:
        trades: TradeRecord 列表
    """
    trades = list(trades)
    total_return_pct = sum(t.return_pct for t in trades)
    trade_count = len(trades)
    avg_return_pct = total_return_pct / trade_count if trade_count > 0 else 0
    total_hold_days = sum(t.hold_days for t in trades)

    return InstrumentSummary(
        code=code,
        name=name,
        exchange=exchange,
        total_return_pct=total_return_pct,
        trade_count=trade_count,
        avg_return_pct=avg_return_pct,
        total_hold_days=total_hold_days,
    )
