"""
数据模型定义
"""
from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd


PRICE_COLUMNS = ["open", "high", "low", "close", "turnover"]
BAR_COLUMNS = ["date", "open", "high", "low", "close", "turnover", "volume"]
INDICATOR_COLUMNS = [
    "avg_cost_60",
    "avg_position_cost",
    "profit_ratio",
    "chip_low_90",
    "chip_high_90",
    "chip_concentration_90",
]


@dataclass(frozen=True)
class DailyBar:
    """股票日线数据模型"""
    date: str               # 交易日期 (YYYY-MM-DD)
    open: float             # 开盘价
    high: float             # 最高价
    low: float              # 最低价
    close: float            # 收盘价
    turnover: float         # 成交额
    volume: int             # 成交量（股）
    avg_cost_60: Optional[float] = None              # 60日平均成本
    avg_position_cost: Optional[float] = None        # 平均持仓成本
    profit_ratio: Optional[float] = None             # 获利盘比例 (0-1)
    chip_range_90: Optional[Tuple[float, float]] = None  # 90%筹码价格区间
    chip_concentration_90: Optional[float] = None    # 90%筹码集中度

    def __repr__(self):
        return f"<DailyBar {self.date} close={self.close}>"


@dataclass(frozen=True)
class DividendRecord:
    """分红送配记录（除权除息事件）

    cash / bonus / dispatch 均为每10股数值，复权时再除以10
    """
    code: str               # 股票代码（6位）
    date: str               # 除权除息日 (YYYY-MM-DD)
    cash: float = 0.0       # 每10股派现（不是每股）
    bonus: float = 0.0      # 每10股送转
    dispatch: float = 0.0   # 每10股配股
    splite: float = 1.0     # 拆分倍数，1 表示无拆分
    price: float = 0.0      # 配股价

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "DividendRecord":
        return cls(
            code=str(data["code"]),
            date=str(data["date"])[:10],
            cash=float(data.get("cash", 0) or 0),
            bonus=float(data.get("bonus", 0) or 0),
            dispatch=float(data.get("dispatch", 0) or 0),
            splite=float(data.get("splite", 1) or 1),
            price=float(data.get("price", 0) or 0),
        )


@dataclass(frozen=True)
class StockInfo:
    """股票列表条目"""
    code: str
    name: str
    exchange: str           # sh / sz / bj

    @property
    def symbol(self) -> str:
        return f"{self.exchange}{self.code}"

    def to_dict(self) -> Dict:
        return asdict(self)


def _none_if_nan(value) -> Optional[float]:
    if value is None or pd.isna(value):
        return None
    return float(value)


def bars_to_frame(bars: Iterable[DailyBar]) -> pd.DataFrame:
    """DailyBar 序列 -> DataFrame（筹码区间拆为 chip_low_90 / chip_high_90 两列）"""
    rows = []
    for bar in bars:
        chip = bar.chip_range_90 or (None, None)
        rows.append({
            "date": bar.date,
            "open": bar.open,
            "high": bar.high,
            "low": bar.low,
            "close": bar.close,
            "turnover": bar.turnover,
            "volume": bar.volume,
            "avg_cost_60": bar.avg_cost_60,
            "avg_position_cost": bar.avg_position_cost,
            "profit_ratio": bar.profit_ratio,
            "chip_low_90": chip[0],
            "chip_high_90": chip[1],
            "chip_concentration_90": bar.chip_concentration_90,
        })
    return pd.DataFrame(rows, columns=BAR_COLUMNS + INDICATOR_COLUMNS)


def frame_to_bars(df: pd.DataFrame) -> List[DailyBar]:
    """DataFrame -> DailyBar 列表，NaN 视为缺失"""
    if df.empty:
        return []

    bars: List[DailyBar] = []
    for row in df.to_dict("records"):
        low = _none_if_nan(row.get("chip_low_90"))
        high = _none_if_nan(row.get("chip_high_90"))
        bars.append(
            DailyBar(
                date=str(row["date"]),
                open=float(row["open"]),
                high=float(row["high"]),
                low=float(row["low"]),
                close=float(row["close"]),
                turnover=float(row["turnover"]),
                volume=int(row["volume"]),
                avg_cost_60=_none_if_nan(row.get("avg_cost_60")),
                avg_position_cost=_none_if_nan(row.get("avg_position_cost")),
                profit_ratio=_none_if_nan(row.get("profit_ratio")),
                chip_range_90=(low, high) if low is not None and high is not None else None,
                chip_concentration_90=_none_if_nan(row.get("chip_concentration_90")),
            )
        )
    return bars
