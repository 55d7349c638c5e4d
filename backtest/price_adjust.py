"""复权处理模块"""
from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from tdx.models import DailyBar, DividendRecord, PRICE_COLUMNS

logger = logging.getLogger(__name__)


class AdjustType(Enum):
    """复权方式"""
    NONE = "none"   # 不复权
    QFQ = "qfq"     # 前复权
    HFQ = "hfq"     # 后复权

    @classmethod
    def parse(cls, value: Union[str, "AdjustType", None]) -> "AdjustType":
        if isinstance(value, AdjustType):
            return value
        aliases = {
            None: cls.NONE, "": cls.NONE, "none": cls.NONE,
            "qfq": cls.QFQ, "forward": cls.QFQ,
            "hfq": cls.HFQ, "backward": cls.HFQ,
        }
        key = value.strip().lower() if isinstance(value, str) else value
        if key not in aliases:
            raise ValueError(f"不支持的复权方式: {value}，可选 none / qfq / hfq")
        return aliases[key]


def round_to_penny(values: pd.Series) -> pd.Series:
    """四舍五入到分（0.5 向上）"""
    return np.floor(values * 100 + 0.5) / 100


def build_dividend_map(
    dividends: Iterable[DividendRecord],
    code: Optional[str] = None,
) -> Dict[str, DividendRecord]:
    """按日期索引分红记录，同一日期多条时以后出现的为准"""
    return {d.date: d for d in dividends if code is None or d.code == code}


def calculate_qfq_factors(
    bars: List[DailyBar],
    dividend_map: Dict[str, DividendRecord],
) -> Dict[str, float]:
    """
    计算前复权因子

    从最新一条往前遍历，先记录当前日期的因子，再把当日除权事件的影响
    累乘到更早的日期上。
    """
    factor_map: Dict[str, float] = {}
    factor = 1.0

    for i in range(len(bars) - 1, -1, -1):
        bar = bars[i]
        factor_map[bar.date] = factor

        div = dividend_map.get(bar.date)
        # 分红因子作用于除权日之前的日期
        if div is not None and i > 0:
            bonus_ratio = div.bonus / 10
            dispatch_ratio = div.dispatch / 10
            split_ratio = div.splite or 1
            cash = div.cash / 10

            adjusted_close = bar.close / split_ratio
            equity_after = 1 + bonus_ratio + dispatch_ratio
            total_value = adjusted_close * 1 + div.price * dispatch_ratio
            ex_price = (total_value - cash) / equity_after

            if ex_price > 0:
                factor *= adjusted_close / ex_price

    return factor_map


def calculate_hfq_factors(
    bars: List[DailyBar],
    dividend_map: Dict[str, DividendRecord],
) -> Dict[str, float]:
    """
    计算后复权因子

    从最早一条往后遍历，除息日按 (收盘价 + 每股派现) / 收盘价 累乘。
    """
    factor_map: Dict[str, float] = {}
    factor = 1.0

    for bar in bars:
        div = dividend_map.get(bar.date)
        if div is not None and bar.close > 0:
            cash = div.cash / 10
            factor *= (bar.close + cash) / bar.close
        factor_map[bar.date] = factor

    return factor_map


def _apply_factors(bars: List[DailyBar], applied: pd.Series) -> List[DailyBar]:
    df = pd.DataFrame(
        {col: [getattr(bar, col) for bar in bars] for col in PRICE_COLUMNS}
    )
    for col in PRICE_COLUMNS:
        df[col] = round_to_penny(df[col] * applied.to_numpy())

    return [
        replace(bar, **{col: float(row[col]) for col in PRICE_COLUMNS})
        for bar, row in zip(bars, df.to_dict("records"))
    ]


def adjust_prices(
    bars: List[DailyBar],
    dividends: Iterable[DividendRecord],
    adjust_type: Union[str, AdjustType] = AdjustType.NONE,
    code: Optional[str] = None,
) -> List[DailyBar]:
    """
    对日线序列进行复权处理

    Args:
        bars: 按日期升序的日线序列
        dividends: 分红送配记录
        adjust_type: "none" / "qfq"（前复权）/ "hfq"（后复权）
        code: 股票代码，提供时只使用该股票的分红记录

    Returns:
        复权后的新序列；不复权或没有分红记录时原样返回
    """
    adjust_type = AdjustType.parse(adjust_type)
    if adjust_type is AdjustType.NONE or not bars:
        return bars

    dividend_map = build_dividend_map(dividends, code)
    if not dividend_map:
        logger.debug(f"{code or ''} 无分红记录，不做复权")
        return bars

    if adjust_type is AdjustType.QFQ:
        factor_map = calculate_qfq_factors(bars, dividend_map)
        # 前复权以最新一条为基准
        base_factor = factor_map[bars[-1].date]
        applied = pd.Series([base_factor / factor_map[bar.date] for bar in bars])
    else:
        factor_map = calculate_hfq_factors(bars, dividend_map)
        applied = pd.Series([factor_map[bar.date] for bar in bars])

    return _apply_factors(bars, applied)
