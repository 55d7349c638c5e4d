"""
筹码与成本类指标

所有指标只依赖当日及之前的数据：
    avg_cost_60            60日平均成本 = 近60日成交额之和 / 成交量之和
    avg_position_cost      平均持仓成本 = 累计成交额 / 累计成交量
    profit_ratio           获利盘比例 = 收盘价高于当日平均持仓成本的天数占比
    chip_range_90          近90日按收盘价分布的成交量 5%~95% 价格区间
    chip_concentration_90  (区间上沿 - 区间下沿) / 当日收盘价
"""
from __future__ import annotations

from dataclasses import replace
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from tdx.models import DailyBar

AVG_COST_WINDOW = 60
CHIP_WINDOW = 90
CHIP_LOWER = 0.05
CHIP_UPPER = 0.95


def avg_cost(turnover: pd.Series, volume: pd.Series, window: int = AVG_COST_WINDOW) -> pd.Series:
    """滚动平均成本，窗口内成交量为 0 时为 NaN"""
    sum_turnover = turnover.rolling(window, min_periods=1).sum()
    sum_volume = volume.rolling(window, min_periods=1).sum()
    return (sum_turnover / sum_volume).where(sum_volume > 0)


def avg_position_cost(turnover: pd.Series, volume: pd.Series) -> pd.Series:
    """全区间（累计）平均成本"""
    cum_turnover = turnover.cumsum()
    cum_volume = volume.cumsum()
    return (cum_turnover / cum_volume).where(cum_volume > 0)


def profit_ratio(closes: np.ndarray, costs: np.ndarray) -> np.ndarray:
    out = np.full(len(closes), np.nan)
    for i, cost in enumerate(costs):
        if np.isnan(cost):
            continue
        out[i] = np.count_nonzero(closes[:i + 1] > cost) / (i + 1)
    return out


def chip_range(
    prices: np.ndarray,
    volumes: np.ndarray,
    lower: float = CHIP_LOWER,
    upper: float = CHIP_UPPER,
) -> Optional[Tuple[float, float]]:
    """
    计算筹码价格区间

    按价格排序后累计成交量，首次达到 lower / upper 比例时的价格即为区间下沿 / 上沿。
    总成交量为 0 时返回 None。
    """
    total = volumes.sum()
    if total <= 0:
        return None

    order = np.argsort(prices, kind="stable")
    cum = np.cumsum(volumes[order])
    lower_hits = np.flatnonzero(cum >= total * lower)
    upper_hits = np.flatnonzero(cum >= total * upper)
    if len(lower_hits) == 0 or len(upper_hits) == 0:
        return None

    sorted_prices = prices[order]
    return float(sorted_prices[lower_hits[0]]), float(sorted_prices[upper_hits[0]])


def compute_indicators(bars: List[DailyBar], chip_window: int = CHIP_WINDOW) -> List[DailyBar]:
    """
    计算全部指标，返回新的序列（输入不变）

    Args:
        bars: 按日期升序的日线（通常为复权后序列）
    """
    if not bars:
        return []

    turnover = pd.Series([bar.turnover for bar in bars], dtype=float)
    volume = pd.Series([bar.volume for bar in bars], dtype=float)
    closes = np.array([bar.close for bar in bars], dtype=float)
    volumes = volume.to_numpy()

    cost60 = avg_cost(turnover, volume).to_numpy()
    position_cost = avg_position_cost(turnover, volume).to_numpy()
    ratios = profit_ratio(closes, position_cost)

    def _opt(value: float) -> Optional[float]:
        return None if np.isnan(value) else float(value)

    result: List[DailyBar] = []
    for i, bar in enumerate(bars):
        start = max(0, i - chip_window + 1)
        chip = chip_range(closes[start:i + 1], volumes[start:i + 1])
        concentration = None
        if chip is not None:
            concentration = (chip[1] - chip[0]) / (bar.close or 1)

        result.append(
            replace(
                bar,
                avg_cost_60=_opt(cost60[i]),
                avg_position_cost=_opt(position_cost[i]),
                profit_ratio=_opt(ratios[i]),
                chip_range_90=chip,
                chip_concentration_90=concentration,
            )
        )
    return result
