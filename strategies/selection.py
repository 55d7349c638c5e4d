"""
趋势放量突破选股
1. 价格趋势确认：收盘价高于5日、10日、250日均线，且5日/10日均线向上
2. 放量突破：当日成交量大于前5日均量1.5倍，且为阳线，且收盘价为近20日新高
3. 排除异动股：最近5日无连续3个涨停，且非ST股
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Union

from tdx.models import DailyBar, StockInfo
from tdx.storage import SeriesStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectionParams:
    """选股参数"""
    min_bars: int = 250             # 最少数据条数
    fast_window: int = 5
    slow_window: int = 10
    long_window: int = 250
    volume_window: int = 5          # 放量对比的均量天数（不含当日）
    volume_ratio: float = 1.5
    high_window: int = 20           # 新高回看天数（含当日）
    limit_up_lookback: int = 5
    limit_up_pct: float = 0.099     # 涨停近似阈值
    max_limit_up_streak: int = 3    # 连续涨停达到该数即排除
    st_marker: str = "ST"


def _ma(bars: Sequence[DailyBar], days: int) -> float:
    return sum(bar.close for bar in bars[-days:]) / days


def max_limit_up_streak(bars: Sequence[DailyBar], lookback: int, pct: float) -> int:
    """最近 lookback 个交易日中，单日涨幅 >= pct 的最长连续天数"""
    streak = 0
    longest = 0
    for i in range(max(len(bars) - lookback, 0), len(bars)):
        prev_close = bars[i - 1].close if i > 0 else 0
        if prev_close and (bars[i].close - prev_close) / prev_close >= pct:
            streak += 1
            longest = max(longest, streak)
        else:
            streak = 0
    return longest


def check_stock(
    bars: Sequence[DailyBar],
    name: str,
    params: SelectionParams = SelectionParams(),
) -> bool:
    """
    选股主算法

    Args:
        bars: 某只股票按日期升序的日线
        name: 股票名称
        params: 选股参数

    Returns:
        是否满足全部选股条件
    """
    p = params
    if len(bars) < p.min_bars:
        logger.debug(f"[{name}] 数据不足: {len(bars)} < {p.min_bars}")
        return False

    last = bars[-1]
    ma_fast = _ma(bars, p.fast_window)
    ma_slow = _ma(bars, p.slow_window)
    ma_long = _ma(bars, p.long_window)
    logger.debug(
        f"[{name}] last.close={last.close}, ma{p.fast_window}={ma_fast}, "
        f"ma{p.slow_window}={ma_slow}, ma{p.long_window}={ma_long}"
    )

    if not (last.close > ma_fast and last.close > ma_slow):
        logger.debug(f"[{name}] 不满足: 收盘价未站上{p.fast_window}日/{p.slow_window}日均线")
        return False
    # 均线向上：均线高于构成上一周期均线的首日收盘价
    if not (ma_fast > bars[-(p.fast_window + 1)].close and ma_slow > bars[-(p.slow_window + 1)].close):
        logger.debug(f"[{name}] 不满足: {p.fast_window}日/{p.slow_window}日均线未向上")
        return False
    if not last.close > ma_long:
        logger.debug(f"[{name}] 不满足: 收盘价未站上{p.long_window}日均线")
        return False

    prev = bars[-(p.volume_window + 1):-1]
    avg_volume = sum(bar.volume for bar in prev) / p.volume_window
    logger.debug(f"[{name}] last.volume={last.volume}, avgVol{p.volume_window}={avg_volume}")
    if not last.volume > avg_volume * p.volume_ratio:
        logger.debug(f"[{name}] 不满足: 未放量突破")
        return False
    if not last.close > last.open:
        logger.debug(f"[{name}] 不满足: 非阳线")
        return False

    high = max(bar.close for bar in bars[-p.high_window:])
    if last.close < high:
        logger.debug(f"[{name}] 不满足: 非近{p.high_window}日新高 (high={high})")
        return False

    streak = max_limit_up_streak(bars, p.limit_up_lookback, p.limit_up_pct)
    if streak >= p.max_limit_up_streak:
        logger.debug(f"[{name}] 不满足: 最近{p.limit_up_lookback}日有连续{streak}个涨停")
        return False
    if p.st_marker in name:
        logger.debug(f"[{name}] 不满足: ST股")
        return False

    logger.debug(f"[{name}] 满足所有条件")
    return True


class StockSelector:
    """扫描股票列表并应用选股算法"""

    def __init__(self, storage: SeriesStorage, params: Optional[SelectionParams] = None):
        self.storage = storage
        self.params = params or SelectionParams()

    def scan(self, stocks: Iterable[StockInfo]) -> List[StockInfo]:
        """
        依次读取每只股票的日线并选股

        Returns:
            满足条件的股票（按列表顺序，同一代码只保留一次）
        """
        stocks = list(stocks)
        selected: List[StockInfo] = []
        seen = set()

        for i, stock in enumerate(stocks, 1):
            if i % 500 == 0:
                logger.info(f"进度: {i}/{len(stocks)}")
            try:
                bars = self.storage.load_series(stock.symbol)
                if check_stock(bars, stock.name, self.params) and stock.code not in seen:
                    selected.append(stock)
                    seen.add(stock.code)
            except Exception as e:
                logger.error(f"[{stock.symbol}] 读取或选股失败: {e}")

        logger.info(f"满足选股条件的个股: {len(selected)} 只")
        for s in selected:
            logger.info(f"{s.code} {s.name} {s.exchange}")
        return selected


def save_selected(stocks: Iterable[StockInfo], file_path: Union[str, Path]) -> Path:
    """保存选股结果（覆盖写入）"""
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps([s.to_dict() for s in stocks], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return path


def load_selected(file_path: Union[str, Path]) -> List[StockInfo]:
    """读取选股结果，文件不存在时返回空列表"""
    path = Path(file_path)
    if not path.exists():
        logger.warning(f"未找到选股结果: {path}")
        return []
    items = json.loads(path.read_text(encoding="utf-8"))
    return [StockInfo(code=str(i["code"]), name=str(i["name"]), exchange=str(i["exchange"])) for i in items]
