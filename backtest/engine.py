from __future__ import annotations

import logging
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional, Type

from backtest.strategy_template import CtaTemplate, Order, Trade, Direction
from backtest.summary import InstrumentSummary, summarize_trades
from strategies.breakout import BreakoutStrategy
from tdx.models import DailyBar

logger = logging.getLogger(__name__)

_TRADE_RECORD_NAMES = {
    "buy_date": "buyDate",
    "sell_date": "sellDate",
    "buy_price": "buyPrice",
    "sell_price": "sellPrice",
    "hold_days": "holdDays",
    "return_pct": "returnPct",
}


@dataclass(frozen=True)
class TradeRecord:
    """回测交易记录（一次完整的买入-卖出）"""
    code: str
    name: str
    buy_date: str
    sell_date: str
    buy_price: float
    sell_price: float
    hold_days: int       # 持有的K线根数，非自然日
    return_pct: float    # 收益率百分比

    def to_dict(self) -> Dict:
        return {_TRADE_RECORD_NAMES.get(k, k): v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Dict) -> "TradeRecord":
        reverse = {v: k for k, v in _TRADE_RECORD_NAMES.items()}
        return cls(**{reverse.get(k, k): v for k, v in data.items()})


class BacktestEngine:
    """简化版回测引擎 - 日线逐根回放，按收盘价成交"""

    def __init__(self):
        self.strategy: Optional[CtaTemplate] = None

        # 回测参数
        self.min_bars: int = 30

        # 回测数据
        self.code: str = ""
        self.name: str = ""
        self.bars: List[DailyBar] = []
        self.current_idx: int = 0

        # 成交与交易记录
        self.trades: List[Trade] = []
        self.trade_records: List[TradeRecord] = []
        self._open_trade: Optional[Trade] = None

    def set_parameters(self, min_bars: int = 30):
        """设置回测参数"""
        self.min_bars = min_bars

    def add_data(self, code: str, name: str, bars: List[DailyBar]):
        """添加数据"""
        self.code = code
        self.name = name
        self.bars = sorted(bars, key=lambda b: b.date)
        logger.debug(f"加载 {code} {name} 数据: {len(self.bars)} 条K线")

    def add_strategy(self, strategy_class: Type[CtaTemplate], strategy_name: str, setting: Dict = None):
        """添加策略"""
        self.strategy = strategy_class(
            strategy_name=strategy_name,
            symbol=self.code,
            setting=setting or {},
        )
        self.strategy.send_order_callback = self._handle_order

    def _handle_order(self, order: Order):
        """处理订单：市价单按当前K线收盘价立即成交"""
        bar = self.bars[self.current_idx]
        trade = Trade(
            symbol=order.symbol,
            direction=order.direction,
            price=bar.close,
            volume=order.volume,
            date=bar.date,
            bar_index=self.current_idx,
            trade_id=f"trade_{len(self.trades)}",
        )
        self.trades.append(trade)
        order.status = "filled"

        self.strategy.on_trade(trade)
        self._update_trade_records(trade)

    def _update_trade_records(self, trade: Trade):
        """开仓成交暂存，平仓成交时生成交易记录"""
        if trade.direction == Direction.LONG:
            if self._open_trade is None:
                self._open_trade = trade
            return

        if self._open_trade is None or not self.strategy.position.is_flat:
            return

        buy = self._open_trade
        self._open_trade = None
        self.trade_records.append(
            TradeRecord(
                code=self.code,
                name=self.name,
                buy_date=buy.date,
                sell_date=trade.date,
                buy_price=buy.price,
                sell_price=trade.price,
                hold_days=trade.bar_index - buy.bar_index,
                return_pct=(trade.price - buy.price) / buy.price * 100,
            )
        )

    def run_backtesting(self) -> List[TradeRecord]:
        """运行回测"""
        if not self.strategy:
            raise ValueError("未设置策略")

        if len(self.bars) < self.min_bars:
            logger.debug(f"{self.code} 数据不足: {len(self.bars)} < {self.min_bars}，跳过回测")
            return []

        # 初始化策略
        self.strategy.inited = True
        self.strategy.on_init()

        # 启动策略
        self.strategy.trading = True
        self.strategy.on_start()

        # 遍历K线
        for i, bar in enumerate(self.bars):
            self.current_idx = i
            self.strategy.bar = bar
            self.strategy.bars.append(bar)
            self.strategy.on_bar(bar)

        # 停止策略（未平仓位在此按最后收盘价卖出）
        self.strategy.on_stop()
        self.strategy.trading = False

        logger.debug(f"{self.code} 回测完成，交易 {len(self.trade_records)} 次")
        return self.trade_records

    def get_statistics(self, exchange: str = "") -> InstrumentSummary:
        """获取统计指标"""
        return summarize_trades(self.code, self.name, exchange, self.trade_records)


def run_backtest(
    code: str,
    name: str,
    bars: List[DailyBar],
    strategy_class: Optional[Type[CtaTemplate]] = None,
    setting: Dict = None,
    min_bars: int = 30,
) -> List[TradeRecord]:
    """对单只股票运行回测，返回按买入日期排序的交易记录"""
    if strategy_class is None:
        strategy_class = BreakoutStrategy

    engine = BacktestEngine()
    engine.set_parameters(min_bars=min_bars)
    engine.add_data(code, name, bars)
    engine.add_strategy(strategy_class, f"{strategy_class.__name__}_{code}", setting)
    return engine.run_backtesting()
