from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional

from tdx.models import DailyBar

logger = logging.getLogger(__name__)


class Direction(Enum):
    """方向"""
    LONG = "多"
    SHORT = "空"


@dataclass
class Order:
    """订单（回测中按当根K线收盘价立即成交）"""
    symbol: str
    direction: Direction
    price: float
    volume: int
    order_id: str = ""
    status: str = "pending"  # pending, filled, cancelled


@dataclass(frozen=True)
class Trade:
    """成交"""
    symbol: str
    direction: Direction
    price: float
    volume: int
    date: str
    bar_index: int
    trade_id: str = ""


@dataclass
class Position:
    """持仓（只做多）"""
    symbol: str
    volume: int = 0
    avg_price: float = 0.0

    @property
    def is_long(self) -> bool:
        return self.volume > 0

    @property
    def is_flat(self) -> bool:
        return self.volume == 0


class CtaTemplate(ABC):
    """CTA策略模板

    类属性为策略参数，可通过 setting 字典覆盖。
    """

    def __init__(
        self,
        strategy_name: str,
        symbol: str,
        setting: Dict = None,
    ):
        self.strategy_name = strategy_name
        self.symbol = symbol
        self.setting = setting or {}

        # 状态
        self.inited: bool = False
        self.trading: bool = False

        # 数据
        self.bar: Optional[DailyBar] = None
        self.bars: List[DailyBar] = []

        # 持仓和交易
        self.position = Position(symbol=symbol)
        self.orders: Dict[str, Order] = {}
        self.trades: List[Trade] = []

        # 回调
        self.send_order_callback: Optional[Callable] = None

        # 应用设置
        self.apply_setting()

    def apply_setting(self):
        """应用策略参数设置"""
        for key, value in self.setting.items():
            if not hasattr(self, key):
                raise ValueError(f"[{self.strategy_name}] 未知策略参数: {key}")
            setattr(self, key, value)

    @property
    def pos(self) -> int:
        return self.position.volume

    @abstractmethod
    def on_init(self):
        """策略初始化"""
        pass

    @abstractmethod
    def on_start(self):
        """策略启动"""
        pass

    @abstractmethod
    def on_stop(self):
        """策略停止"""
        pass

    @abstractmethod
    def on_bar(self, bar: DailyBar):
        """收到K线数据"""
        pass

    def buy(self, price: float, volume: int) -> List[str]:
        """买入开仓"""
        return self.send_order(Direction.LONG, price, volume)

    def sell(self, price: float, volume: int) -> List[str]:
        """卖出平仓"""
        return self.send_order(Direction.SHORT, price, volume)

    def send_order(self, direction: Direction, price: float, volume: int) -> List[str]:
        """发送订单"""
        if not self.trading:
            self.write_log("策略未启动，无法下单")
            return []

        if volume <= 0:
            self.write_log("下单量必须大于0")
            return []

        order = Order(
            symbol=self.symbol,
            direction=direction,
            price=price,
            volume=volume,
            order_id=f"{self.strategy_name}_{len(self.orders)}",
        )
        self.orders[order.order_id] = order

        # 回调给引擎处理
        if self.send_order_callback:
            self.send_order_callback(order)

        return [order.order_id]

    def write_log(self, msg: str):
        """记录日志"""
        logger.debug(f"[{self.strategy_name}] {msg}")

    def on_trade(self, trade: Trade):
        """成交回调"""
        self.trades.append(trade)

        if trade.direction == Direction.LONG:
            new_volume = self.position.volume + trade.volume
            total_cost = self.position.volume * self.position.avg_price + trade.volume * trade.price
            self.position.avg_price = total_cost / new_volume
            self.position.volume = new_volume
        else:
            self.position.volume = max(self.position.volume - trade.volume, 0)
            if self.position.volume == 0:
                self.position.avg_price = 0.0
