"""
放量突破策略
买入：收盘价突破前20日最高收盘价，且成交量大于5日均量1.5倍
卖出：收盘价跌破10日均线；回测结束仍持仓时按最后一天收盘价卖出
"""
from backtest.strategy_template import CtaTemplate
from tdx.models import DailyBar


class BreakoutStrategy(CtaTemplate):
    """放量突破策略"""

    # 策略参数
    breakout_window: int = 20   # 突破回看窗口（不含当日）
    volume_window: int = 5      # 均量窗口（含当日）
    volume_ratio: float = 1.5   # 放量倍数
    exit_ma_window: int = 10    # 离场均线窗口
    fixed_size: int = 100       # 每次买入股数

    def __init__(self, strategy_name, symbol, setting=None):
        super().__init__(strategy_name, symbol, setting)

        self.close_prices: list = []
        self.volumes: list = []

    def on_init(self):
        """策略初始化"""
        self.write_log(
            f"策略初始化，参数: breakout={self.breakout_window}, vol={self.volume_window}x{self.volume_ratio}, "
            f"exit_ma={self.exit_ma_window}"
        )

    def on_start(self):
        """策略启动"""
        self.write_log("策略启动")

    def on_stop(self):
        """策略停止：仍持仓则按最后一根K线收盘价平仓"""
        if self.pos > 0 and self.bar is not None:
            self.write_log(f"[{self.bar.date}] 回测结束强制平仓")
            self.sell(self.bar.close, self.pos)
        self.write_log("策略停止")

    def on_bar(self, bar: DailyBar):
        """收到K线数据"""
        self.close_prices.append(bar.close)
        self.volumes.append(bar.volume)
        i = len(self.close_prices) - 1

        # 保证有完整的突破回看窗口
        if i < self.breakout_window:
            return

        if self.pos == 0:
            max_close = max(self.close_prices[i - self.breakout_window:i])
            vol_ratio = 0
            if len(self.volumes) >= self.volume_window:
                avg_volume = sum(self.volumes[-self.volume_window:]) / self.volume_window
                vol_ratio = bar.volume / avg_volume if avg_volume > 0 else 0

            if bar.close > max_close and vol_ratio > self.volume_ratio:
                self.write_log(f"[{bar.date}] 放量突破: close={bar.close}, max={max_close}, vol_ratio={vol_ratio:.2f}")
                self.buy(bar.close, self.fixed_size)
        elif len(self.close_prices) >= self.exit_ma_window:
            ma = sum(self.close_prices[-self.exit_ma_window:]) / self.exit_ma_window
            if bar.close < ma:
                self.write_log(f"[{bar.date}] 跌破{self.exit_ma_window}日均线: close={bar.close}, ma={ma:.2f}")
                self.sell(bar.close, self.pos)
