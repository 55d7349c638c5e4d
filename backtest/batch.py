"""批量回测：对选股结果逐只回测并输出交易记录与摘要"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from backtest.engine import run_backtest
from backtest.results import save_summary, save_trade_records
from backtest.summary import InstrumentSummary, summarize_trades
from tdx.models import StockInfo
from tdx.storage import SeriesStorage

logger = logging.getLogger(__name__)


class BatchBacktester:
    """批量回测器"""

    def __init__(
        self,
        storage: SeriesStorage,
        output_dir: str = "data/backtest",
        setting: Optional[Dict] = None,
        min_bars: int = 30,
    ):
        """
        Args:
            storage: 日线序列存储
            output_dir: 交易记录与摘要输出目录
            setting: 策略参数覆盖
            min_bars: 少于该K线数的股票不产生交易
        """
        self.storage = storage
        self.output_dir = Path(output_dir)
        self.setting = setting or {}
        self.min_bars = min_bars

    def backtest_stock(self, stock: StockInfo) -> InstrumentSummary:
        """回测单只股票并保存其交易记录"""
        bars = self.storage.load_series(stock.symbol)
        records = run_backtest(stock.code, stock.name, bars, setting=self.setting, min_bars=self.min_bars)
        save_trade_records(records, self.output_dir / f"{stock.symbol}.json")
        return summarize_trades(stock.code, stock.name, stock.exchange, records)

    def run(self, stocks: Iterable[StockInfo]) -> List[InstrumentSummary]:
        """
        逐只回测，单只失败只记录日志并跳过

        Returns:
            成功回测的股票摘要（与输入顺序一致）
        """
        stocks = list(stocks)
        summaries: List[InstrumentSummary] = []

        for i, stock in enumerate(stocks, 1):
            logger.info(f"进度: {i}/{len(stocks)} {stock.symbol} {stock.name}")
            try:
                summaries.append(self.backtest_stock(stock))
            except Exception as e:
                logger.error(f"[{stock.code}] 读取或回测失败: {e}")

        summary_file = save_summary(summaries, self.output_dir)
        logger.info(f"回测摘要已保存至 {summary_file}, 共 {len(summaries)} 只股票")
        return summaries
