"""
复权、指标、回测引擎与汇总测试
"""
import json
from unittest.mock import patch

import numpy as np
import pytest

from backtest.batch import BatchBacktester
from backtest.engine import BacktestEngine, TradeRecord, run_backtest
from backtest.indicators import chip_range, compute_indicators, profit_ratio
from backtest.price_adjust import AdjustType, adjust_prices
from backtest.results import load_trade_records, save_trade_records
from backtest.summary import summarize_trades
from strategies.breakout import BreakoutStrategy
from tdx.models import DividendRecord, StockInfo


def _one_trade_closes():
    # 25日横盘 -> 放量突破买入 -> 跌破10日均线卖出
    closes = [10.0] * 25 + [11.0, 12.0, 13.0, 9.0, 9.0]
    volumes = [1000] * 25 + [5000, 1000, 1000, 1000, 1000]
    return closes, volumes


def _two_trade_closes():
    closes, volumes = _one_trade_closes()
    closes = closes + [9.0] * 20 + [14.0, 5.0]
    volumes = volumes + [1000] * 20 + [5000, 1000]
    return closes, volumes


class TestPriceAdjust:
    """测试复权处理"""

    @pytest.fixture
    def bars(self, make_bars):
        return make_bars([10.0, 9.9, 10.2])

    @pytest.fixture
    def dividends(self):
        # 每10股分1元，即每股0.1元
        return [DividendRecord(code="600000", date="2024-01-03", cash=1.0)]

    def test_none_returns_input(self, bars, dividends):
        assert adjust_prices(bars, dividends, "none") is bars

    def test_qfq(self, bars, dividends):
        adjusted = adjust_prices(bars, dividends, "qfq", code="600000")

        assert [b.close for b in adjusted] == [9.9, 9.9, 10.2]
        # 最新一条不变
        assert adjusted[-1].date == bars[-1].date
        assert adjusted[-1].open == bars[-1].open
        assert adjusted[0].open == 9.9
        assert adjusted[0].turnover == pytest.approx(9898.99)
        assert adjusted[0].volume == bars[0].volume

    def test_hfq(self, bars, dividends):
        adjusted = adjust_prices(bars, dividends, AdjustType.HFQ, code="600000")

        assert [b.close for b in adjusted] == pytest.approx([10.0, 10.0, 10.3])
        # 最早一条不变
        assert adjusted[0].close == bars[0].close

    def test_input_not_mutated(self, bars, dividends):
        adjust_prices(bars, dividends, "qfq")
        assert [b.close for b in bars] == [10.0, 9.9, 10.2]

    def test_qfq_bonus_shares(self, make_bars):
        bars = make_bars([10.0, 5.0, 5.0])
        dividends = [DividendRecord(code="600000", date="2024-01-03", bonus=10.0)]

        adjusted = adjust_prices(bars, dividends, "qfq")

        assert [b.close for b in adjusted] == [5.0, 5.0, 5.0]

    def test_qfq_event_on_first_bar_ignored(self, bars):
        dividends = [DividendRecord(code="600000", date="2024-01-02", cash=5.0)]
        adjusted = adjust_prices(bars, dividends, "qfq")
        assert [b.close for b in adjusted] == [10.0, 9.9, 10.2]

    def test_no_events_unchanged(self, bars):
        assert adjust_prices(bars, [], "qfq") is bars
        assert adjust_prices(bars, [], "hfq") is bars

    def test_other_code_events_ignored(self, bars):
        dividends = [DividendRecord(code="000001", date="2024-01-03", cash=1.0)]
        assert adjust_prices(bars, dividends, "qfq", code="600000") is bars

    def test_hfq_factor_non_decreasing(self, make_bars):
        bars = make_bars([10.0, 9.9, 9.8, 9.7, 10.5])
        dividends = [
            DividendRecord(code="600000", date="2024-01-03", cash=1.0),
            DividendRecord(code="600000", date="2024-01-05", cash=1.0),
        ]

        adjusted = adjust_prices(bars, dividends, "hfq")

        ratios = [a.close / b.close for a, b in zip(adjusted, bars)]
        assert all(later >= earlier - 1e-3 for earlier, later in zip(ratios, ratios[1:]))

    def test_parse_adjust_type(self):
        assert AdjustType.parse("forward") is AdjustType.QFQ
        assert AdjustType.parse("HFQ") is AdjustType.HFQ
        assert AdjustType.parse(None) is AdjustType.NONE
        with pytest.raises(ValueError):
            AdjustType.parse("both")


class TestIndicators:
    """测试成本与筹码指标"""

    def test_constant_price(self, make_bars):
        bars = compute_indicators(make_bars([10.0] * 5))

        last = bars[-1]
        assert last.avg_cost_60 == pytest.approx(10.0)
        assert last.avg_position_cost == pytest.approx(10.0)
        assert last.profit_ratio == 0
        assert last.chip_range_90 == (10.0, 10.0)
        assert last.chip_concentration_90 == 0

    def test_zero_volume(self, make_bars):
        bars = compute_indicators(make_bars([10.0, 10.0], volumes=[0, 0]))

        for bar in bars:
            assert bar.avg_cost_60 is None
            assert bar.avg_position_cost is None
            assert bar.profit_ratio is None
            assert bar.chip_range_90 is None
            assert bar.chip_concentration_90 is None

    def test_profit_ratio(self, make_bars):
        bars = compute_indicators(make_bars([10.0, 12.0, 8.0]))
        assert [b.profit_ratio for b in bars] == pytest.approx([0, 1 / 2, 1 / 3])

    def test_profit_ratio_skips_missing_cost(self):
        out = profit_ratio(np.array([1.0, 2.0]), np.array([np.nan, 1.5]))
        assert np.isnan(out[0])
        assert out[1] == 0.5

    def test_chip_range(self):
        prices = np.arange(20, 0, -1, dtype=float)
        volumes = np.ones(20)
        assert chip_range(prices, volumes) == (1.0, 19.0)

    def test_trailing_windows(self, make_bars):
        bars = compute_indicators(make_bars([float(i + 1) for i in range(100)]))

        last = bars[-1]
        # 60日窗口: 41..100
        assert last.avg_cost_60 == pytest.approx(70.5)
        # 90日窗口: 11..100
        assert last.chip_range_90 == (15.0, 96.0)
        assert last.chip_concentration_90 == pytest.approx((96.0 - 15.0) / 100.0)

    def test_no_look_ahead(self, make_bars):
        bars = make_bars([10.0, 11.0, 12.0, 13.0])
        full = compute_indicators(bars)
        partial = compute_indicators(bars[:2])
        assert full[:2] == partial

    def test_input_not_mutated(self, make_bars):
        bars = make_bars([10.0, 11.0])
        compute_indicators(bars)
        assert bars[0].avg_cost_60 is None

    def test_empty(self):
        assert compute_indicators([]) == []


class TestBacktestEngine:
    """测试回测引擎"""

    def test_single_trade(self, make_bars):
        closes, volumes = _one_trade_closes()
        bars = make_bars(closes, volumes)

        records = run_backtest("600000", "浦发银行", bars)

        assert len(records) == 1
        r = records[0]
        assert r.buy_date == bars[25].date
        assert r.sell_date == bars[28].date
        assert r.buy_price == 11.0
        assert r.sell_price == 9.0
        assert r.hold_days == 3
        assert r.return_pct == pytest.approx((9.0 - 11.0) / 11.0 * 100)

    def test_forced_close_at_last_bar(self, make_bars):
        closes = [10.0] * 25 + [11.0, 12.0, 13.0, 14.0, 15.0]
        volumes = [1000] * 25 + [5000] + [1000] * 4
        bars = make_bars(closes, volumes)

        records = run_backtest("600000", "浦发银行", bars)

        assert len(records) == 1
        assert records[0].sell_date == bars[-1].date
        assert records[0].sell_price == 15.0
        assert records[0].hold_days == 4

    def test_non_overlapping_trades(self, make_bars):
        closes, volumes = _two_trade_closes()
        records = run_backtest("600000", "浦发银行", make_bars(closes, volumes))

        assert len(records) == 2
        for r in records:
            assert r.buy_date <= r.sell_date
        assert records[0].sell_date <= records[1].buy_date

    def test_too_few_bars(self, make_bars):
        closes, volumes = _one_trade_closes()
        bars = make_bars(closes[:29], volumes[:29])
        assert run_backtest("600000", "浦发银行", bars) == []

    def test_min_bars_override(self, make_bars):
        closes, volumes = _one_trade_closes()
        bars = make_bars(closes[:29], volumes[:29])

        records = run_backtest("600000", "浦发银行", bars, min_bars=29)

        assert len(records) == 1
        assert records[0].sell_date == bars[28].date

    def test_setting_override(self, make_bars):
        closes, volumes = _one_trade_closes()
        bars = make_bars(closes, volumes)

        assert run_backtest("600000", "浦发银行", bars, setting={"volume_ratio": 5.0}) == []

    def test_unknown_setting_rejected(self, make_bars):
        with pytest.raises(ValueError):
            run_backtest("600000", "浦发银行", make_bars([10.0] * 30), setting={"foo": 1})

    def test_requires_strategy(self):
        engine = BacktestEngine()
        with pytest.raises(ValueError):
            engine.run_backtesting()

    def test_statistics(self, make_bars):
        closes, volumes = _two_trade_closes()
        engine = BacktestEngine()
        engine.add_data("600000", "浦发银行", make_bars(closes, volumes))
        engine.add_strategy(BreakoutStrategy, "breakout_600000")
        records = engine.run_backtesting()

        stats = engine.get_statistics("sh")

        assert stats.trade_count == 2
        assert stats.total_return_pct == pytest.approx(sum(r.return_pct for r in records))
        assert stats.exchange == "sh"
        assert len(engine.trades) == 4


class TestSummary:
    """测试汇总与结果文件"""

    @pytest.fixture
    def records(self):
        return [
            TradeRecord("600000", "浦发银行", "2024-01-02", "2024-01-05", 10.0, 11.0, 3, 10.0),
            TradeRecord("600000", "浦发银行", "2024-02-01", "2024-02-03", 10.0, 9.5, 2, -5.0),
        ]

    def test_summarize(self, records):
        s = summarize_trades("600000", "浦发银行", "sh", records)

        assert s.total_return_pct == pytest.approx(5.0)
        assert s.trade_count == 2
        assert s.avg_return_pct == pytest.approx(2.5)
        assert s.total_hold_days == 5
        assert s.to_dict()["totalReturnPct"] == pytest.approx(5.0)

    def test_summarize_no_trades(self):
        s = summarize_trades("600000", "浦发银行", "sh", [])
        assert s.trade_count == 0
        assert s.avg_return_pct == 0
        assert s.total_hold_days == 0

    def test_trade_records_file(self, records, tmp_path):
        path = save_trade_records(records, tmp_path / "sh600000.json")

        raw = json.loads(path.read_text(encoding="utf-8"))
        assert raw[0]["buyDate"] == "2024-01-02"
        assert raw[1]["returnPct"] == -5.0
        assert load_trade_records(path) == records


class TestBatchBacktester:
    """测试批量回测"""

    def test_run(self, storage, make_bars, tmp_path):
        closes, volumes = _two_trade_closes()
        storage.merge_series("sh600000", make_bars(closes, volumes))
        stocks = [
            StockInfo(code="600000", name="浦发银行", exchange="sh"),
            StockInfo(code="000001", name="平安银行", exchange="sz"),
        ]

        summaries = BatchBacktester(storage, output_dir=tmp_path).run(stocks)

        assert [s.code for s in summaries] == ["600000", "000001"]
        assert summaries[0].trade_count == 2
        assert summaries[1].trade_count == 0
        assert len(load_trade_records(tmp_path / "sh600000.json")) == 2
        summary = json.loads((tmp_path / "trade_records_summary.json").read_text(encoding="utf-8"))
        assert summary[0]["tradeCount"] == 2

    def test_failed_stock_is_skipped(self, storage, make_bars, tmp_path):
        closes, volumes = _one_trade_closes()
        stocks = [
            StockInfo(code="000001", name="平安银行", exchange="sz"),
            StockInfo(code="600000", name="浦发银行", exchange="sh"),
        ]

        with patch.object(storage, "load_series", side_effect=[RuntimeError("db error"), make_bars(closes, volumes)]):
            summaries = BatchBacktester(storage, output_dir=tmp_path).run(stocks)

        assert [s.code for s in summaries] == ["600000"]
        assert not (tmp_path / "sz000001.json").exists()

    def test_min_bars_passed_to_engine(self, storage, make_bars, tmp_path):
        closes, volumes = _one_trade_closes()
        storage.merge_series("sh600000", make_bars(closes[:29], volumes[:29]))
        stocks = [StockInfo(code="600000", name="浦发银行", exchange="sh")]

        assert BatchBacktester(storage, output_dir=tmp_path).run(stocks)[0].trade_count == 0
        assert BatchBacktester(storage, output_dir=tmp_path, min_bars=29).run(stocks)[0].trade_count == 1
