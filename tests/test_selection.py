"""
选股测试
"""
import logging

import pytest

from strategies.selection import (
    SelectionParams,
    StockSelector,
    check_stock,
    load_selected,
    max_limit_up_streak,
    save_selected,
)
from tdx.models import StockInfo


def _breakout_series(make_bars, head=None, last_volume=2000, last_open=10.0):
    """横盘后放量收阳的序列，默认满足全部选股条件"""
    head = head if head is not None else [10.0] * 259
    closes = head + [10.5]
    opens = head + [last_open]
    volumes = [1000] * len(head) + [last_volume]
    return make_bars(closes, volumes, opens=opens)


class TestCheckStock:
    """测试选股条件"""

    def test_accepts_breakout(self, make_bars):
        assert check_stock(_breakout_series(make_bars), "浦发银行")

    def test_rejects_short_history(self, make_bars):
        bars = _breakout_series(make_bars, head=[10.0] * 248)
        assert len(bars) == 249
        assert not check_stock(bars, "浦发银行")

    def test_rejects_st(self, make_bars):
        assert not check_stock(_breakout_series(make_bars), "*ST康美")

    def test_volume_must_exceed_ratio(self, make_bars):
        assert not check_stock(_breakout_series(make_bars, last_volume=1500), "浦发银行")
        assert check_stock(_breakout_series(make_bars, last_volume=1501), "浦发银行")

    def test_rejects_bearish_bar(self, make_bars):
        assert not check_stock(_breakout_series(make_bars, last_open=10.6), "浦发银行")

    def test_rejects_below_long_ma(self, make_bars):
        head = [20.0] * 200 + [10.0] * 59
        assert not check_stock(_breakout_series(make_bars, head=head), "浦发银行")

    def test_rejects_not_new_high(self, make_bars):
        head = [10.0] * 245 + [10.8] + [10.0] * 13
        assert not check_stock(_breakout_series(make_bars, head=head), "浦发银行")

    def test_rejects_falling_ma(self, make_bars, caplog):
        caplog.set_level(logging.DEBUG, logger="strategies.selection")
        # 5日均线低于其回看起点前一日的收盘价
        head = [10.0] * 254 + [12.0] + [10.0] * 4

        assert not check_stock(_breakout_series(make_bars, head=head), "浦发银行")
        assert "均线未向上" in caplog.text

    def test_rejects_limit_up_streak(self, make_bars):
        closes = [10.0] * 256 + [11.0, 12.1, 13.31, 14.0]
        opens = closes[:-1] + [13.5]
        volumes = [1000] * 259 + [2000]

        assert not check_stock(make_bars(closes, volumes, opens=opens), "浦发银行")

    def test_custom_params(self, make_bars):
        bars = _breakout_series(make_bars, last_volume=1800)
        assert check_stock(bars, "浦发银行")
        assert not check_stock(bars, "浦发银行", SelectionParams(volume_ratio=2.0))


class TestLimitUpStreak:

    def test_streak(self, make_bars):
        bars = make_bars([10.0, 11.0, 12.1, 12.0, 13.2, 14.52])
        assert max_limit_up_streak(bars, 5, 0.099) == 2

    def test_lookback_longer_than_series(self, make_bars):
        bars = make_bars([10.0, 11.0])
        assert max_limit_up_streak(bars, 5, 0.099) == 1


class TestStockSelector:
    """测试选股扫描"""

    def test_scan(self, storage, make_bars):
        storage.merge_series("sh600000", _breakout_series(make_bars))
        storage.merge_series("sz000001", make_bars([10.0] * 10))
        stocks = [
            StockInfo(code="600000", name="浦发银行", exchange="sh"),
            StockInfo(code="000001", name="平安银行", exchange="sz"),
            StockInfo(code="600000", name="浦发银行", exchange="sh"),
            StockInfo(code="688001", name="华兴源创", exchange="sh"),
        ]

        selected = StockSelector(storage).scan(stocks)

        assert selected == [StockInfo(code="600000", name="浦发银行", exchange="sh")]

    def test_save_and_load(self, tmp_path):
        stocks = [StockInfo(code="600000", name="浦发银行", exchange="sh")]
        path = save_selected(stocks, tmp_path / "json" / "selected.json")

        assert load_selected(path) == stocks
        # 覆盖写入
        save_selected([], path)
        assert load_selected(path) == []

    def test_load_missing(self, tmp_path):
        assert load_selected(tmp_path / "missing.json") == []
