"""
公共测试夹具
"""
import os
import sys
import tempfile
from datetime import date, timedelta
from pathlib import Path

import pytest

# 添加项目根目录到路径
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from tdx.models import DailyBar
from tdx.storage import SeriesStorage


def build_bars(closes, volumes=None, start="2024-01-02", opens=None):
    """按收盘价序列构造连续日线（日期逐日递增）"""
    if volumes is None:
        volumes = [1000] * len(closes)
    if opens is None:
        opens = closes
    day = date.fromisoformat(start)
    bars = []
    for i, (close, volume) in enumerate(zip(closes, volumes)):
        bars.append(
            DailyBar(
                date=(day + timedelta(days=i)).isoformat(),
                open=float(opens[i]),
                high=float(max(opens[i], close)),
                low=float(min(opens[i], close)),
                close=float(close),
                turnover=float(close) * volume,
                volume=int(volume),
            )
        )
    return bars


@pytest.fixture
def make_bars():
    return build_bars


@pytest.fixture
def temp_db():
    """创建临时数据库"""
    fd, path = tempfile.mkstemp(suffix='.db')
    os.close(fd)
    yield path
    # 清理
    if os.path.exists(path):
        os.remove(path)


@pytest.fixture
def storage(temp_db):
    """创建存储实例"""
    return SeriesStorage(temp_db)
