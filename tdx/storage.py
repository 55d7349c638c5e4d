"""
数据存储模块
使用 SQLite 数据库存储各股票的日线序列（含复权价与衍生指标）
"""
import os
import logging
from typing import Iterable, List
from contextlib import contextmanager

import pandas as pd
from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker
from sqlalchemy.engine import Engine

from .models import DailyBar, bars_to_frame, frame_to_bars, BAR_COLUMNS, INDICATOR_COLUMNS
from .merger import new_dates_only

logger = logging.getLogger(__name__)


def _sql_value(value):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return value.item() if hasattr(value, "item") else value


class SeriesStorage:
    """日线序列存储类，symbol 为交易所+代码，如 sh600000"""

    def __init__(self, db_path: str = "data/tdx_stocks.db"):
        """
        初始化存储实例

        Args:
            db_path: 数据库文件路径
        """
        self.db_path = db_path
        parent = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(parent, exist_ok=True)
        self.engine: Engine = create_engine(f"sqlite:///{db_path}", echo=False)
        self.Session = sessionmaker(bind=self.engine)
        self.create_tables()

    @contextmanager
    def session_scope(self):
        """提供事务性会话"""
        session = self.Session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def create_tables(self):
        """创建数据库表"""
        with self.engine.connect() as conn:
            conn.execute(text("""
                CREATE TABLE IF NOT EXISTS daily_bar (
                    symbol TEXT NOT NULL,
                    date TEXT NOT NULL,
                    open REAL,
                    high REAL,
                    low REAL,
                    close REAL,
                    turnover REAL,
                    volume INTEGER,
                    avg_cost_60 REAL,
                    avg_position_cost REAL,
                    profit_ratio REAL,
                    chip_low_90 REAL,
                    chip_high_90 REAL,
                    chip_concentration_90 REAL,
                    PRIMARY KEY (symbol, date)
                )
            """))
            conn.commit()

    def load_frame(self, symbol: str) -> pd.DataFrame:
        """读取指定股票的完整序列（按日期升序）"""
        columns = ", ".join(BAR_COLUMNS + INDICATOR_COLUMNS)
        with self.engine.connect() as conn:
            return pd.read_sql_query(
                text(f"SELECT {columns} FROM daily_bar WHERE symbol = :symbol ORDER BY date"),
                conn,
                params={"symbol": symbol},
            )

    def load_series(self, symbol: str) -> List[DailyBar]:
        """
        读取指定股票的日线序列

        Returns:
            DailyBar 列表，无数据时为空列表
        """
        return frame_to_bars(self.load_frame(symbol))

    def merge_series(self, symbol: str, bars: Iterable[DailyBar]) -> int:
        """
        将新数据合并进已存储的序列，已有日期保持不变

        Args:
            symbol: 股票标识
            bars: 新解析的日线

        Returns:
            新增的数据条数
        """
        new_bars = new_dates_only(self.load_series(symbol), bars)
        if not new_bars:
            return 0

        df = bars_to_frame(new_bars)
        df.insert(0, "symbol", symbol)
        # sqlite 只接受 Python 原生类型，NaN 写为 NULL
        rows = [
            {key: _sql_value(value) for key, value in row.items()}
            for row in df.to_dict("records")
        ]

        with self.session_scope() as session:
            session.execute(text("""
                INSERT OR IGNORE INTO daily_bar
                (symbol, date, open, high, low, close, turnover, volume,
                 avg_cost_60, avg_position_cost, profit_ratio,
                 chip_low_90, chip_high_90, chip_concentration_90)
                VALUES (:symbol, :date, :open, :high, :low, :close, :turnover, :volume,
                        :avg_cost_60, :avg_position_cost, :profit_ratio,
                        :chip_low_90, :chip_high_90, :chip_concentration_90)
            """), rows)

        logger.debug(f"{symbol} 新增 {len(rows)} 条日线")
        return len(rows)
