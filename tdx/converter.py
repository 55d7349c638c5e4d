"""
通达信日线转换
扫描 bj/sh/sz 的 lday 目录，解析 .day 文件，复权并计算指标后合并入库
"""
import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

from backtest.indicators import compute_indicators
from backtest.price_adjust import AdjustType, adjust_prices
from .day_reader import read_day_file
from .dividend_reader import group_by_code, load_dividends
from .models import DividendRecord
from .stock_list import StockIndex, load_stock_list
from .storage import SeriesStorage
from .symbol_mapper import SymbolMapper

logger = logging.getLogger(__name__)


class DayFileConverter:
    """通达信日线转换器"""

    EXCHANGE_DIRS = ('bj', 'sh', 'sz')

    def __init__(
        self,
        storage: SeriesStorage,
        input_root: Union[str, Path] = "data/tdx_data",
        index_file: Union[str, Path] = "data/stock_list.json",
        dividend_file: Union[str, Path] = "data/json_data/dividend.json",
        adjust_type: Union[str, AdjustType] = AdjustType.NONE,
    ):
        """
        初始化转换器

        Args:
            storage: SeriesStorage 实例
            input_root: 通达信数据根目录（包含 bj/sh/sz 子目录）
            index_file: 股票列表文件
            dividend_file: 分红数据文件
            adjust_type: 复权方式
        """
        self.storage = storage
        self.input_root = Path(input_root)
        self.index_file = Path(index_file)
        self.dividend_file = Path(dividend_file)
        self.adjust_type = AdjustType.parse(adjust_type)

    def list_day_files(self) -> List[Tuple[Path, str]]:
        """列出所有 .day 文件及其交易所，目录不存在则跳过"""
        files: List[Tuple[Path, str]] = []
        for exchange in self.EXCHANGE_DIRS:
            lday_dir = self.input_root / exchange / 'lday'
            if not lday_dir.is_dir():
                logger.debug(f"目录不存在，跳过: {lday_dir}")
                continue
            files.extend((f, exchange) for f in sorted(lday_dir.glob('*.day')))
        return files

    def convert_file(
        self,
        file_path: Path,
        dividends: Optional[List[DividendRecord]] = None,
    ) -> Tuple[str, int]:
        """
        转换单个 .day 文件

        Returns:
            (symbol, 新增条数)
        """
        info = SymbolMapper.parse(file_path.name)
        bars = read_day_file(file_path)
        bars = adjust_prices(bars, dividends or [], self.adjust_type, code=info.code)
        bars = compute_indicators(bars)
        return info.symbol, self.storage.merge_series(info.symbol, bars)

    def convert_all(self) -> Dict[str, int]:
        """
        转换所有日线文件（增量合并，已有日期不覆盖）

        Returns:
            {symbol: 新增条数}

        Raises:
            FileNotFoundError: 股票列表不存在
        """
        index: StockIndex = load_stock_list(self.index_file)
        dividends = group_by_code(load_dividends(self.dividend_file))
        files = self.list_day_files()

        logger.info(f"复权方式: {self.adjust_type.value}，共 {len(files)} 个日线文件")

        results: Dict[str, int] = {}
        fail_count = 0
        for i, (file_path, exchange) in enumerate(files, 1):
            try:
                info = SymbolMapper.parse(file_path.name)
                name = index.get_name(info.code, exchange)
                symbol, count = self.convert_file(file_path, dividends.get(info.code))
                results[symbol] = count
                logger.debug(f"[{i}/{len(files)}] {symbol} ({name}) 新增 {count} 条")
            except Exception as e:
                fail_count += 1
                logger.error(f"转换失败 {file_path.name}: {e}")

        logger.info(f"所有文件已转换完成! 成功: {len(results)}, 失败: {fail_count}")
        return results
