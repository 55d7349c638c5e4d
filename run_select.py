"""
选股脚本
扫描股票列表，保存满足条件的个股
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from strategies.selection import SelectionParams, StockSelector, save_selected
from tdx.stock_list import load_stock_list
from tdx.storage import SeriesStorage


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="趋势放量突破选股")
    p.add_argument("--db", default="data/tdx_stocks.db", help="日线数据库路径")
    p.add_argument("--index", default="data/stock_list.json", help="股票列表文件")
    p.add_argument("--output", default="data/json_data/selected.json", help="选股结果文件")
    p.add_argument("--volume-ratio", type=float, default=1.5, help="放量倍数")
    p.add_argument("--debug", action="store_true", help="输出每只股票的判断过程")
    return p


def main() -> None:
    args = build_parser().parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        stocks = load_stock_list(args.index)
    except FileNotFoundError as e:
        logging.getLogger(__name__).error(f"无法读取股票列表: {e}")
        sys.exit(1)

    selector = StockSelector(SeriesStorage(args.db), SelectionParams(volume_ratio=args.volume_ratio))
    selected = selector.scan(stocks)
    path = save_selected(selected, args.output)
    print(f"\n已保存选股结果到: {path}")


if __name__ == "__main__":
    main()
