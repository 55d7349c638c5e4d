"""
日线转换脚本
将通达信 .day 文件复权、计算指标后增量合并入库
"""
from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
import sys

PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tdx.converter import DayFileConverter
from tdx.storage import SeriesStorage


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="通达信日线 -> SQLite（支持前复权/后复权）")
    p.add_argument("--input-root", default="data/tdx_data", help="通达信数据根目录，包含 bj/sh/sz 子目录")
    p.add_argument("--db", default="data/tdx_stocks.db", help="日线数据库路径")
    p.add_argument("--index", default="data/stock_list.json", help="股票列表文件")
    p.add_argument("--dividend", default="data/json_data/dividend.json", help="分红数据文件")
    # 环境变量 ADJUST_TYPE 优先
    p.add_argument(
        "--adjust",
        choices=["none", "qfq", "hfq"],
        default=os.environ.get("ADJUST_TYPE") if os.environ.get("ADJUST_TYPE") in ("none", "qfq", "hfq") else "none",
        help="复权方式",
    )
    return p


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    args = build_parser().parse_args()

    converter = DayFileConverter(
        SeriesStorage(args.db),
        input_root=args.input_root,
        index_file=args.index,
        dividend_file=args.dividend,
        adjust_type=args.adjust,
    )
    try:
        results = converter.convert_all()
    except FileNotFoundError as e:
        logging.getLogger(__name__).error(f"无法读取股票列表: {e}")
        sys.exit(1)

    print(f"共转换 {len(results)} 只股票，新增 {sum(results.values())} 条日线")


if __name__ == "__main__":
    main()
