#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging

from tdx.stock_list import SinaStockListFetcher, fetch_stock_list_akshare, save_stock_list


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="获取沪深京 A 股股票列表")
    p.add_argument("--source", choices=["sina", "akshare"], default="sina", help="数据源")
    p.add_argument("--output", default="data/stock_list.json", help="输出文件")
    return p


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    args = build_parser().parse_args()

    if args.source == "akshare":
        stocks = fetch_stock_list_akshare()
    else:
        stocks = SinaStockListFetcher().fetch_all()

    path = save_stock_list(stocks, args.output)
    print(f"总共获取到的股票数量: {len(stocks)}, 已保存至 {path}")


if __name__ == "__main__":
    main()
