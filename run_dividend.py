#!/usr/bin/env python3
from __future__ import annotations

import argparse
import logging

from tdx.dividend_reader import read_pwr_file, save_dividends


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="大智慧 SPLIT.PWR -> 分红数据 JSON")
    p.add_argument("--input", default="data/dzh_data/SPLIT.PWR", help="SPLIT.PWR 文件路径")
    p.add_argument("--output", default="data/json_data/dividend.json", help="输出 JSON 路径")
    return p


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    args = build_parser().parse_args()

    records = read_pwr_file(args.input)
    path = save_dividends(records, args.output)
    print(f"分红数据已写入: {path}")


if __name__ == "__main__":
    main()
