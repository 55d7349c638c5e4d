"""
回测运行脚本
读取选股结果，逐只回测并输出交易记录与摘要
"""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

# 添加项目根目录到路径
PROJECT_ROOT = Path(__file__).resolve().parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from backtest.batch import BatchBacktester
from strategies.selection import load_selected
from tdx.storage import SeriesStorage


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="对选股结果进行放量突破策略回测")
    p.add_argument("--db", default="data/tdx_stocks.db", help="日线数据库路径")
    p.add_argument("--selected", default="data/json_data/selected.json", help="选股结果文件")
    p.add_argument("--output-dir", default="data/backtest", help="交易记录输出目录")
    p.add_argument("--breakout-window", type=int, default=20, help="突破回看天数")
    p.add_argument("--volume-ratio", type=float, default=1.5, help="放量倍数")
    p.add_argument("--exit-ma", type=int, default=10, help="离场均线天数")
    p.add_argument("--min-bars", type=int, default=30, help="最少K线数，不足则跳过回测")
    return p


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    args = build_parser().parse_args()

    storage = SeriesStorage(args.db)
    backtester = BatchBacktester(
        storage,
        output_dir=args.output_dir,
        setting={
            "breakout_window": args.breakout_window,
            "volume_ratio": args.volume_ratio,
            "exit_ma_window": args.exit_ma,
        },
        min_bars=args.min_bars,
    )
    summaries = backtester.run(load_selected(args.selected))

    for s in summaries[:10]:
        print(f"{s.code} {s.name} 总收益: {s.total_return_pct:.2f}% 交易次数: {s.trade_count}")
    print("\n回测完成！")


if __name__ == "__main__":
    main()
