"""backtest: 复权、指标计算与回测引擎。"""
