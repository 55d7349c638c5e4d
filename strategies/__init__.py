"""strategies: 选股与交易策略。"""
