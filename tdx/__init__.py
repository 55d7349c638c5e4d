"""tdx: 通达信日线解析、分红数据、股票列表与日线序列存储。"""
