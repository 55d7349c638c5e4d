from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SymbolInfo:
    """标准化后的股票代码信息。"""

    code: str
    exchange: str  # sh / sz / bj

    @property
    def symbol(self) -> str:
        return f"{self.exchange}{self.code}"


class SymbolMapper:
    """通达信股票代码映射工具。

    支持输入：
    - 600000
    - sh600000 / sz000001 / bj430047（通达信文件名，可带 .day 后缀）
    - 600000.SH / 000001.SZSE
    """

    EXCHANGE_ALIAS = {
        "SH": "sh",
        "SSE": "sh",
        "SZ": "sz",
        "SZSE": "sz",
        "SZE": "sz",
        "BJ": "bj",
        "BSE": "bj",
    }
    EXCHANGES = ("sh", "sz", "bj")

    @classmethod
    def normalize_exchange(cls, exchange: str) -> str:
        ex = cls.EXCHANGE_ALIAS.get(exchange.strip().upper())
        if not ex:
            raise ValueError(f"不支持的交易所: {exchange}")
        return ex

    @classmethod
    def infer_exchange(cls, code: str) -> str:
        code = code.strip()
        if not code.isdigit() or len(code) != 6:
            raise ValueError(f"无效股票代码: {code}")

        if code.startswith("92") or code.startswith(("4", "8")):
            return "bj"
        if code.startswith(("5", "6", "9")):
            return "sh"
        if code.startswith(("0", "1", "2", "3")):
            return "sz"

        raise ValueError(f"无法根据代码推断交易所: {code}")

    @classmethod
    def parse(cls, symbol: str) -> SymbolInfo:
        s = symbol.strip()
        if s.lower().endswith(".day"):
            s = s[:-4]

        if "." in s:
            code, ex = s.split(".", 1)
            return SymbolInfo(code=code.strip(), exchange=cls.normalize_exchange(ex))

        prefix = s[:2].lower()
        if prefix in cls.EXCHANGES:
            code = s[2:]
            if not code.isdigit() or len(code) != 6:
                raise ValueError(f"无效股票代码: {symbol}")
            return SymbolInfo(code=code, exchange=prefix)

        return SymbolInfo(code=s, exchange=cls.infer_exchange(s))

