"""
股票列表获取与索引
新浪行情中心免费接口，无需token；备用 akshare
"""
from __future__ import annotations

import json
import logging
import random
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

import requests

from .models import StockInfo
from .symbol_mapper import SymbolMapper

logger = logging.getLogger(__name__)

SINA_NODE_URL = (
    "https://vip.stock.finance.sina.com.cn/quotes_service/api/json_v2.php/"
    "Market_Center.getHQNodeData"
)

# kcb=科创板, hs_a=沪深A股, hs_bjs=北交所, cyb=创业板
DEFAULT_NODES = ("kcb", "hs_a", "hs_bjs", "cyb")


def unknown_name(code: str, exchange: str) -> str:
    return f"未知名称, code={code}, exchange={exchange}"


class StockIndex:
    """股票索引：(code, exchange) -> 名称"""

    def __init__(self, stocks: Iterable[StockInfo]):
        self.stocks: List[StockInfo] = list(stocks)
        self._names: Dict[Tuple[str, str], str] = {
            (s.code, s.exchange): s.name for s in self.stocks
        }

    def __len__(self):
        return len(self.stocks)

    def __iter__(self):
        return iter(self.stocks)

    def get_name(self, code: str, exchange: str) -> str:
        """查询名称，找不到时返回占位名称"""
        return self._names.get((code, exchange), unknown_name(code, exchange))


def load_stock_list(file_path: Union[str, Path]) -> StockIndex:
    """
    读取股票列表 JSON

    Raises:
        FileNotFoundError: 列表文件不存在
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"股票列表不存在: {path}，请先获取股票列表")

    items = json.loads(path.read_text(encoding="utf-8"))
    return StockIndex(
        StockInfo(code=str(item["code"]), name=str(item["name"]), exchange=str(item["exchange"]))
        for item in items
    )


def save_stock_list(stocks: Iterable[StockInfo], file_path: Union[str, Path]) -> Path:
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps([s.to_dict() for s in stocks], ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return path


class SinaStockListFetcher:
    """新浪股票列表采集器"""

    def __init__(self, page_size: int = 100, min_delay: float = 0.5, max_delay: float = 1.0):
        """
        Args:
            page_size: 每页数量
            min_delay / max_delay: 翻页随机间隔（秒），避免触发频率限制
        """
        self.page_size = page_size
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.session = requests.Session()
        self.session.headers.update({
            'User-Agent': 'curl/8.6.0',
            'Accept': '*/*',
        })

    @staticmethod
    def _exchange_of(symbol: str) -> str:
        prefix = symbol[:2].lower()
        return prefix if prefix in SymbolMapper.EXCHANGES else "unknown"

    def _fetch_page(self, node: str, page: int) -> Optional[list]:
        params = {
            'page': page,
            'num': self.page_size,
            'sort': 'symbol',
            'asc': 1,
            'node': node,
            'symbol': '',
            '_s_r_a': 'page',
        }
        try:
            response = self.session.get(SINA_NODE_URL, params=params, timeout=10)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"获取 {node} 第 {page} 页失败: {e}")
            return None

        try:
            data = response.json()
        except ValueError:
            logger.warning(f"{node} 第 {page} 页返回内容不是合法 JSON，停止翻页")
            return None
        return data if isinstance(data, list) else None

    def fetch_node(self, node: str) -> List[StockInfo]:
        """按类型分页获取股票"""
        logger.info(f"开始获取类型为: {node} 的股票...")
        stocks: List[StockInfo] = []
        page = 1
        while True:
            data = self._fetch_page(node, page)
            if not data:
                break
            for item in data:
                stocks.append(
                    StockInfo(
                        code=str(item['code']),
                        name=str(item['name']),
                        exchange=self._exchange_of(str(item['symbol'])),
                    )
                )
            page += 1
            time.sleep(random.uniform(self.min_delay, self.max_delay))
        logger.info(f"{node} 共获取 {len(stocks)} 只")
        return stocks

    def fetch_all(self, nodes: Iterable[str] = DEFAULT_NODES) -> List[StockInfo]:
        stocks: List[StockInfo] = []
        for node in nodes:
            stocks.extend(self.fetch_node(node))
        logger.info(f"总共获取到的股票数量: {len(stocks)}")
        return stocks


def fetch_stock_list_akshare() -> List[StockInfo]:
    """通过 akshare 获取沪深京 A 股列表，交易所由代码推断"""
    import akshare as ak

    df = ak.stock_info_a_code_name()
    stocks: List[StockInfo] = []
    for row in df.to_dict("records"):
        code = str(row['code']).zfill(6)
        try:
            exchange = SymbolMapper.infer_exchange(code)
        except ValueError:
            logger.warning(f"无法推断交易所，跳过: {code}")
            continue
        stocks.append(StockInfo(code=code, name=str(row['name']), exchange=exchange))
    logger.info(f"akshare 共获取 {len(stocks)} 只A股股票")
    return stocks
