"""
价格服务

从 CoinGecko 风格的价格接口获取法币价格和 24 小时涨跌幅（支持异步）。
自带过期判断，失败时保留旧价格，从未成功过则写入零值占位。
"""

import asyncio
from typing import Any, Dict, Optional

import aiohttp

from eth_snapshot_monitor.config.monitor_config import MonitorConfig
from eth_snapshot_monitor.core.snapshot_cache import SnapshotCache
from eth_snapshot_monitor.models.data_types import PriceInfo
from eth_snapshot_monitor.utils import log_utils
from eth_snapshot_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


class PriceFetchError(Exception):
    """价格接口返回了错误状态或无法识别的数据"""


class PriceService:
    """价格服务 - 负责在价格过期时刷新缓存中的价格"""

    def __init__(self, config: MonitorConfig, cache: SnapshotCache):
        self.config = config
        self.cache = cache

        # 统计信息
        self.total_fetched = 0
        self.total_failed = 0

    async def fetch_price(self) -> Dict[str, Any]:
        """
        请求价格接口

        Returns:
            接口返回的 JSON，形如 {asset_id: {usd, usd_24h_change}}
        """
        params = {
            'ids': self.config.price_asset_id,
            'vs_currencies': 'usd',
            'include_24hr_change': 'true',
        }
        async with aiohttp.ClientSession() as session:
            async with session.get(
                self.config.price_api_url,
                params=params,
                timeout=aiohttp.ClientTimeout(total=self.config.price_timeout),
                headers={"User-Agent": "ETH-Snapshot-Monitor/1.0"}
            ) as response:
                if response.status != 200:
                    text = await response.text()
                    raise PriceFetchError(f"HTTP {response.status}: {text[:200]}")
                return await response.json(content_type=None)

    def _parse_price(self, data: Dict[str, Any]) -> Optional[PriceInfo]:
        entry = data.get(self.config.price_asset_id) if isinstance(data, dict) else None
        if not entry or entry.get('usd') is None:
            return None
        return PriceInfo(
            usd=float(entry['usd']),
            change_24h=float(entry.get('usd_24h_change') or 0),
            last_update=log_utils.current_millis(),
        )

    async def refresh_if_stale(self) -> Optional[PriceInfo]:
        """
        价格过期时刷新

        Returns:
            当前缓存中的价格；本方法不会抛出异常
        """
        if not self.cache.price_is_stale(self.config.price_max_age_ms):
            return self.cache.price

        try:
            data = await self.fetch_price()
            price = self._parse_price(data)
            if price is None:
                raise PriceFetchError(f"价格数据中缺少 {self.config.price_asset_id}: {data}")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.total_failed += 1
            logger.error(f"❌ 获取 {self.config.price_asset_id} 价格失败: {e}")
            if self.cache.price is None:
                self.cache.set_price(PriceInfo(last_update=log_utils.current_millis()))
            return self.cache.price

        self.cache.set_price(price)
        self.total_fetched += 1
        logger.info(f"💲 {self.config.token_name} 价格: ${price.usd} ({price.change_24h:.2f}%)")
        return price

    def get_stats(self) -> Dict[str, Any]:
        return {
            'total_fetched': self.total_fetched,
            'total_failed': self.total_failed,
        }
