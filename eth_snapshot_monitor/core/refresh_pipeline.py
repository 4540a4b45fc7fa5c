"""
刷新流程

每个周期按顺序执行：最新区块号 -> 区块（含完整交易） -> 交易详情 -> gas 价格 -> 写入缓存。
所有结果先在本地组装，全部成功后才一次性写入缓存；任何一步失败都保持旧快照不变。
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

from eth_snapshot_monitor.config.monitor_config import MonitorConfig
from eth_snapshot_monitor.core.snapshot_cache import SnapshotCache
from eth_snapshot_monitor.managers.rpc_manager import RPCManager, RPCError
from eth_snapshot_monitor.models.data_types import NetworkInfo
from eth_snapshot_monitor.processors.block_processor import BlockProcessor, normalize_block
from eth_snapshot_monitor.reports.statistics_reporter import StatisticsReporter
from eth_snapshot_monitor.services.mempool_service import MempoolStatsSource
from eth_snapshot_monitor.utils.log_utils import get_logger
from eth_snapshot_monitor.utils.value_codec import format_gwei, hex_to_int

logger = get_logger(__name__)


class BlockUnavailable(Exception):
    """节点暂时没有返回最新区块"""


class RefreshPipeline:
    """刷新流程 - 生成一份一致的新快照，或者什么都不改"""

    def __init__(
        self,
        config: MonitorConfig,
        rpc_manager: RPCManager,
        cache: SnapshotCache,
        mempool_source: MempoolStatsSource,
        stats_reporter: StatisticsReporter,
    ):
        self.config = config
        self.rpc_manager = rpc_manager
        self.cache = cache
        self.mempool_source = mempool_source
        self.stats_reporter = stats_reporter
        self.block_processor = BlockProcessor()

    async def run_cycle(self) -> bool:
        """
        执行一个刷新周期

        Returns:
            bool: 是否成功写入了新快照
        """
        started = time.time()
        self.stats_reporter.record_cycle_started()
        skipped_before = self.block_processor.transactions_skipped

        try:
            await self._refresh()
        except asyncio.CancelledError:
            raise
        except BlockUnavailable as e:
            logger.warning(f"⚠️ {e}，保留旧快照")
            self.stats_reporter.record_cycle_failed(str(e), time.time() - started)
            return False
        except (RPCError, KeyError, TypeError, ValueError) as e:
            logger.error(f"❌ 刷新链数据失败: {e}")
            self.stats_reporter.record_cycle_failed(str(e), time.time() - started)
            return False
        except Exception as e:
            logger.error(f"❌ 刷新链数据发生未预期错误: {e}", exc_info=True)
            self.stats_reporter.record_cycle_failed(str(e), time.time() - started)
            return False

        self.stats_reporter.record_cycle_succeeded(
            time.time() - started,
            self.block_processor.transactions_skipped - skipped_before,
        )
        return True

    async def _refresh(self) -> None:
        # 1. 最新区块号
        latest_block_hex = await self.rpc_manager.get_block_number_hex()
        latest_block_number = hex_to_int(latest_block_hex)

        # 2-3. 区块（含完整交易）
        raw_block = await self.rpc_manager.get_block(latest_block_hex, True)
        if not raw_block:
            raise BlockUnavailable(f"区块 {latest_block_number} 暂不可用")

        # 4. 规范化区块
        block = normalize_block(raw_block)

        # 5. 交易详情（数量受限，避免过多上游调用）
        raw_transactions = await self._collect_transactions(
            (raw_block.get('transactions') or [])[:self.config.max_transactions]
        )
        transactions = self.block_processor.normalize_transactions(raw_transactions, block.number)

        # 6-7. gas 价格与网络概况
        gas_price = format_gwei(await self.rpc_manager.get_gas_price_hex())
        network_info = NetworkInfo(
            block_number=latest_block_number,
            gas_price=gas_price,
            tx_count=block.tx_count,
        )

        # 8. 内存池统计（模拟数据）
        mempool_stats = await self.mempool_source.collect(gas_price)

        # 9. 一次性写入缓存
        self.cache.apply_refresh(block, transactions, network_info, mempool_stats)
        logger.info(f"✅ 已更新链数据 - 区块 {latest_block_number}, {len(transactions)} 笔交易")

    async def _collect_transactions(self, txs: List[Any]) -> List[Optional[Dict[str, Any]]]:
        """区块只返回哈希时逐笔补全交易；单笔获取失败记为 None"""
        collected = []
        for tx in txs:
            if not isinstance(tx, str):
                collected.append(tx)
                continue
            try:
                collected.append(await self.rpc_manager.get_transaction(tx))
            except RPCError as e:
                logger.warning(f"⚠️ 获取交易 {tx[:10]}... 失败: {e}")
                collected.append(None)
        return collected
