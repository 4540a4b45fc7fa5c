"""
主监控器类

持有快照缓存、刷新流程和价格服务，驱动两个独立的后台任务：
链数据定时刷新（固定间隔）与价格刷新（按过期阈值触发）
"""

import asyncio
from typing import Any, Dict, Optional, Set

from eth_snapshot_monitor.config.monitor_config import MonitorConfig
from eth_snapshot_monitor.core.refresh_pipeline import RefreshPipeline
from eth_snapshot_monitor.core.snapshot_cache import SnapshotCache
from eth_snapshot_monitor.managers.rpc_manager import RPCManager
from eth_snapshot_monitor.models.data_types import Snapshot
from eth_snapshot_monitor.reports.statistics_reporter import StatisticsReporter
from eth_snapshot_monitor.services.mempool_service import MempoolStatsSource, SimulatedMempoolSource
from eth_snapshot_monitor.services.price_service import PriceService
from eth_snapshot_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


class SnapshotMonitor:
    """主监控器类 - 协调各个组件"""

    def __init__(
        self,
        config: MonitorConfig,
        rpc_manager: Optional[RPCManager] = None,
        mempool_source: Optional[MempoolStatsSource] = None,
        price_service: Optional[PriceService] = None,
    ):
        """
        初始化监控器

        Args:
            config: 监控配置
            rpc_manager: RPC管理器（测试时可替换）
            mempool_source: 内存池统计来源，默认为模拟数据
            price_service: 价格服务，默认根据配置创建
        """
        self.config = config
        self.cache = SnapshotCache(config.max_block_history, config.max_gas_price_history)
        self.rpc_manager = rpc_manager or RPCManager(config)
        self.stats_reporter = StatisticsReporter(config)
        self.pipeline = RefreshPipeline(
            config,
            self.rpc_manager,
            self.cache,
            mempool_source or SimulatedMempoolSource(),
            self.stats_reporter,
        )
        self.price_service = price_service or PriceService(config, self.cache)
        self.is_running = False

        self._loop_task: Optional[asyncio.Task] = None
        self._on_demand_task: Optional[asyncio.Task] = None
        self._cycle_tasks: Set[asyncio.Task] = set()
        self._price_task: Optional[asyncio.Task] = None

    def get_snapshot(self) -> Snapshot:
        """当前快照，不会等待网络"""
        return self.cache.get_snapshot()

    async def get_snapshot_fresh(self, max_age_ms: Optional[int] = None) -> Snapshot:
        """
        快照超过 max_age_ms 未更新时，先等待一次刷新完成再返回

        同时到达的按需请求共用同一个刷新周期，定时刷新不受影响

        Args:
            max_age_ms: 最大允许的快照年龄（毫秒），默认取配置
        """
        if max_age_ms is None:
            max_age_ms = self.config.snapshot_max_age_ms
        if self.cache.is_stale(max_age_ms):
            if self._on_demand_task is None or self._on_demand_task.done():
                logger.info(f"⏳ 快照已超过 {max_age_ms}ms 未更新，按需刷新")
                self._on_demand_task = self._start_cycle()
            await asyncio.shield(self._on_demand_task)
        return self.cache.get_snapshot()

    async def refresh(self) -> bool:
        """启动一个新的刷新周期并等待其完成，不等待其他正在进行的周期"""
        return await asyncio.shield(self._start_cycle())

    def _start_cycle(self) -> asyncio.Task:
        """
        启动一个独立的刷新周期

        周期之间互不等待，各自组装完整结果后一次性写入缓存，后完成的覆盖先完成的
        """
        # 价格刷新与链数据刷新并行，不等待本周期的链上调用
        self._schedule_price_refresh()
        task = asyncio.ensure_future(self.pipeline.run_cycle())
        self._cycle_tasks.add(task)
        task.add_done_callback(self._cycle_tasks.discard)
        task.add_done_callback(self._log_task_failure)
        return task

    def _schedule_price_refresh(self) -> None:
        """价格刷新在独立任务中执行，失败不会影响链数据刷新"""
        if self._price_task is not None and not self._price_task.done():
            return
        if not self.cache.price_is_stale(self.config.price_max_age_ms):
            return
        self._price_task = asyncio.ensure_future(self.price_service.refresh_if_stale())
        self._price_task.add_done_callback(self._log_task_failure)

    @staticmethod
    def _log_task_failure(task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"❌ 后台任务失败: {exc!r}")

    async def start(self) -> None:
        """启动后台刷新任务"""
        if self.is_running:
            logger.warning("监控器已在运行中")
            return

        self.is_running = True
        logger.info(
            f"🚀 开始监控 {self.config.chain_name} | RPC: {self.config.rpc_url} | "
            f"刷新间隔: {self.config.refresh_interval}s"
        )
        self._loop_task = asyncio.ensure_future(self._refresh_loop())

    async def _refresh_loop(self) -> None:
        """固定间隔触发刷新，每个周期的结果不影响下一次调度"""
        logger.info("🔄 开始刷新循环")
        while self.is_running:
            try:
                self._start_cycle()

                if self.stats_reporter.should_log_stats():
                    self.stats_reporter.log_performance_stats(self.rpc_manager)
            except Exception as e:
                logger.error(f"刷新循环发生错误: {e}", exc_info=True)

            await asyncio.sleep(self.config.refresh_interval)

        logger.info("刷新循环已停止")

    def stop(self) -> None:
        """停止监控"""
        if not self.is_running:
            logger.info("监控器未在运行")
            return

        self.is_running = False
        logger.info("正在停止监控...")

    async def graceful_shutdown(self) -> None:
        """优雅关闭"""
        logger.info("开始优雅关闭...")
        self.stop()

        tasks = [t for t in (self._loop_task, self._price_task, *self._cycle_tasks)
                 if t is not None and not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        await self.rpc_manager.close()
        logger.info("监控器已优雅关闭")

    def get_health_status(self) -> Dict[str, Any]:
        """健康状态，不触发刷新"""
        return {
            'status': 'ok',
            'lastUpdate': self.cache.last_update,
            'blockNumber': self.cache.block_number,
        }

    def get_comprehensive_stats(self) -> Dict[str, Any]:
        """获取全面的统计信息"""
        report = self.stats_reporter.get_report(self.rpc_manager)
        report['price'] = self.price_service.get_stats()
        report['isRunning'] = self.is_running
        report['lastUpdate'] = self.cache.last_update
        return report
