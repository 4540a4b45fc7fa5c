"""
统计报告器

记录刷新周期的成功/失败情况，定期输出运行统计日志
"""

import time
from typing import Any, Dict

from eth_snapshot_monitor.config.monitor_config import MonitorConfig
from eth_snapshot_monitor.models.data_types import RefreshStats
from eth_snapshot_monitor.utils.log_utils import extended_seconds_to_hms, get_logger

logger = get_logger(__name__)


class StatisticsReporter:
    """统计报告器 - 负责刷新统计和日志输出"""

    def __init__(self, config: MonitorConfig):
        self.config = config
        self.stats = RefreshStats()
        self.start_time: float = time.time()
        self.last_stats_log: float = time.time()

    def record_cycle_started(self) -> None:
        self.stats.cycles_started += 1

    def record_cycle_succeeded(self, duration: float, skipped: int = 0) -> None:
        self.stats.cycles_succeeded += 1
        self.stats.transactions_skipped += skipped
        self._record_duration(duration)

    def record_cycle_failed(self, error: str, duration: float) -> None:
        self.stats.cycles_failed += 1
        self.stats.last_error = error
        self._record_duration(duration)

    def _record_duration(self, duration: float) -> None:
        self.stats.last_duration = duration
        self.stats.max_duration = max(self.stats.max_duration, duration)
        if duration > self.config.refresh_interval:
            logger.warning(
                f"⚠️ 刷新耗时 {duration:.2f}s，超过刷新间隔 {self.config.refresh_interval}s"
            )

    def should_log_stats(self) -> bool:
        """检查是否应该输出统计日志"""
        return time.time() - self.last_stats_log >= self.config.stats_log_interval

    def log_performance_stats(self, rpc_manager) -> None:
        """输出运行统计"""
        runtime = time.time() - self.start_time
        rpc_stats = rpc_manager.get_performance_stats()

        logger.info(
            f"📊 刷新统计 | "
            f"运行: {extended_seconds_to_hms(runtime)} | "
            f"成功: {self.stats.cycles_succeeded} | "
            f"失败: {self.stats.cycles_failed} | "
            f"跳过交易: {self.stats.transactions_skipped}"
        )

        rpc_breakdown = " | ".join(
            f"{k}: {v}" for k, v in rpc_stats.rpc_calls_by_type.items() if v > 0
        )
        logger.info(
            f"🔗 RPC统计 | "
            f"总计: {rpc_stats.rpc_calls} | "
            f"错误: {rpc_stats.rpc_errors} | "
            f"速率: {rpc_stats.avg_rpc_per_second:.2f}/s | "
            f"预估日用: {rpc_stats.estimated_daily_calls:.0f}"
        )
        if rpc_breakdown:
            logger.info(f"📈 RPC分类 | {rpc_breakdown}")

        self.last_stats_log = time.time()

    def get_report(self, rpc_manager) -> Dict[str, Any]:
        """获取统计报告，供 HTTP 接口使用"""
        rpc_stats = rpc_manager.get_performance_stats()
        total = self.stats.cycles_succeeded + self.stats.cycles_failed
        return {
            'uptimeSeconds': round(time.time() - self.start_time, 1),
            'refresh': {
                'cyclesStarted': self.stats.cycles_started,
                'cyclesSucceeded': self.stats.cycles_succeeded,
                'cyclesFailed': self.stats.cycles_failed,
                'successRate': round(self.stats.cycles_succeeded / total * 100, 1) if total else 0.0,
                'transactionsSkipped': self.stats.transactions_skipped,
                'lastError': self.stats.last_error,
                'lastDuration': round(self.stats.last_duration, 3),
                'maxDuration': round(self.stats.max_duration, 3),
            },
            'rpc': {
                'calls': rpc_stats.rpc_calls,
                'errors': rpc_stats.rpc_errors,
                'avgPerSecond': round(rpc_stats.avg_rpc_per_second, 3),
                'byType': rpc_stats.rpc_calls_by_type,
            },
        }
