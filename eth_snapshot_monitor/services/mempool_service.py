"""
内存池统计来源

公共 RPC 节点不提供内存池访问，这里的 SimulatedMempoolSource 生成的是占位数据，
不代表真实的待处理交易。真实来源只需实现 MempoolStatsSource 接口即可替换。
"""

import random
from abc import ABC, abstractmethod
from typing import Optional

from eth_snapshot_monitor.models.data_types import MempoolStats


class MempoolStatsSource(ABC):
    """内存池统计来源接口"""

    @abstractmethod
    async def collect(self, current_gas_price: str) -> MempoolStats:
        """
        生成一次内存池统计

        Args:
            current_gas_price: 当前网络 gas 价格（gwei 字符串）
        """


class SimulatedMempoolSource(MempoolStatsSource):
    """模拟内存池统计（非权威数据）"""

    MIN_PENDING = 10_000
    PENDING_SPAN = 50_000
    MIN_TOTAL_VALUE = 50.0
    TOTAL_VALUE_SPAN = 100.0

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    async def collect(self, current_gas_price: str) -> MempoolStats:
        pending_count = int(self.rng.random() * self.PENDING_SPAN + self.MIN_PENDING)
        total_value = self.rng.random() * self.TOTAL_VALUE_SPAN + self.MIN_TOTAL_VALUE
        return MempoolStats(
            pending_count=pending_count,
            avg_gas_price=current_gas_price,
            total_value=f"{total_value:.2f}",
        )
