"""
快照缓存

保存最新的链数据视图与价格信息。链数据只通过 apply_refresh 整体替换，
价格只通过 set_price 替换；读者拿到的要么是刷新前的完整状态，要么是刷新后的完整状态。
"""

from typing import Iterable, Optional

from eth_snapshot_monitor.models.data_types import (
    BlockSummary,
    ChainState,
    GasPricePoint,
    MempoolStats,
    NetworkInfo,
    PriceInfo,
    Snapshot,
    TransactionSummary,
)
from eth_snapshot_monitor.utils import log_utils


class SnapshotCache:
    """进程级快照缓存，启动时创建，生命周期与进程一致"""

    def __init__(self, max_block_history: int = 20, max_gas_price_history: int = 50):
        self.max_block_history = max_block_history
        self.max_gas_price_history = max_gas_price_history
        self._chain = ChainState()
        self._price: Optional[PriceInfo] = None

    @property
    def last_update(self) -> int:
        """最近一次成功刷新的时间（毫秒），从未刷新为 0"""
        return self._chain.last_update

    @property
    def block_number(self) -> int:
        return self._chain.network_info.block_number

    @property
    def price(self) -> Optional[PriceInfo]:
        return self._price

    def get_snapshot(self) -> Snapshot:
        """返回当前完整状态；不可变对象，不涉及任何网络调用"""
        return Snapshot(chain=self._chain, eth_price=self._price)

    def is_stale(self, max_age_ms: int) -> bool:
        return log_utils.current_millis() - self._chain.last_update > max_age_ms

    def apply_refresh(
        self,
        block: BlockSummary,
        transactions: Iterable[TransactionSummary],
        network_info: NetworkInfo,
        mempool_stats: MempoolStats,
    ) -> ChainState:
        """
        应用一次完整刷新的结果

        新区块与 gas 价格点插入历史头部并截断到容量上限，然后一次性替换状态。
        只应由刷新流程在所有数据都准备好之后调用。
        """
        previous = self._chain
        gas_point = GasPricePoint(
            block_number=network_info.block_number,
            gas_price=float(network_info.gas_price),
            timestamp=block.timestamp,
        )
        new_state = ChainState(
            block=block,
            transactions=tuple(transactions),
            network_info=network_info,
            block_history=((block,) + previous.block_history)[:self.max_block_history],
            gas_price_history=((gas_point,) + previous.gas_price_history)[:self.max_gas_price_history],
            mempool_stats=mempool_stats,
            last_update=log_utils.current_millis(),
        )
        self._chain = new_state
        return new_state

    def price_is_stale(self, max_age_ms: int) -> bool:
        if self._price is None:
            return True
        return log_utils.current_millis() - self._price.last_update >= max_age_ms

    def set_price(self, price: PriceInfo) -> None:
        self._price = price
