"""
快照数据类型定义

定义缓存中保存的视图模型；所有对象不可变，序列化为前端使用的 camelCase JSON
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

CONTRACT_CREATION = 'Contract Creation'


@dataclass(frozen=True)
class BlockSummary:
    """区块摘要"""
    number: int
    hash: str
    timestamp: int
    transactions: Tuple[str, ...]
    gas_used: str
    gas_limit: str
    miner: str
    difficulty: str
    tx_count: int

    def __str__(self) -> str:
        return f"BlockSummary(number={self.number}, txs={self.tx_count})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'number': self.number,
            'hash': self.hash,
            'timestamp': self.timestamp,
            'transactions': list(self.transactions),
            'gasUsed': self.gas_used,
            'gasLimit': self.gas_limit,
            'miner': self.miner,
            'difficulty': self.difficulty,
            'txCount': self.tx_count,
        }


@dataclass(frozen=True)
class TransactionSummary:
    """交易摘要 - value 为 ether 字符串，gas_price 为 gwei 字符串"""
    hash: str
    from_address: str
    to_address: str
    value: str
    gas_price: str
    gas_limit: str
    nonce: int
    block_number: int

    def __str__(self) -> str:
        return (f"TransactionSummary(hash={self.hash[:10]}..., "
                f"value={self.value}, block={self.block_number})")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hash': self.hash,
            'from': self.from_address,
            'to': self.to_address,
            'value': self.value,
            'gasPrice': self.gas_price,
            'gasLimit': self.gas_limit,
            'nonce': self.nonce,
            'blockNumber': self.block_number,
        }


@dataclass(frozen=True)
class NetworkInfo:
    """网络概况"""
    block_number: int = 0
    gas_price: str = '0'
    tx_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'blockNumber': self.block_number,
            'gasPrice': self.gas_price,
            'txCount': self.tx_count,
        }


@dataclass(frozen=True)
class GasPricePoint:
    """Gas 价格历史点"""
    block_number: int
    gas_price: float
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'blockNumber': self.block_number,
            'gasPrice': self.gas_price,
            'timestamp': self.timestamp,
        }


@dataclass(frozen=True)
class MempoolStats:
    """内存池统计（当前为模拟数据，见 services.mempool_service）"""
    pending_count: int = 0
    avg_gas_price: str = '0'
    total_value: str = '0'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'pendingCount': self.pending_count,
            'avgGasPrice': self.avg_gas_price,
            'totalValue': self.total_value,
        }


@dataclass(frozen=True)
class PriceInfo:
    """法币价格信息，last_update 为毫秒时间戳"""
    usd: float = 0.0
    change_24h: float = 0.0
    last_update: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'usd': self.usd,
            'change24h': self.change_24h,
            'lastUpdate': self.last_update,
        }


@dataclass(frozen=True)
class ChainState:
    """链数据状态 - 每次刷新整体替换"""
    block: Optional[BlockSummary] = None
    transactions: Tuple[TransactionSummary, ...] = ()
    network_info: NetworkInfo = field(default_factory=NetworkInfo)
    block_history: Tuple[BlockSummary, ...] = ()
    gas_price_history: Tuple[GasPricePoint, ...] = ()
    mempool_stats: MempoolStats = field(default_factory=MempoolStats)
    last_update: int = 0


@dataclass(frozen=True)
class Snapshot:
    """对外提供的完整快照"""
    chain: ChainState
    eth_price: Optional[PriceInfo] = None

    @property
    def block(self) -> Optional[BlockSummary]:
        return self.chain.block

    @property
    def transactions(self) -> Tuple[TransactionSummary, ...]:
        return self.chain.transactions

    @property
    def network_info(self) -> NetworkInfo:
        return self.chain.network_info

    @property
    def block_history(self) -> Tuple[BlockSummary, ...]:
        return self.chain.block_history

    @property
    def gas_price_history(self) -> Tuple[GasPricePoint, ...]:
        return self.chain.gas_price_history

    @property
    def mempool_stats(self) -> MempoolStats:
        return self.chain.mempool_stats

    @property
    def last_update(self) -> int:
        return self.chain.last_update

    def to_dict(self) -> Dict[str, Any]:
        return {
            'block': self.block.to_dict() if self.block else None,
            'transactions': [tx.to_dict() for tx in self.transactions],
            'networkInfo': self.network_info.to_dict(),
            'blockHistory': [block.to_dict() for block in self.block_history],
            'gasPriceHistory': [point.to_dict() for point in self.gas_price_history],
            'mempoolStats': self.mempool_stats.to_dict(),
            'ethPrice': self.eth_price.to_dict() if self.eth_price else None,
            'lastUpdate': self.last_update,
        }


@dataclass
class RefreshStats:
    """刷新周期统计数据类"""
    cycles_started: int = 0
    cycles_succeeded: int = 0
    cycles_failed: int = 0
    transactions_skipped: int = 0
    last_error: Optional[str] = None
    last_duration: float = 0.0
    max_duration: float = 0.0


@dataclass
class PerformanceMetrics:
    """RPC 调用指标数据类"""
    rpc_calls: int = 0
    rpc_errors: int = 0
    avg_rpc_per_second: float = 0.0
    estimated_daily_calls: float = 0.0
    rpc_calls_by_type: Dict[str, int] = None

    def __post_init__(self):
        if self.rpc_calls_by_type is None:
            self.rpc_calls_by_type = {}
