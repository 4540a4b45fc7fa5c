"""
区块处理器

将 JSON-RPC 返回的原始区块/交易对象规范化为视图模型。
单笔交易规范化失败只跳过该笔交易，不影响整个批次。
"""

from typing import Any, Dict, List, Optional, Tuple

from eth_snapshot_monitor.models.data_types import (
    CONTRACT_CREATION,
    BlockSummary,
    TransactionSummary,
)
from eth_snapshot_monitor.utils.log_utils import get_logger
from eth_snapshot_monitor.utils.value_codec import format_ether, format_gwei, hex_to_int

logger = get_logger(__name__)


def transaction_hash(tx: Any) -> str:
    """区块中的交易可能是哈希字符串，也可能是完整对象"""
    return tx if isinstance(tx, str) else tx['hash']


def normalize_block(block: Dict[str, Any]) -> BlockSummary:
    """原始区块 -> BlockSummary"""
    transactions = block.get('transactions') or []
    return BlockSummary(
        number=hex_to_int(block['number']),
        hash=block.get('hash') or '',
        timestamp=hex_to_int(block['timestamp']),
        transactions=tuple(transaction_hash(tx) for tx in transactions),
        gas_used=str(hex_to_int(block['gasUsed'])),
        gas_limit=str(hex_to_int(block['gasLimit'])),
        miner=block.get('miner') or '',
        difficulty=str(hex_to_int(block.get('difficulty') or '0x0')),
        tx_count=len(transactions),
    )


def normalize_transaction(tx: Dict[str, Any]) -> TransactionSummary:
    """原始交易 -> TransactionSummary；字段缺失或格式错误时抛出异常"""
    return TransactionSummary(
        hash=tx['hash'],
        from_address=tx['from'],
        to_address=tx.get('to') or CONTRACT_CREATION,
        value=format_ether(tx['value']),
        gas_price=format_gwei(tx['gasPrice']),
        gas_limit=str(hex_to_int(tx['gas'])),
        nonce=hex_to_int(tx['nonce']),
        block_number=hex_to_int(tx.get('blockNumber') or '0x0'),
    )


class BlockProcessor:
    """交易批量规范化 - 收集成功项，记录并丢弃失败项"""

    def __init__(self):
        self.transactions_skipped: int = 0

    def normalize_transactions(
        self,
        raw_transactions: List[Optional[Dict[str, Any]]],
        block_number: int,
    ) -> Tuple[TransactionSummary, ...]:
        """
        规范化一批交易

        Args:
            raw_transactions: 原始交易对象列表（可能包含 None）
            block_number: 所属区块号，不属于该区块的交易会被丢弃

        Returns:
            规范化后的交易元组
        """
        summaries = []
        for raw in raw_transactions:
            if not raw:
                self.transactions_skipped += 1
                continue
            try:
                summary = normalize_transaction(raw)
            except (KeyError, TypeError, ValueError) as e:
                self.transactions_skipped += 1
                logger.warning(f"⚠️ 交易规范化失败，已跳过: {raw.get('hash', 'unknown')} - {e!r}")
                continue

            if summary.block_number != block_number:
                self.transactions_skipped += 1
                logger.warning(
                    f"⚠️ 交易 {summary.hash[:10]}... 属于区块 {summary.block_number}，"
                    f"与当前区块 {block_number} 不一致，已跳过"
                )
                continue
            summaries.append(summary)

        return tuple(summaries)
