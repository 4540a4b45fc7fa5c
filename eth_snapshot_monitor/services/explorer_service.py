"""
浏览器查询服务

交易查询、钱包扫描和区块查询：每次请求直接调用 RPC，不读写快照缓存
"""

from typing import Any, Dict, List, Optional

from web3 import Web3

from eth_snapshot_monitor.config.monitor_config import MonitorConfig
from eth_snapshot_monitor.managers.rpc_manager import RPCManager, RPCError
from eth_snapshot_monitor.models.data_types import CONTRACT_CREATION
from eth_snapshot_monitor.processors.block_processor import normalize_block
from eth_snapshot_monitor.utils.log_utils import get_logger
from eth_snapshot_monitor.utils.token_parser import TokenParser
from eth_snapshot_monitor.utils.value_codec import (
    format_ether,
    format_gwei,
    hex_to_int,
    parse_block_number,
    to_hex_block,
)

logger = get_logger(__name__)


class NotFoundError(Exception):
    """请求的链上实体不存在"""


class InvalidParameterError(ValueError):
    """请求参数不合法"""


class ExplorerService:
    """浏览器查询服务 - 按请求访问上游节点"""

    def __init__(self, config: MonitorConfig, rpc_manager: RPCManager,
                 token_parser: Optional[TokenParser] = None):
        self.config = config
        self.rpc_manager = rpc_manager
        self.token_parser = token_parser or TokenParser()

    async def get_transaction(self, tx_hash: str) -> Dict[str, Any]:
        """
        查询交易详情，包含回执状态和 ERC-20 转账解析

        Raises:
            NotFoundError: 交易不存在
            RPCError: 上游调用失败
        """
        tx = await self.rpc_manager.get_transaction(tx_hash)
        if not tx:
            raise NotFoundError("Transaction not found")

        receipt = await self.rpc_manager.get_transaction_receipt(tx_hash)

        tx_input = tx.get('input') or ''
        is_contract_creation = not tx.get('to')
        is_contract_interaction = bool(tx_input) and tx_input != '0x'

        if receipt:
            status = 'Success' if hex_to_int(receipt.get('status'), 0) == 1 else 'Failed'
            gas_used = str(hex_to_int(receipt['gasUsed']))
        else:
            status = 'Pending'
            gas_used = 'Pending'

        transaction: Dict[str, Any] = {
            'hash': tx['hash'],
            'from': tx['from'],
            'to': tx.get('to') or CONTRACT_CREATION,
            'value': format_ether(tx['value']),
            'gasPrice': format_gwei(tx['gasPrice']),
            'gasLimit': str(hex_to_int(tx['gas'])),
            'gasUsed': gas_used,
            'nonce': hex_to_int(tx['nonce']),
            'blockNumber': hex_to_int(tx['blockNumber']) if tx.get('blockNumber') else None,
            'blockHash': tx.get('blockHash'),
            'status': status,
            'timestamp': None,
            'isContractCreation': is_contract_creation,
            'isContractInteraction': is_contract_interaction,
            'input': tx_input,
            'inputLength': (len(tx_input) - 2) // 2 if tx_input else 0,
        }

        if is_contract_creation and receipt:
            transaction['contractAddress'] = receipt.get('contractAddress')

        logs = (receipt or {}).get('logs') or []
        if logs:
            token_transfers = self.token_parser.parse_receipt_logs(logs)
            if token_transfers:
                transaction['tokenTransfers'] = token_transfers
            transaction['logCount'] = len(logs)

        if tx.get('blockNumber'):
            block = await self.rpc_manager.get_block(tx['blockNumber'], False)
            if block:
                transaction['timestamp'] = hex_to_int(block['timestamp'])

        return transaction

    async def scan_wallet(self, address: str, limit: Optional[int] = None) -> Dict[str, Any]:
        """
        钱包扫描：余额、交易计数，以及最近区块中与该地址相关的交易

        Args:
            address: 钱包地址
            limit: 最多返回的交易数

        Raises:
            InvalidParameterError: 地址或 limit 不合法
            RPCError: 上游调用失败
        """
        if limit is None:
            limit = self.config.wallet_default_limit
        if limit <= 0:
            raise InvalidParameterError("Invalid limit")
        if not Web3.is_address(address):
            raise InvalidParameterError("Invalid address")

        latest_block_number = hex_to_int(await self.rpc_manager.get_block_number_hex())
        balance = format_ether(await self.rpc_manager.get_balance_hex(address))
        tx_count = hex_to_int(await self.rpc_manager.get_transaction_count_hex(address))

        transactions = await self._scan_recent_blocks(address.lower(), latest_block_number, limit)

        note = None
        if len(transactions) < tx_count:
            note = (f"Showing {len(transactions)} of {tx_count} transactions. "
                    f"Use external block explorers for complete history.")

        return {
            'address': address,
            'balance': balance,
            'txCount': tx_count,
            'transactions': transactions,
            'note': note,
        }

    async def _scan_recent_blocks(self, address: str, latest_block_number: int,
                                  limit: int) -> List[Dict[str, Any]]:
        """倒序扫描最近的区块，单个区块失败时跳过"""
        matches: List[Dict[str, Any]] = []
        blocks_to_scan = min(self.config.wallet_scan_blocks, limit)

        for offset in range(blocks_to_scan):
            if len(matches) >= limit:
                break
            block_number = latest_block_number - offset
            if block_number < 0:
                break

            try:
                block = await self.rpc_manager.get_block(to_hex_block(block_number), True)
            except RPCError as e:
                logger.warning(f"⚠️ 获取区块 {block_number} 失败，跳过: {e}")
                continue
            if not block:
                continue

            for tx in block.get('transactions') or []:
                if len(matches) >= limit:
                    break
                if isinstance(tx, str):
                    continue
                sender = (tx.get('from') or '').lower()
                recipient = (tx.get('to') or '').lower()
                if address not in (sender, recipient):
                    continue
                try:
                    matches.append({
                        'hash': tx['hash'],
                        'from': tx['from'],
                        'to': tx.get('to') or CONTRACT_CREATION,
                        'value': format_ether(tx['value']),
                        'gasPrice': format_gwei(tx['gasPrice']),
                        'blockNumber': hex_to_int(tx['blockNumber']),
                        'timestamp': hex_to_int(block['timestamp']),
                        'type': 'sent' if sender == address else 'received',
                    })
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(f"⚠️ 钱包交易解析失败，已跳过: {tx.get('hash', 'unknown')} - {e!r}")

        return matches

    async def get_block(self, raw_number: str) -> Dict[str, Any]:
        """
        查询单个区块，支持十进制或 0x 十六进制区块号

        Raises:
            InvalidParameterError: 区块号格式不正确
            NotFoundError: 区块不存在
        """
        try:
            block_tag = parse_block_number(raw_number)
        except ValueError as e:
            raise InvalidParameterError("Invalid block number") from e
        block = await self.rpc_manager.get_block(block_tag, True)
        if not block:
            raise NotFoundError("Block not found")
        return normalize_block(block).to_dict()
