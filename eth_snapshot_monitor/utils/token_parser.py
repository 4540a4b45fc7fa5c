"""
ERC-20 转账日志解析

从交易回执的日志中解析 ERC-20 Transfer 事件，增强了对不规范数据的处理能力
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from eth_snapshot_monitor.utils.log_utils import get_logger
from eth_snapshot_monitor.utils.value_codec import hex_to_bigint

logger = get_logger(__name__)


class TokenParser:
    """代币转账日志解析器"""

    # Transfer(address,address,uint256) 事件签名哈希
    TRANSFER_EVENT_TOPIC = '0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef'

    def __init__(self, default_decimals: int = 18):
        """
        初始化解析器

        Args:
            default_decimals: 代币精度（日志中无法获知，默认按 18 位处理）
        """
        self.default_decimals = default_decimals

    def is_transfer_log(self, log: Dict[str, Any]) -> bool:
        """检查日志是否为 ERC-20 Transfer 事件"""
        topics = log.get('topics') or []
        return bool(topics) and str(topics[0]).lower() == self.TRANSFER_EVENT_TOPIC

    def parse_transfer_log(self, log: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        解析单条 Transfer 日志

        Args:
            log: 回执中的日志对象（十六进制字段）

        Returns:
            dict: 转账信息，非 Transfer 事件或数据不规范时返回 None
        """
        if not self.is_transfer_log(log):
            return None

        topics = log['topics']
        # ERC-721 的 Transfer 也使用同一签名，但 tokenId 在 topics[3]
        if len(topics) < 3:
            logger.debug(f"Transfer 日志 topics 数量不足: {len(topics)}")
            return None

        try:
            from_address = self._topic_to_address(topics[1])
            to_address = self._topic_to_address(topics[2])
            value = hex_to_bigint(log.get('data') or '0x')
        except (ValueError, TypeError) as e:
            logger.debug(f"解析 Transfer 日志失败: {e}, 合约: {log.get('address')}")
            return None

        if not (self._is_valid_address(from_address) and self._is_valid_address(to_address)):
            logger.debug(f"解析出的地址格式不正确: {from_address} => {to_address}")
            return None

        value_formatted = Decimal(value) / (Decimal(10) ** self.default_decimals)
        return {
            'type': 'ERC20',
            'tokenAddress': log.get('address'),
            'from': from_address,
            'to': to_address,
            'value': str(value),
            'valueFormatted': f"{value_formatted:.6f}",
        }

    def parse_receipt_logs(self, logs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """解析回执中的所有 Transfer 日志，跳过无法解析的条目"""
        transfers = []
        for log in logs or []:
            transfer = self.parse_transfer_log(log)
            if transfer:
                transfers.append(transfer)
        return transfers

    @staticmethod
    def _topic_to_address(topic: str) -> str:
        """32 字节 topic -> 20 字节地址（取低 40 个十六进制字符）"""
        hex_data = topic[2:] if topic.startswith('0x') else topic
        if len(hex_data) != 64:
            raise ValueError(f"topic 长度不正确: {len(hex_data)}")
        return '0x' + hex_data[24:].lower()

    @staticmethod
    def _is_valid_address(address: str) -> bool:
        """验证以太坊地址格式"""
        if not address or len(address) != 42:
            return False
        if not address.startswith('0x'):
            return False
        try:
            int(address[2:], 16)
            return True
        except ValueError:
            return False
