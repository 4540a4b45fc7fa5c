"""
RPC调用管理器

负责与上游 JSON-RPC 节点通信，返回原始的十六进制结果，并记录调用统计
"""

import time
from collections import defaultdict
from typing import Any, Dict, List, Optional

import aiohttp
from web3 import AsyncWeb3

from eth_snapshot_monitor.config.monitor_config import MonitorConfig
from eth_snapshot_monitor.models.data_types import PerformanceMetrics
from eth_snapshot_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


class RPCError(Exception):
    """上游 RPC 不可达或返回了错误/格式不正确的响应"""

    def __init__(self, method: str, message: str, code: Optional[int] = None):
        super().__init__(f"{method}: {message}")
        self.method = method
        self.code = code


class RPCManager:
    """RPC调用管理器 - 单个上游节点，无状态请求/响应"""

    def __init__(self, config: MonitorConfig):
        self.config = config
        self.w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(
            config.rpc_url,
            request_kwargs={'timeout': aiohttp.ClientTimeout(total=config.rpc_timeout)}
        ))

        # 统计相关
        self.rpc_calls: int = 0
        self.rpc_errors: int = 0
        self.rpc_calls_by_type: Dict[str, int] = defaultdict(int)
        self.start_time: float = time.time()

    def log_rpc_call(self, call_type: str) -> None:
        """记录RPC调用统计"""
        self.rpc_calls += 1
        self.rpc_calls_by_type[call_type] += 1

    async def _send(self, method: str, params: List[Any]) -> Dict[str, Any]:
        """发送一次 JSON-RPC 请求，返回完整响应"""
        return await self.w3.provider.make_request(method, params)

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        执行一次 JSON-RPC 调用

        Args:
            method: RPC 方法名
            params: 参数列表

        Returns:
            响应中的 result 字段（可能为 None，表示实体不存在）

        Raises:
            RPCError: 网络错误、HTTP 错误或节点返回 error
        """
        self.log_rpc_call(method)
        try:
            response = await self._send(method, params or [])
        except RPCError:
            self.rpc_errors += 1
            raise
        except Exception as e:
            self.rpc_errors += 1
            raise RPCError(method, f"请求失败: {e}") from e

        if not isinstance(response, dict):
            self.rpc_errors += 1
            raise RPCError(method, f"响应格式不正确: {response!r}")

        error = response.get('error')
        if error:
            self.rpc_errors += 1
            if isinstance(error, dict):
                raise RPCError(method, error.get('message', str(error)), error.get('code'))
            raise RPCError(method, str(error))

        return response.get('result')

    async def get_block_number_hex(self) -> str:
        """获取最新区块号（十六进制）"""
        return await self.call('eth_blockNumber')

    async def get_block(self, block_tag: str, full_transactions: bool = True) -> Optional[Dict[str, Any]]:
        """获取区块信息，区块不存在时返回 None"""
        return await self.call('eth_getBlockByNumber', [block_tag, full_transactions])

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """根据哈希获取交易"""
        return await self.call('eth_getTransactionByHash', [tx_hash])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        """获取交易回执，未打包时返回 None"""
        return await self.call('eth_getTransactionReceipt', [tx_hash])

    async def get_gas_price_hex(self) -> str:
        """获取当前Gas价格（wei，十六进制）"""
        return await self.call('eth_gasPrice')

    async def get_balance_hex(self, address: str) -> str:
        """获取地址余额（wei，十六进制）"""
        return await self.call('eth_getBalance', [address, 'latest'])

    async def get_transaction_count_hex(self, address: str) -> str:
        """获取地址的交易计数（nonce，十六进制）"""
        return await self.call('eth_getTransactionCount', [address, 'latest'])

    def get_performance_stats(self) -> PerformanceMetrics:
        """获取性能统计信息"""
        runtime = time.time() - self.start_time
        avg_rpc_per_second = self.rpc_calls / runtime if runtime > 0 else 0

        return PerformanceMetrics(
            rpc_calls=self.rpc_calls,
            rpc_errors=self.rpc_errors,
            avg_rpc_per_second=avg_rpc_per_second,
            estimated_daily_calls=avg_rpc_per_second * 86400,
            rpc_calls_by_type=dict(self.rpc_calls_by_type)
        )

    async def close(self) -> None:
        """关闭底层 HTTP 会话"""
        disconnect = getattr(self.w3.provider, 'disconnect', None)
        if disconnect is None:
            return
        try:
            await disconnect()
        except Exception as e:
            logger.warning(f"关闭 RPC 会话失败: {e}")
