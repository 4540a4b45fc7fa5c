"""
监控配置管理模块

统一管理链连接、刷新周期、历史容量、价格源和 HTTP 服务相关的配置参数
"""

from dataclasses import dataclass
from typing import Dict

from eth_snapshot_monitor.config.base_config import (
    ActiveChainName,
    ActiveConfig,
    ConfigMap,
    MonitorSettings,
    PriceConfig,
    ServerConfig,
)


@dataclass
class MonitorConfig:
    """监控配置类 - 集中管理所有配置参数"""

    # 基础连接配置
    chain_name: str = ActiveConfig.get("chain_name", ActiveChainName)
    rpc_url: str = ActiveConfig.get("rpc_url", "https://eth.llamarpc.com")
    token_name: str = ActiveConfig.get("token_name", "ETH")
    rpc_timeout: float = MonitorSettings.get("rpc_timeout", 15)

    # 刷新与缓存配置
    refresh_interval: float = MonitorSettings.get("refresh_interval", 15)  # 秒
    snapshot_max_age_ms: int = MonitorSettings.get("snapshot_max_age_ms", 30000)
    max_transactions: int = MonitorSettings.get("max_transactions", 15)
    max_block_history: int = MonitorSettings.get("max_block_history", 20)
    max_gas_price_history: int = MonitorSettings.get("max_gas_price_history", 50)

    # 钱包扫描配置
    wallet_scan_blocks: int = MonitorSettings.get("wallet_scan_blocks", 100)
    wallet_default_limit: int = MonitorSettings.get("wallet_default_limit", 50)

    # 价格源配置
    price_api_url: str = PriceConfig.get("api_url", "https://api.coingecko.com/api/v3/simple/price")
    price_asset_id: str = ActiveConfig.get("price_asset_id", "ethereum")
    price_max_age_ms: int = PriceConfig.get("max_age_ms", 60000)
    price_timeout: float = PriceConfig.get("timeout", 10)

    # HTTP 服务配置
    host: str = ServerConfig.get("host", "0.0.0.0")
    port: int = ServerConfig.get("port", 8080)

    # 日志配置
    stats_log_interval: int = MonitorSettings.get("stats_log_interval", 300)  # 统计日志间隔（秒）

    def __post_init__(self):
        if self.refresh_interval <= 0:
            raise ValueError(f"refresh_interval 必须大于 0: {self.refresh_interval}")
        if self.max_block_history <= 0 or self.max_gas_price_history <= 0:
            raise ValueError("历史记录容量必须大于 0")
        if self.max_transactions < 0:
            raise ValueError(f"max_transactions 不能为负数: {self.max_transactions}")

    def to_dict(self) -> Dict:
        """转换为字典格式，便于序列化"""
        return {
            'chain_name': self.chain_name,
            'rpc_url': self.rpc_url,
            'token_name': self.token_name,
            'refresh_interval': self.refresh_interval,
            'snapshot_max_age_ms': self.snapshot_max_age_ms,
            'max_transactions': self.max_transactions,
            'max_block_history': self.max_block_history,
            'max_gas_price_history': self.max_gas_price_history,
            'wallet_scan_blocks': self.wallet_scan_blocks,
            'wallet_default_limit': self.wallet_default_limit,
            'price_api_url': self.price_api_url,
            'price_asset_id': self.price_asset_id,
            'price_max_age_ms': self.price_max_age_ms,
            'host': self.host,
            'port': self.port,
            'stats_log_interval': self.stats_log_interval,
        }

    @classmethod
    def from_chain_name(cls, chain_name: str) -> 'MonitorConfig':
        """通过链名称创建监控配置实例

        Args:
            chain_name: 链名称，如 'ethereum', 'sepolia'

        Returns:
            MonitorConfig: 配置实例

        Raises:
            ValueError: 当指定的链名称不存在时
        """
        if chain_name not in ConfigMap:
            available_chains = list(ConfigMap.keys())
            raise ValueError(f"链 '{chain_name}' 不存在。可用的链: {available_chains}")

        chain_config = ConfigMap[chain_name]

        return cls(
            chain_name=chain_name,
            rpc_url=chain_config.get("rpc_url", ""),
            token_name=chain_config.get("token_name", "ETH"),
            price_asset_id=chain_config.get("price_asset_id", "ethereum"),
        )

    @staticmethod
    def get_available_chains() -> list:
        """获取所有可用的链名称"""
        return list(ConfigMap.keys())
