import yaml
import os
from typing import Dict, Any, Optional


CONFIG_ENV_VAR = "ETH_MONITOR_CONFIG"


def _load_config(config_path: str = "config.yml") -> Optional[Dict[str, Any]]:
    """
    内部函数：加载并解析 YAML 配置文件。

    Args:
        config_path: 配置文件路径（环境变量 ETH_MONITOR_CONFIG 优先）

    Returns:
        配置字典或 None（如果加载失败）
    """
    config_path = os.environ.get(CONFIG_ENV_VAR, config_path)

    # 如果是相对路径，则相对于包目录
    if not os.path.isabs(config_path):
        current_dir = os.path.dirname(os.path.abspath(__file__))
        project_root = os.path.dirname(current_dir)
        config_path = os.path.join(project_root, config_path)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)
        return config_data or {}
    except FileNotFoundError:
        print(f"Warning: Config file not found at {config_path}. Using default configuration.")
        return None
    except yaml.YAMLError as exc:
        print(f"Error parsing YAML file: {exc}. Using default configuration.")
        return None


# 在模块加载时执行配置加载和解析
_loaded_config = _load_config() or {}
_active_chain = _loaded_config.get('active_chain', 'ethereum')

# 所有链的配置
ConfigMap: Dict[str, Dict[str, Any]] = _loaded_config.get('chains') or {
    'ethereum': {
        'chain_name': 'ethereum',
        'rpc_url': 'https://eth.llamarpc.com',
        'token_name': 'ETH',
        'price_asset_id': 'ethereum',
    }
}
ActiveChainName: str = _active_chain if _active_chain in ConfigMap else next(iter(ConfigMap))
ActiveConfig: Dict[str, Any] = ConfigMap.get(ActiveChainName, {})

# 刷新/缓存配置
MonitorSettings: Dict[str, Any] = _loaded_config.get('monitor') or {}

# HTTP 服务配置
ServerConfig: Dict[str, Any] = _loaded_config.get('server') or {}

# 价格源配置
PriceConfig: Dict[str, Any] = _loaded_config.get('price') or {}

# 日志配置
LoggingConfig: Dict[str, Any] = _loaded_config.get('logging') or {}


if __name__ == "__main__":
    print("\n--- ConfigMap (所有链的配置) ---")
    for chain_name, config in ConfigMap.items():
        print(f"Chain: {chain_name}")
        for key, value in config.items():
            print(f"  {key}: {value}")

    print(f"--- ActiveConfig ({ActiveChainName}) ---")
    for key, value in ActiveConfig.items():
        print(f"  {key}: {value}")
