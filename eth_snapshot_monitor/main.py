#!/usr/bin/env python3
"""
以太坊快照监控器

程序入口点，启动后台刷新并提供 HTTP 接口
"""

import argparse
import asyncio
import signal
import sys
from typing import Optional

from aiohttp import web

from eth_snapshot_monitor.api.app import create_app
from eth_snapshot_monitor.config.monitor_config import MonitorConfig
from eth_snapshot_monitor.core.snapshot_monitor import SnapshotMonitor
from eth_snapshot_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


def setup_signal_handlers(stop_event: asyncio.Event) -> None:
    """设置信号处理器"""
    loop = asyncio.get_running_loop()

    def signal_handler(signum: int) -> None:
        logger.info(f"接收到信号 {signum}，开始优雅退出...")
        stop_event.set()

    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, signal_handler, sig)
        logger.info("信号处理器已注册")
    except (NotImplementedError, RuntimeError) as e:
        logger.warning(f"注册信号处理器失败: {e}")


async def main(chain_name: str, host: Optional[str] = None, port: Optional[int] = None) -> int:
    """主函数 - 启动监控器和 HTTP 服务"""
    try:
        config = MonitorConfig.from_chain_name(chain_name)
    except ValueError as e:
        logger.error(f"❌ {e}")
        return 1

    monitor = SnapshotMonitor(config)
    app = create_app(monitor)
    runner = web.AppRunner(app)

    stop_event = asyncio.Event()
    setup_signal_handlers(stop_event)

    try:
        await runner.setup()
        site = web.TCPSite(runner, host or config.host, port or config.port)
        await site.start()
        logger.info(f"🌐 HTTP 服务已启动: http://{host or config.host}:{port or config.port}")
        await stop_event.wait()
    except Exception as e:
        logger.error(f"监控器运行失败: {e}", exc_info=True)
        return 1
    finally:
        await runner.cleanup()

    return 0


def parse_arguments(argv=None) -> argparse.Namespace:
    """解析命令行参数"""
    parser = argparse.ArgumentParser(description='以太坊快照监控器')
    parser.add_argument(
        'chain',
        nargs='?',
        default='ethereum',
        help=f'要监控的链名称 ({", ".join(MonitorConfig.get_available_chains())})'
    )
    parser.add_argument('--host', default=None, help='HTTP 监听地址')
    parser.add_argument('--port', type=int, default=None, help='HTTP 监听端口')
    return parser.parse_args(argv)


def run() -> None:
    args = parse_arguments()
    logger.info(f"🚀 启动 {args.chain.upper()} 快照监控器")
    sys.exit(asyncio.run(main(args.chain, args.host, args.port)))


if __name__ == '__main__':
    run()
