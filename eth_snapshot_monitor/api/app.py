"""
HTTP 应用工厂
"""

from typing import AsyncIterator, Optional

from aiohttp import web

from eth_snapshot_monitor.api.routes import EXPLORER_KEY, MONITOR_KEY, routes
from eth_snapshot_monitor.core.snapshot_monitor import SnapshotMonitor
from eth_snapshot_monitor.services.explorer_service import ExplorerService
from eth_snapshot_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)


def create_app(
    monitor: SnapshotMonitor,
    explorer: Optional[ExplorerService] = None,
    run_background: bool = True,
) -> web.Application:
    """
    创建 aiohttp 应用

    Args:
        monitor: 快照监控器（持有缓存）
        explorer: 按请求查询服务，默认与监控器共用 RPC 管理器
        run_background: 是否随应用启动/关闭后台刷新任务
    """
    app = web.Application()
    app[MONITOR_KEY] = monitor
    app[EXPLORER_KEY] = explorer or ExplorerService(monitor.config, monitor.rpc_manager)
    app.add_routes(routes)

    if run_background:
        app.cleanup_ctx.append(_monitor_lifecycle)

    return app


async def _monitor_lifecycle(app: web.Application) -> AsyncIterator[None]:
    """应用启动时开始刷新循环，关闭时优雅停止"""
    monitor = app[MONITOR_KEY]
    await monitor.start()
    yield
    await monitor.graceful_shutdown()
