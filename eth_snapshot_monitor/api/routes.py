"""
HTTP 接口

快照、健康检查、内存池、价格接口读取缓存；交易、钱包、区块接口直接访问 RPC。
失败时统一返回 {"error": ...} JSON。
"""

from aiohttp import web

from eth_snapshot_monitor.core.snapshot_monitor import SnapshotMonitor
from eth_snapshot_monitor.models.data_types import PriceInfo
from eth_snapshot_monitor.services.explorer_service import ExplorerService, InvalidParameterError, NotFoundError
from eth_snapshot_monitor.utils.log_utils import get_logger

logger = get_logger(__name__)

MONITOR_KEY = web.AppKey('monitor', SnapshotMonitor)
EXPLORER_KEY = web.AppKey('explorer', ExplorerService)

routes = web.RouteTableDef()


def error_response(message: str, status: int) -> web.Response:
    return web.json_response({'error': message}, status=status)


@routes.get('/api/ethereum/snapshot')
async def get_snapshot(request: web.Request) -> web.Response:
    monitor = request.app[MONITOR_KEY]
    snapshot = await monitor.get_snapshot_fresh(monitor.config.snapshot_max_age_ms)
    return web.json_response(snapshot.to_dict())


@routes.get('/api/ethereum/health')
async def get_health(request: web.Request) -> web.Response:
    return web.json_response(request.app[MONITOR_KEY].get_health_status())


@routes.get('/api/ethereum/mempool')
async def get_mempool(request: web.Request) -> web.Response:
    snapshot = request.app[MONITOR_KEY].get_snapshot()
    return web.json_response(snapshot.mempool_stats.to_dict())


@routes.get('/api/ethereum/price')
async def get_price(request: web.Request) -> web.Response:
    price = request.app[MONITOR_KEY].get_snapshot().eth_price or PriceInfo()
    return web.json_response(price.to_dict())


@routes.get('/api/ethereum/stats')
async def get_stats(request: web.Request) -> web.Response:
    return web.json_response(request.app[MONITOR_KEY].get_comprehensive_stats())


@routes.get('/api/ethereum/transaction/{hash}')
async def get_transaction(request: web.Request) -> web.Response:
    tx_hash = request.match_info['hash']
    try:
        transaction = await request.app[EXPLORER_KEY].get_transaction(tx_hash)
    except NotFoundError as e:
        return error_response(str(e), 404)
    except Exception as e:
        logger.error(f"❌ 查询交易 {tx_hash} 失败: {e}")
        return error_response('Failed to fetch transaction', 500)
    return web.json_response(transaction)


@routes.get('/api/ethereum/wallet/{address}')
async def get_wallet(request: web.Request) -> web.Response:
    address = request.match_info['address']
    explorer = request.app[EXPLORER_KEY]

    raw_limit = request.query.get('limit')
    try:
        limit = int(raw_limit) if raw_limit else explorer.config.wallet_default_limit
    except ValueError:
        return error_response('Invalid limit', 400)

    try:
        wallet = await explorer.scan_wallet(address, limit)
    except InvalidParameterError as e:
        return error_response(str(e), 400)
    except Exception as e:
        logger.error(f"❌ 钱包扫描 {address} 失败: {e}")
        return error_response('Failed to track wallet', 500)
    return web.json_response(wallet)


@routes.get('/api/ethereum/block/{number}')
async def get_block(request: web.Request) -> web.Response:
    raw_number = request.match_info['number']
    try:
        block = await request.app[EXPLORER_KEY].get_block(raw_number)
    except NotFoundError as e:
        return error_response(str(e), 404)
    except InvalidParameterError as e:
        return error_response(str(e), 400)
    except Exception as e:
        logger.error(f"❌ 查询区块 {raw_number} 失败: {e}")
        return error_response('Failed to fetch block', 500)
    return web.json_response(block)
