"""Shared fixtures: an in-memory JSON-RPC chain and a controllable clock."""

import asyncio
import os
from typing import Any, Dict, List, Optional

# Must be set before the package loads its config; the test config disables the log file.
os.environ.setdefault('ETH_MONITOR_CONFIG', os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config.yml'))

import pytest
import pytest_asyncio

from eth_snapshot_monitor.config.monitor_config import MonitorConfig
from eth_snapshot_monitor.core.snapshot_monitor import SnapshotMonitor
from eth_snapshot_monitor.managers.rpc_manager import RPCManager
from eth_snapshot_monitor.services.price_service import PriceService
from eth_snapshot_monitor.utils import log_utils

ALICE = '0x' + 'a1' * 20
BOB = '0x' + 'b2' * 20
CAROL = '0x' + 'c3' * 20
MINER = '0x' + '99' * 20
TOKEN = '0x' + 'dd' * 20
FILLER_SENDER = '0x' + '11' * 20
FILLER_RECIPIENT = '0x' + '22' * 20

ONE_ETHER = 10 ** 18
GWEI = 10 ** 9


def tx_hash(block_number: int, index: int) -> str:
    return '0x' + f"{block_number:032x}{index:032x}"


def make_tx(block_number: int, index: int, sender: str = ALICE, to: Optional[str] = BOB,
            value: int = ONE_ETHER, gas_price: int = 20 * GWEI, data: str = '0x') -> Dict[str, Any]:
    return {
        'hash': tx_hash(block_number, index),
        'from': sender,
        'to': to,
        'value': hex(value),
        'gasPrice': hex(gas_price),
        'gas': hex(21000),
        'nonce': hex(index),
        'blockNumber': hex(block_number),
        'blockHash': '0x' + f"{block_number:064x}",
        'input': data,
        'transactionIndex': hex(index),
    }


def make_block(number: int, transactions: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {
        'number': hex(number),
        'hash': '0x' + f"{number:064x}",
        'timestamp': hex(1_700_000_000 + number * 12),
        'gasUsed': hex(21000 * len(transactions)),
        'gasLimit': hex(30_000_000),
        'miner': MINER,
        'difficulty': '0x0',
        'transactions': transactions,
    }


class FakeChain:
    """Answers JSON-RPC methods from in-memory blocks."""

    def __init__(self, head: int = 1000, txs_per_block: int = 20, gas_price: int = 25 * GWEI):
        self.head = head
        self.txs_per_block = txs_per_block
        self.gas_price = gas_price
        self.blocks: Dict[int, Dict[str, Any]] = {}
        self.receipts: Dict[str, Dict[str, Any]] = {}
        self.balances: Dict[str, int] = {}
        self.nonces: Dict[str, int] = {}
        self.missing_blocks = set()
        self.failing: Dict[str, Exception] = {}
        self.failing_blocks: Dict[int, Exception] = {}

    def add_block(self, number: int, transactions: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        if transactions is None:
            transactions = [
                make_tx(number, i, sender=FILLER_SENDER, to=FILLER_RECIPIENT)
                for i in range(self.txs_per_block)
            ]
        block = make_block(number, transactions)
        self.blocks[number] = block
        return block

    def get_block(self, number: int) -> Optional[Dict[str, Any]]:
        if number in self.missing_blocks or number > self.head:
            return None
        if number not in self.blocks:
            self.add_block(number)
        return self.blocks[number]

    def find_transaction(self, hash_: str) -> Optional[Dict[str, Any]]:
        for block in self.blocks.values():
            for tx in block['transactions']:
                if isinstance(tx, dict) and tx['hash'] == hash_:
                    return tx
        return None

    def handle(self, method: str, params: List[Any]) -> Any:
        if method in self.failing:
            raise self.failing[method]

        if method == 'eth_blockNumber':
            return hex(self.head)
        if method == 'eth_getBlockByNumber':
            tag, full = params
            number = self.head if tag == 'latest' else int(tag, 16)
            if number in self.failing_blocks:
                raise self.failing_blocks[number]
            block = self.get_block(number)
            if block is None:
                return None
            if full:
                return block
            return {**block, 'transactions': [
                tx if isinstance(tx, str) else tx['hash'] for tx in block['transactions']
            ]}
        if method == 'eth_getTransactionByHash':
            return self.find_transaction(params[0])
        if method == 'eth_getTransactionReceipt':
            return self.receipts.get(params[0])
        if method == 'eth_gasPrice':
            return hex(self.gas_price)
        if method == 'eth_getBalance':
            return hex(self.balances.get(params[0].lower(), 0))
        if method == 'eth_getTransactionCount':
            return hex(self.nonces.get(params[0].lower(), 0))
        raise AssertionError(f"unexpected RPC method {method}")


class FakeRPCManager(RPCManager):
    """RPCManager whose transport is a FakeChain."""

    def __init__(self, config: MonitorConfig, chain: FakeChain):
        super().__init__(config)
        self.chain = chain
        self.sent: List[tuple] = []
        self.holds: Dict[str, asyncio.Event] = {}

    def hold(self, method: str) -> asyncio.Event:
        """The next call to method blocks until the returned event is set."""
        gate = asyncio.Event()
        self.holds[method] = gate
        return gate

    async def _send(self, method: str, params: List[Any]) -> Dict[str, Any]:
        self.sent.append((method, params))
        gate = self.holds.pop(method, None)
        if gate is not None:
            await gate.wait()
        return {'jsonrpc': '2.0', 'id': 1, 'result': self.chain.handle(method, params)}

    def count(self, method: str) -> int:
        return sum(1 for sent_method, _ in self.sent if sent_method == method)


class StaticPriceService(PriceService):
    """PriceService that answers from a canned payload instead of HTTP."""

    def __init__(self, config, cache, payload=None, error: Optional[Exception] = None):
        super().__init__(config, cache)
        self.payload = payload if payload is not None else {
            'ethereum': {'usd': 3150.25, 'usd_24h_change': -1.5}
        }
        self.error = error
        self.requests = 0

    async def fetch_price(self):
        self.requests += 1
        if self.error is not None:
            raise self.error
        return self.payload


class FakeClock:
    def __init__(self, start: int = 1_700_000_000_000):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int) -> None:
        self.now += millis


@pytest.fixture
def clock(monkeypatch) -> FakeClock:
    fake = FakeClock()
    monkeypatch.setattr(log_utils, 'current_millis', fake)
    return fake


@pytest.fixture
def config() -> MonitorConfig:
    return MonitorConfig(
        chain_name='ethereum',
        rpc_url='http://rpc.invalid',
        price_api_url='http://price.invalid/simple/price',
        price_asset_id='ethereum',
        refresh_interval=15,
        snapshot_max_age_ms=30000,
        price_max_age_ms=60000,
        max_transactions=15,
        max_block_history=20,
        max_gas_price_history=50,
        wallet_scan_blocks=100,
        wallet_default_limit=50,
    )


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def rpc(config, chain) -> FakeRPCManager:
    return FakeRPCManager(config, chain)


@pytest_asyncio.fixture
async def monitor(config, rpc, clock):
    monitor = SnapshotMonitor(config, rpc_manager=rpc)
    monitor.price_service = StaticPriceService(config, monitor.cache)
    yield monitor
    await monitor.graceful_shutdown()
