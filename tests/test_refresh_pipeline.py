import random

import pytest

from eth_snapshot_monitor.core.refresh_pipeline import RefreshPipeline
from eth_snapshot_monitor.core.snapshot_cache import SnapshotCache
from eth_snapshot_monitor.models.data_types import CONTRACT_CREATION
from eth_snapshot_monitor.reports.statistics_reporter import StatisticsReporter
from eth_snapshot_monitor.services.mempool_service import SimulatedMempoolSource

from conftest import GWEI, make_tx


@pytest.fixture
def cache():
    return SnapshotCache(max_block_history=20, max_gas_price_history=50)


@pytest.fixture
def pipeline(config, rpc, cache):
    return RefreshPipeline(
        config, rpc, cache,
        SimulatedMempoolSource(random.Random(7)),
        StatisticsReporter(config),
    )


@pytest.mark.asyncio
async def test_successful_cycle_builds_consistent_snapshot(pipeline, cache, chain, clock):
    assert await pipeline.run_cycle() is True

    snapshot = cache.get_snapshot()
    assert snapshot.block.number == chain.head
    assert snapshot.block.tx_count == 20
    assert snapshot.block_history[0] == snapshot.block
    assert len(snapshot.transactions) == 15
    assert all(tx.block_number == snapshot.block.number for tx in snapshot.transactions)
    assert snapshot.network_info.block_number == chain.head
    assert snapshot.network_info.gas_price == '25.00'
    assert snapshot.network_info.tx_count == 20
    assert snapshot.gas_price_history[0].gas_price == 25.0
    assert snapshot.last_update == clock.now


@pytest.mark.asyncio
async def test_transaction_fields_are_normalized(pipeline, cache, chain, clock):
    chain.add_block(chain.head, [make_tx(chain.head, 0, to=None, value=3 * 10 ** 17, gas_price=12 * GWEI)])

    await pipeline.run_cycle()

    tx = cache.get_snapshot().transactions[0]
    assert tx.to_address == CONTRACT_CREATION
    assert tx.value == '0.300000'
    assert tx.gas_price == '12.00'
    assert tx.gas_limit == '21000'


@pytest.mark.asyncio
async def test_hash_only_block_fetches_transaction_details(pipeline, cache, chain, rpc, clock):
    full = [make_tx(chain.head, i) for i in range(3)]
    chain.add_block(chain.head, full)
    chain.add_block(chain.head - 1, full[:])
    # Latest block lists only hashes; details come from eth_getTransactionByHash.
    chain.blocks[chain.head] = {**chain.blocks[chain.head], 'transactions': [tx['hash'] for tx in full]}

    assert await pipeline.run_cycle() is True

    assert rpc.count('eth_getTransactionByHash') == 3
    assert [tx.hash for tx in cache.get_snapshot().transactions] == [tx['hash'] for tx in full]


@pytest.mark.asyncio
async def test_block_fetch_failure_keeps_previous_snapshot(pipeline, cache, chain, clock):
    await pipeline.run_cycle()
    before = cache.get_snapshot()

    clock.advance(15000)
    chain.head += 1
    chain.failing['eth_getBlockByNumber'] = ConnectionError('upstream down')

    assert await pipeline.run_cycle() is False

    after = cache.get_snapshot()
    assert after.last_update == before.last_update
    assert after.block == before.block
    assert len(after.block_history) == 1


@pytest.mark.asyncio
async def test_missing_block_aborts_cycle(pipeline, cache, chain, clock):
    chain.missing_blocks.add(chain.head)

    assert await pipeline.run_cycle() is False
    assert cache.get_snapshot().last_update == 0
    assert pipeline.stats_reporter.stats.cycles_failed == 1


@pytest.mark.asyncio
async def test_gas_price_failure_applies_nothing(pipeline, cache, chain, clock):
    chain.failing['eth_gasPrice'] = TimeoutError('slow node')

    assert await pipeline.run_cycle() is False
    assert cache.get_snapshot().block is None


@pytest.mark.asyncio
async def test_malformed_transaction_is_skipped(pipeline, cache, chain, clock):
    txs = [make_tx(chain.head, i) for i in range(4)]
    txs[1]['value'] = '0xnothex'
    del txs[2]['nonce']
    chain.add_block(chain.head, txs)

    assert await pipeline.run_cycle() is True

    hashes = [tx.hash for tx in cache.get_snapshot().transactions]
    assert hashes == [txs[0]['hash'], txs[3]['hash']]
    assert pipeline.stats_reporter.stats.transactions_skipped == 2


@pytest.mark.asyncio
async def test_transactions_from_other_blocks_are_dropped(pipeline, cache, chain, clock):
    chain.add_block(chain.head, [make_tx(chain.head, 0), make_tx(chain.head - 1, 1)])

    await pipeline.run_cycle()

    snapshot = cache.get_snapshot()
    assert len(snapshot.transactions) == 1
    assert snapshot.transactions[0].block_number == snapshot.block.number


@pytest.mark.asyncio
async def test_histories_stay_bounded_over_many_cycles(pipeline, cache, chain, clock):
    for _ in range(60):
        chain.head += 1
        clock.advance(15000)
        assert await pipeline.run_cycle() is True

    snapshot = cache.get_snapshot()
    assert len(snapshot.block_history) == 20
    assert len(snapshot.gas_price_history) == 50
    assert snapshot.block_history[0].number == chain.head
    assert snapshot.gas_price_history[0].block_number == chain.head


@pytest.mark.asyncio
async def test_mempool_stats_are_within_simulated_bounds(pipeline, cache, chain, clock):
    for _ in range(20):
        chain.head += 1
        await pipeline.run_cycle()
        stats = cache.get_snapshot().mempool_stats
        assert 10_000 <= stats.pending_count < 60_000
        assert 50.0 <= float(stats.total_value) <= 150.0
        assert stats.avg_gas_price == '25.00'
