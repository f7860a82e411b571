"""
End-to-end workload run against the in-memory store.
"""
import pytest

from skvbench.store.memory import MemoryStore
from skvbench.tatp.constants import TRANSACTION_WEIGHTS
from skvbench.tatp.loader import TATPLoader
from skvbench.tatp.schema import TATP_SCHEMAS
from skvbench.tatp.workload import TATPWorkloadExecutor


@pytest.mark.asyncio
async def test_workload_counts_every_transaction():
    store = MemoryStore(TATP_SCHEMAS)
    await TATPLoader(store, concurrency=2).load(1, 51)

    executor = TATPWorkloadExecutor(store, num_subscribers=50, query_count=300, concurrency=1, retries=3, seed=1)
    stats = await executor.run()

    assert set(stats) == set(TRANSACTION_WEIGHTS)
    assert sum(s["committed"] + s["failed"] for s in stats.values()) == 300
    # a single worker never conflicts with itself
    assert stats["update_subscriber_data"]["failed"] == 0
    # every subscriber exists, so lookups by subscriber id always succeed
    assert stats["get_subscriber_data"]["failed"] == 0
    assert stats["get_access_data"]["failed"] == 0
    assert stats["get_subscriber_data"]["committed"] > 0


@pytest.mark.asyncio
async def test_workload_on_empty_store_records_failures():
    store = MemoryStore(TATP_SCHEMAS)
    executor = TATPWorkloadExecutor(store, num_subscribers=10, query_count=40, concurrency=4, retries=2)
    stats = await executor.run()

    assert stats["get_subscriber_data"]["committed"] == 0
    assert stats["get_new_destination"]["committed"] == 0
    assert sum(s["committed"] + s["failed"] for s in stats.values()) == 40


@pytest.mark.asyncio
async def test_concurrent_workers_share_the_budget():
    store = MemoryStore(TATP_SCHEMAS)
    await TATPLoader(store, concurrency=4).load(1, 101)

    executor = TATPWorkloadExecutor(store, num_subscribers=100, query_count=500, concurrency=16, retries=5, seed=3)
    stats = await executor.run()

    assert sum(s["committed"] + s["failed"] for s in stats.values()) == 500
    assert sum(s["committed"] for s in stats.values()) > 350
