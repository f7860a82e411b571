"""
Shared fixtures: in-memory stores for the TATP and TPC-C schemas.
"""
import pytest

from skvbench.store.memory import MemoryStore
from skvbench.tatp.schema import TATP_SCHEMAS
from skvbench.tpcc.schema import TPCC_SCHEMAS


async def put_rows(store, *records):
    """Commit ``records`` to ``store`` in one transaction."""
    txn = await store.begin_txn()
    for record in records:
        result = await txn.write(record)
        assert result.status.is_2xx_ok()
    end = await txn.end(True)
    assert end.status.is_2xx_ok()


@pytest.fixture
def tatp_store():
    return MemoryStore(TATP_SCHEMAS)


@pytest.fixture
def tpcc_store():
    return MemoryStore(TPCC_SCHEMAS)
