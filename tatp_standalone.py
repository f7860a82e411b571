import asyncio
import time

from skvbench.config import HarnessConfig
from skvbench.store.memory import MemoryStore
from skvbench.store.mysql_store import MySQLStore
from skvbench.tatp.loader import TATPLoader
from skvbench.tatp.schema import TATP_SCHEMAS
from skvbench.tatp.workload import TATPWorkloadExecutor
from skvbench.utils.logger import get_logger

logger = get_logger("tatp_standalone")


def create_store(config: HarnessConfig):
    if config.store == "mysql":
        store = MySQLStore(
            TATP_SCHEMAS,
            host=config.db_host,
            port=config.db_port,
            user=config.db_user,
            password=config.db_pass,
            database=config.db_name,
            pool_size=config.concurrency + 1,
        )
        store.create_tables()
        return store
    return MemoryStore(TATP_SCHEMAS)


async def main(config: HarnessConfig) -> dict:
    store = create_store(config)
    try:
        logger.info(f"Loading {config.num_subscribers} subscribers...")
        started = time.monotonic()
        loader = TATPLoader(store, concurrency=config.concurrency, retries=config.retries)
        rows = await loader.load(1, config.num_subscribers + 1)
        logger.info(f"loaded {rows} rows in {time.monotonic() - started:.1f}s")

        logger.info("Executing workload...")
        started = time.monotonic()
        executor = TATPWorkloadExecutor(
            store,
            num_subscribers=config.num_subscribers,
            query_count=config.query_count,
            concurrency=config.concurrency,
            retries=config.retries,
        )
        stats = await executor.run()
        elapsed = max(time.monotonic() - started, 1e-6)
        logger.info(f"executed {config.query_count} txns in {elapsed:.1f}s ({config.query_count / elapsed:.0f} tx/s)")
        return stats
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(main(HarnessConfig.from_env()))
