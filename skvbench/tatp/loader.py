from __future__ import annotations

import asyncio
import sys

from tqdm import tqdm

from skvbench.retry import FixedRetryStrategy
from skvbench.store import Record, StoreClient, TxnHandle, TxnOptions, WriteResult
from skvbench.utils.logger import get_logger

from .constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_RETRIES,
    DEFAULT_ROWS_PER_TXN,
    DEFAULT_SUBSCRIBERS_PER_PARTITION,
    TXN_DEADLINE_SECONDS,
)
from .data_generator import GeneratedRow, TATPDataGenerator, estimate_row_count

logger = get_logger("TATPLoader")


class WriteRowError(RuntimeError):
    def __init__(self, record: Record, status) -> None:
        super().__init__(f"writeRow failed for {record.SCHEMA.name}{record.key()}: {status}")
        self.status = status


async def write_row(txn: TxnHandle, record: Record, erase: bool = False) -> WriteResult:
    result = await txn.write(record, erase)
    if not result.status.is_2xx_ok():
        logger.debug(f"writeRow failed: {result.status}")
        raise WriteRowError(record, result.status)
    return result


async def apply_row(txn: TxnHandle, row: GeneratedRow) -> WriteResult:
    return await write_row(txn, row.record)


class TATPLoader:
    """
    bulk loads generated subscriber data.

    the id range is cut into partitions that are generated and written by
    ``concurrency`` workers. each partition's rows are applied in generation order, in
    transactions of at most ``rows_per_txn`` rows, each retried as a unit.
    """

    def __init__(
        self,
        client: StoreClient,
        concurrency: int = DEFAULT_CONCURRENCY,
        rows_per_txn: int = DEFAULT_ROWS_PER_TXN,
        subscribers_per_partition: int = DEFAULT_SUBSCRIBERS_PER_PARTITION,
        retries: int = DEFAULT_RETRIES,
        deadline: float = TXN_DEADLINE_SECONDS,
    ) -> None:
        self.client = client
        self.concurrency = concurrency
        self.rows_per_txn = rows_per_txn
        self.subscribers_per_partition = subscribers_per_partition
        self.retry = FixedRetryStrategy(retries)
        self.options = TxnOptions(deadline=deadline)
        self.generator = TATPDataGenerator()

    async def load(self, id_start: int, id_end: int) -> int:
        """loads subscribers ``[id_start, id_end)`` and returns the number of rows written."""
        partitions: asyncio.Queue = asyncio.Queue()
        for start in range(id_start, id_end, self.subscribers_per_partition):
            partitions.put_nowait((start, min(start + self.subscribers_per_partition, id_end)))

        progress = self._new_progress(estimate_row_count(id_end - id_start))
        workers = [asyncio.create_task(self._worker(partitions, progress)) for _ in range(self.concurrency)]
        try:
            counts = await asyncio.gather(*workers)
        except BaseException:
            # one worker gave up: stop the rest before reporting
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            raise
        finally:
            progress.close()

        total = sum(counts)
        logger.info(f"loaded {total} rows for subscribers [{id_start}, {id_end})")
        return total

    async def _worker(self, partitions: asyncio.Queue, progress: tqdm) -> int:
        written = 0
        while not partitions.empty():
            start, end = partitions.get_nowait()
            rows = self.generator.generate_subscriber_data(start, end)
            for offset in range(0, len(rows), self.rows_per_txn):
                chunk = rows[offset:offset + self.rows_per_txn]
                await self.retry.run(lambda: self._apply_chunk(chunk))
                written += len(chunk)
                progress.update(len(chunk))
        return written

    async def _apply_chunk(self, chunk: list[GeneratedRow]) -> bool:
        txn = await self.client.begin_txn(self.options)
        try:
            for row in chunk:
                await apply_row(txn, row)
        except WriteRowError as e:
            logger.warning(f"load txn failed, aborting: {e}")
            await txn.end(False)
            return False
        except BaseException:
            await txn.end(False)
            raise

        result = await txn.end(True)
        if not result.status.is_2xx_ok():
            logger.warning(f"load txn failed to commit: {result.status}")
        return result.status.is_2xx_ok()

    def _new_progress(self, total: int) -> tqdm:
        return tqdm(
            total=total,
            desc="load",
            unit="rows",
            ascii=True,
            dynamic_ncols=True,
            mininterval=0.5,
            disable=not sys.stderr.isatty(),
        )
