from __future__ import annotations

import asyncio
import sys

from tqdm import tqdm

from skvbench.retry import FixedRetryStrategy, RetryError
from skvbench.store import StoreClient
from skvbench.utils.logger import get_logger

from .constants import DEFAULT_CONCURRENCY, DEFAULT_RETRIES, TRANSACTION_WEIGHTS
from .random_utils import RandomContext
from .transactions import run, sample_txn


class TATPWorkloadExecutor:
    """
    drives ``query_count`` transactions drawn from the weighted TATP mix.

    ``concurrency`` workers each own a random context and keep one transaction in flight.
    every transaction goes through ``run`` under a fixed retry budget; one that exhausts
    its retries is counted as failed and the workload moves on.
    """

    def __init__(
        self,
        client: StoreClient,
        num_subscribers: int,
        query_count: int,
        concurrency: int = DEFAULT_CONCURRENCY,
        retries: int = DEFAULT_RETRIES,
        seed: int = 0,
    ) -> None:
        self.client = client
        self.num_subscribers = num_subscribers
        self.query_count = query_count
        self.concurrency = concurrency
        self.retries = retries
        self.seed = seed
        self.logger = get_logger("TATPWorkloadExecutor")

        self._remaining = query_count

    async def run(self) -> dict:
        self._remaining = self.query_count
        stats = {tx_name: {"committed": 0, "failed": 0} for tx_name in TRANSACTION_WEIGHTS}
        progress = self._new_progress(self.query_count)

        try:
            workers = [
                self._worker(RandomContext(self.seed + worker_id), stats, progress)
                for worker_id in range(self.concurrency)
            ]
            await asyncio.gather(*workers)
        finally:
            progress.close()

        self.logger.info(f"Workload stats: {stats}")
        return stats

    async def _worker(self, random: RandomContext, stats: dict, progress: tqdm) -> None:
        names = list(TRANSACTION_WEIGHTS.keys())
        weights = list(TRANSACTION_WEIGHTS.values())
        retry = FixedRetryStrategy(self.retries)

        while self._remaining > 0:
            self._remaining -= 1
            tx_type = random.rng.choices(names, weights=weights, k=1)[0]
            txn = sample_txn(tx_type, random, self.num_subscribers)

            try:
                await retry.run(lambda: run(self.client, txn))
                stats[tx_type]["committed"] += 1
            except RetryError as e:
                self.logger.debug(f"{tx_type} gave up: {e}")
                stats[tx_type]["failed"] += 1

            progress.update(1)

    def _new_progress(self, total: int) -> tqdm:
        return tqdm(
            total=total,
            desc="workload",
            unit="tx",
            ascii=True,
            dynamic_ncols=True,
            mininterval=0.5,
            disable=not sys.stderr.isatty(),
        )
