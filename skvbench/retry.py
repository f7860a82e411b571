from __future__ import annotations

from typing import Awaitable, Callable, Optional

from skvbench.utils.logger import get_logger

logger = get_logger("FixedRetryStrategy")


class RetryError(RuntimeError):
    """an operation did not succeed within its retry budget."""

    def __init__(self, message: str, attempts: int) -> None:
        super().__init__(message)
        self.attempts = attempts


class AttemptsExhaustedError(RetryError):
    """every attempt completed but reported failure."""


class AttemptRaisedError(RetryError):
    """the last attempt raised instead of reporting an outcome. the error is chained."""


class FixedRetryStrategy:
    """
    re-runs an operation until it reports success, at most ``retries`` times in total.

    attempts are strictly sequential with no backoff. rolling back a failed attempt is
    the operation's own job.
    """

    def __init__(self, retries: int) -> None:
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self.retries = retries

    async def run(self, func: Callable[[], Awaitable[bool]]) -> None:
        logger.debug("First attempt")
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.retries + 1):
            try:
                success = bool(await func())
                last_error = None
            except Exception as e:
                logger.debug(f"round {attempt} raised: {e!r}")
                success = False
                last_error = e

            logger.debug(f"round {attempt} ended with success={success}")
            if success:
                return

        if last_error is not None:
            logger.warning(f"Attempt failed after {self.retries} retries: {last_error!r}")
            raise AttemptRaisedError(
                f"Attempt failed after {self.retries} retries with an error",
                self.retries,
            ) from last_error

        logger.debug("Txn attempt failed")
        raise AttemptsExhaustedError(f"Attempt failed after {self.retries} retries", self.retries)
