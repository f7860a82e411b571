from __future__ import annotations

import abc
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Type, TypeVar

from .query import Query
from .schema import Record
from .status import EndResult, PartialUpdateResult, QueryResult, ReadResult, WriteResult

R = TypeVar("R", bound=Record)

DEFAULT_DEADLINE = 5.0


class TxnEndedError(RuntimeError):
    """raised when an operation is issued on a transaction handle that has already ended."""


@dataclass(frozen=True)
class TxnOptions:
    # seconds the store may spend on the whole transaction
    deadline: float = DEFAULT_DEADLINE


class Deadline:
    def __init__(self, seconds: float):
        self.expires_at = time.monotonic() + seconds

    def is_over(self) -> bool:
        return time.monotonic() >= self.expires_at

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())


class TxnHandle(abc.ABC):
    """
    one open transaction against the store.

    every operation reports its outcome through a status on the returned result.
    exceeding the deadline shows up as a non-2xx status, never as an exception.
    """

    @abc.abstractmethod
    async def read(self, record_type: Type[R], key: R) -> ReadResult:
        ...

    @abc.abstractmethod
    async def write(self, record: Record, erase: bool = False) -> WriteResult:
        ...

    @abc.abstractmethod
    async def partial_update(self, record: Record, fields: Iterable[str]) -> PartialUpdateResult:
        ...

    @abc.abstractmethod
    async def query(self, query: Query) -> QueryResult:
        ...

    @abc.abstractmethod
    async def end(self, commit: bool) -> EndResult:
        ...


class StoreClient(abc.ABC):
    @abc.abstractmethod
    async def begin_txn(self, options: Optional[TxnOptions] = None) -> TxnHandle:
        ...

    async def close(self) -> None:
        pass
