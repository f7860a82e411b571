from __future__ import annotations

import asyncio
import itertools
from typing import Iterable, Optional, Type

from skvbench.utils.logger import get_logger

from .client import Deadline, StoreClient, TxnEndedError, TxnHandle, TxnOptions
from .query import Query, evaluate
from .schema import Record, Schema
from .status import (
    STATUS_OK,
    EndResult,
    PartialUpdateResult,
    QueryResult,
    ReadResult,
    WriteResult,
    conflict,
    not_found,
    timed_out,
)


class MemoryStore(StoreClient):
    """
    an in-process transactional store with serializable isolation.

    transactions run optimistically: writes are buffered per transaction, and at commit
    every key read and every range scanned must still be at the version the transaction
    saw, otherwise the commit fails with a 409 status and nothing is applied.
    """

    def __init__(self, schemas: Iterable[Schema]):
        self.logger = get_logger("MemoryStore")
        self.schemas = {schema.name: schema for schema in schemas}
        self._tables: dict[str, dict[tuple, dict]] = {name: {} for name in self.schemas}
        self._versions: dict[tuple[str, tuple], int] = {}
        self._txn_ids = itertools.count(1)

    async def begin_txn(self, options: Optional[TxnOptions] = None) -> "MemoryTxnHandle":
        if options is None:
            options = TxnOptions()
        await asyncio.sleep(0)
        return MemoryTxnHandle(self, next(self._txn_ids), options)

    def rows(self, record_type: Type[Record]) -> list:
        """committed rows of one collection in key order."""
        table = self._table(record_type.SCHEMA)
        return [record_type.from_row(dict(table[key])) for key in sorted(table)]

    def _table(self, schema: Schema) -> dict[tuple, dict]:
        if schema.name not in self.schemas:
            raise ValueError(f"schema {schema.name} is not registered with this store")
        return self._tables[schema.name]

    def _version(self, schema_name: str, key: tuple) -> int:
        return self._versions.get((schema_name, key), 0)

    def _scan_versions(self, query: Query) -> tuple:
        table = self._table(query.schema)
        return tuple(sorted(
            (key, self._version(query.schema.name, key))
            for key in table
            if query.in_range(key)
        ))

    def _commit(self, txn: "MemoryTxnHandle") -> EndResult:
        for (schema_name, key), version in txn.read_versions.items():
            if self._version(schema_name, key) != version:
                self.logger.debug(f"txn {txn.txn_id}: {schema_name}{key} changed since read")
                return EndResult(conflict())

        for query, seen in txn.scans:
            if self._scan_versions(query) != seen:
                self.logger.debug(f"txn {txn.txn_id}: range of {query.schema.name} changed since scan")
                return EndResult(conflict())

        for (schema_name, key), row in txn.writes.items():
            table = self._tables[schema_name]
            if row is None:
                if table.pop(key, None) is None:
                    continue
            else:
                table[key] = row
            self._versions[(schema_name, key)] = self._version(schema_name, key) + 1

        return EndResult(STATUS_OK)


class MemoryTxnHandle(TxnHandle):
    def __init__(self, store: MemoryStore, txn_id: int, options: TxnOptions):
        self.store = store
        self.txn_id = txn_id
        self.deadline = Deadline(options.deadline)
        self.ended = False

        # None marks an erased row
        self.writes: dict[tuple[str, tuple], Optional[dict]] = {}
        self.read_versions: dict[tuple[str, tuple], int] = {}
        self.scans: list[tuple[Query, tuple]] = []

    def _check_open(self) -> None:
        if self.ended:
            raise TxnEndedError(f"transaction {self.txn_id} has already ended")

    def _key(self, record: Record) -> tuple:
        key = record.key()
        if any(part is None for part in key):
            raise ValueError(f"incomplete key for {record.SCHEMA.name}: {key}")
        return key

    def _lookup(self, schema: Schema, key: tuple) -> Optional[dict]:
        slot = (schema.name, key)
        if slot in self.writes:
            return self.writes[slot]

        row = self.store._table(schema).get(key)
        self.read_versions.setdefault(slot, self.store._version(schema.name, key))
        return row

    async def read(self, record_type, key):
        self._check_open()
        await asyncio.sleep(0)
        if self.deadline.is_over():
            return ReadResult(timed_out())

        row = self._lookup(record_type.SCHEMA, self._key(key))
        if row is None:
            return ReadResult(not_found())
        return ReadResult(STATUS_OK, record_type.from_row(dict(row)))

    async def write(self, record, erase=False):
        self._check_open()
        await asyncio.sleep(0)
        if self.deadline.is_over():
            return WriteResult(timed_out())

        schema = record.SCHEMA
        self.store._table(schema)
        self.writes[(schema.name, self._key(record))] = None if erase else record.to_row()
        return WriteResult(STATUS_OK)

    async def partial_update(self, record, fields):
        self._check_open()
        fields = list(fields)
        schema = record.SCHEMA
        schema.check_update_fields(fields)
        await asyncio.sleep(0)
        if self.deadline.is_over():
            return PartialUpdateResult(timed_out())

        key = self._key(record)
        current = self._lookup(schema, key)
        if current is None:
            return PartialUpdateResult(not_found())

        updated = dict(current)
        for name in fields:
            updated[name] = getattr(record, name)
        self.writes[(schema.name, key)] = updated
        return PartialUpdateResult(STATUS_OK)

    async def query(self, query):
        self._check_open()
        await asyncio.sleep(0)
        if self.deadline.is_over():
            return QueryResult(timed_out())

        schema = query.schema
        table = self.store._table(schema)
        rows = {key: row for key, row in table.items() if query.in_range(key)}
        for (schema_name, key), row in self.writes.items():
            if schema_name != schema.name or not query.in_range(key):
                continue
            if row is None:
                rows.pop(key, None)
            else:
                rows[key] = row
        self.scans.append((query, self.store._scan_versions(query)))

        records = []
        for key in sorted(rows, reverse=query.reverse):
            if query.limit >= 0 and len(records) >= query.limit:
                break
            if evaluate(query.filter, rows[key]):
                records.append(query.record_type.from_row(dict(rows[key])))
        return QueryResult(STATUS_OK, records)

    async def end(self, commit):
        self._check_open()
        self.ended = True
        await asyncio.sleep(0)

        if not commit:
            return EndResult(STATUS_OK)
        if self.deadline.is_over():
            return EndResult(timed_out())
        return self.store._commit(self)
