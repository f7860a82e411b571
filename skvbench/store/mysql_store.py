from __future__ import annotations

import asyncio
import math
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Iterable, Optional

import mysql.connector
from mysql.connector import errorcode, pooling
from mysql.connector.constants import ClientFlag

from skvbench.utils.logger import get_logger

from .client import Deadline, StoreClient, TxnEndedError, TxnHandle, TxnOptions
from .query import Expression, FieldRef, Literal, Operation, Query
from .schema import FieldType, Schema
from .status import (
    STATUS_OK,
    EndResult,
    PartialUpdateResult,
    QueryResult,
    ReadResult,
    Status,
    WriteResult,
    conflict,
    internal_error,
    not_found,
    timed_out,
)

SQL_TYPES = {
    FieldType.INT16: "SMALLINT",
    FieldType.INT32: "INT",
    FieldType.INT64: "BIGINT",
    FieldType.STRING: "VARCHAR(64)",
    FieldType.DECIMAL: "DECIMAL(12, 2)",
    FieldType.TIMESTAMP: "DATETIME(6)",
}


def quote(name: str) -> str:
    return f"`{name}`"


def table_name(schema: Schema) -> str:
    return quote(schema.name.lower())


def create_table_sql(schema: Schema) -> str:
    columns = [f"{quote(f.name)} {SQL_TYPES[f.type]}" for f in schema.fields]
    key_columns = ", ".join(quote(name) for name in schema.key_field_names)
    return (
        f"CREATE TABLE IF NOT EXISTS {table_name(schema)} ("
        + ", ".join(columns)
        + f", PRIMARY KEY ({key_columns})"
        + ")"
    )


def _key_condition(schema: Schema) -> str:
    return " AND ".join(f"{quote(name)} = %s" for name in schema.key_field_names)


def select_sql(schema: Schema) -> str:
    columns = ", ".join(quote(name) for name in schema.field_names)
    return f"SELECT {columns} FROM {table_name(schema)} WHERE {_key_condition(schema)}"


def replace_sql(schema: Schema) -> str:
    columns = ", ".join(quote(name) for name in schema.field_names)
    placeholders = ", ".join(["%s"] * len(schema.fields))
    return f"REPLACE INTO {table_name(schema)} ({columns}) VALUES ({placeholders})"


def delete_sql(schema: Schema) -> str:
    return f"DELETE FROM {table_name(schema)} WHERE {_key_condition(schema)}"


def update_sql(schema: Schema, fields: list[str]) -> str:
    assignments = ", ".join(f"{quote(name)} = %s" for name in fields)
    return f"UPDATE {table_name(schema)} SET {assignments} WHERE {_key_condition(schema)}"


def compile_filter(schema: Schema, expr: Expression, params: list) -> str:
    """
    compiles a filter expression into a SQL condition, appending literals to ``params``.
    """
    if expr.op in (Operation.AND, Operation.OR):
        if not expr.children:
            return "TRUE" if expr.op is Operation.AND else "FALSE"
        parts = [compile_filter(schema, child, params) for child in expr.children]
        return "(" + f" {expr.op.value} ".join(parts) + ")"

    if len(expr.values) != 2:
        raise ValueError(f"{expr.op.name} expects two operands, got {len(expr.values)}")

    operands = []
    for value in expr.values:
        if isinstance(value, FieldRef):
            schema.field(value.name)
            operands.append(quote(value.name))
        elif isinstance(value, Literal):
            params.append(value.value)
            operands.append("%s")
        else:
            raise TypeError(f"unsupported filter operand: {value!r}")
    return f"{operands[0]} {expr.op.value} {operands[1]}"


def _prefix_bound(schema: Schema, prefix: tuple, op: str, params: list) -> str:
    names = schema.key_field_names[: len(prefix)]
    params.extend(prefix)
    columns = ", ".join(quote(name) for name in names)
    placeholders = ", ".join(["%s"] * len(prefix))
    return f"ROW({columns}) {op} ROW({placeholders})"


def range_query_sql(query: Query) -> tuple[str, list]:
    schema = query.schema
    params: list = []
    conditions = []
    if query.start_key:
        conditions.append(_prefix_bound(schema, query.start_key, ">=", params))
    if query.end_key:
        conditions.append(_prefix_bound(schema, query.end_key, "<=", params))
    if query.filter is not None:
        conditions.append(compile_filter(schema, query.filter, params))

    columns = ", ".join(quote(name) for name in schema.field_names)
    sql = f"SELECT {columns} FROM {table_name(schema)}"
    if conditions:
        sql += " WHERE " + " AND ".join(conditions)

    direction = " DESC" if query.reverse else ""
    sql += " ORDER BY " + ", ".join(quote(name) + direction for name in schema.key_field_names)
    if query.limit >= 0:
        sql += " LIMIT %s"
        params.append(query.limit)
    return sql, params


def status_for_error(err: mysql.connector.Error) -> Status:
    if err.errno == errorcode.ER_LOCK_DEADLOCK:
        return conflict(err.msg)
    if err.errno == errorcode.ER_LOCK_WAIT_TIMEOUT:
        return timed_out(err.msg)
    return internal_error(str(err))


def lock_wait_timeout_sql(deadline: float) -> tuple[str, tuple]:
    """caps how long a statement waits on a row lock at the transaction deadline, in whole seconds."""
    return "SET SESSION innodb_lock_wait_timeout = %s", (max(1, math.ceil(deadline)),)


class MySQLStore(StoreClient):
    """
    runs transactions against MySQL/InnoDB at SERIALIZABLE isolation.

    each schema is stored in a table named after it, with the schema key as primary key.
    """

    def __init__(
        self,
        schemas: Iterable[Schema],
        host: str = "127.0.0.1",
        port: int = 3306,
        user: str = "admin",
        password: str = "password",
        database: str = "benchbase",
        pool_size: int = 32,
    ) -> None:
        self.logger = get_logger("MySQLStore")
        self.schemas = {schema.name: schema for schema in schemas}

        self.logger.info(f"connecting to {user}@{host}:{port}/{database} (pool size {pool_size})")
        self._pool = pooling.MySQLConnectionPool(
            pool_name="skvbench",
            pool_size=pool_size,
            host=host,
            port=port,
            user=user,
            password=password,
            database=database,
            autocommit=False,
            client_flags=[ClientFlag.FOUND_ROWS],
        )

    def create_tables(self) -> None:
        conn = self._pool.get_connection()
        cursor = conn.cursor()
        try:
            for schema in self.schemas.values():
                self.logger.info(f"creating table {table_name(schema)}")
                cursor.execute(create_table_sql(schema))
            conn.commit()
        finally:
            cursor.close()
            conn.close()

    async def begin_txn(self, options: Optional[TxnOptions] = None) -> "MySQLTxnHandle":
        if options is None:
            options = TxnOptions()

        executor = ThreadPoolExecutor(max_workers=1)

        def connect():
            conn = self._pool.get_connection()
            try:
                cursor = conn.cursor()
                try:
                    cursor.execute(*lock_wait_timeout_sql(options.deadline))
                finally:
                    cursor.close()
                conn.start_transaction(isolation_level="SERIALIZABLE")
            except mysql.connector.Error:
                conn.close()
                raise
            return conn

        try:
            conn = await asyncio.get_running_loop().run_in_executor(executor, connect)
        except BaseException:
            executor.shutdown(wait=False)
            raise
        return MySQLTxnHandle(self, conn, executor, options)


class MySQLTxnHandle(TxnHandle):
    def __init__(self, store: MySQLStore, conn, executor: ThreadPoolExecutor, options: TxnOptions):
        self.store = store
        self.conn = conn
        self.executor = executor
        self.deadline = Deadline(options.deadline)
        self.ended = False

    def _check_open(self) -> None:
        if self.ended:
            raise TxnEndedError("transaction has already ended")

    async def _call(self, func: Callable[[], Any]) -> Any:
        # the connection is only ever touched from this handle's single worker thread
        self._check_open()
        return await asyncio.get_running_loop().run_in_executor(self.executor, func)

    def _execute(self, sql: str, params: Iterable, fetch: bool = False) -> Any:
        cursor = self.conn.cursor(dictionary=True)
        try:
            cursor.execute(sql, tuple(params))
            if fetch:
                return cursor.fetchall()
            return cursor.rowcount
        finally:
            cursor.close()

    def _check_schema(self, schema: Schema) -> None:
        if schema.name not in self.store.schemas:
            raise ValueError(f"schema {schema.name} is not registered with this store")

    async def read(self, record_type, key):
        self._check_open()
        schema = record_type.SCHEMA
        self._check_schema(schema)
        if self.deadline.is_over():
            return ReadResult(timed_out())

        try:
            rows = await self._call(lambda: self._execute(select_sql(schema), key.key(), fetch=True))
        except mysql.connector.Error as e:
            return ReadResult(status_for_error(e))

        if not rows:
            return ReadResult(not_found())
        return ReadResult(STATUS_OK, record_type.from_row(rows[0]))

    async def write(self, record, erase=False):
        self._check_open()
        schema = record.SCHEMA
        self._check_schema(schema)
        if self.deadline.is_over():
            return WriteResult(timed_out())

        if erase:
            sql, params = delete_sql(schema), record.key()
        else:
            sql, params = replace_sql(schema), tuple(record.to_row().values())

        try:
            await self._call(lambda: self._execute(sql, params))
        except mysql.connector.Error as e:
            return WriteResult(status_for_error(e))
        return WriteResult(STATUS_OK)

    async def partial_update(self, record, fields):
        self._check_open()
        fields = list(fields)
        schema = record.SCHEMA
        self._check_schema(schema)
        schema.check_update_fields(fields)
        if self.deadline.is_over():
            return PartialUpdateResult(timed_out())

        params = [getattr(record, name) for name in fields] + list(record.key())
        try:
            matched = await self._call(lambda: self._execute(update_sql(schema, fields), params))
        except mysql.connector.Error as e:
            return PartialUpdateResult(status_for_error(e))

        if matched == 0:
            return PartialUpdateResult(not_found())
        return PartialUpdateResult(STATUS_OK)

    async def query(self, query):
        self._check_open()
        self._check_schema(query.schema)
        if self.deadline.is_over():
            return QueryResult(timed_out())

        sql, params = range_query_sql(query)
        try:
            rows = await self._call(lambda: self._execute(sql, params, fetch=True))
        except mysql.connector.Error as e:
            return QueryResult(status_for_error(e))
        return QueryResult(STATUS_OK, [query.record_type.from_row(row) for row in rows])

    async def end(self, commit):
        self._check_open()

        expired = commit and self.deadline.is_over()
        commit = commit and not expired

        def finish() -> Status:
            try:
                if commit:
                    self.conn.commit()
                else:
                    self.conn.rollback()
                return STATUS_OK
            except mysql.connector.Error as e:
                self.conn.rollback()
                return status_for_error(e)
            finally:
                self.conn.close()

        try:
            status = await self._call(finish)
        finally:
            self.ended = True
            self.executor.shutdown(wait=False)

        if expired and status.is_2xx_ok():
            return EndResult(timed_out())
        return EndResult(status)
