from .client import StoreClient, TxnEndedError, TxnHandle, TxnOptions
from .query import Expression, FieldRef, Literal, Operation, Query
from .schema import FieldType, Record, Schema, SchemaField
from .status import (
    EndResult,
    PartialUpdateResult,
    QueryResult,
    ReadResult,
    Status,
    WriteResult,
)

__all__ = [
    "EndResult",
    "Expression",
    "FieldRef",
    "FieldType",
    "Literal",
    "Operation",
    "PartialUpdateResult",
    "Query",
    "QueryResult",
    "ReadResult",
    "Record",
    "Schema",
    "SchemaField",
    "Status",
    "StoreClient",
    "TxnEndedError",
    "TxnHandle",
    "TxnOptions",
    "WriteResult",
]
