from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from skvbench.store.schema import FieldType, Record, Schema, SchemaField

WAREHOUSE_SCHEMA = Schema(
    name="warehouse",
    version=1,
    fields=(
        SchemaField(FieldType.INT32, "w_id"),
        SchemaField(FieldType.STRING, "w_name"),
        SchemaField(FieldType.DECIMAL, "w_ytd"),
    ),
    partition_key_fields=(0,),
)

DISTRICT_SCHEMA = Schema(
    name="district",
    version=1,
    fields=(
        SchemaField(FieldType.INT32, "d_w_id"),
        SchemaField(FieldType.INT16, "d_id"),
        SchemaField(FieldType.STRING, "d_name"),
        SchemaField(FieldType.DECIMAL, "d_ytd"),
        SchemaField(FieldType.INT64, "d_next_o_id"),
    ),
    partition_key_fields=(0,),
    range_key_fields=(1,),
)

CUSTOMER_SCHEMA = Schema(
    name="customer",
    version=1,
    fields=(
        SchemaField(FieldType.INT32, "c_w_id"),
        SchemaField(FieldType.INT16, "c_d_id"),
        SchemaField(FieldType.INT32, "c_id"),
        SchemaField(FieldType.DECIMAL, "c_balance"),
        SchemaField(FieldType.DECIMAL, "c_ytd_payment"),
        SchemaField(FieldType.INT16, "c_payment_cnt"),
    ),
    partition_key_fields=(0,),
    range_key_fields=(1, 2),
)

HISTORY_SCHEMA = Schema(
    name="history",
    version=1,
    fields=(
        SchemaField(FieldType.INT32, "h_w_id"),
        SchemaField(FieldType.INT16, "h_d_id"),
        SchemaField(FieldType.INT64, "h_id"),
        SchemaField(FieldType.INT32, "h_c_id"),
        SchemaField(FieldType.DECIMAL, "h_amount"),
        SchemaField(FieldType.TIMESTAMP, "h_date"),
    ),
    partition_key_fields=(0,),
    range_key_fields=(1, 2),
)

ORDER_SCHEMA = Schema(
    name="oorder",
    version=1,
    fields=(
        SchemaField(FieldType.INT32, "o_w_id"),
        SchemaField(FieldType.INT16, "o_d_id"),
        SchemaField(FieldType.INT64, "o_id"),
        SchemaField(FieldType.INT32, "o_c_id"),
        SchemaField(FieldType.INT16, "o_carrier_id"),
        SchemaField(FieldType.INT16, "o_ol_cnt"),
        SchemaField(FieldType.TIMESTAMP, "o_entry_d"),
    ),
    partition_key_fields=(0,),
    range_key_fields=(1, 2),
)

NEW_ORDER_SCHEMA = Schema(
    name="new_order",
    version=1,
    fields=(
        SchemaField(FieldType.INT32, "no_w_id"),
        SchemaField(FieldType.INT16, "no_d_id"),
        SchemaField(FieldType.INT64, "no_o_id"),
    ),
    partition_key_fields=(0,),
    range_key_fields=(1, 2),
)

ORDER_LINE_SCHEMA = Schema(
    name="order_line",
    version=1,
    fields=(
        SchemaField(FieldType.INT32, "ol_w_id"),
        SchemaField(FieldType.INT16, "ol_d_id"),
        SchemaField(FieldType.INT64, "ol_o_id"),
        SchemaField(FieldType.INT16, "ol_number"),
        SchemaField(FieldType.INT32, "ol_i_id"),
        SchemaField(FieldType.TIMESTAMP, "ol_delivery_d"),
        SchemaField(FieldType.DECIMAL, "ol_amount"),
    ),
    partition_key_fields=(0,),
    range_key_fields=(1, 2, 3),
)

TPCC_SCHEMAS = (
    WAREHOUSE_SCHEMA,
    DISTRICT_SCHEMA,
    CUSTOMER_SCHEMA,
    HISTORY_SCHEMA,
    ORDER_SCHEMA,
    NEW_ORDER_SCHEMA,
    ORDER_LINE_SCHEMA,
)


@dataclass
class Warehouse(Record):
    SCHEMA = WAREHOUSE_SCHEMA

    w_id: Optional[int] = None
    w_name: Optional[str] = None
    w_ytd: Optional[Decimal] = None


@dataclass
class District(Record):
    SCHEMA = DISTRICT_SCHEMA

    d_w_id: Optional[int] = None
    d_id: Optional[int] = None
    d_name: Optional[str] = None
    d_ytd: Optional[Decimal] = None
    d_next_o_id: Optional[int] = None


@dataclass
class Customer(Record):
    SCHEMA = CUSTOMER_SCHEMA

    c_w_id: Optional[int] = None
    c_d_id: Optional[int] = None
    c_id: Optional[int] = None
    c_balance: Optional[Decimal] = None
    c_ytd_payment: Optional[Decimal] = None
    c_payment_cnt: Optional[int] = None


@dataclass
class History(Record):
    SCHEMA = HISTORY_SCHEMA

    h_w_id: Optional[int] = None
    h_d_id: Optional[int] = None
    h_id: Optional[int] = None
    h_c_id: Optional[int] = None
    h_amount: Optional[Decimal] = None
    h_date: Optional[datetime] = None


@dataclass
class Order(Record):
    SCHEMA = ORDER_SCHEMA

    o_w_id: Optional[int] = None
    o_d_id: Optional[int] = None
    o_id: Optional[int] = None
    o_c_id: Optional[int] = None
    # None until the order is delivered
    o_carrier_id: Optional[int] = None
    o_ol_cnt: Optional[int] = None
    o_entry_d: Optional[datetime] = None


@dataclass
class NewOrder(Record):
    SCHEMA = NEW_ORDER_SCHEMA

    no_w_id: Optional[int] = None
    no_d_id: Optional[int] = None
    no_o_id: Optional[int] = None


@dataclass
class OrderLine(Record):
    SCHEMA = ORDER_LINE_SCHEMA

    ol_w_id: Optional[int] = None
    ol_d_id: Optional[int] = None
    ol_o_id: Optional[int] = None
    ol_number: Optional[int] = None
    ol_i_id: Optional[int] = None
    ol_delivery_d: Optional[datetime] = None
    ol_amount: Optional[Decimal] = None
