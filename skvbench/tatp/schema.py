from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from skvbench.store.schema import FieldType, Record, Schema, SchemaField

from .constants import INACTIVE_FACILITY_PCT, SUB_NBR_LENGTH
from .random_utils import RandomContext, generate_sub_nbr

SUBSCRIBER_SCHEMA = Schema(
    name="subscriber",
    version=1,
    fields=(
        SchemaField(FieldType.INT32, "s_id"),
        SchemaField(FieldType.STRING, "sub_nbr"),
        SchemaField(FieldType.INT16, "bits"),
        SchemaField(FieldType.INT64, "hexes"),
        SchemaField(FieldType.INT32, "msc_location"),
        SchemaField(FieldType.INT32, "vlr_location"),
    ),
    partition_key_fields=(0,),
)

ACCESS_INFO_SCHEMA = Schema(
    name="access_info",
    version=1,
    fields=(
        SchemaField(FieldType.INT32, "s_id"),
        SchemaField(FieldType.INT16, "ai_type"),
        SchemaField(FieldType.INT16, "data1"),
        SchemaField(FieldType.INT16, "data2"),
        SchemaField(FieldType.STRING, "data3"),
        SchemaField(FieldType.STRING, "data4"),
    ),
    partition_key_fields=(0,),
    range_key_fields=(1,),
)

SPECIAL_FACILITY_SCHEMA = Schema(
    name="special_facility",
    version=1,
    fields=(
        SchemaField(FieldType.INT32, "s_id"),
        SchemaField(FieldType.INT16, "sf_type"),
        SchemaField(FieldType.INT16, "is_active"),
        SchemaField(FieldType.INT16, "error_cntrl"),
        SchemaField(FieldType.INT16, "data_a"),
        SchemaField(FieldType.STRING, "data_b"),
    ),
    partition_key_fields=(0,),
    range_key_fields=(1,),
)

CALL_FORWARDING_SCHEMA = Schema(
    name="call_forwarding",
    version=1,
    fields=(
        SchemaField(FieldType.INT32, "s_id"),
        SchemaField(FieldType.INT16, "sf_type"),
        SchemaField(FieldType.INT16, "start_time"),
        SchemaField(FieldType.INT16, "end_time"),
        SchemaField(FieldType.STRING, "numberx"),
    ),
    partition_key_fields=(0,),
    range_key_fields=(1, 2),
)

TATP_SCHEMAS = (
    SUBSCRIBER_SCHEMA,
    ACCESS_INFO_SCHEMA,
    SPECIAL_FACILITY_SCHEMA,
    CALL_FORWARDING_SCHEMA,
)


@dataclass
class Subscriber(Record):
    SCHEMA = SUBSCRIBER_SCHEMA

    s_id: Optional[int] = None
    sub_nbr: Optional[str] = None
    bits: Optional[int] = None
    hexes: Optional[int] = None
    msc_location: Optional[int] = None
    vlr_location: Optional[int] = None

    @classmethod
    def generate(cls, random: RandomContext, s_id: int) -> Subscriber:
        return cls(
            s_id=s_id,
            sub_nbr=generate_sub_nbr(s_id),
            bits=random.uniform_int(16),
            hexes=random.uniform_int(64),
            msc_location=random.uniform_int(32),
            vlr_location=random.uniform_int(32),
        )


@dataclass
class AccessInfo(Record):
    SCHEMA = ACCESS_INFO_SCHEMA

    s_id: Optional[int] = None
    ai_type: Optional[int] = None
    data1: Optional[int] = None
    data2: Optional[int] = None
    data3: Optional[str] = None
    data4: Optional[str] = None

    @classmethod
    def generate(cls, random: RandomContext, s_id: int, ai_type: int) -> AccessInfo:
        return cls(
            s_id=s_id,
            ai_type=ai_type,
            data1=random.uniform_random(0, 255),
            data2=random.uniform_random(0, 255),
            data3=random.random_string(3, 3, "A", "Z"),
            data4=random.random_string(5, 5, "A", "Z"),
        )


@dataclass
class SpecialFacility(Record):
    SCHEMA = SPECIAL_FACILITY_SCHEMA

    s_id: Optional[int] = None
    sf_type: Optional[int] = None
    is_active: Optional[int] = None
    error_cntrl: Optional[int] = None
    data_a: Optional[int] = None
    data_b: Optional[str] = None

    @classmethod
    def generate(cls, random: RandomContext, s_id: int, sf_type: int) -> SpecialFacility:
        pct = random.uniform_random(1, 100)
        return cls(
            s_id=s_id,
            sf_type=sf_type,
            is_active=0 if pct <= INACTIVE_FACILITY_PCT else 1,
            error_cntrl=random.uniform_random(0, 255),
            data_a=random.uniform_random(0, 255),
            data_b=random.random_string(5, 5, "A", "Z"),
        )


@dataclass
class CallForwarding(Record):
    SCHEMA = CALL_FORWARDING_SCHEMA

    s_id: Optional[int] = None
    sf_type: Optional[int] = None
    start_time: Optional[int] = None
    end_time: Optional[int] = None
    numberx: Optional[str] = None

    @classmethod
    def generate(cls, random: RandomContext, s_id: int, sf_type: int, start_time: int) -> CallForwarding:
        return cls(
            s_id=s_id,
            sf_type=sf_type,
            start_time=start_time,
            end_time=start_time + random.uniform_random(1, 8),
            numberx=random.random_string(SUB_NBR_LENGTH, SUB_NBR_LENGTH, "0", "9"),
        )
