from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Iterable


class FieldType(Enum):
    INT16 = "int16"
    INT32 = "int32"
    INT64 = "int64"
    STRING = "string"
    DECIMAL = "decimal"
    TIMESTAMP = "timestamp"


@dataclass(frozen=True)
class SchemaField:
    type: FieldType
    name: str


@dataclass(frozen=True)
class Schema:
    """
    describes one collection of records: its fields and which of them form the key.

    the key is the partition key fields followed by the range key fields, both given
    as indices into ``fields``.
    """

    name: str
    version: int
    fields: tuple[SchemaField, ...]
    partition_key_fields: tuple[int, ...]
    range_key_fields: tuple[int, ...] = ()

    @property
    def field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.fields)

    @property
    def key_field_names(self) -> tuple[str, ...]:
        return tuple(self.fields[i].name for i in self.partition_key_fields + self.range_key_fields)

    def field(self, name: str) -> SchemaField:
        for f in self.fields:
            if f.name == name:
                return f
        raise ValueError(f"schema {self.name} has no field {name!r}")

    def key_of(self, row: dict[str, Any]) -> tuple:
        return tuple(row[name] for name in self.key_field_names)

    def check_update_fields(self, names: Iterable[str]) -> None:
        key_names = set(self.key_field_names)
        for name in names:
            self.field(name)
            if name in key_names:
                raise ValueError(f"key field {name!r} of {self.name} cannot be partially updated")


class Record:
    """
    base for row dataclasses. subclasses declare one dataclass field per schema field.
    """

    SCHEMA: ClassVar[Schema]

    def key(self) -> tuple:
        return self.SCHEMA.key_of(self.to_row())

    def to_row(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.SCHEMA.field_names}

    @classmethod
    def from_row(cls, row: dict[str, Any]):
        return cls(**{name: row.get(name) for name in cls.SCHEMA.field_names})
