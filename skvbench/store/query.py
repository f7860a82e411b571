from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Type, Union

from .schema import Record, Schema


class Operation(Enum):
    EQ = "="
    LT = "<"
    LTE = "<="
    GT = ">"
    GTE = ">="
    AND = "AND"
    OR = "OR"


COMPARISONS = {
    Operation.EQ: lambda a, b: a == b,
    Operation.LT: lambda a, b: a < b,
    Operation.LTE: lambda a, b: a <= b,
    Operation.GT: lambda a, b: a > b,
    Operation.GTE: lambda a, b: a >= b,
}


@dataclass(frozen=True)
class FieldRef:
    name: str


@dataclass(frozen=True)
class Literal:
    value: Any


Value = Union[FieldRef, Literal]


@dataclass(frozen=True)
class Expression:
    """
    a filter expression node.

    comparison nodes carry exactly two ``values``; AND/OR nodes carry ``children``.
    """

    op: Operation
    values: tuple[Value, ...] = ()
    children: tuple["Expression", ...] = ()


def compare(op: Operation, left: Value, right: Value) -> Expression:
    return Expression(op, (left, right))


def all_of(*children: Expression) -> Expression:
    return Expression(Operation.AND, children=tuple(children))


def any_of(*children: Expression) -> Expression:
    return Expression(Operation.OR, children=tuple(children))


def _resolve(value: Value, row: dict[str, Any]) -> Any:
    if isinstance(value, FieldRef):
        if value.name not in row:
            raise ValueError(f"filter references unknown field {value.name!r}")
        return row[value.name]
    return value.value


def evaluate(expr: Optional[Expression], row: dict[str, Any]) -> bool:
    """
    evaluates ``expr`` against a row. a comparison involving a null operand is false.
    """
    if expr is None:
        return True

    if expr.op is Operation.AND:
        return all(evaluate(child, row) for child in expr.children)
    if expr.op is Operation.OR:
        return any(evaluate(child, row) for child in expr.children)

    if len(expr.values) != 2:
        raise ValueError(f"{expr.op.name} expects two operands, got {len(expr.values)}")

    left = _resolve(expr.values[0], row)
    right = _resolve(expr.values[1], row)
    if left is None or right is None:
        return False
    return COMPARISONS[expr.op](left, right)


@dataclass
class Query:
    """
    a range scan over one schema.

    ``start_key`` and ``end_key`` are (possibly partial) key prefixes and both bounds are
    inclusive. ``limit`` of -1 means unlimited.
    """

    record_type: Type[Record]
    start_key: tuple = ()
    end_key: tuple = ()
    reverse: bool = False
    limit: int = -1
    filter: Optional[Expression] = None

    @property
    def schema(self) -> Schema:
        return self.record_type.SCHEMA

    def in_range(self, key: tuple) -> bool:
        if self.start_key and key[: len(self.start_key)] < self.start_key:
            return False
        if self.end_key and key[: len(self.end_key)] > self.end_key:
            return False
        return True
