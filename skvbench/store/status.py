from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

OK = 200
CREATED = 201
NOT_FOUND = 404
TIMEOUT = 408
CONFLICT = 409
INTERNAL_ERROR = 500


@dataclass(frozen=True)
class Status:
    code: int
    message: str = ""

    def is_2xx_ok(self) -> bool:
        return 200 <= self.code < 300

    def is_not_found(self) -> bool:
        return self.code == NOT_FOUND

    def __str__(self) -> str:
        if self.message:
            return f"{self.code} {self.message}"
        return str(self.code)


STATUS_OK = Status(OK, "OK")
STATUS_CREATED = Status(CREATED, "Created")


def not_found(message: str = "key not found") -> Status:
    return Status(NOT_FOUND, message)


def timed_out(message: str = "transaction deadline exceeded") -> Status:
    return Status(TIMEOUT, message)


def conflict(message: str = "serialization conflict") -> Status:
    return Status(CONFLICT, message)


def internal_error(message: str) -> Status:
    return Status(INTERNAL_ERROR, message)


@dataclass
class ReadResult:
    status: Status
    value: Optional[Any] = None


@dataclass
class WriteResult:
    status: Status


@dataclass
class PartialUpdateResult:
    status: Status


@dataclass
class QueryResult:
    status: Status
    records: list = field(default_factory=list)


@dataclass
class EndResult:
    status: Status
