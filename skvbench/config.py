from __future__ import annotations

import os
from dataclasses import dataclass

from skvbench.tatp.constants import (
    DEFAULT_CONCURRENCY,
    DEFAULT_NUM_SUBSCRIBERS,
    DEFAULT_QUERY_COUNT,
    DEFAULT_RETRIES,
)

STORE_BACKENDS = ("memory", "mysql")


@dataclass(frozen=True)
class HarnessConfig:
    store: str = "memory"

    db_host: str = "127.0.0.1"
    db_port: int = 3306
    db_user: str = "admin"
    db_pass: str = "password"
    db_name: str = "benchbase"

    num_subscribers: int = DEFAULT_NUM_SUBSCRIBERS
    query_count: int = DEFAULT_QUERY_COUNT
    concurrency: int = DEFAULT_CONCURRENCY
    retries: int = DEFAULT_RETRIES

    def __post_init__(self) -> None:
        if self.store not in STORE_BACKENDS:
            raise ValueError(f"unknown store backend {self.store!r}, expected one of {STORE_BACKENDS}")
        if self.num_subscribers < 1:
            raise ValueError("num_subscribers must be positive")
        if self.concurrency < 1:
            raise ValueError("concurrency must be positive")
        if self.retries < 1:
            raise ValueError("retries must be at least 1")

    @classmethod
    def from_env(cls, environ=None) -> HarnessConfig:
        if environ is None:
            environ = os.environ
        return cls(
            store=environ.get("TATP_STORE", "memory"),
            db_host=environ.get("DB_HOST", "127.0.0.1"),
            db_port=int(environ.get("DB_PORT", "3306")),
            db_user=environ.get("DB_USER", "admin"),
            db_pass=environ.get("DB_PASS", "password"),
            db_name=environ.get("DB_NAME", "benchbase"),
            num_subscribers=int(environ.get("TATP_NUM_SUBSCRIBERS", DEFAULT_NUM_SUBSCRIBERS)),
            query_count=int(environ.get("TATP_QUERY_COUNT", DEFAULT_QUERY_COUNT)),
            concurrency=int(environ.get("TATP_CONCURRENCY", DEFAULT_CONCURRENCY)),
            retries=int(environ.get("TATP_RETRIES", DEFAULT_RETRIES)),
        )
