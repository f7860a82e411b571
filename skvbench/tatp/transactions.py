from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Union

from skvbench.store import StoreClient, TxnHandle, TxnOptions
from skvbench.store.query import FieldRef, Literal, Operation, Query, all_of, compare
from skvbench.utils.logger import get_logger

from .constants import START_TIME_SLOTS, TXN_DEADLINE_SECONDS
from .random_utils import RandomContext
from .schema import AccessInfo, CallForwarding, SpecialFacility, Subscriber

logger = get_logger("TATPTxn")


@dataclass(frozen=True)
class GetSubscriberData:
    NAME = "get_subscriber_data"

    sub_id: int

    @classmethod
    def sample(cls, random: RandomContext, max_s_id: int) -> GetSubscriberData:
        return cls(sub_id=random.uniform_random(1, max_s_id))


@dataclass(frozen=True)
class GetNewDestination:
    NAME = "get_new_destination"

    sub_id: int
    sf_type: int
    start_time: int
    end_time: int

    @classmethod
    def sample(cls, random: RandomContext, max_s_id: int) -> GetNewDestination:
        return cls(
            sub_id=random.uniform_random(1, max_s_id),
            sf_type=random.uniform_random(1, 4),
            start_time=START_TIME_SLOTS[random.uniform_random(0, 2)],
            end_time=random.uniform_random(1, 24),
        )


@dataclass(frozen=True)
class GetAccessData:
    NAME = "get_access_data"

    sub_id: int
    acc_type: int

    @classmethod
    def sample(cls, random: RandomContext, max_s_id: int) -> GetAccessData:
        return cls(
            sub_id=random.uniform_random(1, max_s_id),
            acc_type=random.uniform_random(1, 4),
        )


@dataclass(frozen=True)
class UpdateSubscriberData:
    NAME = "update_subscriber_data"

    sub_id: int
    sf_type: int
    bit_1: int
    data_a: int

    @classmethod
    def sample(cls, random: RandomContext, max_s_id: int) -> UpdateSubscriberData:
        return cls(
            sub_id=random.uniform_random(1, max_s_id),
            sf_type=random.uniform_random(1, 4),
            bit_1=random.uniform_random(0, 1),
            data_a=random.uniform_random(0, 255),
        )


TATPTxn = Union[GetSubscriberData, GetNewDestination, GetAccessData, UpdateSubscriberData]

TRANSACTION_TYPES = {
    txn_type.NAME: txn_type
    for txn_type in (GetSubscriberData, GetNewDestination, GetAccessData, UpdateSubscriberData)
}


def sample_txn(name: str, random: RandomContext, max_s_id: int) -> TATPTxn:
    try:
        txn_type = TRANSACTION_TYPES[name]
    except KeyError:
        raise ValueError(f"unknown transaction type: {name}") from None
    return txn_type.sample(random, max_s_id)


async def _in_txn(client: StoreClient, body: Callable[[TxnHandle], Awaitable[bool]]) -> bool:
    """
    runs ``body`` in a fresh transaction, then commits. the transaction fails if the body
    reports failure or the commit does not go through.
    """
    txn = await client.begin_txn(TxnOptions(deadline=TXN_DEADLINE_SECONDS))
    try:
        success = await body(txn)
    finally:
        end_result = await txn.end(True)

    if not end_result.status.is_2xx_ok():
        logger.warning(f"TATP txn failed to commit: {end_result.status}")
        return False
    return success


def _both_succeeded(results: list, description: str) -> bool:
    success = True
    for result in results:
        if isinstance(result, Exception):
            logger.warning(f"{description} branch raised", exc_info=result)
            success = False
        elif isinstance(result, BaseException):
            raise result
        elif not result:
            success = False
    return success


async def get_subscriber_data(client: StoreClient, params: GetSubscriberData) -> bool:
    async def body(txn: TxnHandle) -> bool:
        result = await txn.read(Subscriber, Subscriber(s_id=params.sub_id))
        if not result.status.is_2xx_ok():
            logger.warning(f"TATP Get subscriber Txn failed: {params.sub_id}, {result.status}")
        return result.status.is_2xx_ok()

    return await _in_txn(client, body)


async def _read_special_facility(txn: TxnHandle, sub_id: int, sf_type: int) -> bool:
    result = await txn.read(SpecialFacility, SpecialFacility(s_id=sub_id, sf_type=sf_type))
    if result.status.is_not_found():
        return False
    if not result.status.is_2xx_ok():
        logger.warning(f"TATP Get special facility Txn failed: {sub_id}, {sf_type}, {result.status}")
    return result.status.is_2xx_ok()


def call_forwarding_query(sub_id: int, sf_type: int, start_time: int, end_time: int) -> Query:
    """forwardings of one special facility active at ``start_time`` and still active after ``end_time``."""
    return Query(
        CallForwarding,
        start_key=(sub_id, sf_type),
        end_key=(sub_id, sf_type),
        reverse=False,
        limit=-1,
        filter=all_of(
            compare(Operation.LTE, FieldRef("start_time"), Literal(start_time)),
            compare(Operation.GT, FieldRef("end_time"), Literal(end_time)),
        ),
    )


async def _query_call_forwarding(txn: TxnHandle, params: GetNewDestination) -> bool:
    query = call_forwarding_query(params.sub_id, params.sf_type, params.start_time, params.end_time)
    result = await txn.query(query)
    if not result.status.is_2xx_ok():
        logger.error(f"Query response Error, status: {result.status}")
        return False

    for record in result.records:
        logger.debug(f"Numberx: {record.numberx}")
    return len(result.records) > 0


async def get_new_destination(client: StoreClient, params: GetNewDestination) -> bool:
    async def body(txn: TxnHandle) -> bool:
        results = await asyncio.gather(
            _read_special_facility(txn, params.sub_id, params.sf_type),
            _query_call_forwarding(txn, params),
            return_exceptions=True,
        )
        return _both_succeeded(results, "GetNewDestination")

    return await _in_txn(client, body)


async def get_access_data(client: StoreClient, params: GetAccessData) -> bool:
    async def body(txn: TxnHandle) -> bool:
        result = await txn.read(AccessInfo, AccessInfo(s_id=params.sub_id, ai_type=params.acc_type))
        if result.status.is_not_found():
            return True
        if not result.status.is_2xx_ok():
            logger.warning(f"TATP Get Access Data Txn failed: {params.sub_id}, {result.status}")
            return False

        value = result.value
        logger.debug(f"TATP access data : {value.data1}, {value.data2} {value.data3} {value.data4}")
        return True

    return await _in_txn(client, body)


async def _update_special_facility(txn: TxnHandle, params: UpdateSubscriberData) -> bool:
    facility = SpecialFacility(s_id=params.sub_id, sf_type=params.sf_type, data_a=params.data_a)
    result = await txn.partial_update(facility, ["data_a"])
    if result.status.is_not_found():
        return True
    if not result.status.is_2xx_ok():
        logger.warning(f"TATP Update special facility Txn failed: {params.sub_id}, {params.sf_type}, {result.status}")
    return result.status.is_2xx_ok()


def set_bit_1(bits: int, bit_1: int) -> int:
    return (bits & ~1) | (bit_1 & 1)


async def _update_subscriber(txn: TxnHandle, params: UpdateSubscriberData) -> bool:
    result = await txn.read(Subscriber, Subscriber(s_id=params.sub_id))
    if not result.status.is_2xx_ok():
        logger.warning(f"TATP Get subscriber Txn failed: {params.sub_id}, {result.status}")
        return False

    subscriber = result.value
    subscriber.bits = set_bit_1(subscriber.bits or 0, params.bit_1)
    write_result = await txn.partial_update(subscriber, ["bits"])
    return write_result.status.is_2xx_ok()


async def update_subscriber_data(client: StoreClient, params: UpdateSubscriberData) -> bool:
    async def body(txn: TxnHandle) -> bool:
        results = await asyncio.gather(
            _update_subscriber(txn, params),
            _update_special_facility(txn, params),
            return_exceptions=True,
        )
        return _both_succeeded(results, "UpdateSubscriberData")

    return await _in_txn(client, body)


_ATTEMPTS = {
    GetSubscriberData: get_subscriber_data,
    GetNewDestination: get_new_destination,
    GetAccessData: get_access_data,
    UpdateSubscriberData: update_subscriber_data,
}


async def attempt(client: StoreClient, txn: TATPTxn) -> bool:
    """runs the business logic of one transaction once. store errors may propagate."""
    return await _ATTEMPTS[type(txn)](client, txn)


async def run(client: StoreClient, txn: TATPTxn) -> bool:
    """like ``attempt`` but never raises: any error is logged and reported as failure."""
    try:
        return await attempt(client, txn)
    except Exception:
        logger.warning(f"Txn failed: {txn}", exc_info=True)
        return False
