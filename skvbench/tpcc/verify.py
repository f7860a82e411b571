from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Type

from skvbench.store import Query, Record, StoreClient, TxnHandle, TxnOptions
from skvbench.tatp.random_utils import RandomContext
from skvbench.utils.logger import get_logger

from .constants import DISTRICTS_PER_WAREHOUSE, MAX_PAYMENT_CENTS, MIN_PAYMENT_CENTS
from .schema import Customer, District, History, NewOrder, Order, OrderLine, Warehouse

logger = get_logger("TPCCVerify")

VERIFY_DEADLINE_SECONDS = 60.0


class VerifyReadError(RuntimeError):
    """a read or scan needed by a check did not succeed."""


class ConsistencyError(AssertionError):
    def __init__(self, condition: int, message: str) -> None:
        super().__init__(f"consistency condition {condition} violated: {message}")
        self.condition = condition


class AtomicityError(AssertionError):
    pass


async def read_row(txn: TxnHandle, record_type: Type[Record], key: Record) -> Record:
    result = await txn.read(record_type, key)
    if not result.status.is_2xx_ok():
        raise VerifyReadError(f"failed to read {record_type.SCHEMA.name}{key.key()}: {result.status}")
    return result.value


async def scan_rows(
    txn: TxnHandle,
    record_type: Type[Record],
    prefix: tuple,
    reverse: bool = False,
    limit: int = -1,
) -> list:
    result = await txn.query(Query(record_type, start_key=prefix, end_key=prefix, reverse=reverse, limit=limit))
    if not result.status.is_2xx_ok():
        raise VerifyReadError(f"failed to scan {record_type.SCHEMA.name}{prefix}: {result.status}")
    return result.records


def _is_zero_carrier(order: Order) -> bool:
    return not order.o_carrier_id


class ConsistencyVerify:
    """
    checks the nine TPC-C consistency conditions, in order, stopping at the first one
    that does not hold. monetary values are compared exactly as decimals.
    """

    def __init__(
        self,
        client: StoreClient,
        num_warehouses: int,
        districts_per_warehouse: int = DISTRICTS_PER_WAREHOUSE,
    ) -> None:
        self.client = client
        self.num_warehouses = num_warehouses
        self.districts_per_warehouse = districts_per_warehouse

    async def run(self) -> None:
        steps = [
            (1, "warehouse ytd", self.run_for_each_warehouse, self.verify_warehouse_ytd),
            (2, "order ID", self.run_for_each_warehouse_district, self.verify_order_ids),
            (3, "neworder ID", self.run_for_each_warehouse_district, self.verify_new_order_ids),
            (4, "order lines count", self.run_for_each_warehouse_district, self.verify_order_line_count),
            (5, "carrier ID", self.run_for_each_warehouse_district, self.verify_carrier_id),
            (6, "order line by order", self.run_for_each_warehouse_district, self.verify_order_line_by_order),
            (7, "order line delivery", self.run_for_each_warehouse_district, self.verify_order_line_delivery),
            (8, "warehouse ytd and history sum", self.run_for_each_warehouse, self.verify_warehouse_history_sum),
            (9, "district ytd and history sum", self.run_for_each_warehouse_district, self.verify_district_history_sum),
        ]
        for number, description, for_each, check in steps:
            logger.info(f"Starting consistency verification {number}: {description}")
            await for_each(check)
            logger.info(f"{check.__name__} consistency success")

    async def _in_txn(self, check: Callable[..., Awaitable[None]], *args) -> None:
        txn = await self.client.begin_txn(TxnOptions(deadline=VERIFY_DEADLINE_SECONDS))
        try:
            await check(txn, *args)
        finally:
            await txn.end(True)

    async def run_for_each_warehouse(self, check: Callable[..., Awaitable[None]]) -> None:
        for w_id in range(1, self.num_warehouses + 1):
            await self._in_txn(check, w_id)

    async def run_for_each_warehouse_district(self, check: Callable[..., Awaitable[None]]) -> None:
        for w_id in range(1, self.num_warehouses + 1):
            for d_id in range(1, self.districts_per_warehouse + 1):
                await self._in_txn(check, w_id, d_id)

    # Consistency condition 1: sum of district YTD == warehouse YTD
    async def verify_warehouse_ytd(self, txn: TxnHandle, w_id: int) -> None:
        warehouse = await read_row(txn, Warehouse, Warehouse(w_id=w_id))
        districts = await scan_rows(txn, District, (w_id,))
        district_sum = sum((d.d_ytd for d in districts), Decimal(0))
        if district_sum != warehouse.w_ytd:
            raise ConsistencyError(1, f"w_id={w_id}: w_ytd={warehouse.w_ytd}, sum(d_ytd)={district_sum}")

    async def _max_id(self, txn: TxnHandle, record_type: Type[Record], prefix: tuple, field: str) -> Optional[int]:
        rows = await scan_rows(txn, record_type, prefix, reverse=True, limit=1)
        return getattr(rows[0], field) if rows else None

    # Consistency condition 2: district next order ID - 1 == max order ID == max new order ID
    async def verify_order_ids(self, txn: TxnHandle, w_id: int, d_id: int) -> None:
        district = await read_row(txn, District, District(d_w_id=w_id, d_id=d_id))
        expected = district.d_next_o_id - 1

        max_o_id = await self._max_id(txn, Order, (w_id, d_id), "o_id")
        if (max_o_id or 0) != expected:
            raise ConsistencyError(2, f"w_id={w_id} d_id={d_id}: d_next_o_id-1={expected}, max(o_id)={max_o_id}")

        # with every order delivered there is no new order id to compare
        max_no_o_id = await self._max_id(txn, NewOrder, (w_id, d_id), "no_o_id")
        if max_no_o_id is not None and max_no_o_id != expected:
            raise ConsistencyError(
                2, f"w_id={w_id} d_id={d_id}: d_next_o_id-1={expected}, max(no_o_id)={max_no_o_id}"
            )

    # Consistency condition 3: max(new order ID) - min(new order ID) + 1 == number of new order rows
    async def verify_new_order_ids(self, txn: TxnHandle, w_id: int, d_id: int) -> None:
        new_orders = await scan_rows(txn, NewOrder, (w_id, d_id))
        if not new_orders:
            return
        ids = [row.no_o_id for row in new_orders]
        span = max(ids) - min(ids) + 1
        if span != len(new_orders):
            raise ConsistencyError(
                3, f"w_id={w_id} d_id={d_id}: new order id span {span} != {len(new_orders)} rows"
            )

    # Consistency condition 4: sum of order lines from order table == number of rows in order line table
    async def verify_order_line_count(self, txn: TxnHandle, w_id: int, d_id: int) -> None:
        orders = await scan_rows(txn, Order, (w_id, d_id))
        order_lines = await scan_rows(txn, OrderLine, (w_id, d_id))
        expected = sum(order.o_ol_cnt for order in orders)
        if expected != len(order_lines):
            raise ConsistencyError(
                4, f"w_id={w_id} d_id={d_id}: sum(o_ol_cnt)={expected}, order line rows={len(order_lines)}"
            )

    # Consistency condition 5: order carrier id is 0 iff there is a matching new order row
    async def verify_carrier_id(self, txn: TxnHandle, w_id: int, d_id: int) -> None:
        orders = await scan_rows(txn, Order, (w_id, d_id))
        new_order_ids = {row.no_o_id for row in await scan_rows(txn, NewOrder, (w_id, d_id))}
        for order in orders:
            if _is_zero_carrier(order) != (order.o_id in new_order_ids):
                raise ConsistencyError(
                    5,
                    f"w_id={w_id} d_id={d_id} o_id={order.o_id}: carrier={order.o_carrier_id}, "
                    f"new order row present={order.o_id in new_order_ids}",
                )

    async def count_order_line_rows(self, txn: TxnHandle, w_id: int, d_id: int) -> Counter:
        order_lines = await scan_rows(txn, OrderLine, (w_id, d_id))
        return Counter(line.ol_o_id for line in order_lines)

    # Consistency condition 6: for each order, order line count == number of rows in order line table
    async def verify_order_line_by_order(self, txn: TxnHandle, w_id: int, d_id: int) -> None:
        orders = await scan_rows(txn, Order, (w_id, d_id))
        line_counts = await self.count_order_line_rows(txn, w_id, d_id)
        for order in orders:
            if order.o_ol_cnt != line_counts[order.o_id]:
                raise ConsistencyError(
                    6,
                    f"w_id={w_id} d_id={d_id} o_id={order.o_id}: o_ol_cnt={order.o_ol_cnt}, "
                    f"order line rows={line_counts[order.o_id]}",
                )

    # Consistency condition 7: order line delivery date is unset iff the order carrier is 0
    async def verify_order_line_delivery(self, txn: TxnHandle, w_id: int, d_id: int) -> None:
        orders = {order.o_id: order for order in await scan_rows(txn, Order, (w_id, d_id))}
        for line in await scan_rows(txn, OrderLine, (w_id, d_id)):
            order = orders.get(line.ol_o_id)
            if order is None:
                raise ConsistencyError(7, f"w_id={w_id} d_id={d_id}: order line for missing order {line.ol_o_id}")
            if (line.ol_delivery_d is None) != _is_zero_carrier(order):
                raise ConsistencyError(
                    7,
                    f"w_id={w_id} d_id={d_id} o_id={order.o_id} ol_number={line.ol_number}: "
                    f"delivery={line.ol_delivery_d}, carrier={order.o_carrier_id}",
                )

    async def history_sum(self, txn: TxnHandle, prefix: tuple) -> Decimal:
        rows = await scan_rows(txn, History, prefix)
        return sum((row.h_amount for row in rows), Decimal(0))

    # Consistency condition 8: warehouse YTD == sum of history amount
    async def verify_warehouse_history_sum(self, txn: TxnHandle, w_id: int) -> None:
        warehouse = await read_row(txn, Warehouse, Warehouse(w_id=w_id))
        total = await self.history_sum(txn, (w_id,))
        if total != warehouse.w_ytd:
            raise ConsistencyError(8, f"w_id={w_id}: w_ytd={warehouse.w_ytd}, sum(h_amount)={total}")

    # Consistency condition 9: district YTD == sum of history amount
    async def verify_district_history_sum(self, txn: TxnHandle, w_id: int, d_id: int) -> None:
        district = await read_row(txn, District, District(d_w_id=w_id, d_id=d_id))
        total = await self.history_sum(txn, (w_id, d_id))
        if total != district.d_ytd:
            raise ConsistencyError(9, f"w_id={w_id} d_id={d_id}: d_ytd={district.d_ytd}, sum(h_amount)={total}")


@dataclass(frozen=True)
class PaymentValues:
    w_ytd: Decimal
    d_ytd: Decimal
    c_ytd: Decimal
    c_balance: Decimal
    c_payments: int


class AtomicVerify:
    """
    checks that an aborted payment leaves no trace: the warehouse, district and customer
    values a payment touches must read the same before and after.
    """

    def __init__(self, client: StoreClient, random: RandomContext, w_id: int, d_id: int, c_id: int) -> None:
        self.client = client
        self.random = random
        self.w_id = w_id
        self.d_id = d_id
        self.c_id = c_id

    async def run(self) -> None:
        before = await self._snapshot()
        await self._aborted_payment()
        after = await self._snapshot()
        self.compare_abort_values(before, after)

    @staticmethod
    def compare_abort_values(before: PaymentValues, after: PaymentValues) -> None:
        if before.w_ytd != after.w_ytd:
            raise AtomicityError("Warehouse YTD did not abort!")
        if before.d_ytd != after.d_ytd:
            raise AtomicityError("District YTD did not abort!")
        if before.c_ytd != after.c_ytd:
            raise AtomicityError("Customer YTD did not abort!")
        if before.c_balance != after.c_balance:
            raise AtomicityError("Customer Balance did not abort!")
        if before.c_payments != after.c_payments:
            raise AtomicityError("Customer Payment Count did not abort!")

    async def _read_all(self, txn: TxnHandle) -> tuple[Warehouse, District, Customer]:
        warehouse = await read_row(txn, Warehouse, Warehouse(w_id=self.w_id))
        district = await read_row(txn, District, District(d_w_id=self.w_id, d_id=self.d_id))
        customer = await read_row(txn, Customer, Customer(c_w_id=self.w_id, c_d_id=self.d_id, c_id=self.c_id))
        return warehouse, district, customer

    async def _snapshot(self) -> PaymentValues:
        txn = await self.client.begin_txn(TxnOptions(deadline=VERIFY_DEADLINE_SECONDS))
        try:
            warehouse, district, customer = await self._read_all(txn)
        finally:
            await txn.end(True)
        return PaymentValues(
            w_ytd=warehouse.w_ytd,
            d_ytd=district.d_ytd,
            c_ytd=customer.c_ytd_payment,
            c_balance=customer.c_balance,
            c_payments=customer.c_payment_cnt,
        )

    async def _aborted_payment(self) -> None:
        amount = Decimal(self.random.uniform_random(MIN_PAYMENT_CENTS, MAX_PAYMENT_CENTS)) / Decimal(100)
        txn = await self.client.begin_txn(TxnOptions(deadline=VERIFY_DEADLINE_SECONDS))
        try:
            warehouse, district, customer = await self._read_all(txn)

            warehouse.w_ytd += amount
            district.d_ytd += amount
            customer.c_balance -= amount
            customer.c_ytd_payment += amount
            customer.c_payment_cnt += 1

            await txn.partial_update(warehouse, ["w_ytd"])
            await txn.partial_update(district, ["d_ytd"])
            await txn.partial_update(customer, ["c_balance", "c_ytd_payment", "c_payment_cnt"])
        finally:
            await txn.end(False)
        logger.debug(f"aborted payment of {amount} for w_id={self.w_id} d_id={self.d_id} c_id={self.c_id}")
