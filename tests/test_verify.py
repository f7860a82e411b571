"""
Tests for the TPC-C consistency and atomicity checks.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from skvbench.tatp.random_utils import RandomContext
from skvbench.tpcc.schema import Customer, District, History, NewOrder, Order, OrderLine, Warehouse
from skvbench.tpcc.verify import (
    AtomicityError,
    AtomicVerify,
    ConsistencyError,
    ConsistencyVerify,
    PaymentValues,
    VerifyReadError,
)

from .conftest import put_rows

NOW = datetime(2024, 1, 1, 12, 0, 0)


def order_with_lines(d_id, o_id, carrier, ol_cnt):
    rows = [Order(o_w_id=1, o_d_id=d_id, o_id=o_id, o_c_id=o_id, o_carrier_id=carrier, o_ol_cnt=ol_cnt, o_entry_d=NOW)]
    for number in range(1, ol_cnt + 1):
        rows.append(
            OrderLine(
                ol_w_id=1,
                ol_d_id=d_id,
                ol_o_id=o_id,
                ol_number=number,
                ol_i_id=number,
                ol_delivery_d=NOW if carrier else None,
                ol_amount=Decimal("1.50"),
            )
        )
    if not carrier:
        rows.append(NewOrder(no_w_id=1, no_d_id=d_id, no_o_id=o_id))
    return rows


def ledger(w_ytd="30.00", d_ytds=("10.00", "20.00"), history=(("1", "10.00"), ("2", "20.00"))):
    rows = [Warehouse(w_id=1, w_name="W1", w_ytd=Decimal(w_ytd))]
    rows.append(District(d_w_id=1, d_id=1, d_name="D1", d_ytd=Decimal(d_ytds[0]), d_next_o_id=4))
    rows.append(District(d_w_id=1, d_id=2, d_name="D2", d_ytd=Decimal(d_ytds[1]), d_next_o_id=3))

    rows += order_with_lines(1, 1, 5, 2)
    rows += order_with_lines(1, 2, 3, 1)
    rows += order_with_lines(1, 3, None, 2)
    rows += order_with_lines(2, 1, None, 1)
    rows += order_with_lines(2, 2, None, 3)

    for h_id, (d_id, amount) in enumerate(history, start=1):
        rows.append(History(h_w_id=1, h_d_id=int(d_id), h_id=h_id, h_c_id=1, h_amount=Decimal(amount), h_date=NOW))

    rows.append(
        Customer(
            c_w_id=1,
            c_d_id=1,
            c_id=1,
            c_balance=Decimal("-10.00"),
            c_ytd_payment=Decimal("10.00"),
            c_payment_cnt=1,
        )
    )
    return rows


def verifier(store):
    return ConsistencyVerify(store, num_warehouses=1, districts_per_warehouse=2)


class TestConsistencyVerify:
    @pytest.mark.asyncio
    async def test_consistent_ledger_passes(self, tpcc_store):
        await put_rows(tpcc_store, *ledger())
        await verifier(tpcc_store).run()

    @pytest.mark.asyncio
    async def test_warehouse_ytd_matches_district_sum(self, tpcc_store):
        await put_rows(tpcc_store, *ledger(w_ytd="30.00"))
        v = verifier(tpcc_store)
        await v.run_for_each_warehouse(v.verify_warehouse_ytd)

    @pytest.mark.asyncio
    async def test_warehouse_ytd_mismatch_fails_condition_1(self, tpcc_store):
        await put_rows(tpcc_store, *ledger(w_ytd="31.00"))
        with pytest.raises(ConsistencyError) as exc_info:
            await verifier(tpcc_store).run()
        assert exc_info.value.condition == 1

    @pytest.mark.asyncio
    async def test_next_order_id_mismatch_fails_condition_2(self, tpcc_store):
        rows = ledger()
        rows[1] = District(d_w_id=1, d_id=1, d_name="D1", d_ytd=Decimal("10.00"), d_next_o_id=5)
        await put_rows(tpcc_store, *rows)
        with pytest.raises(ConsistencyError) as exc_info:
            await verifier(tpcc_store).run()
        assert exc_info.value.condition == 2

    @pytest.mark.asyncio
    async def test_new_order_gap_fails_condition_3(self, tpcc_store):
        await put_rows(tpcc_store, *ledger())
        txn = await tpcc_store.begin_txn()
        await txn.write(NewOrder(no_w_id=1, no_d_id=2, no_o_id=1), erase=True)
        await txn.write(NewOrder(no_w_id=1, no_d_id=2, no_o_id=0))
        await txn.end(True)

        v = verifier(tpcc_store)
        with pytest.raises(ConsistencyError) as exc_info:
            await v.run_for_each_warehouse_district(v.verify_new_order_ids)
        assert exc_info.value.condition == 3

    @pytest.mark.asyncio
    async def test_missing_order_line_fails_condition_4(self, tpcc_store):
        await put_rows(tpcc_store, *ledger())
        txn = await tpcc_store.begin_txn()
        await txn.write(OrderLine(ol_w_id=1, ol_d_id=1, ol_o_id=1, ol_number=2), erase=True)
        await txn.end(True)

        with pytest.raises(ConsistencyError) as exc_info:
            await verifier(tpcc_store).run()
        assert exc_info.value.condition == 4

    @pytest.mark.asyncio
    async def test_undelivered_order_without_new_order_fails_condition_5(self, tpcc_store):
        await put_rows(tpcc_store, *ledger())
        txn = await tpcc_store.begin_txn()
        await txn.partial_update(Order(o_w_id=1, o_d_id=1, o_id=2, o_carrier_id=None), ["o_carrier_id"])
        await txn.end(True)

        v = verifier(tpcc_store)
        with pytest.raises(ConsistencyError) as exc_info:
            await v.run_for_each_warehouse_district(v.verify_carrier_id)
        assert exc_info.value.condition == 5

    @pytest.mark.asyncio
    async def test_line_count_per_order_fails_condition_6(self, tpcc_store):
        await put_rows(tpcc_store, *ledger())
        txn = await tpcc_store.begin_txn()
        await txn.write(OrderLine(ol_w_id=1, ol_d_id=2, ol_o_id=2, ol_number=3), erase=True)
        await txn.write(
            OrderLine(ol_w_id=1, ol_d_id=2, ol_o_id=1, ol_number=2, ol_i_id=1, ol_amount=Decimal("1.00"))
        )
        await txn.end(True)

        v = verifier(tpcc_store)
        await v.run_for_each_warehouse_district(v.verify_order_line_count)
        with pytest.raises(ConsistencyError) as exc_info:
            await v.run_for_each_warehouse_district(v.verify_order_line_by_order)
        assert exc_info.value.condition == 6

    @pytest.mark.asyncio
    async def test_delivery_date_fails_condition_7(self, tpcc_store):
        await put_rows(tpcc_store, *ledger())
        txn = await tpcc_store.begin_txn()
        await txn.partial_update(OrderLine(ol_w_id=1, ol_d_id=1, ol_o_id=1, ol_number=1), ["ol_delivery_d"])
        await txn.end(True)

        with pytest.raises(ConsistencyError) as exc_info:
            await verifier(tpcc_store).run()
        assert exc_info.value.condition == 7

    @pytest.mark.asyncio
    async def test_extra_history_fails_condition_8(self, tpcc_store):
        await put_rows(tpcc_store, *ledger(history=(("1", "10.00"), ("2", "20.00"), ("2", "0.01"))))
        with pytest.raises(ConsistencyError) as exc_info:
            await verifier(tpcc_store).run()
        assert exc_info.value.condition == 8

    @pytest.mark.asyncio
    async def test_misattributed_history_fails_condition_9(self, tpcc_store):
        await put_rows(tpcc_store, *ledger(history=(("1", "11.00"), ("2", "19.00"))))
        with pytest.raises(ConsistencyError) as exc_info:
            await verifier(tpcc_store).run()
        assert exc_info.value.condition == 9

    @pytest.mark.asyncio
    async def test_history_split_across_rows(self, tpcc_store):
        await put_rows(tpcc_store, *ledger(history=(("1", "4.00"), ("1", "6.00"), ("2", "20.00"))))
        await verifier(tpcc_store).run()

    @pytest.mark.asyncio
    async def test_missing_warehouse_is_a_read_error(self, tpcc_store):
        with pytest.raises(VerifyReadError):
            await verifier(tpcc_store).run()


class TestAtomicVerify:
    @pytest.mark.asyncio
    async def test_aborted_payment_leaves_no_trace(self, tpcc_store):
        await put_rows(tpcc_store, *ledger())
        await AtomicVerify(tpcc_store, RandomContext(1), w_id=1, d_id=1, c_id=1).run()

        assert tpcc_store.rows(Warehouse)[0].w_ytd == Decimal("30.00")
        assert tpcc_store.rows(Customer)[0].c_payment_cnt == 1

    def test_compare_detects_changes(self):
        before = PaymentValues(Decimal("1"), Decimal("1"), Decimal("1"), Decimal("1"), 1)
        AtomicVerify.compare_abort_values(before, before)

        after = PaymentValues(Decimal("1"), Decimal("1"), Decimal("1"), Decimal("0"), 1)
        with pytest.raises(AtomicityError, match="Customer Balance"):
            AtomicVerify.compare_abort_values(before, after)
