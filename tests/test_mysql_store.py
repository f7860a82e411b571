"""
Tests for the SQL the MySQL store sends. No server is needed.
"""
import mysql.connector
import pytest
from mysql.connector import errorcode

from skvbench.store.mysql_store import (
    compile_filter,
    create_table_sql,
    lock_wait_timeout_sql,
    range_query_sql,
    replace_sql,
    select_sql,
    status_for_error,
    update_sql,
)
from skvbench.store.query import FieldRef, Literal, Operation, Query, any_of, compare
from skvbench.store.status import CONFLICT, INTERNAL_ERROR, TIMEOUT
from skvbench.tatp.schema import ACCESS_INFO_SCHEMA, SUBSCRIBER_SCHEMA, CallForwarding, Subscriber
from skvbench.tatp.transactions import call_forwarding_query


def test_create_table_uses_schema_key():
    sql = create_table_sql(ACCESS_INFO_SCHEMA)
    assert sql.startswith("CREATE TABLE IF NOT EXISTS `access_info` (")
    assert "`data3` VARCHAR(64)" in sql
    assert "PRIMARY KEY (`s_id`, `ai_type`)" in sql


def test_point_statements():
    assert select_sql(SUBSCRIBER_SCHEMA) == (
        "SELECT `s_id`, `sub_nbr`, `bits`, `hexes`, `msc_location`, `vlr_location` "
        "FROM `subscriber` WHERE `s_id` = %s"
    )
    assert replace_sql(SUBSCRIBER_SCHEMA).startswith("REPLACE INTO `subscriber` (`s_id`, ")
    assert replace_sql(SUBSCRIBER_SCHEMA).endswith("VALUES (%s, %s, %s, %s, %s, %s)")
    assert update_sql(ACCESS_INFO_SCHEMA, ["data1", "data2"]) == (
        "UPDATE `access_info` SET `data1` = %s, `data2` = %s WHERE `s_id` = %s AND `ai_type` = %s"
    )


def test_call_forwarding_range_query():
    sql, params = range_query_sql(call_forwarding_query(7, 2, 8, 10))
    assert sql == (
        "SELECT `s_id`, `sf_type`, `start_time`, `end_time`, `numberx` FROM `call_forwarding` "
        "WHERE ROW(`s_id`, `sf_type`) >= ROW(%s, %s) AND ROW(`s_id`, `sf_type`) <= ROW(%s, %s) "
        "AND (`start_time` <= %s AND `end_time` > %s) "
        "ORDER BY `s_id`, `sf_type`, `start_time`"
    )
    assert params == [7, 2, 7, 2, 8, 10]


def test_reverse_limited_query():
    sql, params = range_query_sql(Query(Subscriber, reverse=True, limit=1))
    assert "WHERE" not in sql
    assert sql.endswith("ORDER BY `s_id` DESC LIMIT %s")
    assert params == [1]


def test_compile_filter():
    params = []
    expr = any_of(
        compare(Operation.EQ, FieldRef("bits"), Literal(1)),
        compare(Operation.GTE, Literal(5), FieldRef("vlr_location")),
    )
    assert compile_filter(SUBSCRIBER_SCHEMA, expr, params) == "(`bits` = %s OR %s >= `vlr_location`)"
    assert params == [1, 5]

    assert compile_filter(SUBSCRIBER_SCHEMA, any_of(), []) == "FALSE"


def test_compile_filter_rejects_unknown_field():
    with pytest.raises(ValueError):
        compile_filter(CallForwarding.SCHEMA, compare(Operation.EQ, FieldRef("nope"), Literal(1)), [])


@pytest.mark.parametrize(
    "errno, code",
    [
        (errorcode.ER_LOCK_DEADLOCK, CONFLICT),
        (errorcode.ER_LOCK_WAIT_TIMEOUT, TIMEOUT),
        (errorcode.ER_DUP_ENTRY, INTERNAL_ERROR),
    ],
)
def test_status_for_error(errno, code):
    err = mysql.connector.Error(msg="boom", errno=errno)
    assert status_for_error(err).code == code


@pytest.mark.parametrize("deadline, seconds", [(5.0, 5), (2.5, 3), (0.2, 1), (60.0, 60)])
def test_lock_wait_follows_deadline(deadline, seconds):
    sql, params = lock_wait_timeout_sql(deadline)
    assert sql == "SET SESSION innodb_lock_wait_timeout = %s"
    assert params == (seconds,)
