"""Tests for tier1_runtime modules."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from audit_sdk.tier1_runtime.buckets import (
    BucketUnit,
    IndexNameResolver,
    parse_unit,
    resolve_bucket,
)
from audit_sdk.tier1_runtime.clock import Clock, MutableClock, isoformat, now, set_clock
from audit_sdk.tier1_runtime.context import (
    Transaction,
    get_transaction,
    record_error,
    reset_transaction,
    set_transaction,
    skip_log,
)


def _utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


# ── clock ──────────────────────────────────────────────────────────────────

class TestClock:
    def test_now_returns_utc_datetime(self):
        assert now().tzinfo is not None

    def test_frozen_clock(self):
        fixed = _utc(2025, 1, 1, 12, 0, 0)
        assert Clock().freeze(fixed).now() == fixed

    def test_frozen_clock_set_global(self):
        fixed = _utc(2025, 6, 15)
        set_clock(Clock().freeze(fixed))
        assert now() == fixed

    def test_mutable_clock_moves(self, boundary_instant):
        clock = MutableClock(boundary_instant)
        clock.set(_utc(2019, 3, 1))
        assert clock.now() == _utc(2019, 3, 1)

    def test_isoformat_has_millis_and_z(self, boundary_instant):
        assert isoformat(boundary_instant) == "2020-09-30T23:59:59.999Z"

    def test_isoformat_converts_offsets(self):
        dt = datetime(2020, 10, 1, 5, 0, tzinfo=timezone(timedelta(hours=10)))
        assert isoformat(dt) == "2020-09-30T19:00:00.000Z"


# ── buckets ────────────────────────────────────────────────────────────────

class TestResolveBucket:
    def test_month(self, boundary_instant):
        assert resolve_bucket(boundary_instant, "month") == "log_2020-09"

    def test_quarter(self, boundary_instant):
        assert resolve_bucket(boundary_instant, "quarter") == "log_2020-q3"

    def test_half_year(self, boundary_instant):
        assert resolve_bucket(boundary_instant, "halfYear") == "log_2020-h2"

    def test_unknown_unit_falls_back_to_half_year(self, boundary_instant):
        assert resolve_bucket(boundary_instant, "mmmmm") == "log_2020-h2"

    def test_missing_unit_falls_back_to_half_year(self):
        assert resolve_bucket(_utc(2019, 3, 1, 23, 59), None, "test_undefined") == (
            "test_undefined_2019-h1"
        )

    @pytest.mark.parametrize(
        "unit, instant, expected",
        [
            ("m", _utc(2010, 2, 1, 23, 59, 59), "log_2010-02"),
            ("M", _utc(2019, 3, 1, 23, 59, 59), "log_2019-03"),
            ("q", _utc(2010, 4, 1, 23, 59, 59), "log_2010-q2"),
            ("Q", _utc(2019, 3, 1, 23, 59, 59), "log_2019-q1"),
            ("h", _utc(2010, 4, 1, 23, 59, 59), "log_2010-h1"),
            ("H", _utc(2019, 7, 1), "log_2019-h2"),
            ("QUARTER", _utc(2019, 12, 31), "log_2019-q4"),
            ("half_year", _utc(2019, 6, 30), "log_2019-h1"),
        ],
    )
    def test_aliases(self, unit, instant, expected):
        assert resolve_bucket(instant, unit) == expected

    def test_prefix(self, boundary_instant):
        assert resolve_bucket(boundary_instant, "M", "test_month") == "test_month_2020-09"

    def test_buckets_use_utc_fields(self):
        # 05:00 on 1 October in UTC+10 is still 30 September in UTC
        local = datetime(2020, 10, 1, 5, 0, tzinfo=timezone(timedelta(hours=10)))
        assert resolve_bucket(local, "month") == "log_2020-09"
        assert resolve_bucket(local, "quarter") == "log_2020-q3"

    def test_naive_datetime_is_utc(self):
        assert resolve_bucket(datetime(2020, 1, 31, 23, 0), "m") == "log_2020-01"

    def test_same_bucket_iff_same_calendar_bucket(self):
        start, end = _utc(2020, 7, 1), _utc(2020, 12, 31, 23, 59, 59)
        assert resolve_bucket(start, "h") == resolve_bucket(end, "h")
        assert resolve_bucket(start, "q") != resolve_bucket(end, "q")
        assert resolve_bucket(end, "h") != resolve_bucket(end + timedelta(seconds=1), "h")

    def test_parse_unit_passthrough(self):
        assert parse_unit(BucketUnit.MONTH) is BucketUnit.MONTH
        assert parse_unit("") is BucketUnit.HALF_YEAR


class TestIndexNameResolver:
    def test_uses_injected_clock(self, clock):
        resolver = IndexNameResolver(prefix="prod", unit="q", clock=clock)
        assert resolver.resolve() == "prod_2020-q3"
        clock.set(_utc(2019, 3, 1))
        assert resolver.resolve() == "prod_2019-q1"

    def test_explicit_index_bypasses_bucketing(self, clock):
        resolver = IndexNameResolver(unit="m", index="audit-fixed", clock=clock)
        assert resolver.resolve() == "audit-fixed"

    def test_falls_back_to_global_clock(self, boundary_instant):
        set_clock(Clock().freeze(boundary_instant))
        assert IndexNameResolver().resolve() == "log_2020-h2"


# ── context ────────────────────────────────────────────────────────────────

class TestContext:
    def _transaction(self) -> Transaction:
        return Transaction(document={"request": {}}, index="log_2020-h2", started=0.0)

    def test_skip_log_marks_current_transaction(self):
        transaction = self._transaction()
        token = set_transaction(transaction)
        try:
            assert get_transaction() is transaction
            skip_log()
        finally:
            reset_transaction(token)
        assert transaction.skip is True
        assert get_transaction() is None

    def test_record_error_attaches_error(self):
        transaction = self._transaction()
        error = ValueError("bad input")
        token = set_transaction(transaction)
        try:
            record_error(error)
        finally:
            reset_transaction(token)
        assert transaction.error is error

    def test_helpers_are_noops_outside_a_transaction(self):
        skip_log()
        record_error(RuntimeError("ignored"))
        assert get_transaction() is None

    def test_transaction_defaults(self):
        transaction = self._transaction()
        assert transaction.request_id
        assert transaction.skip is False
        assert transaction.emitted is False
