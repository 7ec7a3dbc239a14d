"""
audit_sdk.tier1_runtime.buckets
────────────────────────────────
Time-bucketed index names. Each document goes to an index named after the
UTC calendar bucket it falls in:

    month      log_2020-09
    quarter    log_2020-q3
    half year  log_2020-h2

Unknown or missing units fall back to half year. Only UTC calendar fields
are read, so bucket boundaries do not move with the host time zone.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum

from audit_sdk.tier1_runtime.clock import Clock, get_clock


class BucketUnit(str, Enum):
    MONTH = "month"
    QUARTER = "quarter"
    HALF_YEAR = "halfYear"


_ALIASES: dict[str, BucketUnit] = {
    "m": BucketUnit.MONTH,
    "month": BucketUnit.MONTH,
    "monthly": BucketUnit.MONTH,
    "q": BucketUnit.QUARTER,
    "quarter": BucketUnit.QUARTER,
    "quarterly": BucketUnit.QUARTER,
    "h": BucketUnit.HALF_YEAR,
    "halfyear": BucketUnit.HALF_YEAR,
    "half_year": BucketUnit.HALF_YEAR,
    "half-year": BucketUnit.HALF_YEAR,
}


def parse_unit(value: str | BucketUnit | None) -> BucketUnit:
    """Map a unit selector (case-insensitive alias) to a BucketUnit."""
    if isinstance(value, BucketUnit):
        return value
    if not value:
        return BucketUnit.HALF_YEAR
    return _ALIASES.get(value.strip().lower(), BucketUnit.HALF_YEAR)


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def index_date_month(dt: datetime) -> str:
    dt = _utc(dt)
    return f"{dt.year:04d}-{dt.month:02d}"


def index_date_quarter(dt: datetime) -> str:
    dt = _utc(dt)
    return f"{dt.year:04d}-q{math.ceil(dt.month / 3)}"


def index_date_half_year(dt: datetime) -> str:
    dt = _utc(dt)
    return f"{dt.year:04d}-h{math.ceil(dt.month / 6)}"


_SUFFIX_FNS = {
    BucketUnit.MONTH: index_date_month,
    BucketUnit.QUARTER: index_date_quarter,
    BucketUnit.HALF_YEAR: index_date_half_year,
}


def resolve_bucket(
    now: datetime,
    unit: str | BucketUnit | None = BucketUnit.HALF_YEAR,
    prefix: str = "log",
) -> str:
    """
    Return the index name for *now*.

    Usage:
        resolve_bucket(datetime(2020, 9, 30, tzinfo=timezone.utc), "q")
        # "log_2020-q3"
    """
    return f"{prefix}_{_SUFFIX_FNS[parse_unit(unit)](now)}"


class IndexNameResolver:
    """
    Resolves the target index for the current time. An explicit *index*
    bypasses bucketing entirely.
    """

    def __init__(
        self,
        prefix: str = "log",
        unit: str | BucketUnit | None = None,
        index: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.prefix = prefix
        self.unit = parse_unit(unit)
        self.index = index
        self._clock = clock

    @property
    def clock(self) -> Clock:
        return self._clock or get_clock()

    def resolve(self, now: datetime | None = None) -> str:
        if self.index:
            return self.index
        return resolve_bucket(now or self.clock.now(), self.unit, self.prefix)


__all__ = [
    "BucketUnit",
    "parse_unit",
    "index_date_month",
    "index_date_quarter",
    "index_date_half_year",
    "resolve_bucket",
    "IndexNameResolver",
]
