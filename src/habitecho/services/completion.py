"""Completion weighting and rate aggregation."""

from __future__ import annotations

import math
from typing import Iterable

from ..models.enums import EntryStatus


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves toward positive infinity."""

    return int(math.floor(value + 0.5))


def weight(record) -> float:
    """Contribution of one record to a completion rate, in [0, 1]."""

    if record.percent_complete is not None:
        return min(max(record.percent_complete / 100, 0.0), 1.0)
    return 1.0 if record.status == EntryStatus.DONE else 0.0


def default_percent(status, percent_complete=None):
    """Percent stored when none is given: 100 for DONE, 0 for NOT_DONE."""

    if percent_complete is not None:
        return percent_complete
    if status == EntryStatus.DONE:
        return 100
    if status == EntryStatus.NOT_DONE:
        return 0
    return None


def weighted_total(records: Iterable) -> float:
    return sum(weight(record) for record in records)


def completion_rate(records: Iterable, due_count: int) -> int:
    """Integer percent of ``due_count`` days covered by ``records``.

    Due days without a record add nothing to the numerator but still count in
    the denominator.
    """

    rate = round_half_up(weighted_total(records) / max(due_count, 1) * 100)
    return max(0, min(100, rate))


__all__ = ["completion_rate", "default_percent", "round_half_up", "weight", "weighted_total"]
