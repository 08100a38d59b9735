"""Half-open interval overlap.

``[s1, e1)`` and ``[s2, e2)`` overlap iff both are non-empty and
``s1 < e2 and s2 < e1``. Touching intervals (``e1 == s2``) and zero-length
intervals never overlap.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import and_, false

from app.scheduling.timeutils import ensure_utc


def intervals_overlap(start1: datetime, end1: datetime, start2: datetime, end2: datetime) -> bool:
    s1, e1, s2, e2 = (ensure_utc(v) for v in (start1, end1, start2, end2))
    if s1 >= e1 or s2 >= e2:
        return False
    return s1 < e2 and s2 < e1


def overlaps_any(start: datetime, end: datetime, rows: list[Any]) -> bool:
    return any(intervals_overlap(start, end, row.start_time, row.end_time) for row in rows)


def overlap_clause(start_column: Any, end_column: Any, start: datetime, end: datetime):
    # Same predicate as intervals_overlap, for narrowing store queries.
    if ensure_utc(start) >= ensure_utc(end):
        return false()
    return and_(start_column < end, end_column > start, start_column < end_column)
