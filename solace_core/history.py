from __future__ import annotations
import logging
from datetime import date, datetime, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from .types import ChartBucket, HistoryEntry, Period
from .config import NEUTRAL_SCORE, WEEK_START

log = logging.getLogger(__name__)

PERIODS: Tuple[str, ...] = ("week", "month", "year")


def _day(d: date | datetime) -> date:
    return d.date() if isinstance(d, datetime) else d


def _add_month(d: date) -> date:
    if d.month == 12:
        return date(d.year + 1, 1, 1)
    return date(d.year, d.month + 1, 1)


class HistoryAggregator:
    """Chart buckets and streak statistics over stored assessment results."""

    def __init__(self, week_start: int = WEEK_START, neutral: float = NEUTRAL_SCORE):
        self.week_start = int(week_start) % 7
        self.neutral = float(neutral)

    # period arithmetic

    def period_start(self, d: date | datetime, period: Period) -> date:
        day = _day(d)
        if period == "week":
            return day - timedelta(days=(day.weekday() - self.week_start) % 7)
        if period == "month":
            return day.replace(day=1)
        if period == "year":
            return date(day.year, 1, 1)
        raise ValueError(f"unknown period: {period!r}")

    @staticmethod
    def _next(start: date, period: Period) -> date:
        if period == "week":
            return start + timedelta(days=7)
        if period == "month":
            return _add_month(start)
        return date(start.year + 1, 1, 1)

    def contributions(self, entry: HistoryEntry) -> Tuple[float, float]:
        """(positive, negative) magnitude of one entry.

        Each dimension contributes its distance from the neutral score, scaled
        so a whole entry spans at most 100 either way. Entries without a
        breakdown fall back to the composite value.
        """

        span = max(1.0, 100.0 - self.neutral, self.neutral)
        scores = [item.score for item in entry.score.breakdown] or [entry.score.value]
        pos = neg = 0.0
        for s in scores:
            c = (float(s) - self.neutral) * 100.0 / span / len(scores)
            if c > 0:
                pos += c
            elif c < 0:
                neg += -c
        return pos, neg

    # public operations

    def bucket(self, entries: Iterable[HistoryEntry], period: Period) -> List[ChartBucket]:
        if period not in PERIODS:
            raise ValueError(f"unknown period: {period!r}")
        items = sorted(entries, key=lambda e: _day(e.date))
        if not items:
            return []
        grouped: Dict[date, List[HistoryEntry]] = {}
        for e in items:
            grouped.setdefault(self.period_start(e.date, period), []).append(e)

        out: List[ChartBucket] = []
        cur = self.period_start(items[0].date, period)
        last = self.period_start(items[-1].date, period)
        while cur <= last:
            members = grouped.get(cur, [])
            b = ChartBucket(period_start=cur, count=len(members))
            for e in members:
                p, n = self.contributions(e)
                b.positive_sum += p
                b.negative_sum += n
            b.positive_sum = round(b.positive_sum, 2)
            b.negative_sum = round(b.negative_sum, 2)
            if members:
                b.average_score = round(sum(e.score.value for e in members) / len(members), 1)
            out.append(b)
            cur = self._next(cur, period)
        log.debug("bucket period=%s entries=%d buckets=%d", period, len(items), len(out))
        return out

    def streak(self, entries: Iterable[HistoryEntry], today: Optional[date] = None) -> int:
        """Consecutive days with an entry, counted back from the latest one.

        With ``today`` given the streak is only alive if the latest entry is
        from today or yesterday; otherwise it is 0.
        """

        days = sorted({_day(e.date) for e in entries}, reverse=True)
        if not days:
            return 0
        if today is not None and (_day(today) - days[0]).days > 1:
            return 0
        n = 1
        for prev, cur in zip(days, days[1:]):
            if (prev - cur).days != 1:
                break
            n += 1
        return n

    def longest_streak(self, entries: Iterable[HistoryEntry]) -> int:
        days = sorted({_day(e.date) for e in entries})
        if not days:
            return 0
        best = run = 1
        for prev, cur in zip(days, days[1:]):
            run = run + 1 if (cur - prev).days == 1 else 1
            best = max(best, run)
        return best

    def coverage(self, entries: Iterable[HistoryEntry], today: Optional[date] = None) -> Dict[str, object]:
        items = list(entries)
        days = sorted({_day(e.date) for e in items})
        ref = _day(today) if today is not None else (days[-1] if days else date.today())
        if not days:
            return {"total": 0, "last_7_days": 0, "last_30_days": 0, "active_days": 0, "span_days": 0, "ratio": 0.0}
        span = (days[-1] - days[0]).days + 1
        return {
            "total": len(items),
            "last_7_days": sum(1 for e in items if 0 <= (ref - _day(e.date)).days < 7),
            "last_30_days": sum(1 for e in items if 0 <= (ref - _day(e.date)).days < 30),
            "active_days": len(days),
            "span_days": span,
            "ratio": round(len(days) / span, 4),
        }


__all__ = ["HistoryAggregator", "PERIODS"]
