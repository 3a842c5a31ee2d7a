from collections import Counter, defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from math import floor
from typing import Dict, Iterable, List, Optional

from config import (
    INTAKE_STATUSES,
    MAX_SEVERITY,
    MIN_SEVERITY,
    TREND_DAYS,
    _day_label,
    _end_of_day,
    _start_of_day,
)
from models import IntakeEvent, Medication, SideEffect


@dataclass(frozen=True)
class DashboardSummary:
    adherence_score: Optional[int]
    status_breakdown: Dict[str, int]
    most_missed_medication: Optional[dict]
    severity_histogram: List[int]
    weekly_trend: List[dict]
    missed_dose_streak: int
    active_medication_count: int = 0
    total_medication_count: int = 0

    def to_json(self) -> dict:
        return {
            "adherence_score": self.adherence_score,
            "status_breakdown": dict(self.status_breakdown),
            "most_missed_medication": self.most_missed_medication,
            "severity_histogram": list(self.severity_histogram),
            "weekly_trend": list(self.weekly_trend),
            "missed_dose_streak": self.missed_dose_streak,
            "active_medication_count": self.active_medication_count,
            "total_medication_count": self.total_medication_count,
        }


def _pct(part: int, whole: int) -> Optional[int]:
    # None means "nothing logged", which is not the same as 0%
    if whole <= 0:
        return None
    # half-up, so 12.5% reads as 13
    return floor(100 * part / whole + 0.5)


def _status_breakdown(events: Iterable[IntakeEvent]) -> Dict[str, int]:
    counts = Counter(e.status for e in events)
    return {status: counts.get(status, 0) for status in INTAKE_STATUSES}


def _adherence_score(events: List[IntakeEvent]) -> Optional[int]:
    taken = sum(1 for e in events if e.status == "taken")
    return _pct(taken, len(events))


def _most_missed(events: Iterable[IntakeEvent], names: Dict[int, str]) -> Optional[dict]:
    """Medication with the most missed events; ties go to the lowest medication id."""
    missed = Counter(e.medication_id for e in events if e.status == "missed")
    if not missed:
        return None
    med_id, count = min(missed.items(), key=lambda kv: (-kv[1], kv[0]))
    return {"medication_id": med_id, "name": names.get(med_id, "Unknown"), "miss_count": count}


def _severity_histogram(side_effects: Iterable[SideEffect]) -> List[int]:
    buckets = [0] * (MAX_SEVERITY - MIN_SEVERITY + 1)
    for se in side_effects:
        if MIN_SEVERITY <= se.severity <= MAX_SEVERITY:
            buckets[se.severity - MIN_SEVERITY] += 1
    return buckets


def _weekly_trend(events: Iterable[IntakeEvent], today: date, days: int = TREND_DAYS) -> List[dict]:
    by_day = defaultdict(list)
    for e in events:
        by_day[_start_of_day(e.date)].append(e)
    trend = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        start, end = _start_of_day(day), _end_of_day(day)
        day_events = [e for bucket, evs in by_day.items() if start <= bucket <= end for e in evs]
        taken = sum(1 for e in day_events if e.status == "taken")
        trend.append({
            "date": day.isoformat(),
            "label": _day_label(day),
            "adherence": _pct(taken, len(day_events)),
        })
    return trend


def _missed_dose_streak(events: Iterable[IntakeEvent], today: date) -> int:
    """Run of logged days with a missed dose, counted back from the latest logged day.

    Days after ``today`` are ignored. Logged days without a miss are skipped
    until the run starts; the first such day after that ends the scan.
    """
    has_missed: Dict[date, bool] = {}
    for e in events:
        if e.date > today:
            continue
        has_missed[e.date] = has_missed.get(e.date, False) or e.status == "missed"

    streak = 0
    for day in sorted(has_missed, reverse=True):
        if has_missed[day]:
            streak += 1
        elif streak > 0:
            break
    return streak


def _compute_dashboard(
    medications: List[Medication],
    events: List[IntakeEvent],
    side_effects: List[SideEffect],
    today: date,
) -> DashboardSummary:
    """Summarize one owner's intake history as of ``today``.

    ``events`` must already be scoped to the medication set being reported
    (all medications, or the active ones only). ``side_effects`` covers every
    medication the owner has, active or not.
    """
    names = {m.id: m.name for m in medications}
    return DashboardSummary(
        adherence_score=_adherence_score(events),
        status_breakdown=_status_breakdown(events),
        most_missed_medication=_most_missed(events, names),
        severity_histogram=_severity_histogram(side_effects),
        weekly_trend=_weekly_trend(events, today),
        missed_dose_streak=_missed_dose_streak(events, today),
        active_medication_count=sum(1 for m in medications if m.is_active),
        total_medication_count=len(medications),
    )
