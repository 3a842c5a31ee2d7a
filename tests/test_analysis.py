import unittest
from datetime import date, timedelta

from analysis import (
    _adherence_score,
    _compute_dashboard,
    _missed_dose_streak,
    _most_missed,
    _severity_histogram,
    _status_breakdown,
    _weekly_trend,
)
from models import IntakeEvent, Medication, SideEffect

TODAY = date(2026, 3, 10)


def _day(offset):
    return TODAY - timedelta(days=offset)


def _events(*rows):
    """rows: (medication_id, days_ago, status)"""
    return [
        IntakeEvent(id=i, medication_id=med_id, date=_day(ago), status=status)
        for i, (med_id, ago, status) in enumerate(rows, start=1)
    ]


def _side_effects(*severities):
    return [
        SideEffect(id=i, medication_id=1, effect="Nausea", severity=sev, start_date=TODAY)
        for i, sev in enumerate(severities, start=1)
    ]


def _med(med_id, name, active=True):
    return Medication(
        id=med_id, owner_id=1, name=name, dosage="5mg", frequency="Once daily",
        start_date=date(2026, 1, 1), is_active=active,
    )


class AdherenceScoreTests(unittest.TestCase):
    def test_no_events_is_none_not_zero(self):
        self.assertIsNone(_adherence_score([]))

    def test_all_missed_is_zero(self):
        self.assertEqual(_adherence_score(_events((1, 0, "missed"), (1, 1, "missed"))), 0)

    def test_rounds_to_whole_percent(self):
        events = _events((1, 0, "taken"), (1, 1, "taken"), (1, 2, "late"))
        self.assertEqual(_adherence_score(events), 67)

    def test_half_rounds_up(self):
        events = _events((1, 0, "taken"), *[(1, d, "missed") for d in range(1, 8)])
        self.assertEqual(_adherence_score(events), 13)


class StatusBreakdownTests(unittest.TestCase):
    def test_counts_sum_to_total(self):
        events = _events(
            (1, 0, "taken"), (1, 1, "late"), (2, 0, "missed"), (2, 1, "missed"), (2, 2, "taken"),
        )
        breakdown = _status_breakdown(events)
        self.assertEqual(breakdown, {"taken": 2, "missed": 2, "late": 1})
        self.assertEqual(sum(breakdown.values()), len(events))

    def test_empty_is_all_zero(self):
        self.assertEqual(_status_breakdown([]), {"taken": 0, "missed": 0, "late": 0})


class MostMissedTests(unittest.TestCase):
    def test_none_without_missed_events(self):
        self.assertIsNone(_most_missed(_events((1, 0, "taken"), (2, 0, "late")), {1: "A", 2: "B"}))

    def test_picks_highest_miss_count(self):
        events = _events((1, 0, "missed"), (2, 0, "missed"), (2, 1, "missed"), (2, 2, "taken"))
        self.assertEqual(
            _most_missed(events, {1: "Aspirin", 2: "Metformin"}),
            {"medication_id": 2, "name": "Metformin", "miss_count": 2},
        )

    def test_tie_goes_to_lowest_medication_id(self):
        events = _events(*[(7, d, "missed") for d in range(3)], *[(3, d, "missed") for d in range(3)])
        names = {3: "Zoloft", 7: "Advil"}
        first = _most_missed(events, names)
        self.assertEqual(first["medication_id"], 3)
        self.assertEqual(first["miss_count"], 3)
        for _ in range(5):
            self.assertEqual(_most_missed(list(reversed(events)), names), first)

    def test_unknown_medication_name(self):
        self.assertEqual(_most_missed(_events((9, 0, "missed")), {})["name"], "Unknown")


class SeverityHistogramTests(unittest.TestCase):
    def test_always_five_buckets(self):
        self.assertEqual(_severity_histogram([]), [0, 0, 0, 0, 0])

    def test_buckets_by_severity_with_zero_fill(self):
        histogram = _severity_histogram(_side_effects(1, 5, 5, 3))
        self.assertEqual(histogram, [1, 0, 1, 0, 2])
        self.assertEqual(sum(histogram), 4)


class WeeklyTrendTests(unittest.TestCase):
    def test_seven_days_oldest_first_ending_today(self):
        trend = _weekly_trend([], TODAY)
        self.assertEqual(len(trend), 7)
        self.assertEqual(trend[0]["date"], "2026-03-04")
        self.assertEqual(trend[-1]["date"], "2026-03-10")
        self.assertEqual(trend[-1]["label"], "Tue, Mar 10")
        self.assertTrue(all(day["adherence"] is None for day in trend))

    def test_empty_day_is_none_and_all_missed_day_is_zero(self):
        events = _events((1, 0, "taken"), (2, 0, "missed"), (1, 2, "missed"), (2, 2, "missed"))
        trend = _weekly_trend(events, TODAY)
        by_date = {d["date"]: d["adherence"] for d in trend}
        self.assertEqual(by_date["2026-03-10"], 50)
        self.assertIsNone(by_date["2026-03-09"])
        self.assertEqual(by_date["2026-03-08"], 0)

    def test_events_outside_window_are_ignored(self):
        events = _events((1, 7, "taken"), (1, -1, "taken"))
        self.assertTrue(all(day["adherence"] is None for day in _weekly_trend(events, TODAY)))


class MissedDoseStreakTests(unittest.TestCase):
    def test_streak_stops_at_first_day_without_a_miss(self):
        events = _events(
            (1, 0, "taken"),
            (1, 1, "missed"),
            (1, 2, "missed"),
            (1, 3, "taken"),
            (1, 4, "missed"),
        )
        self.assertEqual(_missed_dose_streak(events, TODAY), 2)

    def test_streak_includes_today_when_today_missed(self):
        events = _events((1, 0, "missed"), (1, 1, "missed"), (1, 2, "taken"), (1, 3, "missed"))
        self.assertEqual(_missed_dose_streak(events, TODAY), 2)

    def test_no_events_today_starts_from_latest_logged_day(self):
        events = _events((1, 3, "missed"), (1, 4, "missed"), (1, 5, "missed"), (1, 6, "taken"))
        self.assertEqual(_missed_dose_streak(events, TODAY), 3)

    def test_day_with_any_miss_counts(self):
        events = _events((1, 0, "taken"), (2, 0, "missed"), (1, 1, "missed"))
        self.assertEqual(_missed_dose_streak(events, TODAY), 2)

    def test_future_days_are_ignored(self):
        events = _events((1, -2, "missed"), (1, 0, "missed"), (1, 1, "taken"))
        self.assertEqual(_missed_dose_streak(events, TODAY), 1)

    def test_zero_when_nothing_missed(self):
        self.assertEqual(_missed_dose_streak(_events((1, 0, "taken"), (1, 1, "late")), TODAY), 0)
        self.assertEqual(_missed_dose_streak([], TODAY), 0)


class ComputeDashboardTests(unittest.TestCase):
    def test_empty_medication_set(self):
        summary = _compute_dashboard([], [], [], TODAY).to_json()
        self.assertIsNone(summary["adherence_score"])
        self.assertIsNone(summary["most_missed_medication"])
        self.assertEqual(summary["status_breakdown"], {"taken": 0, "missed": 0, "late": 0})
        self.assertEqual(summary["severity_histogram"], [0, 0, 0, 0, 0])
        self.assertEqual(len(summary["weekly_trend"]), 7)
        self.assertEqual(summary["missed_dose_streak"], 0)
        self.assertEqual(summary["total_medication_count"], 0)

    def test_summary_fields(self):
        meds = [_med(1, "Lisinopril"), _med(2, "Metformin", active=False)]
        events = _events((1, 0, "taken"), (2, 0, "missed"), (2, 1, "missed"), (1, 1, "late"))
        summary = _compute_dashboard(meds, events, _side_effects(2, 2, 4), TODAY).to_json()
        self.assertEqual(summary["adherence_score"], 25)
        self.assertEqual(summary["status_breakdown"], {"taken": 1, "missed": 2, "late": 1})
        self.assertEqual(summary["most_missed_medication"]["name"], "Metformin")
        self.assertEqual(summary["severity_histogram"], [0, 2, 0, 1, 0])
        self.assertEqual(summary["weekly_trend"][-1]["adherence"], 50)
        self.assertEqual(summary["missed_dose_streak"], 2)
        self.assertEqual(summary["active_medication_count"], 1)
        self.assertEqual(summary["total_medication_count"], 2)


if __name__ == "__main__":
    unittest.main()
