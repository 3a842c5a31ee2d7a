import unittest

from api_case import ApiTestCase


class DashboardApiTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self._signup()

    def test_empty_dashboard(self):
        resp = self.client.get("/api/dashboard")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["today"], "2026-03-10")
        self.assertIsNone(body["adherence_score"])
        self.assertIsNone(body["most_missed_medication"])
        self.assertEqual(body["status_breakdown"], {"taken": 0, "missed": 0, "late": 0})
        self.assertEqual(body["severity_histogram"], [0, 0, 0, 0, 0])
        self.assertEqual([d["date"] for d in body["weekly_trend"]][-1], "2026-03-10")
        self.assertEqual(body["missed_dose_streak"], 0)

    def test_summary_from_logged_history(self):
        lis = self._add_medication("Lisinopril")
        met = self._add_medication("Metformin")
        self._log(lis["id"], "2026-03-10", "taken")
        self._log(lis["id"], "2026-03-09", "missed")
        self._log(lis["id"], "2026-03-08", "missed")
        self._log(lis["id"], "2026-03-07", "taken")
        self._log(met["id"], "2026-03-10", "late")
        self._log(met["id"], "2026-03-09", "missed")
        self._post(
            "/api/side-effects",
            json={"medication_id": met["id"], "effect": "Nausea", "severity": 4, "start_date": "2026-03-02"},
        )

        body = self.client.get("/api/dashboard").json()
        self.assertEqual(body["status_breakdown"], {"taken": 2, "missed": 3, "late": 1})
        self.assertEqual(body["adherence_score"], 33)
        self.assertEqual(body["most_missed_medication"]["name"], "Lisinopril")
        self.assertEqual(body["most_missed_medication"]["miss_count"], 2)
        self.assertEqual(body["severity_histogram"], [0, 0, 0, 1, 0])
        self.assertEqual(body["missed_dose_streak"], 2)
        trend = {d["date"]: d["adherence"] for d in body["weekly_trend"]}
        self.assertEqual(trend["2026-03-10"], 50)
        self.assertEqual(trend["2026-03-09"], 0)
        self.assertIsNone(trend["2026-03-05"])
        self.assertEqual(body["active_medication_count"], 2)

    def test_active_only_scopes_events_not_side_effects(self):
        lis = self._add_medication("Lisinopril")
        met = self._add_medication("Metformin")
        self._log(lis["id"], "2026-03-10", "taken")
        self._log(met["id"], "2026-03-10", "missed")
        self._post(
            "/api/side-effects",
            json={"medication_id": met["id"], "effect": "Nausea", "severity": 2, "start_date": "2026-03-02"},
        )
        self._post(f"/api/medications/{met['id']}/deactivate")

        everything = self.client.get("/api/dashboard").json()
        self.assertEqual(everything["adherence_score"], 50)
        self.assertEqual(everything["active_medication_count"], 1)
        self.assertEqual(everything["total_medication_count"], 2)

        active = self.client.get("/api/dashboard?active_only=true").json()
        self.assertEqual(active["adherence_score"], 100)
        self.assertIsNone(active["most_missed_medication"])
        self.assertEqual(active["severity_histogram"], [0, 1, 0, 0, 0])

    def test_other_patients_records_are_not_counted(self):
        med = self._add_medication("Lisinopril")
        self._log(med["id"], "2026-03-10", "missed")
        self._signup("bob")
        self.assertIsNone(self.client.get("/api/dashboard").json()["adherence_score"])

    def test_clinician_cannot_use_patient_dashboard(self):
        self._signup("dr_lee", role="clinician")
        resp = self.client.get("/api/dashboard")
        self.assertEqual(resp.status_code, 403)
        self.assertEqual(resp.json(), {"error": "forbidden"})

    def test_store_unavailable(self):
        self._db.DB_PATH = self.tmp.name
        resp = self.client.get("/api/dashboard")
        self.assertEqual(resp.status_code, 503)
        self.assertEqual(resp.json(), {"error": "store unavailable"})


if __name__ == "__main__":
    unittest.main()
