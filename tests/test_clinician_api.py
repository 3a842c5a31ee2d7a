import unittest

from api_case import ApiTestCase


class ClinicianRosterTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.patient = self._signup("jamie")
        med = self._add_medication("Lisinopril")
        self._log(med["id"], "2026-03-10", "taken")
        self._log(med["id"], "2026-03-09", "missed")
        self._post(
            "/api/side-effects",
            json={"medication_id": med["id"], "effect": "Dry cough", "severity": 2, "start_date": "2026-03-01"},
        )
        self.clinician = self._signup("dr_lee", role="clinician")

    def _add_patient(self, share_code):
        return self._post("/api/clinician/patients/add", data={"share_code": share_code})

    def test_clinician_has_no_share_code(self):
        self.assertNotIn("share_code", self.clinician)

    def test_add_by_share_code_and_view_detail(self):
        added = self._add_patient(self.patient["share_code"].lower())
        self.assertEqual(added.status_code, 200)
        self.assertEqual(added.json()["patient"]["username"], "jamie")

        roster = self.client.get("/api/clinician/patients").json()["patients"]
        self.assertEqual([p["username"] for p in roster], ["jamie"])
        self.assertNotIn("password_hash", roster[0])

        detail = self.client.get(f"/api/clinician/patients/{self.patient['id']}").json()
        self.assertEqual(detail["patient"]["username"], "jamie")
        self.assertEqual([m["name"] for m in detail["medications"]], ["Lisinopril"])
        self.assertEqual([e["date"] for e in detail["intake_events"]], ["2026-03-10", "2026-03-09"])
        self.assertEqual(detail["intake_events"][0]["medication_name"], "Lisinopril")
        self.assertEqual(detail["side_effects"][0]["effect"], "Dry cough")
        self.assertEqual(detail["summary"]["adherence_score"], 50)
        self.assertEqual(detail["summary"]["missed_dose_streak"], 1)

    def test_adding_twice_keeps_one_roster_entry(self):
        self._add_patient(self.patient["share_code"])
        self._add_patient(self.patient["share_code"])
        self.assertEqual(len(self.client.get("/api/clinician/patients").json()["patients"]), 1)

    def test_unknown_or_blank_share_code(self):
        self.assertEqual(self._add_patient("ZZZZZZZZ").status_code, 404)
        self.assertEqual(self._add_patient("  ").status_code, 400)

    def test_unassigned_patient_detail_is_not_found(self):
        resp = self.client.get(f"/api/clinician/patients/{self.patient['id']}")
        self.assertEqual(resp.status_code, 404)

    def test_remove_from_roster(self):
        self._add_patient(self.patient["share_code"])
        resp = self._post(f"/api/clinician/patients/{self.patient['id']}/remove")
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.client.get("/api/clinician/patients").json()["patients"], [])
        self.assertEqual(self.client.get(f"/api/clinician/patients/{self.patient['id']}").status_code, 404)

    def test_clinician_cannot_write_patient_records(self):
        resp = self._post(
            "/api/medications",
            json={"name": "Aspirin", "dosage": "81mg", "frequency": "Once daily", "start_date": "2026-03-01"},
        )
        self.assertEqual(resp.status_code, 403)

    def test_patient_cannot_use_roster(self):
        self._login("jamie")
        self.assertEqual(self.client.get("/api/clinician/patients").status_code, 403)


if __name__ == "__main__":
    unittest.main()
