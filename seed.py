"""
Seed script: populates demo data for the Jamie Rivera patient account and a
clinician (Dr. Okafor) who has Jamie on their roster.

- Safe to run on a server where the accounts already exist.
- Clears Jamie's medications, intake logs and side effects, then inserts
  30 days of fresh history (Hypertension + Type 2 Diabetes).
- Does NOT touch other user accounts.

Usage:
    python3 seed.py
"""

import random
import secrets
from datetime import date, timedelta

import db
from config import _utc_now
from security import _hash_password
from store import (
    assign_patient,
    create_medication,
    create_side_effect,
    create_user,
    find_user_by_username,
    upsert_event,
)

USERNAME = "jamie"
CLINICIAN_USERNAME = "dr_okafor"
PASSWORD = "demo1234"
HISTORY_DAYS = 30

MEDICATIONS = [
    # (name, dosage, frequency, instructions, adherence_rate)
    ("Lisinopril",   "10mg",  "Once daily",  "Take in the morning", 0.85),
    ("Amlodipine",   "5mg",   "Once daily",  "",                    0.90),
    ("Metformin",    "500mg", "Twice daily", "Take with food",      0.70),
    ("Atorvastatin", "20mg",  "Once daily",  "Take at bedtime",     0.80),
]

SIDE_EFFECTS = [
    # (medication, effect, severity, started days ago, lasted days or None)
    ("Lisinopril",   "Dry cough",     2, 26, 9),
    ("Lisinopril",   "Dizziness",     3, 12, 2),
    ("Amlodipine",   "Ankle swelling", 3, 20, None),
    ("Metformin",    "Nausea",        4, 28, 5),
    ("Metformin",    "Diarrhea",      5, 27, 3),
    ("Atorvastatin", "Muscle aches",  2, 8,  None),
]


def _ensure_user(conn, username: str, role: str):
    row = find_user_by_username(conn, username)
    if row:
        print(f"Found existing account: {username} (id={row['id']})")
        return row
    share_code = secrets.token_hex(4).upper() if role == "patient" else ""
    row = create_user(conn, username, _hash_password(PASSWORD), role, share_code)
    print(f"Created account: {username} (id={row['id']})")
    return row


def seed(today: date = None, rng: random.Random = None) -> int:
    today = today or _utc_now().date()
    rng = rng or random.Random(42)  # fixed seed for reproducibility
    db.init_db()
    with db.get_db() as conn:
        patient = _ensure_user(conn, USERNAME, "patient")
        clinician = _ensure_user(conn, CLINICIAN_USERNAME, "clinician")
        uid = patient["id"]

        # Clear existing demo data for this patient
        conn.execute(
            "DELETE FROM intake_events WHERE medication_id IN (SELECT id FROM medications WHERE owner_id=?)",
            (uid,),
        )
        conn.execute(
            "DELETE FROM side_effects WHERE medication_id IN (SELECT id FROM medications WHERE owner_id=?)",
            (uid,),
        )
        conn.execute("DELETE FROM medications WHERE owner_id=?", (uid,))
        conn.commit()
        print("Cleared existing data for jamie.")

        start = today - timedelta(days=HISTORY_DAYS - 1)
        med_ids = {}
        for name, dosage, frequency, instructions, _ in MEDICATIONS:
            med = create_medication(conn, uid, name, dosage, frequency, start, None, instructions)
            med_ids[name] = med.id
        print(f"Inserted {len(med_ids)} medications.")

        events = 0
        for offset in range(HISTORY_DAYS - 1, -1, -1):
            d = today - timedelta(days=offset)
            for name, _, _, _, rate in MEDICATIONS:
                roll = rng.random()
                if roll < rate:
                    status = "taken"
                elif roll < rate + (1 - rate) / 3:
                    status = "late"
                else:
                    status = "missed"
                upsert_event(conn, med_ids[name], d, status)
                events += 1
        print(f"Inserted {events} intake logs.")

        for name, effect, severity, ago, lasted in SIDE_EFFECTS:
            began = today - timedelta(days=ago)
            ended = began + timedelta(days=lasted) if lasted is not None else None
            create_side_effect(conn, med_ids[name], effect, severity, began, ended)
        print(f"Inserted {len(SIDE_EFFECTS)} side effects.")

        assign_patient(conn, clinician["id"], uid)
    return uid


if __name__ == "__main__":
    seed()
    print(f"\nDone. Log in with username={USERNAME} (or {CLINICIAN_USERNAME}) password={PASSWORD}")
