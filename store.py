"""Record store: sqlite3 queries for medications, intake events and side effects.

Every function takes an open connection from ``db.get_db()`` and returns the
typed records from ``models``. Write helpers commit before returning.
"""
import logging
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple

from config import APP_TIMEZONE, _start_of_day, _utc_now
from models import IntakeEvent, Medication, SideEffect

logger = logging.getLogger(__name__)

DateRange = Tuple[datetime, datetime]


def _stamp() -> str:
    return _utc_now().strftime("%Y-%m-%d %H:%M:%S")


def _iso(d: Optional[date]) -> Optional[str]:
    return d.isoformat() if d else None


def _placeholders(ids: List[int]) -> str:
    return ",".join("?" for _ in ids)


# ── Medications ──────────────────────────────────────────────────────────────

def find_medications_by_owner(conn, owner_id: int, active_only: bool = False) -> List[Medication]:
    sql = "SELECT * FROM medications WHERE owner_id = ?"
    if active_only:
        sql += " AND is_active = 1"
    sql += " ORDER BY name COLLATE NOCASE, id"
    return [Medication.from_row(r) for r in conn.execute(sql, (owner_id,)).fetchall()]


def get_medication(conn, owner_id: int, medication_id: int) -> Optional[Medication]:
    row = conn.execute(
        "SELECT * FROM medications WHERE id = ? AND owner_id = ?", (medication_id, owner_id)
    ).fetchone()
    return Medication.from_row(row) if row else None


def create_medication(
    conn,
    owner_id: int,
    name: str,
    dosage: str,
    frequency: str,
    start_date: date,
    end_date: Optional[date] = None,
    instructions: str = "",
) -> Medication:
    cur = conn.execute(
        "INSERT INTO medications"
        " (owner_id, name, dosage, frequency, start_date, end_date, instructions, is_active, created_at)"
        " VALUES (?, ?, ?, ?, ?, ?, ?, 1, ?)",
        (owner_id, name, dosage, frequency, start_date.isoformat(), _iso(end_date), instructions, _stamp()),
    )
    conn.commit()
    return get_medication(conn, owner_id, cur.lastrowid)


def update_medication(
    conn,
    owner_id: int,
    medication_id: int,
    name: str,
    dosage: str,
    frequency: str,
    start_date: date,
    end_date: Optional[date],
    instructions: str,
    is_active: bool,
) -> Optional[Medication]:
    cur = conn.execute(
        "UPDATE medications SET name = ?, dosage = ?, frequency = ?, start_date = ?, end_date = ?,"
        " instructions = ?, is_active = ? WHERE id = ? AND owner_id = ?",
        (
            name, dosage, frequency, start_date.isoformat(), _iso(end_date),
            instructions, int(is_active), medication_id, owner_id,
        ),
    )
    conn.commit()
    if cur.rowcount == 0:
        return None
    return get_medication(conn, owner_id, medication_id)


def deactivate_medication(conn, owner_id: int, medication_id: int) -> bool:
    """Hide a medication from active lists; its history stays in place."""
    cur = conn.execute(
        "UPDATE medications SET is_active = 0 WHERE id = ? AND owner_id = ?",
        (medication_id, owner_id),
    )
    conn.commit()
    return cur.rowcount > 0


# ── Intake events ────────────────────────────────────────────────────────────

def find_events_by_medication_ids(
    conn, ids: Iterable[int], date_range: Optional[DateRange] = None
) -> List[IntakeEvent]:
    """Events for ``ids``, optionally limited to days whose start falls in ``date_range``.

    ``date_range`` is an inclusive pair of aware datetimes.
    """
    ids = list(ids)
    if not ids:
        return []
    sql = f"SELECT * FROM intake_events WHERE medication_id IN ({_placeholders(ids)})"
    params: list = list(ids)
    if date_range is not None:
        start, end = (dt.astimezone(APP_TIMEZONE) for dt in date_range)
        sql += " AND date >= ? AND date <= ?"
        params += [start.date().isoformat(), end.date().isoformat()]
    sql += " ORDER BY date DESC, medication_id"
    events = [IntakeEvent.from_row(r) for r in conn.execute(sql, params).fetchall()]
    if date_range is not None:
        events = [e for e in events if start <= _start_of_day(e.date) <= end]
    return events


def upsert_event(conn, medication_id: int, day: date, status: str, notes: str = "") -> IntakeEvent:
    """Record intake for one medication on one day, replacing any earlier entry."""
    now = _stamp()
    conn.execute(
        "INSERT INTO intake_events (medication_id, date, status, notes, created_at, updated_at)"
        " VALUES (?, ?, ?, ?, ?, ?)"
        " ON CONFLICT (medication_id, date) DO UPDATE SET"
        " status = excluded.status, notes = excluded.notes, updated_at = excluded.updated_at",
        (medication_id, day.isoformat(), status, notes, now, now),
    )
    conn.commit()
    row = conn.execute(
        "SELECT * FROM intake_events WHERE medication_id = ? AND date = ?",
        (medication_id, day.isoformat()),
    ).fetchone()
    return IntakeEvent.from_row(row)


def get_event_for_owner(conn, owner_id: int, event_id: int) -> Optional[IntakeEvent]:
    row = conn.execute(
        "SELECT ie.* FROM intake_events ie"
        " JOIN medications m ON m.id = ie.medication_id"
        " WHERE ie.id = ? AND m.owner_id = ?",
        (event_id, owner_id),
    ).fetchone()
    return IntakeEvent.from_row(row) if row else None


def update_event(conn, event_id: int, status: str, notes: str) -> IntakeEvent:
    conn.execute(
        "UPDATE intake_events SET status = ?, notes = ?, updated_at = ? WHERE id = ?",
        (status, notes, _stamp(), event_id),
    )
    conn.commit()
    return IntakeEvent.from_row(
        conn.execute("SELECT * FROM intake_events WHERE id = ?", (event_id,)).fetchone()
    )


def delete_event(conn, event_id: int):
    conn.execute("DELETE FROM intake_events WHERE id = ?", (event_id,))
    conn.commit()


# ── Side effects ─────────────────────────────────────────────────────────────

def find_side_effects_by_medication_ids(conn, ids: Iterable[int]) -> List[SideEffect]:
    ids = list(ids)
    if not ids:
        return []
    rows = conn.execute(
        f"SELECT * FROM side_effects WHERE medication_id IN ({_placeholders(ids)})"
        " ORDER BY start_date DESC, id DESC",
        ids,
    ).fetchall()
    return [SideEffect.from_row(r) for r in rows]


def get_side_effect_for_owner(conn, owner_id: int, side_effect_id: int) -> Optional[SideEffect]:
    row = conn.execute(
        "SELECT se.* FROM side_effects se"
        " JOIN medications m ON m.id = se.medication_id"
        " WHERE se.id = ? AND m.owner_id = ?",
        (side_effect_id, owner_id),
    ).fetchone()
    return SideEffect.from_row(row) if row else None


def create_side_effect(
    conn,
    medication_id: int,
    effect: str,
    severity: int,
    start_date: date,
    end_date: Optional[date] = None,
    notes: str = "",
) -> SideEffect:
    cur = conn.execute(
        "INSERT INTO side_effects (medication_id, effect, severity, start_date, end_date, notes, created_at)"
        " VALUES (?, ?, ?, ?, ?, ?, ?)",
        (medication_id, effect, severity, start_date.isoformat(), _iso(end_date), notes, _stamp()),
    )
    conn.commit()
    return SideEffect.from_row(
        conn.execute("SELECT * FROM side_effects WHERE id = ?", (cur.lastrowid,)).fetchone()
    )


def update_side_effect(
    conn,
    side_effect_id: int,
    effect: str,
    severity: int,
    start_date: date,
    end_date: Optional[date],
    notes: str,
) -> SideEffect:
    conn.execute(
        "UPDATE side_effects SET effect = ?, severity = ?, start_date = ?, end_date = ?, notes = ?"
        " WHERE id = ?",
        (effect, severity, start_date.isoformat(), _iso(end_date), notes, side_effect_id),
    )
    conn.commit()
    return SideEffect.from_row(
        conn.execute("SELECT * FROM side_effects WHERE id = ?", (side_effect_id,)).fetchone()
    )


def delete_side_effect(conn, side_effect_id: int):
    conn.execute("DELETE FROM side_effects WHERE id = ?", (side_effect_id,))
    conn.commit()


# ── Users and clinician assignments ─────────────────────────────────────────

def find_user_by_username(conn, username: str):
    return conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()


def create_user(conn, username: str, password_hash: str, role: str, share_code: str = ""):
    cur = conn.execute(
        "INSERT INTO users (username, password_hash, role, share_code, created_at) VALUES (?, ?, ?, ?, ?)",
        (username, password_hash, role, share_code, _stamp()),
    )
    conn.commit()
    logger.info("Created %s account %r (id=%s)", role, username, cur.lastrowid)
    return conn.execute("SELECT * FROM users WHERE id = ?", (cur.lastrowid,)).fetchone()


def find_patient_by_share_code(conn, share_code: str):
    return conn.execute(
        "SELECT * FROM users WHERE share_code = ? AND role = 'patient'", (share_code,)
    ).fetchone()


def find_assigned_patients(conn, clinician_id: int):
    return conn.execute(
        "SELECT u.id, u.username, u.created_at FROM users u"
        " JOIN clinician_patients cp ON cp.patient_id = u.id"
        " WHERE cp.clinician_id = ? AND u.role = 'patient'"
        " ORDER BY u.username COLLATE NOCASE",
        (clinician_id,),
    ).fetchall()


def get_assigned_patient(conn, clinician_id: int, patient_id: int):
    return conn.execute(
        "SELECT u.id, u.username, u.created_at FROM users u"
        " JOIN clinician_patients cp ON cp.patient_id = u.id"
        " WHERE cp.clinician_id = ? AND u.id = ? AND u.role = 'patient'",
        (clinician_id, patient_id),
    ).fetchone()


def assign_patient(conn, clinician_id: int, patient_id: int):
    conn.execute(
        "INSERT OR IGNORE INTO clinician_patients (clinician_id, patient_id) VALUES (?, ?)",
        (clinician_id, patient_id),
    )
    conn.commit()


def unassign_patient(conn, clinician_id: int, patient_id: int):
    conn.execute(
        "DELETE FROM clinician_patients WHERE clinician_id = ? AND patient_id = ?",
        (clinician_id, patient_id),
    )
    conn.commit()
