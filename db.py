import logging
import secrets
import sqlite3
from contextlib import contextmanager

from config import DB_PATH

logger = logging.getLogger(__name__)


def init_db():
    with sqlite3.connect(DB_PATH) as conn:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id            INTEGER PRIMARY KEY AUTOINCREMENT,
                username      TEXT    NOT NULL UNIQUE,
                password_hash TEXT    NOT NULL,
                role          TEXT    NOT NULL DEFAULT 'patient'
                                      CHECK (role IN ('patient', 'clinician')),
                share_code    TEXT    NOT NULL DEFAULT '',
                created_at    TEXT    NOT NULL DEFAULT ''
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS medications (
                id           INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id     INTEGER NOT NULL REFERENCES users(id),
                name         TEXT    NOT NULL,
                dosage       TEXT    NOT NULL,
                frequency    TEXT    NOT NULL,
                start_date   TEXT    NOT NULL,
                end_date     TEXT,
                instructions TEXT    NOT NULL DEFAULT '',
                is_active    INTEGER NOT NULL DEFAULT 1,
                created_at   TEXT    NOT NULL DEFAULT ''
            )
        """)
        # One intake event per medication per calendar day
        conn.execute("""
            CREATE TABLE IF NOT EXISTS intake_events (
                id            INTEGER PRIMARY KEY AUTOINCREMENT,
                medication_id INTEGER NOT NULL REFERENCES medications(id),
                date          TEXT    NOT NULL,
                status        TEXT    NOT NULL CHECK (status IN ('taken', 'missed', 'late')),
                notes         TEXT    NOT NULL DEFAULT '',
                created_at    TEXT    NOT NULL DEFAULT '',
                updated_at    TEXT    NOT NULL DEFAULT '',
                UNIQUE (medication_id, date)
            )
        """)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS side_effects (
                id            INTEGER PRIMARY KEY AUTOINCREMENT,
                medication_id INTEGER NOT NULL REFERENCES medications(id),
                effect        TEXT    NOT NULL,
                severity      INTEGER NOT NULL CHECK (severity BETWEEN 1 AND 5),
                start_date    TEXT    NOT NULL,
                end_date      TEXT,
                notes         TEXT    NOT NULL DEFAULT '',
                created_at    TEXT    NOT NULL DEFAULT ''
            )
        """)
        # Clinician-patient junction table
        conn.execute("""
            CREATE TABLE IF NOT EXISTS clinician_patients (
                clinician_id INTEGER NOT NULL REFERENCES users(id),
                patient_id   INTEGER NOT NULL REFERENCES users(id),
                PRIMARY KEY (clinician_id, patient_id)
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_medications_owner_id ON medications(owner_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_intake_events_date ON intake_events(date)")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_side_effects_medication_id ON side_effects(medication_id)"
        )

        # Generate share codes for any patient rows missing one
        for row in conn.execute(
            "SELECT id FROM users WHERE role = 'patient' AND share_code = ''"
        ).fetchall():
            conn.execute(
                "UPDATE users SET share_code = ? WHERE id = ?",
                (secrets.token_hex(4).upper(), row[0]),
            )
        conn.commit()
    logger.info("Database ready at %s", DB_PATH)


@contextmanager
def get_db():
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    try:
        yield conn
    finally:
        conn.close()
