"""Typed records read from the store.

Rows come out of sqlite3 as ``sqlite3.Row``; the aggregator and the routers
work on these dataclasses instead so they can be built in tests without a
database.
"""
from dataclasses import asdict, dataclass
from datetime import date
from typing import Optional


def _opt_day(value) -> Optional[date]:
    return date.fromisoformat(value) if value else None


@dataclass(frozen=True)
class Medication:
    id: int
    owner_id: int
    name: str
    dosage: str
    frequency: str
    start_date: date
    end_date: Optional[date] = None
    instructions: str = ""
    is_active: bool = True

    @classmethod
    def from_row(cls, row) -> "Medication":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            dosage=row["dosage"],
            frequency=row["frequency"],
            start_date=date.fromisoformat(row["start_date"]),
            end_date=_opt_day(row["end_date"]),
            instructions=row["instructions"],
            is_active=bool(row["is_active"]),
        )


@dataclass(frozen=True)
class IntakeEvent:
    id: int
    medication_id: int
    date: date
    status: str
    notes: str = ""

    @classmethod
    def from_row(cls, row) -> "IntakeEvent":
        return cls(
            id=row["id"],
            medication_id=row["medication_id"],
            date=date.fromisoformat(row["date"]),
            status=row["status"],
            notes=row["notes"],
        )


@dataclass(frozen=True)
class SideEffect:
    id: int
    medication_id: int
    effect: str
    severity: int
    start_date: date
    end_date: Optional[date] = None
    notes: str = ""

    @classmethod
    def from_row(cls, row) -> "SideEffect":
        return cls(
            id=row["id"],
            medication_id=row["medication_id"],
            effect=row["effect"],
            severity=row["severity"],
            start_date=date.fromisoformat(row["start_date"]),
            end_date=_opt_day(row["end_date"]),
            notes=row["notes"],
        )


def _to_json(record) -> dict:
    """Dataclass -> JSON-ready dict with ISO dates."""
    item = asdict(record)
    for key, value in item.items():
        if isinstance(value, date):
            item[key] = value.isoformat()
    return item
