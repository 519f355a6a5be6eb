"""SQLite database layer — thin wrapper around sqlite3, no ORM."""

from __future__ import annotations

import os
import sqlite3
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from cura360.config import settings

_SCHEMA = """
CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    age INTEGER NOT NULL CHECK (age >= 0 AND age <= 150),
    diagnosis TEXT,
    comorbidities TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS wounds (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL REFERENCES patients(id) ON DELETE CASCADE,
    type TEXT NOT NULL,
    location TEXT NOT NULL,
    dimensions TEXT,
    status TEXT NOT NULL DEFAULT 'active'
        CHECK (status IN ('active', 'pending', 'critical', 'closed')),
    clinical_stage TEXT NOT NULL DEFAULT 'valoracion_inicial'
        CHECK (clinical_stage IN (
            'valoracion_inicial', 'tratamiento_en_curso', 'bajo_observacion',
            'evolucion_favorable', 'alta_clinica'
        )),
    infection_signs TEXT,
    pain_scale INTEGER,
    exudate_amount TEXT,
    length_cm REAL,
    width_cm REAL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_wounds_patient ON wounds(patient_id);

CREATE TABLE IF NOT EXISTS treatments (
    id TEXT PRIMARY KEY,
    wound_id TEXT NOT NULL REFERENCES wounds(id) ON DELETE CASCADE,
    technique TEXT NOT NULL,
    supplies TEXT,
    notes TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_treatments_wound ON treatments(wound_id);
"""

_WOUND_COLUMNS = {
    "type", "location", "dimensions", "status", "infection_signs",
    "pain_scale", "exudate_amount", "length_cm", "width_cm",
}

_TREATMENT_COLUMNS = {"technique", "supplies", "notes"}


def _db_path() -> str:
    """Derive the SQLite file path from DATABASE_URL."""
    url = settings.DATABASE_URL
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "")
    return "./data/cura360.db"


def init_db() -> None:
    """Create tables if they do not exist."""
    path = _db_path()
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    conn = sqlite3.connect(path)
    conn.executescript(_SCHEMA)
    conn.commit()
    conn.close()


def get_db() -> sqlite3.Connection:
    """Return a new connection with row_factory set to sqlite3.Row."""
    conn = sqlite3.connect(_db_path())
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def _row_to_dict(row: sqlite3.Row | None) -> dict[str, Any] | None:
    if row is None:
        return None
    return dict(row)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _update_row(
    table: str, row_id: str, data: dict[str, Any], allowed: set[str]
) -> int:
    """Apply the allowed keys of *data* to one row; return the affected row count."""
    cols = []
    vals: list[Any] = []
    for k, v in data.items():
        if k in allowed:
            cols.append(f"{k} = ?")
            vals.append(v)
    if not cols:
        return 0
    vals.append(row_id)
    conn = get_db()
    try:
        cur = conn.execute(
            f"UPDATE {table} SET {', '.join(cols)} WHERE id = ?",
            vals,
        )
        conn.commit()
        return cur.rowcount
    finally:
        conn.close()


def _delete_row(table: str, row_id: str) -> bool:
    conn = get_db()
    try:
        cur = conn.execute(f"DELETE FROM {table} WHERE id = ?", (row_id,))
        conn.commit()
        return cur.rowcount > 0
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------------

def create_patient(data: dict[str, Any]) -> dict[str, Any]:
    patient_id = str(uuid4())
    conn = get_db()
    try:
        conn.execute(
            "INSERT INTO patients (id, name, age, diagnosis, comorbidities, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                patient_id,
                data["name"],
                data["age"],
                data.get("diagnosis"),
                data.get("comorbidities"),
                data.get("created_at") or _now(),
            ),
        )
        conn.commit()
    finally:
        conn.close()
    return get_patient(patient_id)  # type: ignore[return-value]


def get_patient(patient_id: str) -> dict[str, Any] | None:
    conn = get_db()
    try:
        row = conn.execute("SELECT * FROM patients WHERE id = ?", (patient_id,)).fetchone()
        return _row_to_dict(row)
    finally:
        conn.close()


def list_patients() -> list[dict[str, Any]]:
    conn = get_db()
    try:
        rows = conn.execute("SELECT * FROM patients ORDER BY created_at DESC").fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()


# ---------------------------------------------------------------------------
# Wounds
# ---------------------------------------------------------------------------

def create_wound(data: dict[str, Any]) -> dict[str, Any]:
    wound_id = str(uuid4())
    conn = get_db()
    try:
        conn.execute(
            "INSERT INTO wounds (id, patient_id, type, location, dimensions, status, "
            "clinical_stage, infection_signs, pain_scale, exudate_amount, length_cm, "
            "width_cm, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                wound_id,
                data["patient_id"],
                data["type"],
                data["location"],
                data.get("dimensions"),
                data.get("status") or "active",
                data.get("clinical_stage") or "valoracion_inicial",
                data.get("infection_signs"),
                data.get("pain_scale"),
                data.get("exudate_amount"),
                data.get("length_cm"),
                data.get("width_cm"),
                data.get("created_at") or _now(),
            ),
        )
        conn.commit()
    finally:
        conn.close()
    return get_wound(wound_id)  # type: ignore[return-value]


def get_wound(wound_id: str) -> dict[str, Any] | None:
    conn = get_db()
    try:
        row = conn.execute("SELECT * FROM wounds WHERE id = ?", (wound_id,)).fetchone()
        return _row_to_dict(row)
    finally:
        conn.close()


def list_wounds(patient_id: str | None = None) -> list[dict[str, Any]]:
    """Return wounds newest first, optionally restricted to one patient."""
    conn = get_db()
    try:
        if patient_id is None:
            rows = conn.execute("SELECT * FROM wounds ORDER BY created_at DESC").fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM wounds WHERE patient_id = ? ORDER BY created_at DESC",
                (patient_id,),
            ).fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()


def update_wound(wound_id: str, data: dict[str, Any]) -> dict[str, Any] | None:
    # clinical_stage only changes through set_wound_stage.
    _update_row("wounds", wound_id, data, _WOUND_COLUMNS)
    return get_wound(wound_id)


def set_wound_stage(
    wound_id: str, stage: str, *, expected_stage: str | None = None
) -> bool:
    """Write ``clinical_stage`` for one wound.

    When *expected_stage* is given the update only applies if the stored stage
    still equals it (compare-and-swap). Returns True if a row was updated.
    """
    conn = get_db()
    try:
        if expected_stage is None:
            cur = conn.execute(
                "UPDATE wounds SET clinical_stage = ? WHERE id = ?",
                (stage, wound_id),
            )
        else:
            cur = conn.execute(
                "UPDATE wounds SET clinical_stage = ? WHERE id = ? AND clinical_stage = ?",
                (stage, wound_id, expected_stage),
            )
        conn.commit()
        return cur.rowcount == 1
    finally:
        conn.close()


def delete_wound(wound_id: str) -> bool:
    return _delete_row("wounds", wound_id)


# ---------------------------------------------------------------------------
# Treatments
# ---------------------------------------------------------------------------

def create_treatment(data: dict[str, Any]) -> dict[str, Any]:
    treatment_id = str(uuid4())
    conn = get_db()
    try:
        conn.execute(
            "INSERT INTO treatments (id, wound_id, technique, supplies, notes, created_at) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (
                treatment_id,
                data["wound_id"],
                data["technique"],
                data.get("supplies"),
                data.get("notes"),
                data.get("created_at") or _now(),
            ),
        )
        conn.commit()
    finally:
        conn.close()
    return get_treatment(treatment_id)  # type: ignore[return-value]


def get_treatment(treatment_id: str) -> dict[str, Any] | None:
    conn = get_db()
    try:
        row = conn.execute("SELECT * FROM treatments WHERE id = ?", (treatment_id,)).fetchone()
        return _row_to_dict(row)
    finally:
        conn.close()


def list_treatments_by_wound(wound_id: str) -> list[dict[str, Any]]:
    """Return a wound's treatments, most recent first."""
    conn = get_db()
    try:
        rows = conn.execute(
            "SELECT * FROM treatments WHERE wound_id = ? ORDER BY created_at DESC, rowid DESC",
            (wound_id,),
        ).fetchall()
        return [dict(r) for r in rows]
    finally:
        conn.close()


def update_treatment(treatment_id: str, data: dict[str, Any]) -> dict[str, Any] | None:
    _update_row("treatments", treatment_id, data, _TREATMENT_COLUMNS)
    return get_treatment(treatment_id)


def delete_treatment(treatment_id: str) -> bool:
    return _delete_row("treatments", treatment_id)
