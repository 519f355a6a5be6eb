"""Shared pytest fixtures for tests.

Provides a throwaway SQLite database per test, a FastAPI test client bound to
it, and helpers for building wound records relative to a fixed instant.
"""

from datetime import datetime, timedelta, timezone

import pytest

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_wound(days_old=0.0, **fields):
    """Return a stored-style wound row created *days_old* days before NOW."""
    record = {
        "id": "w-1",
        "patient_id": "p-1",
        "type": "ulcera_venosa",
        "location": "pierna izquierda",
        "status": "active",
        "clinical_stage": "valoracion_inicial",
        "infection_signs": None,
        "pain_scale": None,
        "exudate_amount": None,
        "length_cm": None,
        "width_cm": None,
        "created_at": (NOW - timedelta(days=days_old)).isoformat(),
    }
    record.update(fields)
    return record


def make_treatments(count, wound_id="w-1"):
    """Return *count* treatment rows, most recent first."""
    return [
        {
            "id": f"t-{i}",
            "wound_id": wound_id,
            "technique": "limpieza",
            "created_at": (NOW - timedelta(hours=i)).isoformat(),
        }
        for i in range(count)
    ]


class FakeRepository:
    """In-memory stand-in for ``cura360.db`` as seen by the stage evaluator."""

    def __init__(self, wound=None, treatments=(), fail_read=False, fail_write=False):
        self.wound = dict(wound) if wound else None
        self.treatments = list(treatments)
        self.fail_read = fail_read
        self.fail_write = fail_write
        self.writes = []

    def get_wound(self, wound_id):
        if self.fail_read:
            raise ConnectionError("backend unavailable")
        if self.wound is None or self.wound["id"] != wound_id:
            return None
        return dict(self.wound)

    def list_treatments_by_wound(self, wound_id):
        return list(self.treatments)

    def set_wound_stage(self, wound_id, stage, *, expected_stage=None):
        self.writes.append((wound_id, stage, expected_stage))
        if self.fail_write:
            raise ConnectionError("write rejected")
        if self.wound is None or self.wound["id"] != wound_id:
            return False
        if expected_stage is not None and self.wound["clinical_stage"] != expected_stage:
            return False
        self.wound["clinical_stage"] = stage
        return True


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    """Point the data layer at a fresh SQLite file and create the schema."""
    from cura360 import db
    from cura360.config import settings

    monkeypatch.setattr(settings, "DATABASE_URL", f"sqlite:///{tmp_path / 'test.db'}")
    db.init_db()
    return db


@pytest.fixture
def client(temp_db):
    from fastapi.testclient import TestClient

    from cura360.main import app

    with TestClient(app) as c:
        yield c
