"""API routes — all REST endpoints for the CURA360 backend."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Response

from cura360 import db
from cura360.config import settings
from cura360.schemas.wound import (
    PatientCreate,
    PatientResponse,
    StageEvaluationResponse,
    StageOverride,
    TreatmentCreate,
    TreatmentRecorded,
    TreatmentResponse,
    TreatmentUpdate,
    WoundCreate,
    WoundResponse,
    WoundUpdate,
)
from cura360.services.stage_evaluator import (
    CollaboratorReadError,
    StageEvaluation,
    StageEvaluator,
)
from cura360.services.treatments import record_treatment

logger = logging.getLogger(__name__)
router = APIRouter()

# ---------------------------------------------------------------------------
# Evaluator reference — set from main.py at startup
# ---------------------------------------------------------------------------
_evaluator: StageEvaluator | None = None


def set_evaluator(evaluator: StageEvaluator | None) -> None:
    global _evaluator
    _evaluator = evaluator


def get_evaluator() -> StageEvaluator | None:
    return _evaluator


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _require_wound(wound_id: str) -> dict[str, Any]:
    wound = db.get_wound(wound_id)
    if wound is None:
        raise HTTPException(status_code=404, detail="Wound not found.")
    return wound


def _changes(body: Any, required: tuple[str, ...]) -> dict[str, Any]:
    """Fields explicitly sent in a PATCH body; nulls are dropped for NOT NULL columns."""
    data = body.model_dump(exclude_unset=True)
    return {k: v for k, v in data.items() if v is not None or k not in required}


def _patient_response(patient: dict[str, Any]) -> PatientResponse:
    return PatientResponse(**patient, wound_count=len(db.list_wounds(patient["id"])))


def _wound_response(wound: dict[str, Any]) -> WoundResponse:
    treatments = db.list_treatments_by_wound(wound["id"])
    return WoundResponse(**wound, treatment_count=len(treatments))


def _evaluation_response(result: StageEvaluation) -> StageEvaluationResponse:
    return StageEvaluationResponse(
        wound_id=result.wound_id,
        previous_stage=result.previous_stage,
        stage=result.stage,
        rule=result.rule,
        changed=result.changed,
        persisted=result.persisted,
        evaluated_at=result.evaluated_at.isoformat(),
    )


# ---------------------------------------------------------------------------
# Patient endpoints
# ---------------------------------------------------------------------------

@router.post("/patients", response_model=PatientResponse, status_code=201)
def create_patient(body: PatientCreate) -> PatientResponse:
    patient = db.create_patient(body.model_dump())
    return _patient_response(patient)


@router.get("/patients", response_model=list[PatientResponse])
def list_patients() -> list[PatientResponse]:
    return [_patient_response(p) for p in db.list_patients()]


@router.get("/patients/{patient_id}", response_model=PatientResponse)
def get_patient(patient_id: str) -> PatientResponse:
    patient = db.get_patient(patient_id)
    if patient is None:
        raise HTTPException(status_code=404, detail="Patient not found.")
    return _patient_response(patient)


@router.get("/patients/{patient_id}/wounds", response_model=list[WoundResponse])
def list_patient_wounds(patient_id: str) -> list[WoundResponse]:
    if db.get_patient(patient_id) is None:
        raise HTTPException(status_code=404, detail="Patient not found.")
    return [_wound_response(w) for w in db.list_wounds(patient_id)]


# ---------------------------------------------------------------------------
# Wound endpoints
# ---------------------------------------------------------------------------

@router.post("/wounds", response_model=WoundResponse, status_code=201)
def create_wound(body: WoundCreate) -> WoundResponse:
    if db.get_patient(body.patient_id) is None:
        raise HTTPException(status_code=404, detail="Patient not found.")
    wound = db.create_wound(body.model_dump(mode="json"))
    logger.info("Wound %s registered for patient %s.", wound["id"], body.patient_id)
    return _wound_response(wound)


@router.get("/wounds", response_model=list[WoundResponse])
def list_wounds() -> list[WoundResponse]:
    return [_wound_response(w) for w in db.list_wounds()]


@router.get("/wounds/{wound_id}", response_model=WoundResponse)
def get_wound(wound_id: str) -> WoundResponse:
    return _wound_response(_require_wound(wound_id))


@router.patch("/wounds/{wound_id}", response_model=WoundResponse)
def update_wound(wound_id: str, body: WoundUpdate) -> WoundResponse:
    _require_wound(wound_id)
    wound = db.update_wound(wound_id, _changes(body, ("type", "location", "status")))
    if wound is None:
        raise HTTPException(status_code=404, detail="Wound not found.")
    return _wound_response(wound)


@router.delete("/wounds/{wound_id}", status_code=204)
def delete_wound(wound_id: str) -> Response:
    if not db.delete_wound(wound_id):
        raise HTTPException(status_code=404, detail="Wound not found.")
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Clinical stage endpoints
# ---------------------------------------------------------------------------

@router.post("/wounds/{wound_id}/stage/evaluate", response_model=StageEvaluationResponse)
def evaluate_wound_stage(
    wound_id: str,
    evaluator: StageEvaluator | None = Depends(get_evaluator),
) -> StageEvaluationResponse:
    if evaluator is None:
        raise HTTPException(status_code=503, detail="Stage evaluator not initialized.")
    try:
        result = evaluator.run(wound_id)
    except CollaboratorReadError as exc:
        logger.warning("Stage evaluation failed for wound %s: %s", wound_id, exc)
        raise HTTPException(status_code=503, detail="Stage evaluation failed.") from exc
    if result is None:
        raise HTTPException(status_code=404, detail="Wound not found.")
    return _evaluation_response(result)


@router.put("/wounds/{wound_id}/stage", response_model=WoundResponse)
def override_wound_stage(wound_id: str, body: StageOverride) -> WoundResponse:
    """Set the clinical stage by hand, bypassing the rule cascade."""
    previous = _require_wound(wound_id)
    if not db.set_wound_stage(wound_id, body.clinical_stage.value):
        raise HTTPException(status_code=404, detail="Wound not found.")
    logger.info(
        "Wound %s stage manually set %s -> %s.",
        wound_id, previous["clinical_stage"], body.clinical_stage.value,
    )
    return _wound_response(_require_wound(wound_id))


# ---------------------------------------------------------------------------
# Treatment endpoints
# ---------------------------------------------------------------------------

@router.post("/treatments", response_model=TreatmentRecorded, status_code=201)
def create_treatment(
    body: TreatmentCreate,
    evaluator: StageEvaluator | None = Depends(get_evaluator),
) -> TreatmentRecorded:
    _require_wound(body.wound_id)
    treatment, evaluation = record_treatment(
        body.model_dump(),
        evaluator=evaluator if settings.AUTO_EVALUATE_STAGE else None,
    )
    return TreatmentRecorded(
        treatment=TreatmentResponse(**treatment),
        stage_evaluation=_evaluation_response(evaluation) if evaluation else None,
    )


@router.get("/wounds/{wound_id}/treatments", response_model=list[TreatmentResponse])
def list_wound_treatments(wound_id: str) -> list[TreatmentResponse]:
    _require_wound(wound_id)
    return [TreatmentResponse(**t) for t in db.list_treatments_by_wound(wound_id)]


@router.get("/treatments/{treatment_id}", response_model=TreatmentResponse)
def get_treatment(treatment_id: str) -> TreatmentResponse:
    treatment = db.get_treatment(treatment_id)
    if treatment is None:
        raise HTTPException(status_code=404, detail="Treatment not found.")
    return TreatmentResponse(**treatment)


@router.patch("/treatments/{treatment_id}", response_model=TreatmentResponse)
def update_treatment(treatment_id: str, body: TreatmentUpdate) -> TreatmentResponse:
    if db.get_treatment(treatment_id) is None:
        raise HTTPException(status_code=404, detail="Treatment not found.")
    treatment = db.update_treatment(treatment_id, _changes(body, ("technique",)))
    return TreatmentResponse(**treatment)  # type: ignore[arg-type]


@router.delete("/treatments/{treatment_id}", status_code=204)
def delete_treatment(treatment_id: str) -> Response:
    if not db.delete_treatment(treatment_id):
        raise HTTPException(status_code=404, detail="Treatment not found.")
    return Response(status_code=204)
