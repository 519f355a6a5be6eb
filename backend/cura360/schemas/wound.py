"""Pydantic models for request / response validation."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class ClinicalStage(str, Enum):
    VALORACION_INICIAL = "valoracion_inicial"
    TRATAMIENTO_EN_CURSO = "tratamiento_en_curso"
    BAJO_OBSERVACION = "bajo_observacion"
    EVOLUCION_FAVORABLE = "evolucion_favorable"
    ALTA_CLINICA = "alta_clinica"


# ---------------------------------------------------------------------------
# Normalization of optional clinical attributes
# ---------------------------------------------------------------------------

def blank_to_none(value: Any) -> Any:
    """Map empty or whitespace-only strings to None; pass everything else through."""
    if isinstance(value, str) and not value.strip():
        return None
    return value


def normalize_label(value: Any) -> str | None:
    """Strip and lower-case a free-text flag such as ``infection_signs``."""
    value = blank_to_none(value)
    if value is None:
        return None
    return str(value).strip().lower()


# ---------------------------------------------------------------------------
# Patients
# ---------------------------------------------------------------------------

class PatientCreate(BaseModel):
    name: str = Field(min_length=1)
    age: int = Field(ge=0, le=150)
    diagnosis: str | None = None
    comorbidities: str | None = None


class PatientResponse(BaseModel):
    id: str
    name: str
    age: int
    diagnosis: str | None = None
    comorbidities: str | None = None
    created_at: str
    wound_count: int = 0


# ---------------------------------------------------------------------------
# Wounds
# ---------------------------------------------------------------------------

class _ClinicalAttributes(BaseModel):
    infection_signs: str | None = None  # si | no
    pain_scale: int | None = Field(default=None, ge=0, le=10)
    exudate_amount: str | None = None  # escaso | moderado | abundante
    length_cm: float | None = Field(default=None, ge=0)
    width_cm: float | None = Field(default=None, ge=0)

    @field_validator("infection_signs", "exudate_amount", mode="before")
    @classmethod
    def _normalize_labels(cls, v: Any) -> str | None:
        return normalize_label(v)

    @field_validator("pain_scale", "length_cm", "width_cm", mode="before")
    @classmethod
    def _blank_numbers(cls, v: Any) -> Any:
        return blank_to_none(v)


class WoundCreate(_ClinicalAttributes):
    patient_id: str
    type: str = Field(min_length=1)
    location: str = Field(min_length=1)
    dimensions: str | None = None
    status: str = Field(default="active", pattern="^(active|pending|critical|closed)$")
    clinical_stage: ClinicalStage = ClinicalStage.VALORACION_INICIAL


class WoundUpdate(_ClinicalAttributes):
    type: str | None = None
    location: str | None = None
    dimensions: str | None = None
    status: str | None = Field(default=None, pattern="^(active|pending|critical|closed)$")


class WoundResponse(BaseModel):
    id: str
    patient_id: str
    type: str
    location: str
    dimensions: str | None = None
    status: str
    clinical_stage: ClinicalStage
    infection_signs: str | None = None
    pain_scale: int | None = None
    exudate_amount: str | None = None
    length_cm: float | None = None
    width_cm: float | None = None
    created_at: str
    treatment_count: int = 0


# ---------------------------------------------------------------------------
# Treatments (curaciones)
# ---------------------------------------------------------------------------

class TreatmentCreate(BaseModel):
    wound_id: str
    technique: str = Field(min_length=1)
    supplies: str | None = None
    notes: str | None = None


class TreatmentUpdate(BaseModel):
    technique: str | None = Field(default=None, min_length=1)
    supplies: str | None = None
    notes: str | None = None


class TreatmentResponse(BaseModel):
    id: str
    wound_id: str
    technique: str
    supplies: str | None = None
    notes: str | None = None
    created_at: str


# ---------------------------------------------------------------------------
# Clinical stage
# ---------------------------------------------------------------------------

class StageEvaluationResponse(BaseModel):
    wound_id: str
    previous_stage: ClinicalStage
    stage: ClinicalStage
    rule: str | None = None
    changed: bool
    persisted: bool
    evaluated_at: str


class TreatmentRecorded(BaseModel):
    treatment: TreatmentResponse
    stage_evaluation: StageEvaluationResponse | None = None


class StageOverride(BaseModel):
    clinical_stage: ClinicalStage
