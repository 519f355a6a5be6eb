"""StageEvaluator — derives a wound's clinical stage from its record and care history.

The evaluator reads the wound and its treatments through an injected
repository, runs an ordered rule cascade (first match wins) and writes the
stage back only when it changed:

1. Initial assessment      -> valoracion_inicial
2. In-progress treatment   -> tratamiento_en_curso
3. Under observation       -> bajo_observacion
4. Favorable evolution     -> evolucion_favorable
5. Clinical discharge      -> alta_clinica

Evaluation is advisory. A missing wound yields ``None``; a failed read raises
``CollaboratorReadError``; a failed write is logged and the computed stage is
still returned, flagged as not persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Protocol, Sequence

from cura360.schemas.wound import ClinicalStage, blank_to_none, normalize_label

logger = logging.getLogger(__name__)

INFECTION_PRESENT = "si"
EXUDATE_LOW = "escaso"
EXUDATE_MODERATE = "moderado"
EXUDATE_HIGH = "abundante"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class StageEvaluationError(Exception):
    """Stage evaluation could not be completed."""


class CollaboratorReadError(StageEvaluationError):
    """The wound or its treatments could not be read."""


class CollaboratorWriteError(StageEvaluationError):
    """The computed stage could not be stored."""


# ---------------------------------------------------------------------------
# Collaborator interface
# ---------------------------------------------------------------------------

class StageRepository(Protocol):
    """Read/write operations the evaluator needs. ``cura360.db`` satisfies it."""

    def get_wound(self, wound_id: str) -> dict[str, Any] | None: ...

    def list_treatments_by_wound(self, wound_id: str) -> list[dict[str, Any]]: ...

    def set_wound_stage(
        self, wound_id: str, stage: str, *, expected_stage: str | None = None
    ) -> bool: ...


# ---------------------------------------------------------------------------
# Normalized snapshot
# ---------------------------------------------------------------------------

def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        ts = value
    else:
        ts = datetime.fromisoformat(str(value).strip())
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def _optional_int(value: Any) -> int | None:
    value = blank_to_none(value)
    if value is None:
        return None
    return int(float(value))


def _optional_float(value: Any) -> float | None:
    value = blank_to_none(value)
    if value is None:
        return None
    return float(value)


@dataclass(frozen=True)
class WoundSnapshot:
    """The clinical attributes of one wound, with absent values as ``None``."""

    id: str
    created_at: datetime
    clinical_stage: ClinicalStage
    infection_signs: str | None = None
    pain_scale: int | None = None
    exudate_amount: str | None = None
    length_cm: float | None = None
    width_cm: float | None = None

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "WoundSnapshot":
        """Build a snapshot from a stored wound row.

        Raises ValueError (or KeyError) when the row is malformed.
        """
        return cls(
            id=str(record["id"]),
            created_at=_parse_timestamp(record["created_at"]),
            clinical_stage=ClinicalStage(
                record.get("clinical_stage") or ClinicalStage.VALORACION_INICIAL.value
            ),
            infection_signs=normalize_label(record.get("infection_signs")),
            pain_scale=_optional_int(record.get("pain_scale")),
            exudate_amount=normalize_label(record.get("exudate_amount")),
            length_cm=_optional_float(record.get("length_cm")),
            width_cm=_optional_float(record.get("width_cm")),
        )

    @property
    def has_infection(self) -> bool:
        return self.infection_signs == INFECTION_PRESENT


def days_since(created_at: datetime, now: datetime) -> int:
    """Whole elapsed days between two instants (floor of elapsed / 24h)."""
    return (now - created_at) // timedelta(days=1)


# ---------------------------------------------------------------------------
# Improvement heuristics
# ---------------------------------------------------------------------------
# Both judge the current snapshot only; no per-treatment measurements exist
# to compare against.

def no_improvement(wound: WoundSnapshot, treatments: Sequence[Any]) -> bool:
    """Current values indicate a wound that is not responding to care."""
    if wound.exudate_amount == EXUDATE_HIGH:
        return True
    if wound.pain_scale is not None and wound.pain_scale > 6:
        return True
    if wound.length_cm is not None and wound.length_cm > 8:
        return True
    if wound.width_cm is not None and wound.width_cm > 8:
        return True
    return False


def shows_improvement(wound: WoundSnapshot, treatments: Sequence[Any]) -> bool:
    """Current values suggest healing. Needs at least two recorded treatments."""
    if len(treatments) < 2:
        return False
    if wound.exudate_amount in (EXUDATE_LOW, EXUDATE_MODERATE):
        return True
    if wound.pain_scale is not None and wound.pain_scale <= 4:
        return True
    if (
        wound.length_cm is not None
        and wound.width_cm is not None
        and wound.length_cm < 5
        and wound.width_cm < 5
    ):
        return True
    return False


# ---------------------------------------------------------------------------
# Rule cascade
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StageFacts:
    wound: WoundSnapshot
    treatments: Sequence[Any]
    days_since_creation: int

    @property
    def treatment_count(self) -> int:
        return len(self.treatments)


def _initial_assessment(f: StageFacts) -> bool:
    return f.treatment_count == 0 and f.days_since_creation < 1


def _in_progress(f: StageFacts) -> bool:
    return 1 <= f.treatment_count <= 3 and not f.wound.has_infection


def _under_observation(f: StageFacts) -> bool:
    w = f.wound
    if w.has_infection:
        return True
    if w.pain_scale is not None and w.pain_scale > 7:
        return True
    return (
        f.days_since_creation > 14
        and f.treatment_count > 5
        and no_improvement(w, f.treatments)
    )


def _favorable_evolution(f: StageFacts) -> bool:
    w = f.wound
    return (
        f.treatment_count > 3
        and not w.has_infection
        and (w.pain_scale is None or w.pain_scale <= 5)
        and shows_improvement(w, f.treatments)
    )


def _clinical_discharge(f: StageFacts) -> bool:
    w = f.wound
    if w.length_cm is None or w.width_cm is None:
        return False
    return (
        w.length_cm < 1
        and w.width_cm < 1
        and w.exudate_amount == EXUDATE_LOW
        and (w.pain_scale is None or w.pain_scale <= 2)
        and not w.has_infection
    )


# Strict priority order.
RULES: tuple[tuple[str, ClinicalStage, Callable[[StageFacts], bool]], ...] = (
    ("initial_assessment", ClinicalStage.VALORACION_INICIAL, _initial_assessment),
    ("in_progress_treatment", ClinicalStage.TRATAMIENTO_EN_CURSO, _in_progress),
    ("under_observation", ClinicalStage.BAJO_OBSERVACION, _under_observation),
    ("favorable_evolution", ClinicalStage.EVOLUCION_FAVORABLE, _favorable_evolution),
    ("clinical_discharge", ClinicalStage.ALTA_CLINICA, _clinical_discharge),
)


def compute_stage(
    wound: WoundSnapshot,
    treatments: Sequence[Any],
    now: datetime,
) -> tuple[ClinicalStage | None, str | None]:
    """Run the rule cascade. Returns ``(stage, rule_name)`` or ``(None, None)``."""
    facts = StageFacts(
        wound=wound,
        treatments=treatments,
        days_since_creation=days_since(wound.created_at, now),
    )
    for name, stage, predicate in RULES:
        if predicate(facts):
            return stage, name
    return None, None


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class StageEvaluation:
    wound_id: str
    previous_stage: ClinicalStage
    stage: ClinicalStage
    rule: str | None
    changed: bool
    persisted: bool
    evaluated_at: datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StageEvaluator:
    """Evaluates and stores the clinical stage of a wound."""

    def __init__(
        self,
        repository: StageRepository,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.repository = repository
        self.clock = clock

    def evaluate(self, wound_id: str) -> ClinicalStage | None:
        """Return the stage the wound should be in, or None if it does not exist."""
        result = self.run(wound_id)
        return result.stage if result is not None else None

    def run(self, wound_id: str) -> StageEvaluation | None:
        """Evaluate one wound and persist a stage transition if warranted."""
        wound, treatments = self._load(wound_id)
        if wound is None:
            logger.info("Stage evaluation skipped: wound %s not found.", wound_id)
            return None

        now = self.clock()
        computed, rule = compute_stage(wound, treatments, now)
        stage = computed or wound.clinical_stage
        changed = stage != wound.clinical_stage

        persisted = True
        if changed:
            try:
                self._write(wound, stage)
                logger.info(
                    "Wound %s stage %s -> %s (rule=%s, treatments=%d).",
                    wound_id, wound.clinical_stage.value, stage.value, rule, len(treatments),
                )
            except CollaboratorWriteError as exc:
                persisted = False
                logger.warning(
                    "Stage %s computed for wound %s but not stored: %s",
                    stage.value, wound_id, exc,
                )
        else:
            logger.debug(
                "Wound %s stage unchanged (%s, rule=%s).",
                wound_id, stage.value, rule,
            )

        return StageEvaluation(
            wound_id=wound_id,
            previous_stage=wound.clinical_stage,
            stage=stage,
            rule=rule,
            changed=changed,
            persisted=persisted,
            evaluated_at=now,
        )

    def _load(self, wound_id: str) -> tuple[WoundSnapshot | None, list[dict[str, Any]]]:
        try:
            record = self.repository.get_wound(wound_id)
            if record is None:
                return None, []
            wound = WoundSnapshot.from_record(record)
            treatments = list(self.repository.list_treatments_by_wound(wound_id))
        except Exception as exc:
            raise CollaboratorReadError(
                f"Could not read wound {wound_id} for stage evaluation: {exc}"
            ) from exc
        return wound, treatments

    def _write(self, wound: WoundSnapshot, stage: ClinicalStage) -> None:
        try:
            stored = self.repository.set_wound_stage(
                wound.id, stage.value, expected_stage=wound.clinical_stage.value,
            )
        except Exception as exc:
            raise CollaboratorWriteError(str(exc)) from exc
        if not stored:
            raise CollaboratorWriteError(
                f"stage changed concurrently or wound removed "
                f"(expected {wound.clinical_stage.value})"
            )
