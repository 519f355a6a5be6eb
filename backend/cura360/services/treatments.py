"""Treatment recording with best-effort clinical stage evaluation."""

from __future__ import annotations

import logging
from typing import Any

from cura360 import db
from cura360.services.stage_evaluator import (
    StageEvaluation,
    StageEvaluationError,
    StageEvaluator,
)

logger = logging.getLogger(__name__)


def record_treatment(
    data: dict[str, Any],
    evaluator: StageEvaluator | None = None,
) -> tuple[dict[str, Any], StageEvaluation | None]:
    """Insert a treatment, then re-evaluate its wound's stage.

    The treatment is committed before evaluation starts. Evaluation failures
    are logged and reported as ``None``; they never undo the treatment.
    """
    treatment = db.create_treatment(data)
    logger.info("Treatment %s recorded for wound %s.", treatment["id"], treatment["wound_id"])

    if evaluator is None:
        return treatment, None

    try:
        evaluation = evaluator.run(treatment["wound_id"])
    except StageEvaluationError as exc:
        logger.warning(
            "Stage evaluation failed after treatment %s: %s", treatment["id"], exc,
        )
        return treatment, None
    return treatment, evaluation
