from datetime import timedelta

import pytest

from conftest import NOW, make_treatments, make_wound
from cura360.schemas.wound import ClinicalStage
from cura360.services.stage_evaluator import (
    WoundSnapshot,
    compute_stage,
    days_since,
    no_improvement,
    shows_improvement,
)


def stage_for(treatment_count, days_old=0.0, **fields):
    wound = WoundSnapshot.from_record(make_wound(days_old=days_old, **fields))
    stage, _ = compute_stage(wound, make_treatments(treatment_count), NOW)
    return stage


def test_new_wound_without_treatments_is_initial_assessment():
    assert stage_for(0, days_old=0.5) == ClinicalStage.VALORACION_INICIAL


def test_wound_older_than_a_day_without_treatments_matches_no_rule():
    assert stage_for(0, days_old=2) is None


@pytest.mark.parametrize("count", [1, 2, 3])
def test_early_treatments_without_infection_are_in_progress(count):
    assert stage_for(count, days_old=5, infection_signs="no") == ClinicalStage.TRATAMIENTO_EN_CURSO


def test_pain_scale_does_not_preempt_in_progress_rule():
    # Rule order is strict: a high pain score only matters once rule 2 stops matching.
    assert stage_for(2, days_old=5, pain_scale=9) == ClinicalStage.TRATAMIENTO_EN_CURSO


@pytest.mark.parametrize("count", [1, 3, 4, 10])
def test_infection_signs_put_treated_wound_under_observation(count):
    stage = stage_for(
        count,
        days_old=40,
        infection_signs="si",
        pain_scale=0,
        exudate_amount="escaso",
        length_cm=0.5,
        width_cm=0.5,
    )
    assert stage == ClinicalStage.BAJO_OBSERVACION


@pytest.mark.parametrize("count", [0, 4, 7])
def test_severe_pain_puts_wound_under_observation(count):
    assert stage_for(count, days_old=3, pain_scale=9) == ClinicalStage.BAJO_OBSERVACION


def test_long_running_wound_without_improvement_is_under_observation():
    stage = stage_for(6, days_old=20, exudate_amount="abundante", pain_scale=3)
    assert stage == ClinicalStage.BAJO_OBSERVACION


def test_stalled_rule_needs_more_than_fourteen_days():
    stage = stage_for(6, days_old=14.5, exudate_amount="abundante", pain_scale=5)
    # 14 whole days is not "more than 14"; no improvement signal either.
    assert stage is None


def test_improving_wound_is_favorable_evolution():
    stage = stage_for(4, days_old=20, exudate_amount="moderado", pain_scale=3)
    assert stage == ClinicalStage.EVOLUCION_FAVORABLE


def test_favorable_evolution_rejects_pain_above_five():
    stage = stage_for(5, days_old=10, exudate_amount="escaso", pain_scale=6)
    assert stage is None


def test_discharge_suggested_for_small_dry_painless_wound():
    stage = stage_for(
        0,
        days_old=3,
        length_cm=0.5,
        width_cm=0.5,
        exudate_amount="escaso",
        pain_scale=1,
    )
    assert stage == ClinicalStage.ALTA_CLINICA


def test_discharge_requires_both_measurements():
    stage = stage_for(0, days_old=3, length_cm=0.5, exudate_amount="escaso", pain_scale=1)
    assert stage is None


def test_observation_takes_priority_over_discharge():
    stage = stage_for(
        0,
        days_old=3,
        length_cm=0.5,
        width_cm=0.5,
        exudate_amount="escaso",
        pain_scale=8,
    )
    assert stage == ClinicalStage.BAJO_OBSERVACION


def test_favorable_evolution_takes_priority_over_discharge():
    stage = stage_for(
        5,
        days_old=30,
        length_cm=0.5,
        width_cm=0.5,
        exudate_amount="escaso",
        pain_scale=1,
    )
    assert stage == ClinicalStage.EVOLUCION_FAVORABLE


def test_empty_strings_behave_as_absent():
    stage = stage_for(
        2,
        days_old=1,
        infection_signs="",
        pain_scale="",
        exudate_amount="  ",
        length_cm="",
        width_cm="",
    )
    assert stage == ClinicalStage.TRATAMIENTO_EN_CURSO


def test_infection_flag_is_case_insensitive():
    assert stage_for(2, days_old=1, infection_signs=" SI ") == ClinicalStage.BAJO_OBSERVACION


def test_compute_stage_reports_matching_rule():
    wound = WoundSnapshot.from_record(make_wound(days_old=20, exudate_amount="abundante"))
    stage, rule = compute_stage(wound, make_treatments(6), NOW)
    assert stage == ClinicalStage.BAJO_OBSERVACION
    assert rule == "under_observation"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def test_days_since_floors_elapsed_time():
    assert days_since(NOW - timedelta(hours=23, minutes=59), NOW) == 0
    assert days_since(NOW - timedelta(hours=24), NOW) == 1
    assert days_since(NOW - timedelta(days=14, hours=23), NOW) == 14


def test_naive_timestamps_are_read_as_utc():
    wound = WoundSnapshot.from_record(make_wound(created_at="2026-02-28 12:00:00"))
    assert days_since(wound.created_at, NOW) == 1


@pytest.mark.parametrize(
    "fields",
    [
        {"exudate_amount": "abundante"},
        {"pain_scale": 7},
        {"length_cm": 8.5, "width_cm": 2},
        {"width_cm": 9},
    ],
)
def test_no_improvement_signals(fields):
    wound = WoundSnapshot.from_record(make_wound(**fields))
    assert no_improvement(wound, make_treatments(6))


def test_no_improvement_false_for_moderate_values():
    wound = WoundSnapshot.from_record(
        make_wound(exudate_amount="moderado", pain_scale=6, length_cm=8, width_cm=8)
    )
    assert not no_improvement(wound, make_treatments(6))


def test_shows_improvement_requires_two_treatments():
    wound = WoundSnapshot.from_record(make_wound(exudate_amount="escaso"))
    assert not shows_improvement(wound, make_treatments(1))
    assert shows_improvement(wound, make_treatments(2))


@pytest.mark.parametrize(
    "fields, expected",
    [
        ({"exudate_amount": "moderado"}, True),
        ({"pain_scale": 4}, True),
        ({"length_cm": 4.9, "width_cm": 3}, True),
        ({"length_cm": 4.9}, False),
        ({"exudate_amount": "abundante", "pain_scale": 5, "length_cm": 6, "width_cm": 2}, False),
        ({"exudate_amount": "purulento"}, False),
    ],
)
def test_shows_improvement_snapshot_checks(fields, expected):
    wound = WoundSnapshot.from_record(make_wound(**fields))
    assert shows_improvement(wound, make_treatments(3)) is expected
