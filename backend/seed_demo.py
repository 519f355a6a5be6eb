"""Seed script — populates the database with demo patients, wounds and treatments.

Wounds are back-dated and given clinical attributes that land them in
different clinical stages once the stage evaluator runs over them.
Run from the backend directory:
    python seed_demo.py
"""

from __future__ import annotations

import os
import sys
from datetime import datetime, timedelta, timezone

# Ensure cura360 is importable
sys.path.insert(0, os.path.dirname(__file__))

from cura360 import db
from cura360.services.stage_evaluator import StageEvaluator

# 4 demo patients, one wound each
DEMO_PATIENTS = [
    {
        "name": "María G.",
        "age": 62,
        "diagnosis": "Insuficiencia venosa crónica",
        "comorbidities": "diabetes, hipertensión",
        "wound": {
            "type": "ulcera_venosa",
            "location": "pierna izquierda",
            "dimensions": "9 x 6 cm",
            "infection_signs": "no",
            "pain_scale": 5,
            "exudate_amount": "abundante",
            "length_cm": 9.0,
            "width_cm": 6.0,
            "age_days": 20,
        },
        "treatments": [
            {"technique": "Limpieza con suero fisiológico", "supplies": "apósito de alginato", "day": 1},
            {"technique": "Limpieza con suero fisiológico", "supplies": "apósito de alginato", "day": 4},
            {"technique": "Desbridamiento enzimático", "supplies": "colagenasa", "day": 7},
            {"technique": "Limpieza con suero fisiológico", "supplies": "espuma hidrocelular", "day": 10},
            {"technique": "Terapia compresiva", "supplies": "venda multicapa", "day": 14},
            {"technique": "Terapia compresiva", "supplies": "venda multicapa", "day": 18},
        ],
    },
    {
        "name": "Carlos R.",
        "age": 71,
        "diagnosis": "Pie diabético",
        "comorbidities": "diabetes, neuropatía periférica",
        "wound": {
            "type": "pie_diabetico",
            "location": "pie izquierdo",
            "dimensions": "3 x 2 cm",
            "pain_scale": 4,
            "exudate_amount": "moderado",
            "length_cm": 3.0,
            "width_cm": 2.0,
            "age_days": 10,
        },
        "treatments": [
            {"technique": "Descarga y limpieza", "supplies": "hidrogel", "day": 2},
            {"technique": "Limpieza con clorhexidina", "supplies": "apósito de plata", "day": 6},
        ],
    },
    {
        "name": "Rosa T.",
        "age": 55,
        "diagnosis": "Lesión por presión",
        "comorbidities": "anemia",
        "wound": {
            "type": "lesion_por_presion",
            "location": "sacro",
            "dimensions": "2.5 x 1.8 cm",
            "infection_signs": "no",
            "pain_scale": 2,
            "exudate_amount": "escaso",
            "length_cm": 2.5,
            "width_cm": 1.8,
            "age_days": 30,
        },
        "treatments": [
            {"technique": "Cambios posturales y limpieza", "supplies": "hidrocoloide", "day": 3},
            {"technique": "Limpieza con suero fisiológico", "supplies": "hidrocoloide", "day": 9},
            {"technique": "Limpieza con suero fisiológico", "supplies": "espuma de poliuretano", "day": 15},
            {"technique": "Limpieza con suero fisiológico", "supplies": "espuma de poliuretano", "day": 21},
            {"technique": "Limpieza con suero fisiológico", "supplies": "película protectora", "day": 27},
        ],
    },
    {
        "name": "Ahmed K.",
        "age": 34,
        "diagnosis": "Quemadura térmica",
        "comorbidities": "",
        "wound": {
            "type": "quemadura",
            "location": "antebrazo derecho",
            "dimensions": "0.6 x 0.4 cm",
            "pain_scale": 1,
            "exudate_amount": "escaso",
            "length_cm": 0.6,
            "width_cm": 0.4,
            "age_days": 3,
        },
        "treatments": [],
    },
]


def main() -> None:
    db.init_db()
    now = datetime.now(timezone.utc)
    evaluator = StageEvaluator(db)

    for patient_data in DEMO_PATIENTS:
        print(f"Creating patient: {patient_data['name']}")
        patient = db.create_patient(
            {
                "name": patient_data["name"],
                "age": patient_data["age"],
                "diagnosis": patient_data["diagnosis"],
                "comorbidities": patient_data["comorbidities"] or None,
            }
        )

        wound_data = dict(patient_data["wound"])
        created = now - timedelta(days=wound_data.pop("age_days"))
        wound = db.create_wound(
            {**wound_data, "patient_id": patient["id"], "created_at": created.isoformat()}
        )

        for t in patient_data["treatments"]:
            db.create_treatment(
                {
                    "wound_id": wound["id"],
                    "technique": t["technique"],
                    "supplies": t["supplies"],
                    "created_at": (created + timedelta(days=t["day"])).isoformat(),
                }
            )

        stage = evaluator.evaluate(wound["id"])
        print(
            f"  Wound {wound['type']} ({wound['location']}): "
            f"{len(patient_data['treatments'])} treatments -> {stage.value if stage else 'n/a'}"
        )

    print(f"\nDone. {len(DEMO_PATIENTS)} patients seeded with wounds and treatments.")


if __name__ == "__main__":
    main()
