"""FastAPI application entry point for CURA360."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cura360 import db
from cura360.api.routes import router, set_evaluator
from cura360.config import settings
from cura360.services.stage_evaluator import StageEvaluator

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    logger.info("Starting CURA360 API.")
    db.init_db()

    set_evaluator(StageEvaluator(db))
    logger.info(
        "Stage evaluator ready (auto-evaluate after treatments=%s).",
        settings.AUTO_EVALUATE_STAGE,
    )

    yield

    # Shutdown
    set_evaluator(None)
    logger.info("Shutting down CURA360 API.")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------

app = FastAPI(
    title="CURA360 API",
    version="0.1.0",
    description="Wound management backend with automatic clinical stage evaluation.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health")
def health_check() -> dict[str, str]:
    return {
        "status": "ok",
        "auto_evaluate_stage": str(settings.AUTO_EVALUATE_STAGE),
    }
