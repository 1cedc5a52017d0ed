import logging

from fastapi import FastAPI, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from pocketbrain.db.base import get_db
from pocketbrain.core.config import settings
from pocketbrain.core.logging import setup_logging
from pocketbrain.routers import logs as logs_router
from pocketbrain.routers import memory as memory_router
from pocketbrain.routers import analytics as analytics_router
from pocketbrain.routers import taxonomy as taxonomy_router
from pocketbrain.core.errors import (
    PocketBrainException,
    pocketbrain_exception_handler,
    validation_exception_handler,
    unhandled_exception_handler,
)

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="PocketBrain API",
    description=(
        "**Personal life-log store**\n\n"
        "Saves classifier output as canonical log entries under a domain → activity "
        "taxonomy, and assembles past entries as context for classification and chat.\n\n"
        "All error responses follow the `{code, message, details}` envelope."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Exception handlers (most specific first) ---
app.add_exception_handler(PocketBrainException, pocketbrain_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

# --- Routers ---
app.include_router(logs_router.router)
app.include_router(memory_router.router)
app.include_router(analytics_router.router)
app.include_router(taxonomy_router.router)


@app.get("/health", tags=["health"], summary="Health check")
def health(db: Session = Depends(get_db)):
    """
    Returns `{"status": "ok", "db": "ok"}` when both the API and the database
    are reachable. Returns HTTP 503 if the DB is down.
    """
    try:
        db.execute(text("SELECT 1"))
        db_status = "ok"
    except SQLAlchemyError as exc:
        logger.warning("Health check could not reach the database: %s", exc)
        db_status = "unreachable"

    if db_status != "ok":
        return JSONResponse(
            status_code=503,
            content={"status": "error", "db": db_status},
        )
    return {"status": "ok", "db": "ok", "env": settings.APP_ENV}
