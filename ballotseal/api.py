"""
BALLOTSEAL — REST API.

FastAPI server exposing election closure, vote casting and the public
audit surface. Authentication and admin authorization happen upstream.
"""

import logging
import sqlite3
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ballotseal import __version__, config
from ballotseal.engine import BallotSealEngine
from ballotseal.exceptions import (
    AlreadyClosedError,
    BallotSealError,
    DatabaseTransactionError,
    DuplicateTagError,
    DuplicateVoteError,
    ElectionNotActiveError,
    IntegrityViolationError,
    InvalidInputError,
    LedgerError,
    MalformedProofError,
    NotFoundError,
)
from ballotseal.routes import audit as audit_router
from ballotseal.routes import elections as elections_router
from ballotseal.routes import votes as votes_router

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store and ledger on startup, release them on shutdown."""
    db_path = config.DB_PATH  # Read at runtime, not import time
    logger.info("Starting lifespan with DB_PATH: %s", db_path)
    engine = BallotSealEngine(db_path)
    await engine.init_db()
    app.state.engine = engine
    try:
        yield
    finally:
        await engine.close()
        app.state.engine = None


app = FastAPI(
    title="BALLOTSEAL — Ballot Commitment API",
    description="Anonymous ballot commitments, ledger-anchored Merkle roots "
    "and per-ballot inclusion proofs.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-User-Id"],
)


# ─── Exception Handlers ──────────────────────────────────────────────

STATUS_BY_ERROR = {
    InvalidInputError: 400,
    ElectionNotActiveError: 400,
    NotFoundError: 404,
    DuplicateVoteError: 409,
    AlreadyClosedError: 409,
    MalformedProofError: 422,
    DuplicateTagError: 500,
    IntegrityViolationError: 500,
    LedgerError: 503,
    DatabaseTransactionError: 503,
}


def status_for(exc: BallotSealError) -> int:
    for error_type, status in STATUS_BY_ERROR.items():
        if isinstance(exc, error_type):
            return status
    return 500


@app.exception_handler(BallotSealError)
async def ballotseal_error_handler(request: Request, exc: BallotSealError) -> JSONResponse:
    status = status_for(exc)
    if status >= 500:
        logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    headers = {"Retry-After": "5"} if exc.retryable else None
    return JSONResponse(
        status_code=status,
        content={"detail": str(exc), "error": type(exc).__name__, "retryable": exc.retryable},
        headers=headers,
    )


@app.exception_handler(sqlite3.Error)
async def sqlite_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    logger.error("Database error: %s", exc)
    return JSONResponse(status_code=500, content={"detail": "Internal database error"})


@app.exception_handler(Exception)
async def universal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "An unexpected server error occurred."})


# ─── Routes ──────────────────────────────────────────────────────────


@app.get("/health", tags=["health"])
async def health_check() -> dict:
    """Simple status check for load balancers."""
    return {"status": "healthy", "version": __version__}


app.include_router(elections_router.router)
app.include_router(votes_router.router)
app.include_router(audit_router.router)
