"""FastAPI application entry point.

This module wires together the API routers, configures middleware and
error handlers, and starts the allowance and interest tickers alongside
the server.  Every route lives under the ``/api`` prefix.
"""

import os
import asyncio
import logging
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from familybank.routes import (
    auth,
    family,
    children,
    transactions,
    schedules,
    allowance,
    interest,
)
from familybank.database import create_db_and_tables
from familybank.errors import BankError
from familybank.tickers import build_tickers

# Basic logging configuration.  The log level can be controlled with an
# environment variable so deployments can adjust verbosity without code
# changes.
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(level=getattr(logging, LOG_LEVEL))
logger = logging.getLogger(__name__)

TICKERS_ENABLED = os.getenv("TICKERS_ENABLED", "true").lower() == "true"
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

app = FastAPI(title="Family Bank")

# CORS setup
app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def on_startup():
    """Initialize the database and kick off the tickers."""

    await create_db_and_tables()
    app.state.stop_event = asyncio.Event()
    app.state.ticker_tasks = []
    if not TICKERS_ENABLED:
        logger.info("Tickers disabled")
        return
    for ticker in build_tickers():
        app.state.ticker_tasks.append(
            asyncio.create_task(ticker.run(app.state.stop_event))
        )


@app.on_event("shutdown")
async def on_shutdown():
    """Stop the tickers and wait for the current firing to finish."""

    stop_event = getattr(app.state, "stop_event", None)
    if stop_event is None:
        return
    stop_event.set()
    await asyncio.gather(*app.state.ticker_tasks)
    logger.info("Shutdown complete")


API_PREFIX = "/api"

app.include_router(auth.router, prefix=API_PREFIX)
app.include_router(family.router, prefix=API_PREFIX)
app.include_router(children.router, prefix=API_PREFIX)
app.include_router(transactions.router, prefix=API_PREFIX)
app.include_router(schedules.router, prefix=API_PREFIX)
app.include_router(allowance.router, prefix=API_PREFIX)
app.include_router(interest.router, prefix=API_PREFIX)


@app.get("/api/health")
async def health():
    return {"status": "ok"}


def _error(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": {"code": code, "message": message}},
    )


@app.exception_handler(BankError)
async def bank_error_handler(request: Request, exc: BankError):
    logger.info(
        "Request %s refused: %s (%s)", request.url.path, exc.code, exc.message
    )
    return _error(exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info("Invalid request body for %s: %s", request.url.path, exc.errors())
    return _error(400, "invalid_request", "Invalid request body.")


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all exception handler that logs the stack trace once."""
    logger.exception("Unhandled error during request %s", request.url.path)
    return _error(500, "internal_server_error", "An unexpected error occurred")
