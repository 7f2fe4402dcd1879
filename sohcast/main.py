"""
FastAPI application for the SOHcast battery degradation API.

This module defines the JSON endpoints, maps engine and validation errors
onto HTTP responses and logs every request.  All computation is delegated
to ``sohcast.service``; nothing is stored between requests.

Usage:
    uvicorn sohcast.main:app --reload --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .data.profile import AnalysisRequest, HealthRequest, InvalidProfile
from .log import setup_logging
from .service import analyze_battery_health, health_summary, trend_payload

API_VERSION = "1.0.0"

# ---------------------------------------------------------------------------
# Configuration

ENVIRONMENT = os.getenv("SOHCAST_ENV", "development")
LOG_LEVEL = os.getenv("SOHCAST_LOG_LEVEL", "INFO")
LOG_DIR = os.getenv("SOHCAST_LOG_DIR") or None

setup_logging(level=LOG_LEVEL, log_dir=LOG_DIR)
logger = logging.getLogger(__name__)

app = FastAPI(title="SOHcast", version=API_VERSION)

ENDPOINTS = {
    "POST /api/battery/analyze": "Full battery analysis",
    "POST /api/battery/health": "Health summary only",
    "POST /api/battery/trend": "Trend data only",
    "GET /api/battery/status": "API health check",
}


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _success(data: Any) -> Dict[str, Any]:
    return {"success": True, "data": data, "timestamp": _timestamp()}


def _error(status_code: int, error: str, message: str, **extra: Any) -> JSONResponse:
    body = {"success": False, "error": error, "message": message, **extra, "timestamp": _timestamp()}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


# ---------------------------------------------------------------------------
# Middleware and error handlers

@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log method, path, status and duration of every request."""
    start = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %s %.1fms", request.method, request.url.path, status_code, duration_ms
        )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part != "body"),
            "message": err.get("msg", ""),
            "received": err.get("input"),
        }
        for err in exc.errors()
    ]
    return _error(400, "Validation Error", "Invalid request data", details=details)


@app.exception_handler(InvalidProfile)
async def invalid_profile_handler(request: Request, exc: InvalidProfile) -> JSONResponse:
    logger.warning("Rejected profile on %s: %s", request.url.path, exc.message)
    return _error(422, "Analysis Error", f"Battery analysis failed: {exc.message}")


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        return _error(
            404,
            "Not Found",
            f"Route {request.method} {request.url.path} not found",
            availableEndpoints=ENDPOINTS,
        )
    return _error(exc.status_code, "Error", str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal Server Error", "An internal server error occurred")


# ---------------------------------------------------------------------------
# Routes

@app.get("/")
async def index():
    """API information and endpoint listing."""
    return {
        "success": True,
        "message": "Battery Degradation Analysis API",
        "version": API_VERSION,
        "status": "healthy",
        "environment": ENVIRONMENT,
        "timestamp": _timestamp(),
        "endpoints": ENDPOINTS,
    }


@app.post("/api/battery/analyze")
@app.post("/api/battery/calculate", include_in_schema=False)
async def analyze(body: AnalysisRequest):
    """
    Complete battery health analysis.

    Returns the calibrated state of health, remaining useful life, fade
    components, confidence grade, the capacity trend and recommendations.
    """
    return _success(analyze_battery_health(body.to_profile()))


@app.post("/api/battery/health")
async def health(body: HealthRequest):
    """Quick health summary with the assumptions applied to missing inputs."""
    return _success(health_summary(body.to_profile(), body.assumptions()))


@app.post("/api/battery/trend")
async def trend(body: AnalysisRequest):
    """Capacity trend for charting, plus the current health and confidence."""
    return _success(trend_payload(body.to_profile()))


@app.get("/api/battery/status")
async def status():
    return {
        "success": True,
        "message": "Battery Degradation API is running",
        "version": API_VERSION,
        "endpoints": ENDPOINTS,
    }
