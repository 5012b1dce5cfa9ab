"""
FastAPI + Uvicorn ASGI application — trust-store builds over HTTP.

Stateless: the caller keeps the returned timestamp and sends it back to
reproduce the same artifact. Builds run in a worker thread so the event
loop stays responsive.

Entry point: uvicorn jks_truststore.asgi:app --host 0.0.0.0 --port 8000
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from jks_truststore import __version__
from jks_truststore.config import AppSettings, load_settings
from jks_truststore.domain.models import BuildRequest, CertificateChainInput
from jks_truststore.main import configure_structlog, create_adapters
from jks_truststore.pipeline import run_pipeline
from jks_truststore.railway import ErrorCode, FailureDescription

# ─────────────────────── Global State ───────────────────────
# Set during app startup.

_settings: AppSettings | None = None
_startup_failure: FailureDescription | None = None
log = structlog.get_logger()

_STATUS_BY_CODE = {
    ErrorCode.EMPTY_INPUT: 422,
    ErrorCode.DECODE_ERROR: 422,
}


class TrustStoreRequest(BaseModel):
    """Body of POST /truststores."""

    certificates: list[str] = Field(description="PEM chains, in alias order")
    password: str | None = Field(default=None, description="Overrides TRUSTSTORE__PASSWORD")
    timestamp: str | None = Field(default=None, description="RFC3339 timestamp of a previous build")


class TrustStoreResponse(BaseModel):
    """
    Body of a successful build.

    `jks` is the artifact_base64 output: standard base64 of the binary store.
    It carries the same name as the `jks` field of the persisted state file, so
    a response can be stored as state without renaming.
    """

    id: str
    timestamp: str
    jks: str


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Load settings and configure logging on startup."""
    global _settings, _startup_failure

    loaded = load_settings()
    if loaded.is_failure():
        _startup_failure = loaded.error()
        log.error("asgi.startup_error", code=_startup_failure.code.value, error=_startup_failure.message)
        raise RuntimeError(_startup_failure.message) from _startup_failure.exception
    settings = loaded.value()

    configure_structlog(settings.log_level)
    _settings = settings
    log.info("asgi.startup_complete", version=__version__, log_level=settings.log_level)

    yield

    log.info("asgi.shutdown_complete")


app = FastAPI(
    title="jks-truststore",
    description="Reproducible JKS trust stores from PEM certificate chains",
    version=__version__,
    lifespan=lifespan,
)


@app.get("/health")
async def health() -> JSONResponse:
    """Liveness probe — 503 when startup failed or has not completed."""
    if _startup_failure is not None:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error_code": _startup_failure.code.value,
                "error": _startup_failure.message,
            },
        )
    if _settings is None:
        return JSONResponse(status_code=503, content={"status": "starting"})
    return JSONResponse(status_code=200, content={"status": "healthy"})


@app.get("/info")
async def info() -> dict[str, Any]:
    return {
        "name": "jks-truststore",
        "version": __version__,
        "certificate_type": _settings.truststore.certificate_type if _settings else None,
        "has_error": _startup_failure is not None,
    }


@app.post("/truststores")
async def create_truststore(body: TrustStoreRequest) -> JSONResponse:
    """
    Build a JKS trust store.

    Returns 200 with {id, timestamp, jks} on success.
    Returns 422 for empty or malformed certificate input.
    Returns 500 for encoding failures, 503 before startup completed.
    """
    settings = _settings
    if settings is None:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "reason": "Service not initialized"},
        )

    password = body.password
    if password is None:
        password = settings.truststore.password.get_secret_value()

    request = BuildRequest(
        certificates=CertificateChainInput.of(body.certificates),
        password=password,
        timestamp=body.timestamp,
    )
    decoder, encoder = create_adapters()

    result = await asyncio.to_thread(
        run_pipeline,
        request,
        decoder,
        encoder,
        certificate_type=settings.truststore.certificate_type,
    )

    if result.is_success():
        outcome = result.value()
        response = TrustStoreResponse(
            id=outcome.artifact.id,
            timestamp=outcome.timestamp,
            jks=outcome.artifact.base64,
        )
        return JSONResponse(status_code=200, content=response.model_dump())

    failure = result.error()
    log.error("asgi.build_failed", code=failure.code.value, error=failure.message)
    return JSONResponse(
        status_code=_STATUS_BY_CODE.get(failure.code, 500),
        content={
            "status": "failed",
            "error_code": failure.code.value,
            "message": failure.message,
        },
    )


if __name__ == "__main__":
    import uvicorn

    _api = AppSettings().api
    uvicorn.run("jks_truststore.asgi:app", host=_api.host, port=_api.port, log_level="info")
