from __future__ import annotations

from datetime import UTC, datetime
from dotenv import load_dotenv
import logging
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
from starlette.exceptions import HTTPException as StarletteHTTPException

from .routers.generate import router as generate_router
from .routers.rules import router as rules_router
from .routers.sheets import router as sheets_router
from .routers.context import router as context_router
from .routers.github import router as github_router
from .routers.commands import router as commands_router
from ..domain.errors import SheetsError
from ..observability.metrics import metrics_middleware_factory
from ..security.cors import cors_headers, cors_middleware_factory

load_dotenv()  # Load environment variables from .env if present (OPENROUTER_API_KEY, GITHUB_CLIENT_ID, etc.)

logger = logging.getLogger("sheets.api")

app = FastAPI(title="Sheets API", version="0.1.0")

# Observability: request latency histogram
app.middleware("http")(metrics_middleware_factory())
# Registered last so it wraps everything else, including OPTIONS short-circuits
app.middleware("http")(cors_middleware_factory())

# Routers
app.include_router(generate_router)
app.include_router(rules_router)
app.include_router(sheets_router)
app.include_router(context_router)
app.include_router(github_router)
app.include_router(commands_router)


@app.exception_handler(SheetsError)
async def sheets_error_handler(request: Request, exc: SheetsError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return JSONResponse({"error": "Invalid request: " + "; ".join(problems)}, status_code=400)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    # Served by ServerErrorMiddleware, outside the CORS middleware
    return JSONResponse(
        {"error": str(exc) or exc.__class__.__name__},
        status_code=500,
        headers=cors_headers(request.headers.get("origin")),
    )


@app.get("/")
def root():
    return {"name": "Sheets API", "version": "0.1.0"}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
    }


@app.get("/metrics")
def metrics() -> Response:
    # Expose Prometheus metrics
    data = generate_latest(REGISTRY)
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
