import time
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlmodel import SQLModel

import vigil.models  # noqa: F401  registers tables on SQLModel.metadata
from vigil.api.routes.calendar import router as calendar_router
from vigil.api.routes.metrics import router as metrics_router
from vigil.api.routes.reminders import router as reminders_router
from vigil.api.routes.stats import router as stats_router
from vigil.api.routes.timeline import router as timeline_router
from vigil.core.config import settings
from vigil.core.errors import Internal, VigilError
from vigil.core.logging import configure_logging
from vigil.db import session as session_mod
from vigil.metrics.prometheus import api_request_latency_seconds

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # looked up at startup so tests can swap the engine
    SQLModel.metadata.create_all(session_mod.engine)
    logger.info("startup_complete", project=settings.project_name)
    yield


app = FastAPI(
    title="Vigil API",
    version="1.0.0",
    description="Case timelines, reminders and calendar for LovedOne investigations",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3001",
        "http://127.0.0.1:3001",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    start = time.perf_counter()
    status = "500"
    try:
        response: Response = await call_next(request)
        status = str(response.status_code)
        return response
    finally:
        dt = time.perf_counter() - start
        api_request_latency_seconds.labels(route=request.url.path, method=request.method, status=status).observe(dt)


@app.exception_handler(VigilError)
async def vigil_error_handler(request: Request, exc: VigilError):
    body = {"error": exc.message}
    if isinstance(exc, Internal):
        logger.error("request_failed", path=request.url.path, error=exc.message, details=exc.details)
        if settings.expose_error_details:
            body["details"] = exc.details
    return JSONResponse(status_code=exc.status_code, content=body)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "details": jsonable_encoder(exc.errors())},
    )


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(calendar_router)
app.include_router(reminders_router)
app.include_router(timeline_router)
app.include_router(stats_router)
app.include_router(metrics_router)
