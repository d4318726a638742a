from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from procflow.api.v1.router import api_router
from procflow.config import APP_VERSION, settings
from procflow.core.logging_config import configure_logging
from procflow.core.metrics import app_info
from procflow.middleware.prometheus import PrometheusMiddleware

configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_info.info({"version": APP_VERSION, "environment": settings.ENVIRONMENT})
    if settings.LAYOUT_SERVICE_URL:
        logger.info("Using external layout service at %s", settings.LAYOUT_SERVICE_URL)
    else:
        logger.info("Using built-in layered layout (%s)", settings.LAYOUT_DIRECTION)
    yield


# OpenAPI docs are only served in development
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=APP_VERSION,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url=None,
    openapi_url="/api/openapi.json" if settings.ENVIRONMENT == "development" else None,
)

app.add_middleware(PrometheusMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": APP_VERSION}


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
