from __future__ import annotations

import logging

from fastapi import FastAPI

from app.api.metrics import router as metrics_router
from app.api.products import router as products_router
from app.config import Settings, get_settings
from app.db.session import init_db
from app.observability.logging import configure_logging
from app.observability.metrics import MetricEmitter
from app.observability.middleware import RequestMetricsMiddleware
from app.observability.new_relic import build_emitter, log_monitoring_configuration


def create_app(emitter: MetricEmitter | None = None, settings: Settings | None = None) -> FastAPI:
    """Build the API. The emitter is created once here and shared by every request."""

    settings = settings or get_settings()
    configure_logging(getattr(logging, settings.log_level.upper(), logging.INFO), json_logs=settings.log_json)
    if emitter is None:
        emitter = build_emitter(settings)

    app = FastAPI(title="Product API", version="0.1.0")
    app.state.settings = settings
    app.state.metric_emitter = emitter
    app.include_router(products_router)
    app.include_router(metrics_router)
    app.add_middleware(
        RequestMetricsMiddleware,
        emitter=emitter,
        resource_param=settings.metrics_resource_param,
        emission_timeout=settings.metrics_emission_timeout,
        emission_max_threads=settings.metrics_emission_max_threads,
        excluded_paths=settings.metrics_excluded_paths,
    )

    @app.on_event("startup")
    def _startup() -> None:
        init_db(settings)
        log_monitoring_configuration(settings, emitter)

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()
