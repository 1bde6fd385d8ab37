from __future__ import annotations

import uuid
from collections.abc import Iterable
from time import perf_counter
from typing import Any, Callable

import structlog
from starlette.datastructures import MutableHeaders

from app.observability.metrics import MetricEmitter
from app.observability.reporter import MetricsReporter
from app.observability.taxonomy import UNKNOWN_STATUS, RequestObservation


class RequestMetricsMiddleware:
    """Adds request_id context, access logs, and per-request monitoring metrics.

    Metrics are reported after the downstream app returns, on every exit path.
    Nothing raised while reporting reaches the response.
    """

    def __init__(
        self,
        app: Callable[..., Any],
        emitter: MetricEmitter,
        resource_param: str = "id",
        emission_timeout: float | None = 0.25,
        emission_max_threads: int = 8,
        excluded_paths: Iterable[str] = ("/api/metrics",),
        clock: Callable[[], float] = perf_counter,
    ) -> None:
        self.app = app
        self.emitter = emitter
        self.reporter = MetricsReporter(emitter, timeout=emission_timeout, max_threads=emission_max_threads)
        self._resource_param = resource_param
        # Avoid self-observing the observability endpoints.
        self._excluded_metric_paths = set(excluded_paths)
        self._clock = clock

    async def __call__(self, scope: dict[str, Any], receive: Callable[..., Any], send: Callable[..., Any]) -> None:
        if scope.get("type") != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        path = scope.get("path") or ""
        method = scope.get("method") or ""

        structlog.contextvars.bind_contextvars(
            request_id=request_id,
            path=path,
            method=method,
        )

        start = self._clock()
        status_code: int = UNKNOWN_STATUS

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code

            if message.get("type") == "http.response.start":
                status_code = int(message.get("status", UNKNOWN_STATUS))
                headers = MutableHeaders(scope=message)
                headers["X-Request-ID"] = request_id

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception:
            # Starlette's outer error boundary answers unhandled errors with a 500.
            if status_code == UNKNOWN_STATUS:
                status_code = 500
            raise
        finally:
            elapsed_ms = max(0.0, (self._clock() - start) * 1000.0)
            resource_id = self._route_resource_id(scope)

            if path not in self._excluded_metric_paths:
                await self._report(
                    RequestObservation(
                        method=method,
                        path=path,
                        status_code=status_code,
                        duration_ms=elapsed_ms,
                        route_resource_id=resource_id,
                    )
                )

            structlog.get_logger("access").info(
                "http_request",
                status_code=status_code,
                elapsed_ms=round(elapsed_ms, 2),
                resource_id=resource_id,
            )

            structlog.contextvars.clear_contextvars()

    def _route_resource_id(self, scope: dict[str, Any]) -> str | None:
        # The router writes path_params into the shared scope once a route matches.
        params = scope.get("path_params") or {}
        value = params.get(self._resource_param)
        if value is None:
            return None
        value = str(value)
        return value or None

    async def _report(self, observation: RequestObservation) -> None:
        try:
            transaction = self.emitter.current_transaction()
        except Exception:  # noqa: BLE001
            structlog.get_logger("metrics").warning("current_transaction_failed", exc_info=True)
            transaction = None

        try:
            await self.reporter.dispatch(observation, transaction)
        except Exception:  # noqa: BLE001
            structlog.get_logger("metrics").exception("metrics_report_failed")
