from __future__ import annotations

import threading
from typing import Any

import anyio
import anyio.to_thread
import structlog

from app.observability.metrics import MetricEmitter
from app.observability.taxonomy import RequestObservation, plan_emissions

logger = structlog.get_logger("metrics")


class MetricsReporter:
    """Drives a MetricEmitter for one finished request.

    Each emission is attempted on its own; a failure is logged and the next
    one still runs. With a timeout set, emission happens on a worker thread
    and is abandoned (not retried) once the timeout expires. At most
    `max_threads` emissions run at once; further ones are dropped.
    """

    def __init__(self, emitter: MetricEmitter, timeout: float | None = 0.25, max_threads: int = 8) -> None:
        self.emitter = emitter
        self.timeout = timeout
        self.max_threads = max_threads
        self._slots = threading.BoundedSemaphore(max_threads)
        self._limiter: anyio.CapacityLimiter | None = None

    def report(self, observation: RequestObservation, transaction: Any | None = None) -> int:
        """Emit everything for `observation`; returns the number of failed emissions."""

        failures = 0
        for emission in plan_emissions(observation, has_transaction=transaction is not None):
            try:
                if emission.kind == "metric":
                    self.emitter.record_metric(emission.name, emission.value)
                else:
                    self.emitter.add_attribute(transaction, emission.name, emission.value)
            except Exception:  # noqa: BLE001
                failures += 1
                logger.warning(
                    "metric_emission_failed",
                    kind=emission.kind,
                    name=emission.name,
                    exc_info=True,
                )
            else:
                logger.debug("metric_emitted", kind=emission.kind, name=emission.name, value=emission.value)
        return failures

    async def dispatch(self, observation: RequestObservation, transaction: Any | None = None) -> None:
        if self.timeout is None:
            self.report(observation, transaction)
            return

        # A slot is held until the worker thread returns, even after we stop
        # waiting for it, so a hung backend can pin at most max_threads threads.
        if not self._slots.acquire(blocking=False):
            logger.warning("metric_emission_dropped", max_threads=self.max_threads)
            return

        # Shielded so a cancelled request (client disconnect) still reports.
        with anyio.CancelScope(shield=True):
            with anyio.move_on_after(self.timeout) as scope:
                await anyio.to_thread.run_sync(
                    self._report_and_release,
                    observation,
                    transaction,
                    abandon_on_cancel=True,
                    limiter=self._thread_limiter(),
                )
            if scope.cancelled_caught:
                logger.warning("metric_emission_timeout", timeout_s=self.timeout)

    def _report_and_release(self, observation: RequestObservation, transaction: Any | None) -> None:
        try:
            self.report(observation, transaction)
        finally:
            self._slots.release()

    def _thread_limiter(self) -> anyio.CapacityLimiter:
        # Kept apart from anyio's default limiter, which FastAPI uses for sync
        # dependencies. Abandoned calls return their token before the thread
        # frees its slot, hence the headroom.
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self.max_threads * 2)
        return self._limiter
