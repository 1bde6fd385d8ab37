from __future__ import annotations

import os
from typing import Any

import newrelic.agent
import structlog

from app.config import Settings
from app.observability.metrics import InMemoryEmitter, MetricEmitter

logger = structlog.get_logger("monitoring")


class NewRelicEmitter:
    """MetricEmitter backed by the New Relic Python agent.

    Metrics are recorded against the application object rather than the
    current transaction, so they can be sent from a worker thread.
    """

    def __init__(self, application: Any | None = None, metric_prefix: str = "Custom/") -> None:
        self._application = application
        self._prefix = metric_prefix

    def _app(self) -> Any | None:
        if self._application is None:
            self._application = newrelic.agent.application()
        return self._application

    def record_metric(self, name: str, value: float) -> None:
        try:
            application = self._app()
            if application is None:
                return
            newrelic.agent.record_custom_metric(f"{self._prefix}{name}", value, application=application)
        except Exception:  # noqa: BLE001
            logger.warning("newrelic_record_metric_failed", metric=name, exc_info=True)

    def current_transaction(self) -> Any | None:
        try:
            return newrelic.agent.current_transaction()
        except Exception:  # noqa: BLE001
            logger.warning("newrelic_current_transaction_failed", exc_info=True)
            return None

    def add_attribute(self, transaction: Any, key: str, value: str | int | float) -> None:
        if transaction is None:
            return
        try:
            transaction.add_custom_attribute(key, value)
        except Exception:  # noqa: BLE001
            logger.warning("newrelic_add_attribute_failed", key=key, exc_info=True)

    def is_attached(self) -> bool:
        try:
            application = self._app()
            return bool(application is not None and application.active)
        except Exception:  # noqa: BLE001
            return False


def build_emitter(settings: Settings) -> MetricEmitter:
    """Create the process-wide emitter for the configured backend."""

    if settings.monitoring_backend != "newrelic":
        return InMemoryEmitter()

    # The agent reads these from the environment when no config file is given.
    if settings.new_relic_license_key:
        os.environ.setdefault("NEW_RELIC_LICENSE_KEY", settings.new_relic_license_key)
    os.environ.setdefault("NEW_RELIC_APP_NAME", settings.new_relic_app_name)

    try:
        newrelic.agent.initialize(settings.new_relic_config_file)
        application = newrelic.agent.register_application(timeout=settings.new_relic_register_timeout)
    except Exception:  # noqa: BLE001
        # Metrics become no-ops until the agent can be reached.
        logger.exception("newrelic_initialize_failed", config_file=settings.new_relic_config_file)
        application = None
    return NewRelicEmitter(application=application, metric_prefix=settings.new_relic_metric_prefix)


def log_monitoring_configuration(settings: Settings, emitter: MetricEmitter) -> None:
    logger.info(
        "monitoring_configured",
        backend=settings.monitoring_backend,
        app_name=settings.new_relic_app_name,
        license_key_loaded=bool(settings.new_relic_license_key or os.environ.get("NEW_RELIC_LICENSE_KEY")),
        config_file=settings.new_relic_config_file,
        attached=emitter.is_attached(),
    )
