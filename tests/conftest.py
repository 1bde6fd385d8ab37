from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from app.config import get_settings
from app.db.session import init_db
from app.main import create_app


class FakeTransaction:
    def __init__(self) -> None:
        self.attributes: dict[str, Any] = {}

    def add_custom_attribute(self, key: str, value: Any) -> bool:
        self.attributes[key] = value
        return True


class RecordingEmitter:
    """MetricEmitter that remembers every call."""

    def __init__(self, transaction: FakeTransaction | None = None, attached: bool = True) -> None:
        self.transaction = transaction
        self.attached = attached
        self.metrics: list[tuple[str, float]] = []

    def record_metric(self, name: str, value: float) -> None:
        self.metrics.append((name, value))

    def current_transaction(self) -> FakeTransaction | None:
        return self.transaction

    def add_attribute(self, transaction: Any, key: str, value: Any) -> None:
        transaction.add_custom_attribute(key, value)

    def is_attached(self) -> bool:
        return self.attached

    def names(self) -> list[str]:
        return [name for name, _ in self.metrics]

    def value(self, name: str) -> float:
        values = [value for metric, value in self.metrics if metric == name]
        assert len(values) == 1, f"{name} emitted {len(values)} times"
        return values[0]

    def reset(self) -> None:
        self.metrics = []
        if self.transaction is not None:
            self.transaction.attributes = {}


class FailingEmitter:
    """MetricEmitter whose every call raises."""

    def __init__(self) -> None:
        self.calls = 0

    def _fail(self, *args: Any, **kwargs: Any) -> Any:
        self.calls += 1
        raise RuntimeError("monitoring backend unavailable")

    record_metric = _fail
    current_transaction = _fail
    add_attribute = _fail
    is_attached = _fail


class StepClock:
    """Returns the given readings in order, then repeats the last one."""

    def __init__(self, *readings: float) -> None:
        self._readings = list(readings)

    def __call__(self) -> float:
        if len(self._readings) > 1:
            return self._readings.pop(0)
        return self._readings[0]


@pytest.fixture(autouse=True)
def test_environment(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'products.db'}")
    monkeypatch.setenv("MONITORING_BACKEND", "memory")
    # Emit inline so assertions can run as soon as the response arrives.
    monkeypatch.setenv("METRICS_EMISSION_TIMEOUT_MS", "0")
    get_settings.cache_clear()
    init_db()

    yield

    get_settings.cache_clear()


@pytest.fixture
def transaction() -> FakeTransaction:
    return FakeTransaction()


@pytest.fixture
def emitter(transaction: FakeTransaction) -> RecordingEmitter:
    return RecordingEmitter(transaction=transaction)


@pytest.fixture
def api_app(emitter: RecordingEmitter) -> FastAPI:
    return create_app(emitter=emitter)


@pytest.fixture
async def api_client(api_app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=api_app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
