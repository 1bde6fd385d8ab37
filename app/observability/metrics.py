from __future__ import annotations

from dataclasses import asdict, dataclass
from threading import Lock
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MetricEmitter(Protocol):
    """Sends metrics and transaction attributes to a monitoring backend.

    Implementations must never raise from any of these calls: a missing
    backend or a stale transaction turns the call into a no-op.
    """

    def record_metric(self, name: str, value: float) -> None: ...

    def current_transaction(self) -> Any | None: ...

    def add_attribute(self, transaction: Any, key: str, value: str | int | float) -> None: ...

    def is_attached(self) -> bool: ...


@dataclass
class _MetricAgg:
    count: int = 0
    total: float = 0.0
    min: float | None = None
    max: float | None = None

    def observe(self, value: float) -> None:
        value = float(value)
        self.count += 1
        self.total += value
        if self.min is None or value < self.min:
            self.min = value
        if self.max is None or value > self.max:
            self.max = value


class InMemoryEmitter:
    """Thread-safe, process-local metrics (resets on restart).

    Has no notion of transactions, so attributes are never attached.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._metrics: dict[str, _MetricAgg] = {}

    def record_metric(self, name: str, value: float) -> None:
        with self._lock:
            agg = self._metrics.get(name)
            if agg is None:
                agg = self._metrics[name] = _MetricAgg()
            agg.observe(value)

    def current_transaction(self) -> Any | None:
        return None

    def add_attribute(self, transaction: Any, key: str, value: str | int | float) -> None:
        return None

    def is_attached(self) -> bool:
        return False

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return {"metrics": {name: asdict(agg) for name, agg in sorted(self._metrics.items())}}

    def reset(self) -> None:
        with self._lock:
            self._metrics = {}
