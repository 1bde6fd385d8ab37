"""Status classification and the closed table of metric names.

Dashboards key off these names, so every name the middleware emits is built
from one of the templates below and nothing else.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

UNKNOWN_STATUS = 0

StatusCategory = Literal["2xx", "3xx", "4xx", "5xx", "Other"]

STATUS_CATEGORIES: tuple[StatusCategory, ...] = ("2xx", "3xx", "4xx", "5xx", "Other")

# Traffic
ALL_REQUESTS = "Traffic/AllRequests"
TRAFFIC_STATUS_CODE = "Traffic/StatusCode/{status_code}"
TRAFFIC_STATUS_CATEGORY = "Traffic/StatusCategory/{status_category}"
TRAFFIC_METHOD = "Traffic/Method/{method}"

# Response time
RESPONSE_TIME_ALL = "ResponseTime/AllEndpoints"
RESPONSE_TIME_METHOD = "ResponseTime/{method}"

# Resource-scoped
RESOURCE_REQUESTS = "Resource/{resource_id}/Requests"
RESOURCE_STATUS_CODE = "Resource/{resource_id}/StatusCode/{status_code}"
RESOURCE_STATUS_CATEGORY = "Resource/{resource_id}/StatusCategory/{status_category}"
RESOURCE_METHOD = "Resource/{resource_id}/Method/{method}"
RESOURCE_RESPONSE_TIME = "Resource/{resource_id}/ResponseTime"

# Outcome class
TRAFFIC_SUCCESS = "Traffic/Success"
TRAFFIC_CLIENT_ERROR = "Traffic/ClientError"
TRAFFIC_SERVER_ERROR = "Traffic/ServerError"
RESOURCE_SUCCESS = "Resource/{resource_id}/Success"
RESOURCE_CLIENT_ERROR = "Resource/{resource_id}/ClientError"
RESOURCE_SERVER_ERROR = "Resource/{resource_id}/ServerError"

METRIC_TEMPLATES: frozenset[str] = frozenset(
    {
        ALL_REQUESTS,
        TRAFFIC_STATUS_CODE,
        TRAFFIC_STATUS_CATEGORY,
        TRAFFIC_METHOD,
        RESPONSE_TIME_ALL,
        RESPONSE_TIME_METHOD,
        RESOURCE_REQUESTS,
        RESOURCE_STATUS_CODE,
        RESOURCE_STATUS_CATEGORY,
        RESOURCE_METHOD,
        RESOURCE_RESPONSE_TIME,
        TRAFFIC_SUCCESS,
        TRAFFIC_CLIENT_ERROR,
        TRAFFIC_SERVER_ERROR,
        RESOURCE_SUCCESS,
        RESOURCE_CLIENT_ERROR,
        RESOURCE_SERVER_ERROR,
    }
)

# category -> (traffic template, resource template)
OUTCOME_TEMPLATES: dict[str, tuple[str, str]] = {
    "2xx": (TRAFFIC_SUCCESS, RESOURCE_SUCCESS),
    "4xx": (TRAFFIC_CLIENT_ERROR, RESOURCE_CLIENT_ERROR),
    "5xx": (TRAFFIC_SERVER_ERROR, RESOURCE_SERVER_ERROR),
}

# Transaction attribute keys
ATTR_RESOURCE_ID = "resourceId"
ATTR_STATUS_CODE = "statusCode"
ATTR_STATUS_CATEGORY = "statusCategory"
ATTR_HTTP_METHOD = "httpMethod"
ATTR_RESPONSE_TIME_MS = "responseTimeMs"
ATTR_PATH = "path"


def status_category(code: int | None) -> StatusCategory:
    if code is None:
        return "Other"
    if 200 <= code < 300:
        return "2xx"
    if 300 <= code < 400:
        return "3xx"
    if 400 <= code < 500:
        return "4xx"
    if code >= 500:
        return "5xx"
    return "Other"


def metric_name(template: str, **fields: object) -> str:
    if template not in METRIC_TEMPLATES:
        raise KeyError(f"Unknown metric template: {template!r}")
    return template.format(**fields)


@dataclass(frozen=True)
class RequestObservation:
    """One request's measurements, finalized once after the downstream app returns."""

    method: str
    path: str
    status_code: int
    duration_ms: float
    route_resource_id: str | None = None

    @property
    def status_category(self) -> StatusCategory:
        return status_category(self.status_code)


@dataclass(frozen=True)
class Emission:
    kind: Literal["metric", "attribute"]
    name: str
    value: str | int | float


def _metric(template: str, value: float, **fields: object) -> Emission:
    return Emission(kind="metric", name=metric_name(template, **fields), value=value)


def _attribute(key: str, value: str | int | float) -> Emission:
    return Emission(kind="attribute", name=key, value=value)


def plan_emissions(observation: RequestObservation, has_transaction: bool) -> list[Emission]:
    """Return every metric and attribute to emit for one request, in order."""

    code = observation.status_code
    category = observation.status_category
    method = observation.method
    duration = observation.duration_ms
    rid = observation.route_resource_id

    plan = [
        _metric(ALL_REQUESTS, 1),
        _metric(TRAFFIC_STATUS_CODE, 1, status_code=code),
        _metric(TRAFFIC_STATUS_CATEGORY, 1, status_category=category),
        _metric(TRAFFIC_METHOD, 1, method=method),
        _metric(RESPONSE_TIME_ALL, duration),
        _metric(RESPONSE_TIME_METHOD, duration, method=method),
    ]

    if rid is not None:
        plan += [
            _metric(RESOURCE_REQUESTS, 1, resource_id=rid),
            _metric(RESOURCE_STATUS_CODE, 1, resource_id=rid, status_code=code),
            _metric(RESOURCE_STATUS_CATEGORY, 1, resource_id=rid, status_category=category),
            _metric(RESOURCE_METHOD, 1, resource_id=rid, method=method),
            _metric(RESOURCE_RESPONSE_TIME, duration, resource_id=rid),
        ]

    if has_transaction:
        if rid is not None:
            plan.append(_attribute(ATTR_RESOURCE_ID, rid))
        plan += [
            _attribute(ATTR_STATUS_CODE, code),
            _attribute(ATTR_STATUS_CATEGORY, category),
            _attribute(ATTR_HTTP_METHOD, method),
            _attribute(ATTR_RESPONSE_TIME_MS, duration),
            _attribute(ATTR_PATH, observation.path),
        ]

    outcome = OUTCOME_TEMPLATES.get(category)
    if outcome is not None:
        traffic_template, resource_template = outcome
        plan.append(_metric(traffic_template, 1))
        if rid is not None:
            plan.append(_metric(resource_template, 1, resource_id=rid))

    return plan
