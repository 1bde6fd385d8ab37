"""Request instrumentation: structlog request context plus per-request monitoring metrics.

Metrics go through a MetricEmitter chosen at startup: an in-memory aggregator
for local development, or the New Relic agent.
"""
