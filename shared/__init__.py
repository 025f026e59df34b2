"""
Shared utilities for the Bearer Gate.

This package aggregates common building blocks consumed by the service:

- config: Gate configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: OAuth error types and responses
- retry: Retry decorator for idempotent upstream calls
- circuit_breaker: Resilient external call protection

Do not import from service_* packages into shared/.
"""
