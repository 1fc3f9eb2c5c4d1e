"""
Shared utilities for the travel advisory gateway.

This package aggregates common building blocks consumed by the service:

- config: Service configuration via pydantic-settings
- logging: Structured logging with request correlation
- metrics: Prometheus metrics helpers
- errors: Canonical error types and responses
- retry: Backoff scheduling for upstream retries
- base_service: FastAPI service skeleton

Do not import from service packages into shared/.
"""
