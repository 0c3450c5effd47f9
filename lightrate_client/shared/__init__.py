"""
Shared utilities for the Lightrate client.

- config: Client configuration via pydantic-settings
- logging: Structured logging with user correlation
- metrics: Prometheus counters for cache effectiveness
- errors: Canonical error types and responses
- retry: Retry policy for API calls

Nothing in here imports from the rest of the package.
"""
