"""
Python client for the Lightrate token-based rate limiting API.

Typical use::

    import lightrate_client

    client = lightrate_client.new_client("api-key", "application-id", default_local_bucket_size=10)
    result = client.consume_local_bucket_token(operation="send_email", user_identifier="user123")
    if result.success:
        send_email()

Structure:
- client: LightrateClient, direct API calls plus the local bucket cache.
- ratelimit: Token buckets, the bucket registry and the token source contract.
- adapters: httpx client for the REST API.
- models: Request/response models.
- shared: Configuration, logging, metrics, errors and retry policy.
"""

import threading
from typing import Any, Optional

import pydantic

from .version import __version__
from .client import LightrateClient
from .models import (
    BucketStatus,
    CheckTokensResponse,
    ConsumeLocalBucketTokenResponse,
    ConsumeTokensResponse,
    Rule,
)
from .shared.config import LightrateConfig, get_config, reset_config
from .shared.errors import (
    APIError,
    BadRequestError,
    ConfigurationError,
    ForbiddenError,
    InternalServerError,
    LightrateError,
    NetworkError,
    NotFoundError,
    RequestTimeoutError,
    ServiceUnavailableError,
    TooManyRequestsError,
    UnauthorizedError,
    UnprocessableEntityError,
    ValidationError,
)

_client: Optional[LightrateClient] = None
_client_lock = threading.Lock()


def configure(**settings: Any) -> LightrateConfig:
    """Update the default configuration used by ``client()`` and new clients."""
    config = get_config()
    for name in settings:
        if name not in LightrateConfig.model_fields:
            raise ConfigurationError(f"Unknown setting: {name}")
    try:
        LightrateConfig.model_validate({**config.model_dump(), **settings})
    except pydantic.ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}", details={"errors": e.errors()}) from e
    for name, value in settings.items():
        setattr(config, name, value)
    return config


def get_configuration() -> LightrateConfig:
    return get_config()


def client() -> LightrateClient:
    """Shared client built from the default configuration."""
    global _client
    if _client is None:
        with _client_lock:
            if _client is None:
                _client = LightrateClient()
    return _client


def new_client(api_key: str, application_id: Optional[str] = None, **options: Any) -> LightrateClient:
    """Create a client for an API key, overriding the default configuration with ``options``."""
    return LightrateClient(api_key, application_id, **options)


def reset() -> None:
    """Drop the default configuration and shared client."""
    global _client
    with _client_lock:
        if _client is not None:
            _client.close()
        _client = None
    reset_config()


__all__ = [
    "__version__",
    "LightrateClient",
    "LightrateConfig",
    "BucketStatus",
    "CheckTokensResponse",
    "ConsumeLocalBucketTokenResponse",
    "ConsumeTokensResponse",
    "Rule",
    "configure",
    "get_configuration",
    "client",
    "new_client",
    "reset",
    "LightrateError",
    "ConfigurationError",
    "ValidationError",
    "APIError",
    "BadRequestError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "UnprocessableEntityError",
    "TooManyRequestsError",
    "InternalServerError",
    "ServiceUnavailableError",
    "NetworkError",
    "RequestTimeoutError",
]
