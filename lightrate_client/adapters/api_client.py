"""
HTTP client for the Lightrate tokens API.
"""

from typing import Any, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel

from ..version import __version__
from ..models import (
    CheckTokensRequest,
    CheckTokensResponse,
    ConsumeTokensRequest,
    ConsumeTokensResponse,
)
from ..shared.config import LightrateConfig
from ..shared.errors import APIError, NetworkError, RequestTimeoutError, error_for_status
from ..shared.logging import get_logger
from ..shared.retry import RetryConfig, is_retryable_error, retry_on_exception

CONSUME_PATH = "/api/v1/tokens/consume"
CHECK_PATH = "/api/v1/tokens/check"
USER_AGENT = f"lightrate-client-python/{__version__}"

ModelT = TypeVar("ModelT", bound=BaseModel)


class LightrateApiClient:
    """Client for communicating with the Lightrate API.

    Implements the ``TokenSource`` contract used to refill local buckets.
    """

    def __init__(self, config: LightrateConfig, transport: Optional[httpx.BaseTransport] = None,
                 retry_config: Optional[RetryConfig] = None):
        self.config = config
        self.logger = get_logger("lightrate_client.api_client")
        self.retry_config = retry_config or RetryConfig.from_retry_attempts(config.retry_attempts)
        self._http = httpx.Client(
            base_url=config.base_url,
            timeout=config.timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {config.api_key}",
                "User-Agent": USER_AGENT,
                "Accept": "application/json",
                "Content-Type": "application/json",
            }
        )

    def consume_tokens(self, request: ConsumeTokensRequest) -> ConsumeTokensResponse:
        """Consume tokens directly from the API."""
        request.validate_request()
        return self._request("POST", CONSUME_PATH, ConsumeTokensResponse, json=request.to_payload())

    def check_tokens(self, request: CheckTokensRequest) -> CheckTokensResponse:
        """Check token availability without consuming any."""
        request.validate_request()
        return self._request("GET", CHECK_PATH, CheckTokensResponse, params=request.to_query_params())

    def _request(self, method: str, path: str, model: Type[ModelT], **kwargs) -> ModelT:
        send = retry_on_exception(is_retryable_error, self.retry_config)(self._send)
        return send(method, path, model, **kwargs)

    def _send(self, method: str, path: str, model: Type[ModelT], **kwargs) -> ModelT:
        try:
            response = self._http.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            self.logger.error("Lightrate API timeout", method=method, path=path, error=str(e))
            raise RequestTimeoutError(
                f"Request timed out after {self.config.timeout} seconds",
                details={"path": path}
            ) from e
        except httpx.TransportError as e:
            self.logger.error("Lightrate API network error", method=method, path=path, error=str(e))
            raise NetworkError(f"Network error: {e}", details={"path": path}) from e

        return self._handle_response(response, model)

    def _handle_response(self, response: httpx.Response, model: Type[ModelT]) -> ModelT:
        body = _response_body(response)

        if response.is_success:
            try:
                if isinstance(body, str):
                    raise ValueError("response body is not JSON")
                return model.model_validate(body or {})
            except ValueError as e:
                self.logger.error(
                    "Invalid Lightrate API response body",
                    status_code=response.status_code,
                    path=response.request.url.path,
                    error=str(e)
                )
                raise APIError("Invalid response body", response.status_code, body) from e

        self.logger.warning(
            "Lightrate API error response",
            status_code=response.status_code,
            path=response.request.url.path
        )
        raise error_for_status(response.status_code, body)

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "LightrateApiClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _response_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
