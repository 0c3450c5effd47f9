"""
Lightrate client: direct token calls plus the local token bucket cache.
"""

import re
import time
from typing import Any, Callable, Dict, Optional

import httpx

from .adapters.api_client import LightrateApiClient
from .models import (
    BucketStatus,
    CheckTokensRequest,
    CheckTokensResponse,
    ConsumeLocalBucketTokenResponse,
    ConsumeTokensRequest,
    ConsumeTokensResponse,
    validate_target,
    validate_user_identifier,
)
from .ratelimit.bucket import TokenBucket
from .ratelimit.registry import BucketRegistry, request_bucket_key, rule_bucket_key
from .ratelimit.source import TokenSource
from .shared.config import LightrateConfig, get_config
from .shared.errors import ConfigurationError, LightrateError
from .shared.logging import get_logger
from .shared.metrics import ClientMetrics


class LightrateClient:
    """Client for the Lightrate token API with a per-instance local bucket cache.

    ``consume_local_bucket_token`` answers from a local bucket when it can and
    otherwise fetches one batch of tokens from the API to refill it. Each
    client owns its own bucket registry.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        application_id: Optional[str] = None,
        *,
        config: Optional[LightrateConfig] = None,
        token_source: Optional[TokenSource] = None,
        transport: Optional[httpx.BaseTransport] = None,
        metrics: Optional[ClientMetrics] = None,
        clock: Callable[[], float] = time.monotonic,
        **options: Any,
    ):
        base = config or get_config()
        overrides = dict(options)
        if api_key is not None:
            overrides["api_key"] = api_key
        if application_id is not None:
            overrides["application_id"] = application_id
        self.configuration = LightrateConfig.model_validate({**base.model_dump(), **overrides}) if overrides else base

        self._validate_configuration()

        self.logger = get_logger("lightrate_client.client")
        self.metrics = metrics or ClientMetrics()
        self.token_buckets = BucketRegistry()
        self._clock = clock
        self._api = LightrateApiClient(self.configuration, transport=transport)
        self.token_source: TokenSource = token_source or self._api

    def _validate_configuration(self) -> None:
        if not self.configuration.api_key:
            raise ConfigurationError("API key is required")
        if not self.configuration.application_id:
            raise ConfigurationError("Application ID is required")

    def consume_local_bucket_token(
        self,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        http_method: Optional[str] = None,
        *,
        user_identifier: str,
    ) -> ConsumeLocalBucketTokenResponse:
        """Consume one token, preferring a local bucket over an API call.

        A miss triggers exactly one fetch of a full bucket's worth of tokens.
        API errors propagate unchanged and leave the cache untouched.
        """
        validate_user_identifier(user_identifier)
        validate_target(operation, path, http_method)

        bucket = self.token_buckets.find_by_matcher(
            user_identifier, operation=operation, path=path, http_method=http_method
        )
        if bucket is not None and bucket.consume_one():
            self.metrics.record_local_hit()
            status = bucket.status()
            self.logger.debug(
                "Served token from local bucket",
                user_identifier=user_identifier,
                rule_id=bucket.rule_id,
                tokens_remaining=status.tokens_remaining
            )
            return ConsumeLocalBucketTokenResponse(
                success=True,
                used_local_token=True,
                bucket_status=status
            )

        bucket_size = self.configuration.bucket_size_for(operation, path)
        request = ConsumeTokensRequest(
            application_id=self.configuration.application_id,
            operation=operation,
            path=path,
            http_method=http_method,
            user_identifier=user_identifier,
            tokens_requested=bucket_size,
        )
        response = self._fetch(request)
        tokens_consumed = response.tokens_consumed or 0

        if response.resolved_to_default_rule:
            self.metrics.record_remote_fetch("default", tokens_consumed)
            self.logger.info(
                "Default rule matched, skipping local bucket",
                user_identifier=user_identifier,
                operation=operation,
                path=path,
                tokens_consumed=tokens_consumed
            )
            return ConsumeLocalBucketTokenResponse(
                success=tokens_consumed > 0,
                used_local_token=False,
                bucket_status=None
            )

        rule = response.rule
        if rule.id is not None:
            key = rule_bucket_key(user_identifier, rule.id)
        else:
            key = request_bucket_key(user_identifier, operation, path, http_method)

        bucket = self.token_buckets.get_or_create(
            key,
            lambda: self._new_bucket(bucket_size, user_identifier, rule.id, rule.matcher, rule.http_method,
                                     operation, path, http_method)
        )
        added = bucket.refill(tokens_consumed)
        consumed = bucket.consume_one()
        status = bucket.status()

        self.metrics.record_remote_fetch("cached" if tokens_consumed > 0 else "empty", tokens_consumed)
        self.logger.info(
            "Refilled local bucket from API",
            user_identifier=user_identifier,
            bucket_key=key,
            tokens_consumed=tokens_consumed,
            tokens_added=added,
            success=consumed,
            tokens_remaining=status.tokens_remaining
        )
        return ConsumeLocalBucketTokenResponse(
            success=consumed,
            used_local_token=False,
            bucket_status=status
        )

    def _new_bucket(
        self,
        max_tokens: int,
        user_identifier: str,
        rule_id: Optional[str],
        matcher: Optional[str],
        rule_http_method: Optional[str],
        operation: Optional[str],
        path: Optional[str],
        http_method: Optional[str],
    ) -> TokenBucket:
        # Without a matcher from the rule, serve exactly the request that created the bucket.
        if matcher is None:
            matcher = re.escape(operation if operation is not None else path)
            rule_http_method = None if operation is not None else http_method
        elif path is not None and rule_http_method is None:
            rule_http_method = http_method

        self.metrics.record_bucket_created()
        return TokenBucket(
            max_tokens,
            user_identifier=user_identifier,
            rule_id=rule_id,
            matcher=matcher,
            http_method=rule_http_method,
            staleness_seconds=self.configuration.bucket_staleness_seconds,
            clock=self._clock,
        )

    def _fetch(self, request: ConsumeTokensRequest) -> ConsumeTokensResponse:
        try:
            return self.token_source.consume_tokens(request)
        except LightrateError as e:
            self.metrics.record_error(type(e).__name__)
            self.logger.error(
                "Token fetch failed",
                user_identifier=request.user_identifier,
                operation=request.operation,
                path=request.path,
                error_code=e.code,
                error=e.message
            )
            raise

    def consume_tokens(
        self,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        http_method: Optional[str] = None,
        *,
        user_identifier: str,
        tokens_requested: int,
    ) -> ConsumeTokensResponse:
        """Consume tokens straight from the API, bypassing local buckets."""
        validate_user_identifier(user_identifier)
        request = ConsumeTokensRequest(
            application_id=self.configuration.application_id,
            operation=operation,
            path=path,
            http_method=http_method,
            user_identifier=user_identifier,
            tokens_requested=tokens_requested,
        ).validate_request()
        return self._fetch(request)

    def check_tokens(
        self,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        http_method: Optional[str] = None,
        *,
        user_identifier: str,
    ) -> CheckTokensResponse:
        """Ask how many tokens are available without consuming any."""
        validate_user_identifier(user_identifier)
        request = CheckTokensRequest(
            application_id=self.configuration.application_id,
            operation=operation,
            path=path,
            http_method=http_method,
            user_identifier=user_identifier,
        ).validate_request()
        return self._api.check_tokens(request)

    def bucket_statuses(self) -> Dict[str, BucketStatus]:
        return self.token_buckets.statuses()

    def close(self) -> None:
        self._api.close()

    def __enter__(self) -> "LightrateClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
