"""
Request and response models for the Lightrate API.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .shared.errors import ValidationError


class ApiModel(BaseModel):
    """Base model speaking the API's camelCase field names."""

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="ignore")


def validate_target(operation: Optional[str], path: Optional[str], http_method: Optional[str]) -> None:
    """Exactly one of operation/path, and a method whenever a path is given."""
    if operation == "" or path == "":
        raise ValidationError(
            "Operation and path must not be empty",
            details={"operation": operation, "path": path}
        )
    if operation is None and path is None:
        raise ValidationError("Either operation or path must be specified")
    if operation is not None and path is not None:
        raise ValidationError(
            "Operation and path are mutually exclusive",
            details={"operation": operation, "path": path}
        )
    if path is not None and not http_method:
        raise ValidationError("HTTP method is required when path is specified", details={"path": path})


def validate_user_identifier(user_identifier: Optional[str]) -> None:
    if not user_identifier:
        raise ValidationError("User identifier is required")


class Rule(ApiModel):
    """Server-side rule a token request resolved to."""

    id: Optional[str] = None
    name: Optional[str] = None
    refill_rate: Optional[float] = Field(None, alias="refillRate")
    burst_rate: Optional[float] = Field(None, alias="burstRate")
    is_default: bool = Field(False, alias="isDefault")
    matcher: Optional[str] = None
    http_method: Optional[str] = Field(None, alias="httpMethod")


class ConsumeTokensRequest(ApiModel):
    """Body of ``POST /api/v1/tokens/consume``."""

    application_id: Optional[str] = Field(None, alias="applicationId")
    operation: Optional[str] = None
    path: Optional[str] = None
    http_method: Optional[str] = Field(None, alias="httpMethod")
    user_identifier: str = Field(..., alias="userIdentifier")
    tokens_requested: int = Field(..., alias="tokensRequested")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def validate_request(self) -> "ConsumeTokensRequest":
        validate_user_identifier(self.user_identifier)
        if self.tokens_requested <= 0:
            raise ValidationError(
                "Tokens requested must be positive",
                details={"tokens_requested": self.tokens_requested}
            )
        validate_target(self.operation, self.path, self.http_method)
        return self

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ConsumeTokensResponse(ApiModel):
    """Result of a direct token consumption."""

    success: Optional[bool] = None
    tokens_consumed: Optional[int] = Field(0, alias="tokensConsumed")
    tokens_remaining: Optional[int] = Field(None, alias="tokensRemaining")
    throttles: Optional[int] = None
    rule: Optional[Rule] = None
    error: Optional[str] = None

    @property
    def resolved_to_default_rule(self) -> bool:
        """True when no specific rule was identified for the request."""
        return self.rule is None or self.rule.is_default


class CheckTokensRequest(ApiModel):
    """Query of ``GET /api/v1/tokens/check``."""

    application_id: Optional[str] = Field(None, alias="applicationId")
    operation: Optional[str] = None
    path: Optional[str] = None
    http_method: Optional[str] = Field(None, alias="httpMethod")
    user_identifier: str = Field(..., alias="userIdentifier")

    def validate_request(self) -> "CheckTokensRequest":
        validate_user_identifier(self.user_identifier)
        validate_target(self.operation, self.path, self.http_method)
        return self

    def to_query_params(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class CheckTokensResponse(ApiModel):
    """Token availability without consuming anything."""

    available: bool = False
    remaining_tokens: Optional[int] = Field(None, alias="remainingTokens")
    rule: Optional[Rule] = None


class BucketStatus(BaseModel):
    """Fill level of a local bucket."""

    tokens_remaining: int
    max_tokens: int


class ConsumeLocalBucketTokenResponse(BaseModel):
    """Outcome of one local-cache token consumption."""

    success: bool
    used_local_token: bool = False
    bucket_status: Optional[BucketStatus] = None
