"""
Local token bucket holding tokens pre-granted by the Lightrate API.
"""

import re
import threading
import time
from typing import Callable, Optional, Pattern

from ..models import BucketStatus

DEFAULT_STALENESS_SECONDS = 60.0


def normalize_http_method(http_method: Optional[str]) -> Optional[str]:
    return http_method.upper() if http_method else None


def compile_matcher(matcher: Optional[str]) -> Optional[Pattern[str]]:
    """Compile a rule matcher, or return None when it is not a valid pattern."""
    if matcher is None:
        return None
    try:
        return re.compile(matcher)
    except re.error:
        return None


class TokenBucket:
    """Cache of permission tokens for one (user, rule) pair.

    Every read-modify-write of ``available_tokens`` happens under the
    bucket's own lock, so ``0 <= available_tokens <= max_tokens`` holds
    no matter how many threads share the bucket.
    """

    def __init__(
        self,
        max_tokens: int,
        *,
        user_identifier: Optional[str] = None,
        rule_id: Optional[str] = None,
        matcher: Optional[str] = None,
        http_method: Optional[str] = None,
        staleness_seconds: float = DEFAULT_STALENESS_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {max_tokens}")

        self.max_tokens = max_tokens
        self.user_identifier = user_identifier
        self.rule_id = rule_id
        self.matcher = matcher
        self.http_method = normalize_http_method(http_method)
        self.staleness_seconds = staleness_seconds

        self._available_tokens = 0
        self._clock = clock
        self._lock = threading.Lock()
        self._pattern = compile_matcher(matcher)
        self.last_accessed_at = clock()

    @property
    def available_tokens(self) -> int:
        with self._lock:
            return self._available_tokens

    def consume_one(self) -> bool:
        """Take one token if any is left."""
        with self._lock:
            if self._available_tokens <= 0:
                return False
            self._available_tokens -= 1
            self.last_accessed_at = self._clock()
            return True

    def refill(self, count: int) -> int:
        """Add up to ``count`` tokens without overflowing; returns how many were added."""
        if count < 0:
            raise ValueError(f"refill count must be non-negative, got {count}")
        with self._lock:
            added = min(count, self.max_tokens - self._available_tokens)
            self._available_tokens += added
            self.last_accessed_at = self._clock()
            return added

    def status(self) -> BucketStatus:
        with self._lock:
            return BucketStatus(tokens_remaining=self._available_tokens, max_tokens=self.max_tokens)

    def is_expired(self) -> bool:
        """True when the bucket has not been used within the staleness window."""
        return self._clock() - self.last_accessed_at > self.staleness_seconds

    def matches(
        self,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        http_method: Optional[str] = None,
    ) -> bool:
        """Whether this bucket can serve a request for ``operation`` or ``path``."""
        if self.is_expired() or self.matcher is None:
            return False

        if operation is not None:
            return self.http_method is None and self._matches_target(operation)

        if path is not None:
            return (
                self.http_method is not None
                and self.http_method == normalize_http_method(http_method)
                and self._matches_target(path)
            )

        return False

    def _matches_target(self, target: str) -> bool:
        if self._pattern is not None:
            return self._pattern.fullmatch(target) is not None
        return self.matcher == target

    def __repr__(self) -> str:
        return (
            f"TokenBucket(user_identifier={self.user_identifier!r}, rule_id={self.rule_id!r}, "
            f"matcher={self.matcher!r}, http_method={self.http_method!r}, max_tokens={self.max_tokens})"
        )
