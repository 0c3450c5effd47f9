"""
Registry of local token buckets, keyed by user and rule.
"""

import threading
from typing import Callable, Dict, Optional

from ..models import BucketStatus
from ..shared.logging import get_logger
from .bucket import TokenBucket, normalize_http_method


def rule_bucket_key(user_identifier: str, rule_id: str) -> str:
    return f"{user_identifier}:rule:{rule_id}"


def request_bucket_key(
    user_identifier: str,
    operation: Optional[str] = None,
    path: Optional[str] = None,
    http_method: Optional[str] = None,
) -> str:
    """Key for a bucket tied to a request target rather than a known rule."""
    if operation is not None:
        return f"{user_identifier}:operation:{operation}"
    if path is not None:
        return f"{user_identifier}:path:{path}:{normalize_http_method(http_method)}"
    raise ValueError("Either operation or path must be specified")


class BucketRegistry:
    """Map of cache keys to buckets, creating each bucket exactly once.

    The registry lock only guards the check-and-insert of new buckets;
    token traffic goes through each bucket's own lock.
    """

    def __init__(self):
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.Lock()
        self.logger = get_logger("lightrate_client.bucket_registry")

    def get(self, key: str) -> Optional[TokenBucket]:
        return self._buckets.get(key)

    def get_or_create(self, key: str, factory: Callable[[], TokenBucket]) -> TokenBucket:
        """Return the live bucket for ``key``, building it with ``factory`` if needed.

        Expired buckets are replaced. Concurrent callers racing on the same
        key all receive the same instance.
        """
        bucket = self._buckets.get(key)
        if bucket is not None and not bucket.is_expired():
            return bucket

        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None or bucket.is_expired():
                replaced = bucket is not None
                bucket = factory()
                self._buckets[key] = bucket
                self.logger.info(
                    "Created token bucket",
                    key=key,
                    max_tokens=bucket.max_tokens,
                    replaced_expired=replaced
                )
            return bucket

    def find_by_matcher(
        self,
        user_identifier: str,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        http_method: Optional[str] = None,
    ) -> Optional[TokenBucket]:
        """First live bucket of ``user_identifier`` whose matcher accepts the request."""
        for bucket in list(self._buckets.values()):
            if bucket.user_identifier != user_identifier:
                continue
            if bucket.matches(operation=operation, path=path, http_method=http_method):
                return bucket
        return None

    def evict_expired(self) -> int:
        """Drop expired buckets; returns how many were removed."""
        with self._lock:
            expired = [key for key, bucket in self._buckets.items() if bucket.is_expired()]
            for key in expired:
                del self._buckets[key]
        if expired:
            self.logger.debug("Evicted expired token buckets", count=len(expired))
        return len(expired)

    def statuses(self) -> Dict[str, BucketStatus]:
        return {key: bucket.status() for key, bucket in list(self._buckets.items())}

    def clear(self) -> None:
        with self._lock:
            self._buckets.clear()

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, key: object) -> bool:
        return key in self._buckets
