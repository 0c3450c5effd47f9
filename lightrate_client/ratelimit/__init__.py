"""
Local rate-limit cache for the Lightrate client.

Holds the token bucket, the per-client bucket registry and the token
source contract the buckets are refilled from.
"""

from .bucket import TokenBucket
from .registry import BucketRegistry, request_bucket_key, rule_bucket_key
from .source import TokenSource

__all__ = [
    "TokenBucket",
    "BucketRegistry",
    "TokenSource",
    "request_bucket_key",
    "rule_bucket_key",
]
