"""
Contract for whatever hands out token batches to the local buckets.
"""

from typing import Protocol, runtime_checkable

from ..models import ConsumeTokensRequest, ConsumeTokensResponse


@runtime_checkable
class TokenSource(Protocol):
    """Grants up to ``tokens_requested`` tokens and reports the rule that applied.

    Implementations raise ``LightrateError`` subclasses on failure and do
    their own retrying.
    """

    def consume_tokens(self, request: ConsumeTokensRequest) -> ConsumeTokensResponse:
        ...
