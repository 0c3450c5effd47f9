"""
End-to-end tests: LightrateClient over a mocked Lightrate API.
"""

import json

import httpx
import pytest

from lightrate_client import LightrateClient, UnauthorizedError
from lightrate_client.shared.config import LightrateConfig


class FakeLightrateApi:
    """Minimal in-memory Lightrate API behind httpx.MockTransport."""

    def __init__(self, rules, status_code=200):
        self.rules = rules
        self.status_code = status_code
        self.consume_calls = []

    def handle(self, request: httpx.Request) -> httpx.Response:
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": "Invalid API key"})
        if request.url.path == "/api/v1/tokens/check":
            return httpx.Response(200, json={"available": True, "remainingTokens": 100, "rule": None})

        body = json.loads(request.content)
        self.consume_calls.append(body)
        target = body.get("operation") or body.get("path")
        rule = self.rules.get(target)
        return httpx.Response(200, json={
            "tokensConsumed": body["tokensRequested"],
            "tokensRemaining": 1000,
            "throttles": 0,
            "rule": rule,
        })


def make_client(api, **options):
    config = LightrateConfig(api_key="test_key", application_id="test_app", **options)
    return LightrateClient(config=config, transport=httpx.MockTransport(api.handle))


@pytest.fixture
def api():
    return FakeLightrateApi({
        "/api/v1/posts": {
            "id": "rule_posts",
            "name": "Posts",
            "refillRate": 10,
            "burstRate": 100,
            "matcher": "/api/v1/posts",
            "httpMethod": "GET",
            "isDefault": False,
        },
        "send_email": {
            "id": "rule_email",
            "name": "Email",
            "refillRate": 5,
            "burstRate": 50,
            "matcher": "send_.*",
            "httpMethod": None,
            "isDefault": False,
        },
        "default_op": {
            "id": "rule_default",
            "name": "Default",
            "refillRate": 1,
            "burstRate": 10,
            "matcher": ".*",
            "httpMethod": None,
            "isDefault": True,
        },
    })


class TestClientFlow:
    """Full request cycles through the HTTP adapter."""

    def test_twenty_path_requests_fetch_twice(self, api):
        with make_client(api, default_local_bucket_size=10) as client:
            results = [
                client.consume_local_bucket_token(path="/api/v1/posts", http_method="GET", user_identifier="user123")
                for _ in range(20)
            ]

        assert all(r.success for r in results)
        assert len(api.consume_calls) == 2
        assert [r.used_local_token for r in results[:10]] == [False] + [True] * 9
        assert all(call["tokensRequested"] == 10 for call in api.consume_calls)
        assert api.consume_calls[0]["httpMethod"] == "GET"
        assert "user123:rule:rule_posts" in client.token_buckets

    def test_regex_rule_shares_bucket_across_operations(self, api):
        with make_client(api, default_local_bucket_size=5) as client:
            first = client.consume_local_bucket_token(operation="send_email", user_identifier="user123")
            second = client.consume_local_bucket_token(operation="send_sms", user_identifier="user123")

        assert first.used_local_token is False
        assert second.used_local_token is True
        assert second.bucket_status.tokens_remaining == 3
        assert len(api.consume_calls) == 1

    def test_default_rule_is_never_cached(self, api):
        with make_client(api) as client:
            for _ in range(3):
                result = client.consume_local_bucket_token(operation="default_op", user_identifier="user123")
                assert result.success is True
                assert result.used_local_token is False
                assert result.bucket_status is None

        assert len(api.consume_calls) == 3
        assert len(client.token_buckets) == 0

    def test_unauthorized_propagates(self, api):
        api.status_code = 401

        with make_client(api, retry_attempts=0) as client:
            with pytest.raises(UnauthorizedError) as exc_info:
                client.consume_local_bucket_token(operation="send_email", user_identifier="user123")

        assert exc_info.value.status_code == 401
        assert len(client.token_buckets) == 0
        assert client.metrics.get_value("lightrate_api_errors_total", error_type="UnauthorizedError") == 1

    def test_direct_calls(self, api):
        with make_client(api) as client:
            consumed = client.consume_tokens(operation="send_email", user_identifier="user123", tokens_requested=3)
            checked = client.check_tokens(operation="send_email", user_identifier="user123")

        assert consumed.tokens_consumed == 3
        assert consumed.rule.id == "rule_email"
        assert checked.available is True
        assert checked.remaining_tokens == 100
        assert len(client.token_buckets) == 0
