"""
Shared fixtures for the Lightrate client tests.
"""

import os
import threading
import time
from typing import Callable, List, Optional

import pytest

import lightrate_client
from lightrate_client import LightrateClient
from lightrate_client.models import ConsumeTokensRequest, ConsumeTokensResponse, Rule
from lightrate_client.shared.config import LightrateConfig


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeTokenSource:
    """In-memory token source recording every fetch."""

    def __init__(self, rule: Optional[Rule] = None,
                 grant: Optional[Callable[[ConsumeTokensRequest], int]] = None,
                 error: Optional[Exception] = None,
                 delay: float = 0.0,
                 barrier: Optional[threading.Barrier] = None):
        self.rule = rule
        self.grant = grant or (lambda request: request.tokens_requested)
        self.error = error
        self.delay = delay
        self.barrier = barrier
        self.requests: List[ConsumeTokensRequest] = []
        self._lock = threading.Lock()

    @property
    def call_count(self) -> int:
        with self._lock:
            return len(self.requests)

    def consume_tokens(self, request: ConsumeTokensRequest) -> ConsumeTokensResponse:
        with self._lock:
            self.requests.append(request)
        if self.barrier is not None:
            self.barrier.wait()
        if self.delay:
            time.sleep(self.delay)
        if self.error is not None:
            raise self.error
        rule = self.rule
        if callable(rule):
            rule = rule(request)
        return ConsumeTokensResponse(tokens_consumed=self.grant(request), tokens_remaining=990, rule=rule)


def make_rule(rule_id: str = "rule_test", matcher: Optional[str] = "send_email",
              http_method: Optional[str] = None, is_default: bool = False) -> Rule:
    return Rule(
        id=rule_id,
        name="Test Rule",
        refill_rate=10,
        burst_rate=100,
        matcher=matcher,
        http_method=http_method,
        is_default=is_default,
    )


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep LIGHTRATE_* variables, .env files and global state out of tests."""
    for name in list(os.environ):
        if name.startswith("LIGHTRATE_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    lightrate_client.reset()
    yield
    lightrate_client.reset()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    return LightrateConfig(api_key="test_key", application_id="test_app", default_local_bucket_size=10)


@pytest.fixture
def token_source():
    return FakeTokenSource(rule=make_rule())


@pytest.fixture
def client(config, token_source, clock):
    client = LightrateClient(config=config, token_source=token_source, clock=clock)
    yield client
    client.close()
