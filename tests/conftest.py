"""Shared test fixtures for the risk gate tests."""

import os
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

os.environ.setdefault("REDIS_URL", "redis://localhost:6379/1")
os.environ.setdefault("RISK_REFERENCE_PATH", "data/risk_reference.yaml")

from src.domains.risk.blacklist import BlacklistStore  # noqa: E402
from src.domains.risk.config import RiskConfig  # noqa: E402
from src.domains.risk.gate import RiskGate  # noqa: E402
from src.domains.risk.history import TransactionHistoryStore  # noqa: E402
from src.domains.risk.models import TransactionAttempt  # noqa: E402
from src.domains.risk.reference import DEFAULT_REFERENCE, ReferenceDataProvider  # noqa: E402
from src.domains.risk.review_queue import ReviewQueue  # noqa: E402
from src.domains.risk.scorer import RiskScorer  # noqa: E402
from src.shared.logging import setup_logging  # noqa: E402
from tests.fakes import FakeRedis  # noqa: E402

JST = ZoneInfo("Asia/Tokyo")
# 14:00 in Tokyo: inside business hours
AFTERNOON_JST = datetime(2024, 6, 3, 14, 0, 0, tzinfo=JST)
# 03:00 in Tokyo: inside the unusual-hour window
NIGHT_JST = datetime(2024, 6, 3, 3, 0, 0, tzinfo=JST)


def make_attempt(**kwargs) -> TransactionAttempt:
    defaults = {
        "email": "a@x.com",
        "amount": 9000,
        "tour_id": "night-tour",
        "country_code": "JP",
        "ip_address": "198.51.100.7",
        "occurred_at": AFTERNOON_JST,
        "booking_id": "bk-test-1",
    }
    defaults.update(kwargs)
    return TransactionAttempt(**defaults)


@pytest.fixture(autouse=True, scope="session")
def _configure_logging() -> None:
    # Mirror the CLI entry point: logs go to stderr, command output to stdout.
    setup_logging(json_output=False)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def risk_config() -> RiskConfig:
    return RiskConfig()


@pytest.fixture
def reference() -> ReferenceDataProvider:
    return ReferenceDataProvider(initial=DEFAULT_REFERENCE)


@pytest.fixture
def history(fake_redis, risk_config) -> TransactionHistoryStore:
    return TransactionHistoryStore(fake_redis, risk_config)


@pytest.fixture
def blacklist(fake_redis) -> BlacklistStore:
    return BlacklistStore(fake_redis)


@pytest.fixture
def review_queue(fake_redis, blacklist) -> ReviewQueue:
    return ReviewQueue(fake_redis, blacklist)


@pytest.fixture
def scorer(history, blacklist, reference, risk_config) -> RiskScorer:
    return RiskScorer(history, blacklist, reference, risk_config)


@pytest.fixture
def gate(scorer, history, review_queue, reference) -> RiskGate:
    return RiskGate(scorer, history, review_queue, reference)
