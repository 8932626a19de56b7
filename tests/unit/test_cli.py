"""Tests for the operator CLI, run against the in-memory store."""

import json

import pytest

from src.cli import build_parser, run_command
from src.domains.risk.models import IdentifierType, RiskLevel, RiskScore
from tests.conftest import make_attempt


async def _run(fake_redis, *argv):
    args = build_parser().parse_args(list(argv))
    return await run_command(args, fake_redis)


class TestParser:
    def test_requires_group(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_decision_choices(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["review", "decide", "1", "maybe"])

    def test_blacklist_add_options(self):
        args = build_parser().parse_args(
            ["blacklist", "add", "a@x.com", "chargeback", "-e", "30", "-b", "ops"]
        )
        assert args.expiration == 30
        assert args.added_by == "ops"


class TestBlacklistCommands:
    @pytest.mark.asyncio
    async def test_add_list_remove(self, fake_redis, blacklist, capsys):
        assert await _run(fake_redis, "blacklist", "add", "203.0.113.9", "card testing") == 0
        assert await blacklist.is_blacklisted("203.0.113.9", IdentifierType.IP)

        assert await _run(fake_redis, "blacklist", "list") == 0
        out = capsys.readouterr().out
        assert "203.0.113.9 (ip)" in out
        assert "card testing" in out

        assert await _run(fake_redis, "blacklist", "remove", "203.0.113.9") == 0
        assert not await blacklist.is_blacklisted("203.0.113.9", IdentifierType.IP)

    @pytest.mark.asyncio
    async def test_remove_missing(self, fake_redis, capsys):
        assert await _run(fake_redis, "blacklist", "remove", "nobody@x.com") == 1
        assert "not found" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_empty_list(self, fake_redis, capsys):
        await _run(fake_redis, "blacklist", "list")
        assert "No entries in blacklist" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_history(self, fake_redis, capsys):
        await _run(fake_redis, "blacklist", "add", "a@x.com", "chargeback", "-b", "ops")
        await _run(fake_redis, "blacklist", "remove", "a@x.com", "-b", "lead")
        capsys.readouterr()

        assert await _run(fake_redis, "blacklist", "history") == 0
        out = capsys.readouterr().out
        assert out.index("REMOVE") < out.index("ADD")
        assert "lead" in out

    @pytest.mark.asyncio
    async def test_cleanup(self, fake_redis, capsys):
        assert await _run(fake_redis, "blacklist", "cleanup") == 0
        assert "Cleaned up 0 expired entries" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_store_outage_exit_code(self, fake_redis, capsys):
        fake_redis.unavailable = {"*"}
        assert await _run(fake_redis, "blacklist", "list") == 3
        assert "unavailable" in capsys.readouterr().err


class TestReviewCommands:
    @pytest.mark.asyncio
    async def test_list_and_decide_by_position(self, fake_redis, review_queue, blacklist, capsys):
        await review_queue.enqueue(make_attempt(), RiskScore(score=60, level=RiskLevel.HIGH))

        assert await _run(fake_redis, "review", "list") == 0
        out = capsys.readouterr().out
        assert "#1" in out
        assert "a@x.com" in out

        code = await _run(
            fake_redis, "review", "decide", "1", "reject", "-n", "stolen card", "-b", "ops"
        )
        assert code == 0
        assert "marked reject by ops" in capsys.readouterr().out
        assert await blacklist.is_blacklisted("a@x.com", IdentifierType.EMAIL)
        assert await review_queue.count() == 0

    @pytest.mark.asyncio
    async def test_decide_by_entry_id(self, fake_redis, review_queue, capsys):
        entry = await review_queue.enqueue(
            make_attempt(), RiskScore(score=60, level=RiskLevel.HIGH)
        )
        assert await _run(fake_redis, "review", "decide", entry.entry_id, "approve") == 0
        assert "marked approve" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_decide_twice_is_conflict(self, fake_redis, review_queue, capsys):
        entry = await review_queue.enqueue(
            make_attempt(), RiskScore(score=60, level=RiskLevel.HIGH)
        )
        await _run(fake_redis, "review", "decide", entry.entry_id, "approve")
        assert await _run(fake_redis, "review", "decide", entry.entry_id, "approve") == 2
        assert "Conflict" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_position_past_end_is_conflict(self, fake_redis):
        assert await _run(fake_redis, "review", "decide", "#3", "approve") == 2

    @pytest.mark.asyncio
    async def test_zero_limit_lists_nothing(self, fake_redis, review_queue, capsys):
        await review_queue.enqueue(make_attempt(), RiskScore(score=60, level=RiskLevel.HIGH))
        assert await _run(fake_redis, "review", "list", "-l", "0") == 0
        assert "No entries in review queue" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_history_and_cleanup(self, fake_redis, review_queue, capsys):
        entry = await review_queue.enqueue(
            make_attempt(), RiskScore(score=60, level=RiskLevel.HIGH)
        )
        await review_queue.decide(entry.entry_id, "approve", notes="regular guest")
        capsys.readouterr()

        assert await _run(fake_redis, "review", "history") == 0
        assert "regular guest" in capsys.readouterr().out

        assert await _run(fake_redis, "review", "cleanup", "-d", "30") == 0
        assert "0 pending entries and 0 decisions" in capsys.readouterr().out


class TestHistoryCommands:
    @pytest.mark.asyncio
    async def test_clear(self, fake_redis, history, capsys):
        await history.append("a@x.com", make_attempt())
        assert await _run(fake_redis, "history", "clear", "a@x.com") == 0
        assert "Cleared 1 history keys" in capsys.readouterr().out
        assert not fake_redis.zsets


class TestReportCommand:
    @pytest.mark.asyncio
    async def test_text_report(self, fake_redis, review_queue, capsys):
        await review_queue.enqueue(make_attempt(), RiskScore(score=60, level=RiskLevel.HIGH))
        await _run(fake_redis, "blacklist", "add", "a@x.com", "chargeback", "-e", "7")
        capsys.readouterr()

        assert await _run(fake_redis, "report", "--hours", "12") == 0
        out = capsys.readouterr().out
        assert "Risk Report (12h" in out
        assert "Pending:        1" in out
        assert "Expiring:       1" in out

    @pytest.mark.asyncio
    async def test_json_report(self, fake_redis, capsys):
        assert await _run(fake_redis, "report", "--json") == 0
        data = json.loads(capsys.readouterr().out)
        assert data["pending_reviews"] == 0
        assert data["period_hours"] == 24

    @pytest.mark.asyncio
    async def test_report_store_outage(self, fake_redis, capsys):
        fake_redis.unavailable = {"*"}
        assert await _run(fake_redis, "report") == 3
