from decimal import Decimal

from sqlalchemy.exc import OperationalError

from app.core.config import settings
from app.models.ai_usage import AIUsage
from app.services.usage_service import estimate_cost, record_usage

from conftest import OPERATOR_ID


def test_estimate_cost_uses_rate_table(monkeypatch):
    monkeypatch.setattr(settings, "AI_INPUT_COST_PER_MTOK", 1.0)
    monkeypatch.setattr(settings, "AI_OUTPUT_COST_PER_MTOK", 2.0)
    assert estimate_cost(1_000_000, 500_000) == Decimal("2.0")
    assert estimate_cost(0, 0) == Decimal("0.0")


def test_record_usage_writes_one_row(db, website):
    row = record_usage(db, website.id, OPERATOR_ID, "llama", 1200, 300,
                       command="fix seo", outcome="message", iterations=4)
    assert row is not None
    stored = db.query(AIUsage).one()
    assert stored.action_type == "ai_command"
    assert stored.metadata_ == {"command": "fix seo", "outcome": "message", "iterations": 4}
    assert stored.estimated_cost_usd > 0


def test_record_usage_swallows_database_errors(db, website, monkeypatch, caplog):
    def broken_commit():
        raise OperationalError("INSERT", {}, Exception("disk full"))

    monkeypatch.setattr(db, "commit", broken_commit)
    assert record_usage(db, website.id, OPERATOR_ID, "llama", 1, 1) is None
    assert "Failed to record AI usage" in caplog.text
