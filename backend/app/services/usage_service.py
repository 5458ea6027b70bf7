"""Token and cost accounting for agent runs.

Recording usage must never change the outcome of a run: a failed insert is
logged and dropped.
"""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.ai_usage import AIUsage

logger = logging.getLogger(__name__)


def estimate_cost(input_tokens: int, output_tokens: int) -> Decimal:
    """USD cost from the configured per-million-token rates, rounded to 6 places."""
    cost = (
        input_tokens * settings.AI_INPUT_COST_PER_MTOK
        + output_tokens * settings.AI_OUTPUT_COST_PER_MTOK
    ) / 1_000_000
    return Decimal(str(round(cost, 6)))


def record_usage(
    db: Session,
    website_id: int,
    user_id: str,
    model: str,
    input_tokens: int,
    output_tokens: int,
    command: str = "",
    outcome: str = "",
    iterations: int = 0,
    action_type: str = "ai_command",
) -> Optional[AIUsage]:
    row = AIUsage(
        website_id=website_id,
        user_id=user_id,
        action_type=action_type,
        model=model or "unknown",
        input_tokens=input_tokens,
        output_tokens=output_tokens,
        estimated_cost_usd=estimate_cost(input_tokens, output_tokens),
        metadata_={"command": command[:500], "outcome": outcome, "iterations": iterations},
    )
    try:
        db.add(row)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Failed to record AI usage for website {website_id}: {e}")
        return None

    logger.info(
        f"AI usage website={website_id} model={row.model} in={input_tokens} out={output_tokens} "
        f"cost=${row.estimated_cost_usd}"
    )
    return row
