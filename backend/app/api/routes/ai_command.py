"""
AI command endpoints for one managed WordPress site.

- POST   ""          run the agent on a free-text command -> message / proposal / error
- POST   /apply      write the operator-selected proposal changes
- POST   /rollback   restore before_state for applied actions (reverse order)
- GET    /history    100 most recent action queue entries

Trust: proposal-gated changes reach the site ONLY through /apply, after an
operator has reviewed them.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ai.groq_client import ModelClient
from app.agent.agent_loop import AgentLoop
from app.agent.agent_loop import Usage as RunUsage
from app.agent.apply import apply_changes
from app.agent.rollback import rollback_actions
from app.agent.tool_executor import ToolExecutor
from app.api.deps import Operator, get_current_operator, get_db, get_model_client, get_provider, get_website
from app.core.audit import AuditLog
from app.core.exceptions import BusinessError, ConfigurationError, ModelProviderError
from app.models.website import Website
from app.schemas.ai_command import (
    ApplyRequest,
    ApplyResponse,
    CommandRequest,
    CommandResponse,
    HistoryResponse,
    RollbackRequest,
    RollbackResponse,
    Usage,
)
from app.services.action_queue_service import ActionLog, count_in_flight, list_history
from app.services.capability_provider import ToolCapabilityProvider
from app.services.usage_service import estimate_cost, record_usage

logger = logging.getLogger(__name__)
router = APIRouter()


def _usage_response(usage: RunUsage) -> Usage:
    return Usage(
        input_tokens=usage.input_tokens,
        output_tokens=usage.output_tokens,
        estimated_cost_usd=float(estimate_cost(usage.input_tokens, usage.output_tokens)),
    )


@router.post("", response_model=CommandResponse)
async def run_command(
    body: CommandRequest,
    db: Session = Depends(get_db),
    operator: Operator = Depends(get_current_operator),
    website: Website = Depends(get_website),
    model_client: ModelClient = Depends(get_model_client),
    provider: ToolCapabilityProvider = Depends(get_provider),
):
    """Run one agent command. Nothing proposal-gated is written here."""
    try:
        executor = ToolExecutor(provider, model_client, action_log=ActionLog(db, website.id, operator.id))
    except ConfigurationError as e:
        raise BusinessError.not_configured(str(e))

    agent = AgentLoop(model_client, executor)
    try:
        result = await agent.run(body.command)
    except ModelProviderError as e:
        usage = e.usage or RunUsage()
        record_usage(
            db, website.id, operator.id, model_client.model, usage.input_tokens, usage.output_tokens,
            command=body.command, outcome="provider_error", iterations=e.iterations,
        )
        AuditLog.log_command(website.id, operator.id, body.command, "provider_error", iterations=e.iterations)
        raise BusinessError.upstream_failed(e)

    record_usage(
        db, website.id, operator.id, model_client.model,
        result.usage.input_tokens, result.usage.output_tokens,
        command=body.command, outcome=result.type, iterations=result.iterations,
    )
    AuditLog.log_command(
        website.id, operator.id, body.command, result.type,
        iterations=result.iterations,
        proposed_changes=len(result.proposal["changes"]) if result.proposal else 0,
    )

    return CommandResponse(
        type=result.type,
        message=result.message,
        proposal=result.proposal,
        usage=_usage_response(result.usage),
        iterations=result.iterations,
    )


@router.post("/apply", response_model=ApplyResponse)
async def apply(
    body: ApplyRequest,
    db: Session = Depends(get_db),
    operator: Operator = Depends(get_current_operator),
    website: Website = Depends(get_website),
    provider: ToolCapabilityProvider = Depends(get_provider),
):
    """Apply selected changes one by one; failures are reported per change."""
    results = await apply_changes(provider, ActionLog(db, website.id, operator.id), body.changes)
    return {"results": results}


@router.post("/rollback", response_model=RollbackResponse)
async def rollback(
    body: RollbackRequest,
    db: Session = Depends(get_db),
    operator: Operator = Depends(get_current_operator),
    website: Website = Depends(get_website),
    provider: ToolCapabilityProvider = Depends(get_provider),
):
    """Roll back actions most-recent-first; ineligible ids are reported, not fatal."""
    results = await rollback_actions(provider, ActionLog(db, website.id, operator.id), body.action_ids)
    return {"results": results}


@router.get("/history", response_model=HistoryResponse)
def history(
    db: Session = Depends(get_db),
    website: Website = Depends(get_website),
):
    """Most recent 100 action queue entries for this website, newest first."""
    return {
        "actions": list_history(db, website.id),
        "in_flight": count_in_flight(db, website.id),
    }
