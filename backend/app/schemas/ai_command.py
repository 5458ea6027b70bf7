from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ai.tool_schema import ChangeItem


class CommandRequest(BaseModel):
    command: str = Field(..., min_length=1, max_length=4000)


class Usage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0
    estimated_cost_usd: float = 0.0


class ProposalResponse(BaseModel):
    description: str
    changes: List[ChangeItem]


class CommandResponse(BaseModel):
    type: str  # "message" | "error"
    message: str
    proposal: Optional[ProposalResponse] = None
    usage: Usage
    iterations: int = 0


class ChangeToApply(ChangeItem):
    """A proposal change as sent back by the operator's review table."""
    id: str = Field(..., min_length=1)
    selected: bool = True


class ApplyRequest(BaseModel):
    changes: List[ChangeToApply] = Field(..., min_length=1)


class ApplyResult(BaseModel):
    change_id: str
    success: bool
    action_id: Optional[str] = None
    error: Optional[str] = None


class ApplyResponse(BaseModel):
    results: List[ApplyResult]


class RollbackRequest(BaseModel):
    action_ids: List[str] = Field(..., min_length=1)


class RollbackResult(BaseModel):
    action_id: str
    success: bool
    error: Optional[str] = None


class RollbackResponse(BaseModel):
    results: List[RollbackResult]


class ActionQueueEntryResponse(BaseModel):
    id: str
    website_id: int
    initiated_by: str
    action_type: str
    action_payload: Optional[Dict[str, Any]] = None
    resource_type: Optional[str] = None
    resource_id: Optional[str] = None
    status: str
    before_state: Optional[Dict[str, Any]] = None
    after_state: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None
    priority: Optional[int] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class HistoryResponse(BaseModel):
    actions: List[ActionQueueEntryResponse]
    in_flight: int = 0
