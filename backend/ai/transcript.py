"""Provider-neutral transcript types shared by the agent loop and model clients.

A run's transcript is an ordered list of AgentTurn. It lives only for the
duration of one run and is never persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Role(str, Enum):
    OPERATOR = "operator"
    ASSISTANT = "assistant"
    TOOL_RESULT = "tool_result"


class StopReason(str, Enum):
    END_TURN = "end_turn"
    TOOL_USE = "tool_use"


@dataclass
class ToolCall:
    """One tool call requested by the model.

    arguments is None when raw_arguments was not valid JSON; the executor
    reports that back to the model as an input error.
    """
    id: str
    name: str
    arguments: Optional[Dict[str, Any]]
    raw_arguments: str = "{}"


@dataclass
class AgentTurn:
    role: Role
    content: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_call_id: Optional[str] = None  # set on TOOL_RESULT turns


@dataclass
class ModelResponse:
    stop_reason: StopReason
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
