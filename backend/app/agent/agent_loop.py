"""
Agent loop: one operator command in, one message / proposal / error out.

FLOW (per iteration, at most max_iterations):
1. Send system policy + transcript + tool schemas to the model
2. Final answer -> return its text and the LAST proposal of the run
3. Tool calls -> run them concurrently through the ToolExecutor, append one
   tool-result turn per call id, go again

ERROR POLICY:
- A failing tool call becomes {"error": "..."} for the model, never an abort
- ModelProviderError aborts the run (re-raised with the usage so far)
- Hitting the cap is an "error" result, not an exception
"""
import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ai.groq_client import ModelClient
from ai.prompts import ITERATION_LIMIT_MESSAGE, SYSTEM_PROMPT
from ai.tool_schema import ProposeChangesInput, ToolName
from ai.transcript import AgentTurn, Role, StopReason, ToolCall
from app.agent.tool_executor import ToolExecutor
from app.agent.tool_registry import tools_for_model
from app.core.config import settings
from app.core.exceptions import ModelProviderError

logger = logging.getLogger(__name__)


@dataclass
class Usage:
    input_tokens: int = 0
    output_tokens: int = 0

    def add(self, input_tokens: int, output_tokens: int) -> None:
        self.input_tokens += input_tokens or 0
        self.output_tokens += output_tokens or 0


@dataclass
class RunResult:
    type: str  # "message" | "error"
    message: str
    proposal: Optional[Dict[str, Any]] = None
    usage: Usage = field(default_factory=Usage)
    iterations: int = 0


def build_proposal(params: ProposeChangesInput) -> Dict[str, Any]:
    """Proposal as returned to the operator; every change gets a stable id."""
    changes = []
    for change in params.changes:
        item = change.model_dump()
        item["id"] = change.id or str(uuid.uuid4())
        changes.append(item)
    return {"description": params.description, "changes": changes}


class AgentLoop:
    def __init__(
        self,
        model_client: ModelClient,
        executor: ToolExecutor,
        max_iterations: int = None,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        self.model_client = model_client
        self.executor = executor
        self.max_iterations = max_iterations or settings.AI_MAX_ITERATIONS
        self.system_prompt = system_prompt

    async def _run_call(self, call: ToolCall) -> Any:
        try:
            return await self.executor.execute(call.name, call.arguments)
        except Exception as e:
            logger.info(f"Tool {call.name} failed: {e}")
            return {"error": str(e)}

    async def run(self, command: str) -> RunResult:
        transcript: List[AgentTurn] = [AgentTurn(role=Role.OPERATOR, content=command)]
        tools = tools_for_model()
        usage = Usage()
        proposal: Optional[Dict[str, Any]] = None

        for iteration in range(1, self.max_iterations + 1):
            try:
                response = await self.model_client.complete(self.system_prompt, transcript, tools)
            except ModelProviderError as e:
                logger.error(f"Model provider failed on iteration {iteration}: {e}")
                raise ModelProviderError(str(e), usage=usage, iterations=iteration) from e

            usage.add(response.input_tokens, response.output_tokens)

            if response.stop_reason != StopReason.TOOL_USE or not response.tool_calls:
                logger.info(f"Agent run finished after {iteration} iteration(s)")
                return RunResult(
                    type="message",
                    message=response.text,
                    proposal=proposal,
                    usage=usage,
                    iterations=iteration,
                )

            calls = response.tool_calls
            transcript.append(AgentTurn(role=Role.ASSISTANT, content=response.text, tool_calls=calls))
            results = await asyncio.gather(*(self._run_call(call) for call in calls))

            for call, result in zip(calls, results):
                transcript.append(AgentTurn(
                    role=Role.TOOL_RESULT,
                    content=json.dumps(result, default=str),
                    tool_call_id=call.id,
                ))
                if call.name == ToolName.PROPOSE_CHANGES.value and "error" not in result:
                    proposal = build_proposal(ProposeChangesInput.model_validate(call.arguments))

        logger.warning(f"Agent run hit the iteration cap ({self.max_iterations})")
        return RunResult(
            type="error",
            message=ITERATION_LIMIT_MESSAGE,
            proposal=None,
            usage=usage,
            iterations=self.max_iterations,
        )
