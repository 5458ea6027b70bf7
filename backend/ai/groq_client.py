"""
Groq API Client - model capability for the WordPress change agent.

================================================================================
CRITICAL: THE MODEL PLANS, THE EXECUTOR DECIDES
================================================================================

This client only talks to Groq. It:
- sends the transcript + tool schemas and returns text or tool-call requests
- describes images for ALT text (vision model)

THIS CLIENT DOES NOT:
- Call the WordPress site
- Decide whether a tool call is allowed to write
- Touch the database

The proposal-gated / direct-execute boundary is enforced by the ToolExecutor,
because the model's tool choices are not a trusted boundary.

ERROR POLICY:
- Timeouts and rate limits are retried with exponential backoff
- Everything else (auth, bad request, exhausted retries) raises
  ModelProviderError, which aborts the run
================================================================================
"""

import asyncio
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from groq import AsyncGroq, APIConnectionError, APIError, APITimeoutError, RateLimitError

from ai.prompts import ALT_TEXT_PROMPT
from ai.transcript import AgentTurn, ModelResponse, Role, StopReason, ToolCall
from app.core.config import settings
from app.core.exceptions import ConfigurationError, ModelProviderError

# NEVER log API keys
logger = logging.getLogger(__name__)


class ModelClient(ABC):
    """What the agent loop needs from a language model provider."""

    model: str = ""

    @abstractmethod
    async def complete(
        self,
        system: str,
        transcript: List[AgentTurn],
        tools: List[Dict[str, Any]],
    ) -> ModelResponse:
        """One round-trip. Raises ModelProviderError on provider failure."""

    @abstractmethod
    async def describe_image(self, image_url: str, context: Optional[str] = None) -> str:
        """Short accessibility-focused description of an image."""


def to_groq_messages(system: str, transcript: List[AgentTurn]) -> List[Dict[str, Any]]:
    messages: List[Dict[str, Any]] = [{"role": "system", "content": system}]
    for turn in transcript:
        if turn.role == Role.OPERATOR:
            messages.append({"role": "user", "content": turn.content})
        elif turn.role == Role.ASSISTANT:
            message: Dict[str, Any] = {"role": "assistant", "content": turn.content or None}
            if turn.tool_calls:
                message["tool_calls"] = [
                    {
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.name, "arguments": call.raw_arguments},
                    }
                    for call in turn.tool_calls
                ]
            messages.append(message)
        else:
            messages.append({
                "role": "tool",
                "tool_call_id": turn.tool_call_id,
                "content": turn.content,
            })
    return messages


def parse_tool_calls(raw_calls) -> List[ToolCall]:
    calls = []
    for raw in raw_calls or []:
        raw_arguments = raw.function.arguments or "{}"
        try:
            arguments = json.loads(raw_arguments)
        except ValueError:
            logger.warning(f"Model sent non-JSON arguments for {raw.function.name}")
            arguments = None
        calls.append(ToolCall(
            id=raw.id,
            name=raw.function.name,
            arguments=arguments,
            raw_arguments=raw_arguments,
        ))
    return calls


class GroqModelClient(ModelClient):
    """
    Thin async wrapper for Groq chat completions with tool calling.

    - Temperature: 0 (same transcript = same plan)
    - Retries: 2 for timeouts / rate limits
    """

    TEMPERATURE = 0
    VISION_MAX_TOKENS = 300

    def __init__(
        self,
        api_key: str = None,
        model: str = None,
        vision_model: str = None,
        max_tokens: int = None,
        max_retries: int = 2,
    ):
        api_key = api_key or settings.GROQ_API_KEY
        if not api_key:
            raise ConfigurationError("AI not configured (GROQ_API_KEY missing)")

        self.model = model or settings.GROQ_MODEL
        self.vision_model = vision_model or settings.GROQ_VISION_MODEL
        self.max_tokens = max_tokens or settings.AI_MAX_TOKENS
        self.max_retries = max_retries
        # Retries are handled here so backoff is visible in our logs
        self.client = AsyncGroq(
            api_key=api_key,
            timeout=settings.AI_REQUEST_TIMEOUT_SECONDS,
            max_retries=0,
        )

    async def _create(self, **kwargs):
        for attempt in range(self.max_retries + 1):
            try:
                return await self.client.chat.completions.create(**kwargs)

            except APITimeoutError as e:
                if attempt < self.max_retries:
                    wait_time = 0.5 * (2 ** attempt)
                    logger.warning(f"Groq timeout, retry {attempt + 1}/{self.max_retries} after {wait_time}s")
                    await asyncio.sleep(wait_time)
                else:
                    raise ModelProviderError(f"Groq API timeout after {self.max_retries} retries") from e

            except RateLimitError as e:
                if attempt < self.max_retries:
                    wait_time = 1.0 * (2 ** attempt)
                    logger.warning(f"Groq rate limit, retry {attempt + 1}/{self.max_retries} after {wait_time}s")
                    await asyncio.sleep(wait_time)
                else:
                    raise ModelProviderError("Groq API rate limit exceeded after retries") from e

            except APIConnectionError as e:
                raise ModelProviderError(f"Could not reach Groq: {e}") from e

            except APIError as e:
                logger.error(f"Groq API error (permanent): {e}")
                raise ModelProviderError(f"Groq API error: {e}") from e

        raise ModelProviderError("Groq call failed")

    async def complete(
        self,
        system: str,
        transcript: List[AgentTurn],
        tools: List[Dict[str, Any]],
    ) -> ModelResponse:
        response = await self._create(
            model=self.model,
            messages=to_groq_messages(system, transcript),
            tools=tools,
            tool_choice="auto",
            temperature=self.TEMPERATURE,
            max_tokens=self.max_tokens,
        )

        if not response.choices:
            raise ModelProviderError("Groq returned no choices")

        message = response.choices[0].message
        usage = response.usage
        tool_calls = parse_tool_calls(message.tool_calls)

        return ModelResponse(
            stop_reason=StopReason.TOOL_USE if tool_calls else StopReason.END_TURN,
            text=message.content or "",
            tool_calls=tool_calls,
            input_tokens=(usage.prompt_tokens or 0) if usage else 0,
            output_tokens=(usage.completion_tokens or 0) if usage else 0,
        )

    async def describe_image(self, image_url: str, context: Optional[str] = None) -> str:
        prompt = ALT_TEXT_PROMPT.format(context=f"Context: {context}" if context else "")
        response = await self._create(
            model=self.vision_model,
            messages=[{
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            }],
            temperature=self.TEMPERATURE,
            max_tokens=self.VISION_MAX_TOKENS,
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()
