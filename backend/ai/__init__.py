"""AI Module for Groq LLM Integration.

This module provides the model side of the agent: the Groq client (tool
calling + vision), the provider-neutral transcript types, the typed tool
inputs and the system prompts.

It does NOT execute tools or touch WordPress - that is app.agent.
"""

from .groq_client import GroqModelClient, ModelClient
from .transcript import AgentTurn, ModelResponse, Role, StopReason, ToolCall

__all__ = [
    "GroqModelClient",
    "ModelClient",
    "AgentTurn",
    "ModelResponse",
    "Role",
    "StopReason",
    "ToolCall",
]
