from app.models.website import Website
from app.models.action_queue import ActionQueueEntry, ActionStatus
from app.models.ai_usage import AIUsage

__all__ = ["Website", "ActionQueueEntry", "ActionStatus", "AIUsage"]
