"""
Rollback pipeline: restore before_state for previously applied actions.

- ids are processed in REVERSE of the order given (undo most recent first)
- only completed entries with a before_state are eligible; everything else
  gets "Action not rollbackable" and the batch continues
- success -> rolled_back; a failed attempt leaves the entry completed so it
  can be retried
"""
import logging
from typing import Any, Dict, List, Sequence

from app.agent.resource_writers import revert_entry
from app.core.audit import AuditLog
from app.services.action_queue_service import ActionLog
from app.services.capability_provider import ToolCapabilityProvider

logger = logging.getLogger(__name__)

NOT_ROLLBACKABLE = "Action not rollbackable"


async def rollback_actions(
    provider: ToolCapabilityProvider,
    action_log: ActionLog,
    action_ids: Sequence[str],
) -> List[Dict[str, Any]]:
    results = []
    for action_id in reversed(list(action_ids)):
        entry = action_log.get(action_id)
        if entry is None or not entry.is_rollbackable:
            results.append({"action_id": action_id, "success": False, "error": NOT_ROLLBACKABLE})
            continue

        try:
            await revert_entry(provider, entry)
        except Exception as e:
            logger.warning(f"Rollback of {action_id} failed: {e}")
            AuditLog.log_action(
                "rollback", action_log.website_id, action_log.operator_id, action_id, False, error=str(e),
            )
            results.append({"action_id": action_id, "success": False, "error": str(e)})
            continue

        action_log.rolled_back(entry)
        AuditLog.log_action(
            "rollback", action_log.website_id, action_log.operator_id, action_id, True,
            changes={"resource_type": entry.resource_type, "resource_id": entry.resource_id},
        )
        results.append({"action_id": action_id, "success": True})

    return results
