"""
Apply pipeline: write operator-approved proposal changes to the site.

For each SELECTED change, one at a time:
1. Queue entry created (pending) with before_state = the proposal's current_value
2. Entry moved to processing, committed BEFORE the remote write
3. Remote write routed by resource type
4. Entry -> completed (after_state) or failed (error_message)

A failed change never stops or undoes the others; each one is individually
reversible through the rollback pipeline.

KNOWN GAP: current_value is the snapshot from proposal time. It is not
re-read before writing, so a rollback restores that snapshot even if the
site changed in between.
"""
import logging
from typing import Any, Dict, List, Sequence

from app.agent.resource_writers import write_field
from app.core.audit import AuditLog
from app.models.action_queue import ActionStatus
from app.services.action_queue_service import ActionLog
from app.services.capability_provider import ToolCapabilityProvider

logger = logging.getLogger(__name__)


async def apply_changes(
    provider: ToolCapabilityProvider,
    action_log: ActionLog,
    changes: Sequence[Any],
) -> List[Dict[str, Any]]:
    """Apply changes sequentially. Returns one {change_id, success, action_id[, error]} per selected change."""
    selected = [c for c in changes if getattr(c, "selected", True)]
    if not selected:
        return []

    # Last-writer-wins: an in-flight entry on the same resource is reported, not blocked
    conflicts = action_log.conflicts((c.resource_type, c.resource_id) for c in selected)

    results = []
    for change in selected:
        key = f"{change.resource_type}:{change.resource_id}"
        if key in conflicts:
            logger.warning(
                f"Change {change.id} targets {key}, which has in-flight action {conflicts[key].id}"
            )

        entry = action_log.enqueue(
            f"update_{change.resource_type}",
            {"resource_id": change.resource_id, "field": change.field, "value": change.proposed_value},
            resource_type=change.resource_type,
            resource_id=change.resource_id,
            before_state={
                "resource_type": change.resource_type,
                "resource_id": change.resource_id,
                "field": change.field,
                "value": change.current_value,
            },
            status=ActionStatus.PENDING,
        )
        action_log.start(entry)

        try:
            extra = await write_field(
                provider, change.resource_type, change.resource_id,
                change.field, change.proposed_value,
            )
        except Exception as e:
            action_log.fail(entry, str(e))
            logger.warning(f"Change {change.id} failed: {e}")
            AuditLog.log_action(
                "apply", action_log.website_id, action_log.operator_id, entry.id, False,
                changes={"resource_type": change.resource_type, "resource_id": change.resource_id,
                         "field": change.field},
                error=str(e),
            )
            results.append({"change_id": change.id, "success": False, "action_id": entry.id, "error": str(e)})
            continue

        action_log.complete(entry, after_state={
            "resource_type": change.resource_type,
            "resource_id": change.resource_id,
            "field": change.field,
            "value": change.proposed_value,
            **extra,
        })
        AuditLog.log_action(
            "apply", action_log.website_id, action_log.operator_id, entry.id, True,
            changes={"resource_type": change.resource_type, "resource_id": change.resource_id,
                     "field": change.field},
        )
        results.append({"change_id": change.id, "success": True, "action_id": entry.id})

    succeeded = sum(1 for r in results if r["success"])
    logger.info(f"Applied {succeeded}/{len(results)} change(s) on website {action_log.website_id}")
    return results
