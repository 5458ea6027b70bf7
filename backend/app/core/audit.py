"""
Audit logging for operator commands and remote-site changes.

The action queue table is the durable record used for rollback; these JSON
lines are the operational trail (who asked for what, from where) and can be
shipped to centralized logging.

LOGGING SENSITIVE DATA: commands are truncated, credentials are never logged.
"""
import logging
import json
from datetime import datetime, timezone
from typing import Any, Optional, Dict

# Separate logger for audit events (can be shipped to centralized logging)
audit_logger = logging.getLogger("audit")

COMMAND_PREVIEW_CHARS = 200


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class AuditLog:
    """Central audit logging for change-management events."""

    @staticmethod
    def log_command(
        website_id: int,
        operator_id: str,
        command: str,
        outcome: str,  # "message", "error", "provider_error"
        iterations: int = 0,
        proposed_changes: int = 0,
    ):
        """
        Log one agent run.

        Usage:
            AuditLog.log_command(3, "op-1", "add alt text to image 42", "message", iterations=4, proposed_changes=1)
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": "ai_command.run",
            "website_id": website_id,
            "operator_id": operator_id,
            "command": command[:COMMAND_PREVIEW_CHARS],
            "outcome": outcome,
            "iterations": iterations,
            "proposed_changes": proposed_changes,
        }
        audit_logger.info(json.dumps(log_entry))

    @staticmethod
    def log_action(
        action: str,  # "apply", "rollback", "direct_execute"
        website_id: int,
        operator_id: str,
        action_id: Optional[str],
        success: bool,
        changes: Optional[Dict[str, Any]] = None,
        error: str = "",
    ):
        """
        Log a state-changing operation against a remote site.

        Each change is logged with:
        - Who made the change (operator id)
        - Which queue entry records it
        - What changed (resource and field)

        Usage:
            AuditLog.log_action("apply", 3, "op-1", "9f2c...", True, changes={"resource_type": "media", "resource_id": "42"})
            AuditLog.log_action("rollback", 3, "op-1", "9f2c...", False, error="Action not rollbackable")
        """
        log_entry = {
            "timestamp": _now(),
            "event_type": f"wp_action.{action}",
            "website_id": website_id,
            "operator_id": operator_id,
            "action_id": action_id,
            "success": success,
        }

        if changes:
            log_entry["changes"] = changes
        if error and not success:
            log_entry["error"] = error

        if success:
            audit_logger.info(json.dumps(log_entry))
        else:
            audit_logger.warning(json.dumps(log_entry))

    @staticmethod
    def log_access_denied(
        action: str,  # "command", "apply", "rollback", "history"
        website_id: Optional[int],
        operator_id: Optional[str],
        reason: str,
    ):
        """
        Log denied access attempts.

        Usage:
            AuditLog.log_access_denied("apply", 3, "op-2", "Role editor is not admin")
        """
        log_entry = {
            "timestamp": _now(),
            "event_severity": "WARNING",
            "event_type": "access_denied",
            "action": action,
            "website_id": website_id,
            "operator_id": operator_id,
            "reason": reason,
        }

        audit_logger.warning(json.dumps(log_entry))
