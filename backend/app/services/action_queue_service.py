"""
Action queue persistence: create entries, move them through their lifecycle, query history.

ORDERING GUARANTEE:
- enqueue_action commits BEFORE the caller touches the remote site, so a
  crash between the remote write and the status update still leaves a
  discoverable `processing` row for manual reconciliation.
- every status change goes through transition(), which rejects any move
  not listed in ActionStatus.TRANSITIONS (e.g. failed -> rolled_back).
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import InvalidTransitionError
from app.models.action_queue import ActionQueueEntry, ActionStatus

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 100
SEQUENCE_ATTEMPTS = 3


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _next_sequence(db: Session, website_id: int) -> int:
    current = (
        db.query(func.max(ActionQueueEntry.sequence))
        .filter(ActionQueueEntry.website_id == website_id)
        .scalar()
    )
    return (current or 0) + 1


def enqueue_action(
    db: Session,
    website_id: int,
    initiated_by: str,
    action_type: str,
    action_payload: Dict[str, Any],
    resource_type: Optional[str] = None,
    resource_id: Optional[str] = None,
    before_state: Optional[Dict[str, Any]] = None,
    priority: int = 5,
    status: str = ActionStatus.PROCESSING,
) -> ActionQueueEntry:
    """Insert and commit a new entry. Only pending or processing are valid starting states."""
    if status not in ActionStatus.IN_FLIGHT:
        raise ValueError(f"New actions must start pending or processing, not {status}")

    for attempt in range(1, SEQUENCE_ATTEMPTS + 1):
        entry = ActionQueueEntry(
            website_id=website_id,
            initiated_by=initiated_by,
            action_type=action_type,
            action_payload=action_payload,
            before_state=before_state,
            resource_type=resource_type,
            resource_id=resource_id,
            priority=priority,
            status=status,
            sequence=_next_sequence(db, website_id),
            started_at=_utcnow() if status == ActionStatus.PROCESSING else None,
        )
        db.add(entry)
        try:
            db.commit()
            break
        except IntegrityError:
            # another request took this sequence number between read and insert
            db.rollback()
            if attempt == SEQUENCE_ATTEMPTS:
                raise
            logger.warning(f"Sequence collision for website {website_id}, retrying ({attempt}/{SEQUENCE_ATTEMPTS})")
    db.refresh(entry)
    logger.info(f"Queued action {entry.id} ({action_type}) for website {website_id}, status={status}")
    return entry


def transition(db: Session, entry: ActionQueueEntry, target: str, **fields) -> ActionQueueEntry:
    """Move an entry to `target`, setting extra columns, and commit."""
    allowed = ActionStatus.TRANSITIONS.get(entry.status, ())
    if target not in allowed:
        raise InvalidTransitionError(entry.id, entry.status, target)

    entry.status = target
    for name, value in fields.items():
        setattr(entry, name, value)
    db.commit()
    db.refresh(entry)
    return entry


def start_action(db: Session, entry: ActionQueueEntry) -> ActionQueueEntry:
    return transition(db, entry, ActionStatus.PROCESSING, started_at=_utcnow())


def complete_action(
    db: Session, entry: ActionQueueEntry, after_state: Optional[Dict[str, Any]] = None
) -> ActionQueueEntry:
    return transition(
        db, entry, ActionStatus.COMPLETED, after_state=after_state, completed_at=_utcnow()
    )


def fail_action(db: Session, entry: ActionQueueEntry, error_message: str) -> ActionQueueEntry:
    return transition(
        db, entry, ActionStatus.FAILED, error_message=error_message, completed_at=_utcnow()
    )


def mark_rolled_back(db: Session, entry: ActionQueueEntry) -> ActionQueueEntry:
    return transition(db, entry, ActionStatus.ROLLED_BACK)


def get_action(db: Session, website_id: int, action_id: str) -> Optional[ActionQueueEntry]:
    return (
        db.query(ActionQueueEntry)
        .filter(ActionQueueEntry.id == action_id, ActionQueueEntry.website_id == website_id)
        .first()
    )


def list_history(db: Session, website_id: int, limit: int = HISTORY_LIMIT) -> List[ActionQueueEntry]:
    """Most recent first."""
    return (
        db.query(ActionQueueEntry)
        .filter(ActionQueueEntry.website_id == website_id)
        .order_by(ActionQueueEntry.sequence.desc())
        .limit(limit)
        .all()
    )


def find_resource_conflict(
    db: Session, website_id: int, resource_type: str, resource_id: str
) -> Optional[ActionQueueEntry]:
    """Newest pending/processing entry touching the same resource, if any."""
    return (
        db.query(ActionQueueEntry)
        .filter(
            ActionQueueEntry.website_id == website_id,
            ActionQueueEntry.resource_type == resource_type,
            ActionQueueEntry.resource_id == resource_id,
            ActionQueueEntry.status.in_(ActionStatus.IN_FLIGHT),
        )
        .order_by(ActionQueueEntry.sequence.desc())
        .first()
    )


def find_batch_conflicts(
    db: Session, website_id: int, resources: Iterable[Tuple[str, str]]
) -> Dict[str, ActionQueueEntry]:
    """Map "resource_type:resource_id" -> in-flight entry for every resource in the batch that has one."""
    wanted = {(rtype, rid) for rtype, rid in resources}
    if not wanted:
        return {}

    in_flight = (
        db.query(ActionQueueEntry)
        .filter(
            ActionQueueEntry.website_id == website_id,
            ActionQueueEntry.status.in_(ActionStatus.IN_FLIGHT),
        )
        .order_by(ActionQueueEntry.sequence.desc())
        .all()
    )

    conflicts: Dict[str, ActionQueueEntry] = {}
    for entry in in_flight:
        key = (entry.resource_type, entry.resource_id)
        if key in wanted:
            conflicts.setdefault(f"{entry.resource_type}:{entry.resource_id}", entry)
    return conflicts


def count_in_flight(db: Session, website_id: int) -> int:
    return (
        db.query(func.count(ActionQueueEntry.id))
        .filter(
            ActionQueueEntry.website_id == website_id,
            ActionQueueEntry.status.in_(ActionStatus.IN_FLIGHT),
        )
        .scalar()
    ) or 0


class ActionLog:
    """Queue operations bound to one website + operator, handed to the pipelines."""

    def __init__(self, db: Session, website_id: int, operator_id: str):
        self.db = db
        self.website_id = website_id
        self.operator_id = operator_id

    def enqueue(self, action_type: str, action_payload: Dict[str, Any], **kwargs) -> ActionQueueEntry:
        return enqueue_action(
            self.db, self.website_id, self.operator_id, action_type, action_payload, **kwargs
        )

    def start(self, entry: ActionQueueEntry) -> ActionQueueEntry:
        return start_action(self.db, entry)

    def complete(self, entry: ActionQueueEntry, after_state: Optional[Dict[str, Any]] = None) -> ActionQueueEntry:
        return complete_action(self.db, entry, after_state)

    def fail(self, entry: ActionQueueEntry, error_message: str) -> ActionQueueEntry:
        return fail_action(self.db, entry, error_message)

    def rolled_back(self, entry: ActionQueueEntry) -> ActionQueueEntry:
        return mark_rolled_back(self.db, entry)

    def get(self, action_id: str) -> Optional[ActionQueueEntry]:
        return get_action(self.db, self.website_id, action_id)

    def conflicts(self, resources: Iterable[Tuple[str, str]]) -> Dict[str, ActionQueueEntry]:
        return find_batch_conflicts(self.db, self.website_id, resources)
