"""
ActionQueueEntry: durable, ordered record of every write made to a remote site.

Status flow: pending -> processing -> completed | failed, then completed -> rolled_back.
failed and rolled_back are terminal. Entries are never deleted; rollback flips
the status of the original row.

An entry is rollback-eligible only when status == completed AND before_state is set.
"""
import uuid

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from sqlalchemy.types import JSON
from app.db.base import Base


class ActionStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"

    ALL = (PENDING, PROCESSING, COMPLETED, FAILED, ROLLED_BACK)
    IN_FLIGHT = (PENDING, PROCESSING)

    # Allowed forward moves; anything not listed is rejected
    TRANSITIONS = {
        PENDING: (PROCESSING,),
        PROCESSING: (COMPLETED, FAILED),
        COMPLETED: (ROLLED_BACK,),
        FAILED: (),
        ROLLED_BACK: (),
    }


def _new_id() -> str:
    return str(uuid.uuid4())


class ActionQueueEntry(Base):
    __tablename__ = "wp_action_queue"

    id = Column(String(36), primary_key=True, default=_new_id)
    website_id = Column(Integer, ForeignKey("websites.id", ondelete="CASCADE"), nullable=False)
    initiated_by = Column(String(128), nullable=False)  # operator identity from the auth gateway
    action_type = Column(String(128), nullable=False)  # update_<resource_type> or a direct tool name
    action_payload = Column(JSON, nullable=False)
    before_state = Column(JSON, nullable=True)  # null => never rollback-eligible
    after_state = Column(JSON, nullable=True)
    status = Column(String(32), nullable=False, default=ActionStatus.PENDING)
    error_message = Column(Text, nullable=True)
    resource_type = Column(String(64), nullable=True)
    resource_id = Column(String(255), nullable=True)
    priority = Column(Integer, default=5)
    # Per-website append counter, unique; created_at alone can tie within one batch
    sequence = Column(Integer, nullable=False, default=0)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    website = relationship("Website", backref="actions")

    __table_args__ = (
        UniqueConstraint("website_id", "sequence", name="uq_wp_action_queue_sequence"),
        Index("idx_wp_action_queue_processing", "website_id", "status", "priority", "created_at"),
        Index("idx_wp_action_queue_resource", "website_id", "resource_type", "resource_id", "status"),
    )

    @property
    def is_rollbackable(self) -> bool:
        return self.status == ActionStatus.COMPLETED and self.before_state is not None
