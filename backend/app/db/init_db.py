"""Create all tables. Run on app startup."""
import logging

from app.db.base import Base
from app.db.session import engine
from app.models import website, action_queue, ai_usage  # noqa: F401 - register models

logger = logging.getLogger(__name__)


def init_db(bind=None):
    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info(f"Tables ready: {', '.join(sorted(Base.metadata.tables))}")
