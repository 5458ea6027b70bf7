"""
Permission checks for the ai-command API.
Trust: only admin operators may run commands, apply changes, or roll back,
and only against an active website with WordPress credentials.
"""
from typing import Optional

from sqlalchemy.orm import Session

from app.models.website import Website

ADMIN_ROLE = "admin"


def operator_is_admin(role: Optional[str]) -> bool:
    return (role or "").strip().lower() == ADMIN_ROLE


def get_manageable_website(db: Session, website_id: int) -> Optional[Website]:
    """Active website with usable WordPress credentials, or None."""
    website = db.query(Website).filter(Website.id == website_id, Website.is_active.is_(True)).first()
    if website is None or not website.has_credentials:
        return None
    return website
