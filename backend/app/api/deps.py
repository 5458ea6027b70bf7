"""FastAPI dependencies: DB session, operator identity, website, model and site clients.

SECURITY: Operator identity is asserted by the upstream auth gateway, which forwards:
1. X-Operator-Id      (who)
2. X-Operator-Role    (must be "admin")
3. X-Dashboard-Secret (shared secret proving the request came through the gateway)

get_model_client and get_provider are separate dependencies so tests can
override them with fakes.
"""
import secrets
from dataclasses import dataclass
from typing import AsyncGenerator, Generator, Optional

from fastapi import Depends, Header, Path
from sqlalchemy.orm import Session

from ai.groq_client import GroqModelClient, ModelClient
from app.core.audit import AuditLog
from app.core.config import settings
from app.core.exceptions import BusinessError, ConfigurationError
from app.core.permissions import get_manageable_website, operator_is_admin
from app.db.session import SessionLocal
from app.models.website import Website
from app.services.capability_provider import ToolCapabilityProvider
from app.services.wp_client import WPClient


@dataclass
class Operator:
    id: str
    role: str


def get_db() -> Generator[Session, None, None]:
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_current_operator(
    website_id: int = Path(...),
    x_operator_id: Optional[str] = Header(None),
    x_operator_role: Optional[str] = Header(None),
    x_dashboard_secret: Optional[str] = Header(None),
) -> Operator:
    """Authenticate the gateway secret, then require the admin role."""
    if not x_dashboard_secret or not secrets.compare_digest(
        x_dashboard_secret.encode(), settings.DASHBOARD_SECRET.encode()
    ):
        AuditLog.log_access_denied("ai_command", website_id, x_operator_id, "Bad or missing dashboard secret")
        raise BusinessError.unauthorized("bad or missing dashboard secret")

    if not x_operator_id:
        AuditLog.log_access_denied("ai_command", website_id, None, "Missing operator id")
        raise BusinessError.unauthorized("missing operator id")

    if not operator_is_admin(x_operator_role):
        AuditLog.log_access_denied("ai_command", website_id, x_operator_id, f"Role {x_operator_role} is not admin")
        raise BusinessError.forbidden(f"operator {x_operator_id} role {x_operator_role}")

    return Operator(id=x_operator_id, role=x_operator_role)


def get_website(
    website_id: int = Path(...),
    db: Session = Depends(get_db),
    operator: Operator = Depends(get_current_operator),
) -> Website:
    website = get_manageable_website(db, website_id)
    if website is None:
        raise BusinessError.not_found("Website", f"website {website_id} missing, inactive or without credentials")
    return website


def get_model_client() -> ModelClient:
    try:
        return GroqModelClient()
    except ConfigurationError as e:
        raise BusinessError.not_configured(str(e))


async def get_provider(website: Website = Depends(get_website)) -> AsyncGenerator[ToolCapabilityProvider, None]:
    client = WPClient.from_website(website)
    try:
        yield client
    finally:
        await client.aclose()
