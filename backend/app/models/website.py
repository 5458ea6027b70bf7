"""
Website: one managed WordPress site (the tenant scope of every AI command).

Credentials are stored so the capability provider can be built per request.
Client/website CRUD lives in the dashboard; this service only reads the row.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.sql import func
from app.db.base import Base


class Website(Base):
    __tablename__ = "websites"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    site_url = Column(String(512), nullable=False)
    wp_username = Column(String(255), nullable=True)
    wp_app_password = Column(String(255), nullable=True)  # WordPress Application Password
    shared_secret = Column(String(255), nullable=True)  # X-Dashboard-Secret for the connector plugin
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    @property
    def has_credentials(self) -> bool:
        return bool(self.wp_username and self.wp_app_password and self.shared_secret)
