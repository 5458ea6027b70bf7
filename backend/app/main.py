"""
WP Agent Backend - AI change management for client WordPress sites.

ARCHITECTURE:
- Operator dashboard (via auth gateway): commands, proposal review, history
- FastAPI Backend: agent loop, tool execution, apply / rollback, persistence
- WordPress sites: REST API + dashboard connector mu-plugin
- Action queue table: durable record of every remote write, source for rollback

SAFETY MODEL:
- Content changes go through Command -> Proposal -> Operator selection -> Apply
- Proposal-gated tools never write during a run (enforced by the ToolExecutor)
- Direct actions (updates, cache, maintenance, users) run immediately and are
  recorded in the action queue
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from app.agent.tool_registry import list_tools
from app.api.routes import ai_command
from app.core.config import settings
from app.core.rate_limiter import RateLimitMiddleware
from app.db.init_db import init_db

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup:
    1. Initialize database tables
    2. Report the tool catalog (the registry is validated at import)
    """
    logger.info("Initializing database...")
    init_db()
    logger.info(f"Tool registry loaded: {len(list_tools())} tools")
    yield
    logger.info("Shutting down")


app = FastAPI(
    title="WP Agent API",
    description="AI commands for managed WordPress sites. Command -> Proposal -> Apply -> Rollback.",
    version="0.1.0",
    lifespan=lifespan,
)

# SECURITY: Trust only specific hosts
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# SECURITY: Restrict CORS to specific methods and headers (not wildcards)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Accept",
        "Origin",
        "X-Operator-Id",
        "X-Operator-Role",
        "X-Dashboard-Secret",
    ],
    max_age=600,
    expose_headers=["Content-Type"],
)

# SECURITY: Rate limiting; AI commands get their own smaller budget
app.add_middleware(RateLimitMiddleware)


# SECURITY: Add security headers middleware
@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


app.include_router(ai_command.router, prefix="/wordpress/{website_id}/ai-command", tags=["ai-command"])


@app.get("/health")
def health():
    return {"status": "ok", "tools": len(list_tools())}
