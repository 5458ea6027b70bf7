"""Application configuration with security-first defaults.

Environment variables override all defaults.
CRITICAL: DASHBOARD_SECRET must be set in .env - will fail fast if missing in production.
"""

import os
from pathlib import Path
from typing import List


from dotenv import load_dotenv

# Load .env for local development; real environment variables win
_BACKEND_DIR = Path(__file__).resolve().parents[2]
load_dotenv(dotenv_path=_BACKEND_DIR / ".env", override=False)


class Settings:
    # Database Configuration
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./wp_agent.db")

    # Shared secret between the auth gateway and this service - CRITICAL
    DASHBOARD_SECRET: str = os.getenv("DASHBOARD_SECRET", None)
    if not DASHBOARD_SECRET:
        # Generate with: python -c "import secrets; print(secrets.token_urlsafe(32))"
        if os.getenv("ENVIRONMENT", "development") == "production":
            raise ValueError(
                "CRITICAL: DASHBOARD_SECRET must be set in production environment. "
                "Generate with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )
        import warnings
        warnings.warn(
            "DASHBOARD_SECRET not set in environment. Using development default. "
            "Set DASHBOARD_SECRET in .env before exposing this service.",
            RuntimeWarning
        )
        DASHBOARD_SECRET = "development-only-dashboard-secret"

    # CORS (specific origins only, no wildcards)
    CORS_ORIGINS: List[str] = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"
        ).split(",")
        if origin.strip()
    ]
    ALLOWED_HOSTS: List[str] = [
        host.strip()
        for host in os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1,testserver").split(",")
        if host.strip()
    ]

    # Groq API Key (Must be set via .env, never in code)
    GROQ_API_KEY: str = os.getenv("GROQ_API_KEY", "")
    GROQ_MODEL: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    GROQ_VISION_MODEL: str = os.getenv(
        "GROQ_VISION_MODEL", "meta-llama/llama-4-scout-17b-16e-instruct"
    )

    # Agent loop limits
    AI_MAX_ITERATIONS: int = int(os.getenv("AI_MAX_ITERATIONS", "20"))
    AI_MAX_TOKENS: int = int(os.getenv("AI_MAX_TOKENS", "4096"))
    AI_REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("AI_REQUEST_TIMEOUT_SECONDS", "60"))
    # Model context is finite; tool results above this are cut before being fed back
    AI_TOOL_RESULT_MAX_CHARS: int = int(os.getenv("AI_TOOL_RESULT_MAX_CHARS", "20000"))

    # Usage cost table (USD per million tokens)
    AI_INPUT_COST_PER_MTOK: float = float(os.getenv("AI_INPUT_COST_PER_MTOK", "0.59"))
    AI_OUTPUT_COST_PER_MTOK: float = float(os.getenv("AI_OUTPUT_COST_PER_MTOK", "0.79"))

    # WordPress remote calls
    WP_REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("WP_REQUEST_TIMEOUT_SECONDS", "30"))

    # Rate Limiting
    RATE_LIMIT_REQUESTS: int = int(os.getenv("RATE_LIMIT_REQUESTS", "100"))
    RATE_LIMIT_WINDOW_SECONDS: int = int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
    # Each AI command spends model tokens, so it gets its own, smaller budget per operator
    AI_COMMAND_RATE_LIMIT: int = int(os.getenv("AI_COMMAND_RATE_LIMIT", "10"))

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = ENVIRONMENT == "development"


settings = Settings()
