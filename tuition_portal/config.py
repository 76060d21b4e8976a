import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./tuition_portal.db")

# Managed backend (Postgres + auth) configuration
SUPABASE_URL = os.getenv("SUPABASE_URL", "").rstrip("/")
SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY")
SUPABASE_JWT_AUDIENCE = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")

# Security - CRITICAL: No default JWT secret in production
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
if not SUPABASE_JWT_SECRET:
    import warnings

    warnings.warn(
        "SUPABASE_JWT_SECRET not set! Using insecure default - DO NOT USE IN PRODUCTION",
        RuntimeWarning,
        stacklevel=2,
    )
    SUPABASE_JWT_SECRET = "INSECURE-DEV-JWT-SECRET-CHANGE-IN-PRODUCTION"  # noqa: S105 - Dev fallback only

# Frontend base URL (bespoke offer deep links are built from it)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Session access window
# Clients re-evaluate join buttons on this interval
ACCESS_REFRESH_SECONDS = int(os.getenv("ACCESS_REFRESH_SECONDS", "30"))

# Upper bound on slow backend writes before the caller gets a 504
REMOTE_CALL_TIMEOUT_SECONDS = float(os.getenv("REMOTE_CALL_TIMEOUT_SECONDS", "20"))

# Timeout for calls to the identity provider admin API
IDENTITY_HTTP_TIMEOUT_SECONDS = float(os.getenv("IDENTITY_HTTP_TIMEOUT_SECONDS", "15"))

DEFAULT_CLASSROOM_PROVIDER = os.getenv("DEFAULT_CLASSROOM_PROVIDER", "Google Meet")
