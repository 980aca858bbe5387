import os
import logging
from pydantic import BaseModel, Field
from typing import List, Optional
from dotenv import load_dotenv

load_dotenv()


class Config(BaseModel):
    app_name: str = "HR Management API"
    environment: str = Field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    api_prefix: str = "/api"
    version: str = "1.0.0"

    # Server
    host: str = Field(default_factory=lambda: os.getenv("HOST", "0.0.0.0"))
    port: int = Field(default_factory=lambda: int(os.getenv("PORT", "9000")))
    shutdown_grace_seconds: float = 10.0

    # Database (required, startup aborts without it)
    database_url: Optional[str] = Field(default_factory=lambda: os.getenv("DATABASE_URL"))

    # Auth
    secret_key: str = Field(default_factory=lambda: os.getenv("SECRET_KEY", "dev-only-insecure-key-DO-NOT-USE-IN-PROD"))
    access_token_expire_minutes: int = 60 * 24  # 24 hours
    request_id_header: str = "X-Request-ID"

    # CORS
    client_url: str = Field(default_factory=lambda: os.getenv("CLIENT_URL", "http://localhost:5173"))
    cors_methods: List[str] = ["GET", "POST", "PUT", "DELETE", "PATCH"]
    cors_headers: List[str] = ["Content-Type", "Authorization"]

    # Rate limiting, applied to the API prefix only
    rate_limit: str = Field(default_factory=lambda: os.getenv("RATE_LIMIT", "100 per 15 minutes"))
    rate_limit_message: str = "Too many requests from this IP, please try again later."

    # Body parsing
    max_body_bytes: int = 10 * 1024 * 1024  # 10mb

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


settings = Config()

# --- Startup Validation for Production ---
_logger = logging.getLogger(__name__)
if settings.environment == "production":
    if "dev-only" in settings.secret_key:
        raise RuntimeError(
            "FATAL: SECRET_KEY must be set for production. Set it as an environment variable."
        )
elif "dev-only" in settings.secret_key:
    _logger.warning("⚠ Using insecure default SECRET_KEY, only acceptable outside production.")
