"""
Application settings loaded from environment variables.
Uses pydantic-settings for type-safe configuration.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with defaults for development."""

    # Database
    database_url: str = "sqlite:///./restaurant.db"
    seed_on_startup: bool = True

    # Redis (event relay between processes and optional rate limit storage)
    redis_url: str = "redis://localhost:6379"
    redis_pool_max_connections: int = 20
    redis_socket_timeout: int = 5
    redis_max_reconnect_attempts: int = 20

    # JWT Configuration
    jwt_secret: str = "dev-secret-change-me-in-production"
    jwt_issuer: str = "restaurant-api"
    jwt_audience: str = "restaurant-staff"
    jwt_access_token_expire_minutes: int = 24 * 60
    bcrypt_rounds: int = 12

    # Demo tokens ("demo-token-<role>-...") accepted on HTTP routes
    allow_demo_tokens: bool = True

    # CORS: comma-separated list of allowed origins (empty uses localhost defaults)
    allowed_origins: str = ""
    frontend_url: str = "http://localhost:5173"

    # Server ports
    rest_api_port: int = 8000
    ws_gateway_port: int = 8001

    # Environment
    environment: str = "development"
    debug: bool = True

    # Logging: LOG_LEVEL overrides the DEBUG-derived level; LOG_FORMAT is auto, json or text
    log_level: str = ""
    log_format: str = "auto"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_storage_uri: str = ""  # empty = in-memory
    login_rate_limit: str = "10/minute"

    # Daily close
    business_timezone: str = "UTC"
    # When the closed-day lookup itself fails, let the request through
    daily_close_fail_open: bool = True

    # Real-time notifications
    event_transport: str = "local"  # "local" or "redis"
    events_channel: str = "restaurant:notifications"

    # WebSocket
    ws_demo_token: str = "dev-token"
    ws_allow_guest: bool = True
    ws_guest_role: str = "WAITER"
    ws_max_message_size: int = 64 * 1024
    ws_send_timeout: float = 5.0

    # WebSocket client reconnection
    ws_reconnect_base_delay: float = 1.0
    ws_reconnect_max_delay: float = 30.0
    ws_reconnect_max_attempts: int = 5
    ws_client_buffer_size: int = 50

    # Inventory
    low_stock_threshold_default: float = 0.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False

    def validate_production_secrets(self) -> list[str]:
        """
        Validate that secrets are properly configured for production.
        Returns a list of validation errors. Empty list means all checks pass.
        """
        errors = []

        WEAK_SECRETS = {
            "dev-secret-change-me-in-production",
            "secret",
            "password",
            "changeme",
            "default",
        }

        if self.environment == "production":
            if self.jwt_secret in WEAK_SECRETS or len(self.jwt_secret) < 32:
                errors.append(
                    "JWT_SECRET must be at least 32 characters and not a default value in production"
                )

            if self.debug:
                errors.append("DEBUG must be False in production")

            if self.allow_demo_tokens:
                errors.append("ALLOW_DEMO_TOKENS must be False in production")

            if self.ws_allow_guest:
                errors.append("WS_ALLOW_GUEST must be False in production")

            if not self.allowed_origins:
                errors.append(
                    "ALLOWED_ORIGINS must be set in production (comma-separated list of allowed domains)"
                )

        if self.event_transport not in ("local", "redis"):
            errors.append("EVENT_TRANSPORT must be 'local' or 'redis'")

        return errors

    def get_allowed_origins(self) -> list[str]:
        if self.allowed_origins:
            return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]
        return [
            "http://localhost:5173",
            "http://localhost:5174",
            "http://127.0.0.1:5173",
            "http://127.0.0.1:5174",
        ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience exports
settings = get_settings()

DATABASE_URL = settings.database_url
REDIS_URL = settings.redis_url
JWT_SECRET = settings.jwt_secret
JWT_ISSUER = settings.jwt_issuer
JWT_AUDIENCE = settings.jwt_audience
