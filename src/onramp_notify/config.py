"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Webhook verification (empty secret disables verification, local dev only)
    webhook_secret: str = ""
    webhook_max_age_seconds: int = 300

    # Local development mode (console logs instead of JSON)
    local_mode: bool = False

    # Redis (token store, pending notifications, rate limit storage)
    redis_url: str | None = None

    # Pending notification queue bounds, per user
    pending_max_per_user: int = 50
    pending_ttl_seconds: int = 7 * 24 * 3600

    # APNs direct channel (all three credentials required)
    apns_key_id: str = ""
    apns_team_id: str = ""
    apns_private_key: str = ""
    apns_bundle_id: str = "com.coinbase.onramp.demo"

    # Expo relay channel
    expo_push_url: str = "https://exp.host/--/api/v2/push/send"
    push_timeout_seconds: float = 10.0

    # JWT (client authentication for token registration and polling)
    jwt_secret: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_issuer: str = "onramp-api"
    jwt_audience: str = "onramp"

    # CORS
    cors_allowed_origins: list[str] = ["http://localhost:8081", "http://localhost:19006"]

    # Server
    host: str = "0.0.0.0"
    port: int = 3001
    log_level: str = "info"

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_webhooks_per_minute: int = 100

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "ONRAMP_",
    }

    @property
    def verification_enabled(self) -> bool:
        return bool(self.webhook_secret)

    @property
    def apns_configured(self) -> bool:
        """True when key id, team id and private key are all present."""
        return bool(self.apns_key_id and self.apns_team_id and self.apns_private_key)

    @property
    def rate_limit_storage_uri(self) -> str:
        return self.redis_url or "memory://"


settings = Settings()
