"""
Cafeteria Queue — Configuration
All settings are read from environment variables (or .env file).
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Service ──────────────────────────────────────────────
    SERVICE_NAME: str = "cafeteria-queue"
    SERVICE_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8006
    LOG_LEVEL: str = "INFO"

    # ── PostgreSQL (Booking DB) ───────────────────────────────
    POSTGRES_HOST: str = "cafeteria-db"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "cafeteria_db"
    POSTGRES_USER: str = "cafeteria_user"
    POSTGRES_PASSWORD: str = "cafeteria_pass"
    DATABASE_URL: str | None = None  # full override, e.g. for local sqlite

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    # ── Redis ─────────────────────────────────────────────────
    REDIS_HOST: str = "redis"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    # ── JWT (issued by the identity provider) ─────────────────
    JWT_SECRET_KEY: str = "CHANGE_ME_IN_PRODUCTION"
    JWT_ALGORITHM: str = "HS256"

    # ── Queue ─────────────────────────────────────────────────
    AVERAGE_SERVICE_MINUTES: int = 5     # static quote per queue position
    DEFAULT_WAIT_MINUTES: int = 5        # history fallback when nothing was served
    WAIT_LOOKBACK_MINUTES: int = 60
    CAFETERIA_TIMEZONE: str = "UTC"      # token numbers restart at local midnight

    # ── Crowd Tracking ────────────────────────────────────────
    CROWD_TRACKING_ENABLED: bool = True
    CROWD_SNAPSHOT_INTERVAL_MINUTES: float = 5
    CROWD_LOW_THRESHOLD: int = 40        # below → low
    CROWD_MEDIUM_THRESHOLD: int = 70     # below → medium, otherwise high

    # ── Idempotency ───────────────────────────────────────────
    IDEMPOTENCY_KEY_TTL_SECONDS: int = 86400

    # ── Observability ─────────────────────────────────────────
    METRICS_ENABLED: bool = True
    HEALTH_CHECK_TIMEOUT: float = 5.0


@lru_cache()
def get_settings() -> Settings:
    return Settings()
