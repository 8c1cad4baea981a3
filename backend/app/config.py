from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # App
    app_name: str = "BlockBot"
    app_env: str = "development"
    app_url: str = "http://localhost:3000"
    cors_origins: str = "http://localhost:3000"

    # Database
    database_url: str

    # JWT (access and refresh tokens are signed with different secrets)
    jwt_access_secret: str
    jwt_refresh_secret: str
    jwt_algorithm: str = "HS256"

    # Argon2id cost parameters, fixed for the lifetime of the process
    argon2_memory_cost: int = 65536  # KiB (64 MiB)
    argon2_time_cost: int = 3
    argon2_parallelism: int = 4

    # Resend (transactional email)
    resend_api_key: str = ""
    email_from: str = "BlockBot <noreply@resend.dev>"

    # Sentry (optional, only set in staging/production)
    sentry_dsn: str = ""

    @model_validator(mode="after")
    def _check_secrets(self) -> "Settings":
        for name in ("jwt_access_secret", "jwt_refresh_secret"):
            if len(getattr(self, name)) < MIN_SECRET_LENGTH:
                raise ValueError(f"{name.upper()} must be at least {MIN_SECRET_LENGTH} characters")
        if self.jwt_access_secret == self.jwt_refresh_secret:
            raise ValueError("JWT_ACCESS_SECRET and JWT_REFRESH_SECRET must differ")
        return self

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def log_level(self) -> str:
        return "INFO" if self.is_production else "DEBUG"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]


settings = Settings()

# ---------------------------------------------------------------------------
# Application constants (not env-configurable, change in code)
# ---------------------------------------------------------------------------

# Token lifetimes (seconds)
ACCESS_TOKEN_EXPIRE_SECONDS = 15 * 60
REFRESH_TOKEN_EXPIRE_SECONDS = 7 * 24 * 60 * 60
MAGIC_LINK_EXPIRE_SECONDS = 15 * 60

# Org invites and shareable invite links
INVITE_EXPIRY_DAYS = 7

# HTTP timeouts (seconds)
HTTP_TIMEOUT = 15.0  # Resend API
