from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore", populate_by_name=True)

    # Runtime
    environment: str = Field(default="development", validation_alias="NODE_ENV")
    port: int = Field(default=3000, validation_alias="PORT")

    # CORS / Frontend
    frontend_url: str | None = Field(default=None, validation_alias="FRONTEND_URL")
    frontend_urls: str | None = Field(default=None, validation_alias="FRONTEND_URLS")

    # AWS / data
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")
    ddb_table_name: str | None = Field(default=None, validation_alias="DDB_TABLE_NAME")
    ddb_endpoint_url: str | None = Field(default=None, validation_alias="DDB_ENDPOINT_URL")

    # Auth
    jwt_secret: str | None = Field(default=None, validation_alias="JWT_SECRET")
    jwt_expires_hours: int = Field(default=24, validation_alias="JWT_EXPIRES_HOURS")
    password_hash_iterations: int = Field(
        default=260_000, validation_alias="PASSWORD_HASH_ITERATIONS"
    )

    # Client core
    api_base_url: str = Field(
        default="http://localhost:3000/api", validation_alias="OPPTRACK_API_BASE_URL"
    )
    client_cache_ttl_seconds: float = Field(
        default=5 * 60, validation_alias="OPPTRACK_CACHE_TTL_SECONDS"
    )
    client_cache_maxsize: int = Field(default=1024, validation_alias="OPPTRACK_CACHE_MAXSIZE")
    credentials_path: Path = Field(
        default=Path.home() / ".opptrack" / "credentials.json",
        validation_alias="OPPTRACK_CREDENTIALS_PATH",
    )

    # Deadline reminders
    reminder_window_days: int = Field(default=7, validation_alias="REMINDER_WINDOW_DAYS")
    reminder_from_email: str | None = Field(default=None, validation_alias="REMINDER_FROM_EMAIL")
    reminder_max_workers: int = Field(default=8, validation_alias="REMINDER_MAX_WORKERS")

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("stage", "staging"):
            return "staging"
        if v in ("dev", "development"):
            return "development"
        return v or "development"

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    @property
    def is_development(self) -> bool:
        return self.normalized_environment == "development"

    def require_in_production(self) -> None:
        """
        Enforce required settings in production.

        Development is allowed to run with partial config for local work
        (tests, the client core), but production must be fully configured.
        """
        if not self.is_production:
            return

        missing: list[str] = []
        if not self.jwt_secret:
            missing.append("JWT_SECRET")
        if not self.ddb_table_name:
            missing.append("DDB_TABLE_NAME")

        if missing:
            raise RuntimeError(
                "Missing required production environment variables: "
                + ", ".join(missing)
            )

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs / diagnostics.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "port": self.port,
            "frontend": {
                "frontend_url": self.frontend_url,
                "frontend_urls": self.frontend_urls,
            },
            "aws": {
                "aws_region": self.aws_region,
                "ddb_table_name": self.ddb_table_name,
            },
            "auth": {
                "jwt_secret_configured": _has(self.jwt_secret),
                "jwt_expires_hours": self.jwt_expires_hours,
            },
            "reminders": {
                "window_days": self.reminder_window_days,
                "from_email_configured": _has(self.reminder_from_email),
            },
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s


# Module-level singleton for backend modules; the client core takes Settings explicitly.
settings = get_settings()
