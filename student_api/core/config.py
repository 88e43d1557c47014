"""
Service settings, read once from the environment (and an optional .env file).
"""

from dataclasses import dataclass
from typing import Annotated, Any, Literal

from pydantic import AnyUrl, BeforeValidator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


@dataclass(frozen=True)
class ConnectionConfig:
    """Everything needed to open an IAM-authenticated MySQL connection."""

    host: str
    port: int
    database: str
    user: str
    region: str | None = None
    pool_size: int = 5
    connect_timeout: int = 10
    ssl_ca: str | None = None
    max_age: float = 600.0
    ping_idle_threshold: float = 30.0


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    PROJECT_NAME: str = "student-api"
    ENVIRONMENT: Literal["local", "staging", "production"] = "production"
    LOG_LEVEL: str = "INFO"
    SENTRY_DSN: str | None = None

    PORT: int = 5005
    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    DB_HOST: str = ""
    DB_USER: str = ""
    DB_NAME: str = ""
    DB_PORT: int = 3306
    AWS_REGION: str | None = None
    DB_SSL_CA: str | None = None

    # Idle connections kept for reuse; anything released beyond this is closed.
    DB_POOL_SIZE: int = 5
    DB_CONNECT_TIMEOUT: int = 10
    DB_POOL_MAX_AGE_SEC: float = 600.0
    DB_PING_IDLE_THRESHOLD: float = 30.0

    # Upper bound for acquire + query inside a single request.
    REQUEST_TIMEOUT: float = 30.0

    STUDENTS_TABLE: str = "students"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        origins = [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]
        return origins or ["*"]

    @property
    def connection_config(self) -> ConnectionConfig:
        return ConnectionConfig(
            host=self.DB_HOST,
            port=self.DB_PORT,
            database=self.DB_NAME,
            user=self.DB_USER,
            region=self.AWS_REGION,
            pool_size=self.DB_POOL_SIZE,
            connect_timeout=self.DB_CONNECT_TIMEOUT,
            ssl_ca=self.DB_SSL_CA,
            max_age=self.DB_POOL_MAX_AGE_SEC,
            ping_idle_threshold=self.DB_PING_IDLE_THRESHOLD,
        )


settings = Settings()  # type: ignore
