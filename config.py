from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from pydantic import Field, PostgresDsn, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT_DIR = Path(__file__).parent.resolve()


class Settings(BaseSettings):
    APP_NAME: str = "littr"
    ENV: str = "dev"
    LOG_LEVEL: str = "DEBUG"

    # Base URL construction for the federation api
    HTTPS: bool = False
    HOSTNAME: str = "localhost"
    LISTEN: str = "127.0.0.1:3000"

    ALLOWED_HOSTS: Union[str, list[str]] = "*"
    INVERTED_THEME: bool = False
    TEMPLATE_DIR: str = str(PROJECT_ROOT_DIR / "templates")
    MAX_CONTENT_ITEMS: int = 200

    # Cookie session
    SESSION_SECRET: str = "littr-dev-session-secret"
    SESSION_SECRET_ID: Optional[str] = None

    # Database settings
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "littr"
    DB_PASSWORD: str = "littr"
    DB_NAME: str = "littr"
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("HTTPS", mode="before")
    @classmethod
    def parse_https(cls, v):
        # any non-empty value turns https on, except the usual negatives
        if isinstance(v, str):
            return v.strip().lower() not in ("", "0", "false", "no", "off")
        return bool(v)

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_connection(cls, v, values):
        if isinstance(v, str) and v:
            return v
        return str(PostgresDsn.build(
            scheme="postgresql+asyncpg",
            username=values.data.get("DB_USER"),
            password=values.data.get("DB_PASSWORD"),
            host=values.data.get("DB_HOST"),
            port=values.data.get("DB_PORT"),
            path=values.data.get("DB_NAME") or "",
        ))

    def model_post_init(self, __context) -> None:
        if isinstance(self.ALLOWED_HOSTS, str):
            self.ALLOWED_HOSTS = [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()]

    @property
    def scheme(self) -> str:
        return "https" if self.HTTPS else "http"

    @property
    def base_url(self) -> str:
        """Public base URL of the instance."""
        return f"{self.scheme}://{self.HOSTNAME}"

    @property
    def api_base_url(self) -> str:
        return f"{self.base_url}/api"

    @property
    def listen_address(self) -> tuple[str, int]:
        host, _, port = self.LISTEN.rpartition(":")
        return host or "127.0.0.1", int(port or 3000)

    @property
    def is_dev(self) -> bool:
        return self.ENV.lower().startswith("dev")


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
