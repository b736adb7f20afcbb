from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from typing import Annotated, List, Optional

from jobrelay.core.config import MEMORY_STORE_URL


class Settings(BaseSettings):
    # Basic environment settings
    ENVIRONMENT: str = "development"
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS settings: Allowed origins should be provided as a comma-separated list in the env var.
    ALLOWED_ORIGINS: Annotated[List[str], NoDecode] = Field(default=["*"])

    # Logging configuration
    LOG_LEVEL: str = "INFO"
    LOG_FILE_PATH: Optional[str] = None

    # Shared secret expected in the x-webhook-secret header of callbacks
    WEBHOOK_SECRET: str = "dev-secret-key"

    # Storage: "memory://" or any SQLAlchemy URL (e.g. sqlite:///./jobs.db)
    DATABASE_URL: str = MEMORY_STORE_URL
    STORAGE_CONNECT_RETRIES: int = Field(30, ge=1)
    STORAGE_CONNECT_MAX_DELAY: float = Field(30.0, ge=0)

    # Simulated worker that calls the webhook back after a delay
    SIMULATE_WORKER: bool = True
    CALLBACK_DELAY_SECONDS: float = Field(5.0, ge=0)
    # Defaults to this server's own HOST and PORT
    CALLBACK_BASE_URL: Optional[str] = None
    CALLBACK_TIMEOUT_SECONDS: float = Field(10.0, gt=0)

    @field_validator("ALLOWED_ORIGINS", mode="before")
    def assemble_allowed_origins(cls, v):
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("WEBHOOK_SECRET")
    def secret_not_empty(cls, v):
        if not v:
            raise ValueError("WEBHOOK_SECRET must not be empty")
        return v

    @model_validator(mode="after")
    def default_callback_base_url(self):
        if not self.CALLBACK_BASE_URL:
            host = "127.0.0.1" if self.HOST in ("0.0.0.0", "::", "") else self.HOST
            if ":" in host:
                host = f"[{host}]"
            self.CALLBACK_BASE_URL = f"http://{host}:{self.PORT}"
        return self

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")
