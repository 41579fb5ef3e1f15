"""Application configuration via environment variables.

Uses pydantic-settings to load config from env vars with CHATRELAY_ prefix.
"""

from typing import Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All app configuration. Set via CHATRELAY_* env vars."""

    # Server
    environment: str = "development"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = [
        "http://localhost:8080",
        "http://127.0.0.1:8080",
    ]

    # Relay
    message_buffer_size: int = 256  # pending frames per member
    delivery_timeout: Optional[float] = None  # None = block on a full member queue

    model_config = {"env_prefix": "CHATRELAY_"}

    @model_validator(mode="after")
    def validate_relay_settings(self):
        if self.message_buffer_size < 1:
            raise ValueError("CHATRELAY_MESSAGE_BUFFER_SIZE must be at least 1")
        if self.delivery_timeout is not None and self.delivery_timeout <= 0:
            raise ValueError(
                "CHATRELAY_DELIVERY_TIMEOUT must be positive "
                "(leave it unset to block on slow members)"
            )
        return self


# Singleton, import this everywhere
settings = Settings()
