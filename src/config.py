"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "tour-risk-gate"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"

    host: str = "0.0.0.0"
    port: int = 8000

    # Shared key-value store (connection endpoint + access credential)
    redis_url: str = "redis://localhost:6379/0"
    redis_password: str | None = None
    redis_socket_timeout_seconds: float = 0.05

    # Versioned tour amount bands and country allow-list
    risk_reference_path: str = "data/risk_reference.yaml"

    model_config = {"env_prefix": "", "env_file": ".env", "extra": "ignore"}


settings = Settings()
