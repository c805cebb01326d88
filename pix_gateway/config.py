"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./pix_gateway.db"
    log_level: str = "INFO"

    # Outbound provider calls
    http_timeout_seconds: float = 30.0
    http_max_retries: int = 2  # Retries on connection errors only
    http_retry_base_delay: float = 0.5
    http_retry_max_delay: float = 4.0

    # Webhook jobs
    webhook_max_attempts: int = 3
    webhook_timeout_seconds: float = 60.0
    webhook_retry_delay: float = 1.0

    # Simulated provider webhooks
    simulate_webhooks: bool = True
    simulation_min_delay: int = 2
    simulation_max_delay: int = 10

    # When True, a late event may move a transaction out of a terminal status
    allow_terminal_regression: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
