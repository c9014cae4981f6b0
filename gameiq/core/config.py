"""Application configuration from environment."""
from pathlib import Path

from pydantic_settings import BaseSettings

# Base path for the bundled catalog (parent of gameiq/)
BASE_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """App settings loaded from env / .env."""

    app_name: str = "GameIQ"
    debug: bool = False
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./gameiq.db"

    # Question catalog: directory of <sport>__<position>_core.json files
    catalog_dir: Path = BASE_DIR / "gameiq" / "data"
    seed_catalog_on_startup: bool = True

    # Progression
    generated_quiz_size: int = 15
    attempt_submit_retries: int = 3
    attempt_retry_backoff_ms: int = 20

    # Usage ledger: monthly AI budget per tier, in cents
    basic_monthly_cap_cents: int = 300
    premium_monthly_cap_cents: int = 1000

    # $3 / 1M input tokens, $15 / 1M output tokens, expressed in cents per token
    input_token_cost_cents: float = 0.0003
    output_token_cost_cents: float = 0.0015

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "GAMEIQ_"
        extra = "ignore"


def get_settings() -> Settings:
    return Settings()
