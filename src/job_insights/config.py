from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Get the absolute path to the project root
PROJECT_ROOT = Path(__file__).parent.parent.parent
DEFAULT_DB_PATH = str(PROJECT_ROOT / "databases" / "job_insights.db")


class ConfigurationError(Exception):
    """Raised when a required setting is missing or invalid."""

    pass


class Settings(BaseSettings):
    """
    Centralized runtime configuration for the job insights service.
    All defaults are sensible for dev-mode; ops override via ENV.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # --- Primary store ---
    database_url: str = Field(default=DEFAULT_DB_PATH)

    # --- Semantic index (Chroma) ---
    chroma_host: str = Field(default="localhost")
    chroma_port: int = Field(default=8000)
    chroma_collection: str = Field(default="jobs-collection")
    openai_api_key: Optional[str] = Field(default=None)
    embedding_model: str = Field(default="text-embedding-ada-002")
    index_batch_size: int = Field(default=100)

    # --- Scheduling ---
    enable_scheduled_scrape: bool = Field(default=False)
    scrape_cron: str = Field(default="0 3 * * *")  # 3 AM every day
    scrape_locations: str = Field(default="United States,Remote")
    scheduled_pages: int = Field(default=5)
    run_now_pages: int = Field(default=1)
    source_delay_seconds: float = Field(default=5.0)
    max_concurrent_harvests: int = Field(default=1)
    run_history_size: int = Field(default=20)

    # --- Browser ---
    browser_headless: bool = Field(default=True)
    navigation_timeout_ms: int = Field(default=60000)
    selector_timeout_ms: int = Field(default=10000)
    page_settle_ms: int = Field(default=3000)
    indeed_base_url: str = Field(default="https://www.indeed.com")

    # --- Trigger service ---
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8080)

    # --- Logging ---
    log_level: str = Field(default="INFO")
    log_dir: Optional[str] = Field(default=None)

    @property
    def locations(self) -> list[str]:
        """Default target locations, parsed from the comma separated setting."""
        return [loc.strip() for loc in self.scrape_locations.split(",") if loc.strip()]

    @property
    def database_path(self) -> str:
        """Filesystem path of the SQLite store, accepting ``sqlite:///`` URLs."""
        prefix = "sqlite:///"
        if self.database_url.startswith(prefix):
            return self.database_url[len(prefix):]
        return self.database_url


# Create a singleton instance
settings = Settings()
