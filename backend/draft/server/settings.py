"""Draft server configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings

from draft.catalog.market import DEFAULT_MARKET_API_URL


class DraftServerSettings(BaseSettings):
    model_config = {"env_prefix": "DRAFT_"}

    log_dir: str = Field(default="backend/logs/draft", min_length=1)
    database_path: str = Field(default="backend/data/drafts.db", min_length=1)
    max_active_drafts: int = Field(default=500, ge=1)
    auto_pick_grace_seconds: float = Field(default=1.0, ge=0)
    auto_pick_retry_seconds: float = Field(default=5.0, gt=0)
    market_api_url: str = Field(default=DEFAULT_MARKET_API_URL, min_length=1)
    market_timeout_seconds: float = Field(default=10.0, gt=0)
