"""Configuration for source drivers."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SUBREDDITS = [
    "technology",
    "programming",
    "webdev",
    "javascript",
    "python",
    "machinelearning",
    "artificial",
    "startups",
    "entrepreneur",
    "science",
]


class IngestionConfig(BaseSettings):
    """Tunables shared by the source drivers."""

    model_config = SettingsConfigDict(
        env_prefix="INGESTION_",
        case_sensitive=False,
        extra="ignore",
    )

    detail_batch_size: int = Field(
        default=10,
        ge=1,
        le=50,
        description="Concurrent item-detail requests per batch (Hacker News)",
    )
    reddit_subreddits: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SUBREDDITS),
        description="Subreddits whose hot listings are merged with r/popular",
    )
    reddit_include_popular: bool = True
    reddit_request_delay_seconds: float = Field(
        default=0.1,
        ge=0.0,
        description="Pause between subreddit listing requests",
    )
    user_agent: str = "BuzzingAgent/1.0"
