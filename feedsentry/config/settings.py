"""
FeedSentry Configuration System
===============================

Configuration management with environment variables and Pydantic models.
Environment variables (prefix ``FEEDSENTRY_``, nested delimiter ``__``)
override Field defaults.
"""

from pathlib import Path
from typing import List, Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CollectionSettings(BaseModel):
    """Round scheduling and restart policy."""
    interval_seconds: float = Field(default=300, gt=0, description="Seconds between collection rounds")
    max_concurrent_sources: int = Field(default=8, ge=1, le=64, description="Concurrent source pipelines per round")
    round_timeout_seconds: float = Field(default=240, gt=0, description="Outer timeout for a whole round")
    max_consecutive_errors: int = Field(default=5, ge=1, description="Failed rounds in a row before a restart")
    restart_cooldown_seconds: float = Field(default=30, ge=0, description="Pause between stopping and re-arming the timer")
    run_on_start: bool = Field(default=True, description="Run a round as soon as the timer is armed")


class FetchSettings(BaseModel):
    """HTTP retrieval of feed documents."""
    timeout_seconds: float = Field(default=30, gt=0, description="Per-attempt request timeout")
    max_attempts: int = Field(default=3, ge=1, le=10, description="Attempts before a source is unavailable")
    base_delay_seconds: float = Field(default=2.0, ge=0, description="Backoff unit; attempt N waits N * base")
    user_agent: str = Field(
        default="FeedSentry/1.0 (Feed Aggregator; +https://github.com/feedsentry/feedsentry)",
        description="Identifying client header",
    )
    accept: str = Field(
        default="application/rss+xml, application/atom+xml, application/xml, text/xml;q=0.9, */*;q=0.8",
        description="Accepted feed content types",
    )


class ParsingSettings(BaseModel):
    """Feed parsing limits."""
    max_items_per_feed: int = Field(default=50, ge=1, le=1000, description="Items kept per parse, in document order")
    max_title_length: int = Field(default=200, ge=10, le=1000, description="Titles longer than this are truncated")


class DeduplicationSettings(BaseModel):
    """Exact-link and fuzzy-title duplicate detection."""
    similarity_threshold: float = Field(default=0.8, gt=0.0, le=1.0, description="Title word-overlap ratio that marks a duplicate")
    recent_window_hours: float = Field(default=24, gt=0, description="Only items stored within this window are compared")
    recent_window_size: int = Field(default=500, ge=1, description="Maximum recent titles compared per candidate")


class CategoryRule(BaseModel):
    """One row of the ordered category table."""
    label: str
    keywords: List[str]

    @field_validator("keywords")
    @classmethod
    def normalize_keywords(cls, v):
        """Lower-case and drop empty triggers."""
        return [k.strip().lower() for k in v if k and k.strip()]


DEFAULT_CATEGORY_RULES = [
    CategoryRule(
        label="AI & Technology",
        keywords=["ai", "artificial intelligence", "machine learning", "neural", "robot",
                  "automation", "tech", "technology", "software", "algorithm"],
    ),
    CategoryRule(
        label="Finance & Crypto",
        keywords=["bitcoin", "crypto", "blockchain", "finance", "financial", "investment",
                  "trading", "ethereum", "money", "bank"],
    ),
    CategoryRule(
        label="Health & Medicine",
        keywords=["health", "medical", "medicine", "doctor", "hospital", "treatment",
                  "disease", "vaccine", "drug"],
    ),
    CategoryRule(
        label="Business & Startup",
        keywords=["business", "startup", "entrepreneur", "company", "corporate", "funding",
                  "investment", "vc"],
    ),
    CategoryRule(
        label="Science & Research",
        keywords=["science", "research", "study", "discovery", "experiment", "scientific",
                  "laboratory"],
    ),
    CategoryRule(
        label="Politics & Society",
        keywords=["politics", "government", "society", "social", "policy", "election", "law"],
    ),
]


class CategorizationSettings(BaseModel):
    """Keyword-rule categorization. Rules are evaluated in list order."""
    min_keyword_matches: int = Field(default=2, ge=1, description="Distinct triggers needed to assign a category")
    default_category: str = Field(default="General", description="Label when no rule qualifies")
    rules: List[CategoryRule] = Field(default_factory=lambda: [r.model_copy(deep=True) for r in DEFAULT_CATEGORY_RULES])


class HealthSettings(BaseModel):
    """Staleness supervision."""
    check_interval_seconds: float = Field(default=600, gt=0, description="Seconds between health checks")
    stale_threshold_seconds: float = Field(default=1800, gt=0, description="Restart when no successful round for this long")


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/feedsentry.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    file_path: Optional[str] = Field(default="logs/feedsentry.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of backup log files")
    console_logging: bool = Field(default=True, description="Enable console logging")
    structured_logging: bool = Field(default=False, description="Use JSON structured logging")


class FeedSentrySettings(BaseSettings):
    """Main application settings with validation."""

    collection: CollectionSettings = Field(default_factory=CollectionSettings)
    fetch: FetchSettings = Field(default_factory=FetchSettings)
    parsing: ParsingSettings = Field(default_factory=ParsingSettings)
    deduplication: DeduplicationSettings = Field(default_factory=DeduplicationSettings)
    categorization: CategorizationSettings = Field(default_factory=CategorizationSettings)
    health: HealthSettings = Field(default_factory=HealthSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    # Application metadata
    app_name: str = Field(default="FeedSentry", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "FEEDSENTRY_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate cross-field constraints."""
        errors = []

        if self.collection.round_timeout_seconds >= self.collection.interval_seconds:
            errors.append(
                "collection.round_timeout_seconds must be shorter than collection.interval_seconds"
            )

        if self.health.stale_threshold_seconds <= self.collection.interval_seconds:
            errors.append(
                "health.stale_threshold_seconds must exceed collection.interval_seconds"
            )

        labels = [rule.label for rule in self.categorization.rules]
        if len(labels) != len(set(labels)):
            errors.append("categorization.rules contains duplicate labels")

        try:
            Path(self.database.path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                Path(self.logging.file_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> FeedSentrySettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = FeedSentrySettings()
        settings.validate_configuration()
        return settings

    except ConfigurationError:
        raise
    except Exception as e:
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        ) from e


# Global settings instance
_settings: Optional[FeedSentrySettings] = None


def get_settings(reload: bool = False) -> FeedSentrySettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
