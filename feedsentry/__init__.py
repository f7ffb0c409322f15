"""
FeedSentry - Feed Ingestion and Deduplication
=============================================

Periodic RSS/Atom collection with defensive parsing, duplicate filtering,
keyword categorization and self-healing scheduling.

Main Components:
- Ingestion: HTTP fetching with retry, feed parsing, text normalization
- Processing: deduplication, categorization, per-source pipeline
- Scheduler: collection rounds and the composed collection service
- Monitoring: staleness detection and health snapshots
- Storage: store/registry contracts with SQLite and in-memory backends
"""

__version__ = "1.0.0"
__author__ = "FeedSentry Development Team"
__description__ = "Feed ingestion and deduplication pipeline"

from .config.settings import get_settings
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import FeedSentryError

__all__ = [
    "get_settings",
    "configure_application_logging",
    "get_logger_for_component",
    "FeedSentryError",
]
