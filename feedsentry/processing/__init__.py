"""
FeedSentry Processing Module
============================

Per-item decisions and the per-source pipeline.
"""

from .categorizer import Categorizer
from .deduplicator import DeduplicationEngine
from .pipeline import SourcePipeline

__all__ = [
    "Categorizer",
    "DeduplicationEngine",
    "SourcePipeline",
]
