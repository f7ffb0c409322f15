"""
FeedSentry Data Models
======================

Pydantic models for sources and articles moving through the pipeline, plus
the dataclasses the collector uses to report round and health state.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from pydantic import BaseModel, Field, field_validator


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FeedSource(BaseModel):
    """Publisher polled by the collector. Owned by the source registry."""
    id: str = Field(..., min_length=1, description="Opaque source identifier")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    url: str = Field(..., min_length=1, description="Publisher base URL")
    feed_url: Optional[str] = Field(default=None, description="RSS/Atom endpoint, absent for feedless sources")
    enabled: bool = Field(default=True, description="Whether the source is collected")
    language: Optional[str] = Field(default=None, description="Primary content language")
    last_crawled_at: Optional[datetime] = Field(default=None, description="Last successful fetch")

    @field_validator("feed_url")
    @classmethod
    def blank_feed_url_is_none(cls, v):
        """Treat an empty feed URL as absent."""
        if v is not None and not v.strip():
            return None
        return v

    def __str__(self) -> str:
        return f"FeedSource({self.name}:{self.id})"


class CandidateItem(BaseModel):
    """Parsed, normalized feed item awaiting duplicate and category checks."""
    title: str = Field(..., min_length=1, max_length=1000, description="Normalized title")
    link: str = Field(..., min_length=1, description="Canonical link URL")
    description: Optional[str] = Field(default=None, description="Normalized summary")
    published_at: datetime = Field(default_factory=_utcnow, description="Publish time, ingestion time if unknown")
    author: Optional[str] = Field(default=None, description="Byline, source name if unknown")
    content: Optional[str] = Field(default=None, description="Normalized full body")
    category_hint: Optional[str] = Field(default=None, description="Feed-supplied category")

    def __str__(self) -> str:
        return f"CandidateItem({self.title[:50]})"


class AcceptedArticle(CandidateItem):
    """Candidate that passed deduplication, ready for the article store."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique article ID")
    category: str = Field(..., min_length=1, description="Taxonomy label")
    source_id: str = Field(..., min_length=1, description="Originating source")
    source_name: Optional[str] = Field(default=None, description="Originating source display name")
    created_at: datetime = Field(default_factory=_utcnow, description="Acceptance time")

    @classmethod
    def from_candidate(
        cls,
        item: CandidateItem,
        category: str,
        source: FeedSource,
        created_at: Optional[datetime] = None,
    ) -> "AcceptedArticle":
        """Attach a category and source reference to a candidate item."""
        data = item.model_dump()
        data["author"] = data.get("author") or source.name
        return cls(
            **data,
            category=category,
            source_id=source.id,
            source_name=source.name,
            created_at=created_at or _utcnow(),
        )

    def __str__(self) -> str:
        return f"AcceptedArticle({self.category}: {self.title[:50]})"


class CollectorState(str, Enum):
    """Round state machine."""
    IDLE = "idle"
    COLLECTING = "collecting"


class HealthStatus(str, Enum):
    """Supervision axis reported alongside the round state."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    RESTARTING = "restarting"
    STOPPED = "stopped"


@dataclass
class SourceOutcome:
    """Message a per-source pipeline reports back to the orchestrator."""

    source_id: str
    source_name: str
    success: bool
    accepted: int = 0
    duplicates: int = 0
    skipped: int = 0
    parsed: int = 0
    error: Optional[str] = None
    finished_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.finished_at:
            self.finished_at = _utcnow()


@dataclass
class RoundResult:
    """Summary of one collection round. Only the latest one is retained."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    success: bool = False
    sources_total: int = 0
    accepted_count: int = 0
    duplicate_count: int = 0
    failed_source_ids: List[str] = field(default_factory=list)
    timed_out_source_ids: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def duration_seconds(self) -> float:
        if not self.finished_at:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "success": self.success,
            "sources_total": self.sources_total,
            "accepted_count": self.accepted_count,
            "duplicate_count": self.duplicate_count,
            "failed_source_ids": list(self.failed_source_ids),
            "timed_out_source_ids": list(self.timed_out_source_ids),
            "duration_seconds": self.duration_seconds,
            "error": self.error,
        }


@dataclass
class HealthState:
    """Mutable collector health, written once per round by the orchestrator."""

    last_successful_round_at: datetime
    is_collecting: bool = False
    consecutive_error_count: int = 0
    restarting: bool = False
    last_round: Optional[RoundResult] = None
    restart_count: int = 0


@dataclass(frozen=True)
class HealthSnapshot:
    """Read-only view handed to status and administration surfaces."""

    state: CollectorState
    status: HealthStatus
    is_collecting: bool
    error_count: int
    last_successful_round_at: datetime
    collection_interval_seconds: float
    max_consecutive_errors: int
    stale_threshold_seconds: float
    restart_count: int = 0
    last_round: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "status": self.status.value,
            "is_collecting": self.is_collecting,
            "error_count": self.error_count,
            "last_successful_round_at": self.last_successful_round_at.isoformat(),
            "collection_interval_seconds": self.collection_interval_seconds,
            "max_consecutive_errors": self.max_consecutive_errors,
            "stale_threshold_seconds": self.stale_threshold_seconds,
            "restart_count": self.restart_count,
            "last_round": self.last_round,
        }
