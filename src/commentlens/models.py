"""
CommentLens data models - strict Pydantic schemas for comment analysis.

Design principles:
- extra="forbid" everywhere (fail fast on unexpected fields)
- Raw comments are immutable once an adapter produces them
- Every participant carries exactly one primary contact signal
- Explicit signals always outrank inferred ones, never mixed
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# =============================================================================
# TYPE LITERALS
# =============================================================================

SourceKind = Literal["youtube", "reddit", "facebook"]

SignalSource = Literal["explicit", "inferred"]

SignalKind = Literal["email"]

SessionStatus = Literal["processing", "completed", "failed"]

# Maximum length of the comment snippet shown for a participant
SNIPPET_LENGTH = 200


# =============================================================================
# RAW COMMENTS (adapter output)
# =============================================================================


class RawComment(BaseModel):
    """A single comment as returned by a source adapter."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    username: str = Field(..., min_length=1, description="Author name as given by the platform")
    text: str = Field(..., min_length=1, description="Comment body")
    platform_user_id: str | None = Field(default=None, description="Stable platform user id")


class ParticipantGroup(BaseModel):
    """All comments of one username within a run."""

    model_config = ConfigDict(extra="forbid")

    username: str = Field(..., min_length=1)
    comments: list[str] = Field(..., min_length=1)
    platform_user_id: str | None = None

    @property
    def comment_count(self) -> int:
        return len(self.comments)


# =============================================================================
# CONTACT SIGNALS
# =============================================================================


class ContactSignal(BaseModel):
    """A candidate contact value for a participant."""

    model_config = ConfigDict(extra="forbid")

    value: str = Field(..., min_length=3)
    kind: SignalKind = "email"
    source: SignalSource
    confidence: int = Field(..., ge=0, le=100, description="Confidence 0-100")
    is_primary: bool = False
    is_masked: bool = Field(default=False, description="Hide the value in displays")


# =============================================================================
# PARTICIPANT RESULT
# =============================================================================


class ParticipantResult(BaseModel):
    """
    A participant with their ranked contact signals.
    This is the canonical unit persisted by a session store.
    """

    model_config = ConfigDict(extra="forbid")

    username: str = Field(..., min_length=1)
    display_name: str
    profile_url: str
    comment_snippet: str = Field(..., max_length=SNIPPET_LENGTH)
    comment_count: int = Field(..., ge=1)
    primary_signal: ContactSignal
    all_signals: list[ContactSignal] = Field(..., min_length=1)

    @model_validator(mode="after")
    def _check_signals(self) -> ParticipantResult:
        primaries = [s for s in self.all_signals if s.is_primary]
        if len(primaries) != 1:
            raise ValueError(f"expected exactly one primary signal, got {len(primaries)}")
        if primaries[0] != self.primary_signal:
            raise ValueError("primary_signal must be the primary entry of all_signals")
        if len({s.source for s in self.all_signals}) > 1:
            raise ValueError("explicit and inferred signals cannot be mixed")
        return self

    @property
    def is_explicit(self) -> bool:
        return self.primary_signal.source == "explicit"


# =============================================================================
# PIPELINE OUTCOME
# =============================================================================


class PipelineOutcome(BaseModel):
    """Result of a successful pipeline run."""

    model_config = ConfigDict(extra="forbid")

    source_url: str
    source_kind: SourceKind
    comments: int = Field(default=0, ge=0, description="Raw comments retrieved")
    participants: list[ParticipantResult] = Field(default_factory=list)
    signals_found: int = Field(default=0, ge=0)

    @property
    def explicit_participants(self) -> list[ParticipantResult]:
        return [p for p in self.participants if p.is_explicit]


# =============================================================================
# SESSION RECORD (storage collaborator contract)
# =============================================================================


class SessionRecord(BaseModel):
    """Bookkeeping for one analysis of a source URL."""

    model_config = ConfigDict(extra="forbid")

    session_id: str = Field(..., min_length=1)
    actor_id: str | None = Field(default=None, description="Authenticated caller, if any")
    source_url: str
    source_kind: SourceKind
    status: SessionStatus = "processing"
    total_comments: int = 0
    total_participants: int = 0
    signals_found: int = 0
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    completed_at: datetime | None = None
    error: str | None = None
