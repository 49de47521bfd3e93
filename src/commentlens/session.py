"""
CommentLens sessions - status bookkeeping around a pipeline run.

A session moves processing -> completed, or processing -> failed. A failed
session never has participant data persisted for it.
"""

import asyncio
import uuid
from abc import ABC, abstractmethod
from datetime import UTC, datetime
from pathlib import Path

from .classifier import require_source_kind
from .exporter import export_csv, export_json, export_session
from .models import PipelineOutcome, SessionRecord
from .pipeline import Pipeline


class SessionStore(ABC):
    """Storage collaborator interface."""

    @abstractmethod
    def create(self, record: SessionRecord) -> SessionRecord:
        """Persist a new processing session."""
        pass

    @abstractmethod
    def complete(self, record: SessionRecord, outcome: PipelineOutcome) -> SessionRecord:
        """Persist participants and mark the session completed."""
        pass

    @abstractmethod
    def fail(self, record: SessionRecord, error: BaseException) -> SessionRecord:
        """Mark the session failed."""
        pass


class JsonSessionStore(SessionStore):
    """File-backed store: one directory per session under root."""

    def __init__(self, root: Path):
        self.root = root

    def session_dir(self, session_id: str) -> Path:
        return self.root / session_id

    def create(self, record: SessionRecord) -> SessionRecord:
        export_session(record, self.session_dir(record.session_id) / "session.json")
        return record

    def complete(self, record: SessionRecord, outcome: PipelineOutcome) -> SessionRecord:
        run_dir = self.session_dir(record.session_id)
        export_json(outcome.participants, run_dir / "participants.json")
        export_csv(outcome.participants, run_dir / "participants.csv")

        updated = record.model_copy(
            update={
                "status": "completed",
                "total_comments": outcome.comments,
                "total_participants": len(outcome.participants),
                "signals_found": outcome.signals_found,
                "completed_at": datetime.now(UTC),
            }
        )
        export_session(updated, run_dir / "session.json")
        return updated

    def fail(self, record: SessionRecord, error: BaseException) -> SessionRecord:
        message = str(error) or type(error).__name__
        updated = record.model_copy(update={"status": "failed", "error": message})
        export_session(updated, self.session_dir(record.session_id) / "session.json")
        return updated

    def load(self, session_id: str) -> SessionRecord:
        path = self.session_dir(session_id) / "session.json"
        return SessionRecord.model_validate_json(path.read_text(encoding="utf-8"))


async def analyze_link(
    url: str,
    store: SessionStore,
    pipeline: Pipeline,
    actor_id: str | None = None,
    session_id: str | None = None,
    cancel_event: asyncio.Event | None = None,
) -> tuple[SessionRecord, PipelineOutcome]:
    """
    Run the pipeline for a URL inside a tracked session.

    Unsupported URLs are rejected before a session is created. Any pipeline
    failure, including cancellation of the awaiting task, marks the session
    failed and is re-raised.
    """
    kind = require_source_kind(url)
    record = store.create(
        SessionRecord(
            session_id=session_id or uuid.uuid4().hex,
            actor_id=actor_id,
            source_url=url,
            source_kind=kind,
        )
    )

    try:
        outcome = await pipeline.run(url, cancel_event)
    except (Exception, asyncio.CancelledError) as e:
        store.fail(record, e)
        raise

    return store.complete(record, outcome), outcome
