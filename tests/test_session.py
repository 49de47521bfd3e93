"""Tests for session bookkeeping."""

import asyncio
import json
import random
from pathlib import Path

import pytest

from commentlens.errors import PipelineCancelled, SourceUnavailable, UnsupportedSource
from commentlens.models import RawComment
from commentlens.pipeline import Pipeline
from commentlens.session import JsonSessionStore, analyze_link
from commentlens.sources import CommentSource, MockCommentSource

POST = "https://www.reddit.com/r/python/comments/abc123/some_title"


class BlockedSource(CommentSource):
    platform = "reddit"

    async def fetch_comments(self, url: str) -> list[RawComment]:
        raise SourceUnavailable("Reddit is blocking access to this post (403 Forbidden).")


class SlowSource(CommentSource):
    platform = "reddit"

    async def fetch_comments(self, url: str) -> list[RawComment]:
        await asyncio.sleep(30)
        return []


class TestAnalyzeLink:
    """Tests for analyze_link() with a JsonSessionStore."""

    def test_completed_session(
        self, tmp_path: Path, sample_comments: list[RawComment], rng: random.Random
    ) -> None:
        store = JsonSessionStore(tmp_path)
        source = MockCommentSource("reddit", sample_comments)
        pipeline = Pipeline(sources={"reddit": source}, rng=rng)

        record, outcome = asyncio.run(
            analyze_link(POST, store, pipeline, actor_id="user-1", session_id="s1")
        )

        assert record.status == "completed"
        assert record.actor_id == "user-1"
        assert record.total_comments == 3
        assert record.total_participants == 2
        assert record.signals_found == 3
        assert record.completed_at is not None

        run_dir = tmp_path / "s1"
        assert (run_dir / "participants.csv").exists()
        participants = json.loads((run_dir / "participants.json").read_text(encoding="utf-8"))
        assert [p["username"] for p in participants] == ["sam_22", "jane"]
        assert store.load("s1") == record
        assert len(outcome.participants) == 2

    def test_failed_session(self, tmp_path: Path) -> None:
        """A failed run is marked failed and persists no participants."""
        store = JsonSessionStore(tmp_path)
        pipeline = Pipeline(sources={"reddit": BlockedSource()})

        with pytest.raises(SourceUnavailable):
            asyncio.run(analyze_link(POST, store, pipeline, session_id="s2"))

        record = store.load("s2")
        assert record.status == "failed"
        assert "blocking" in (record.error or "")
        assert record.completed_at is None
        assert not (tmp_path / "s2" / "participants.json").exists()
        assert not (tmp_path / "s2" / "participants.csv").exists()

    def test_unsupported_creates_no_session(self, tmp_path: Path) -> None:
        store = JsonSessionStore(tmp_path)
        pipeline = Pipeline(sources={"reddit": MockCommentSource("reddit")})

        with pytest.raises(UnsupportedSource):
            asyncio.run(analyze_link("https://vimeo.com/1", store, pipeline))

        assert list(tmp_path.iterdir()) == []

    def test_generated_session_id(self, tmp_path: Path) -> None:
        store = JsonSessionStore(tmp_path)
        pipeline = Pipeline(sources={"reddit": MockCommentSource("reddit")})

        record, _ = asyncio.run(analyze_link(POST, store, pipeline))

        assert len(record.session_id) == 32
        assert (tmp_path / record.session_id / "session.json").exists()

    def test_cancel_event_fails_session(self, tmp_path: Path) -> None:
        """Setting the cancel event ends the session as failed."""
        store = JsonSessionStore(tmp_path)
        pipeline = Pipeline(sources={"reddit": SlowSource()})

        async def scenario() -> None:
            event = asyncio.Event()
            asyncio.get_running_loop().call_later(0.05, event.set)
            await analyze_link(POST, store, pipeline, session_id="s3", cancel_event=event)

        with pytest.raises(PipelineCancelled):
            asyncio.run(scenario())

        record = store.load("s3")
        assert record.status == "failed"
        assert "cancelled" in (record.error or "")
        assert not (tmp_path / "s3" / "participants.json").exists()

    def test_task_cancel_fails_session(self, tmp_path: Path) -> None:
        """Cancelling the task running the session does not leave it processing."""
        store = JsonSessionStore(tmp_path)
        pipeline = Pipeline(sources={"reddit": SlowSource()})

        async def scenario() -> None:
            task = asyncio.create_task(analyze_link(POST, store, pipeline, session_id="s4"))
            await asyncio.sleep(0.05)
            task.cancel()
            await task

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(scenario())

        record = store.load("s4")
        assert record.status == "failed"
        assert record.error == "CancelledError"
