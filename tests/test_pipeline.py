"""Tests for the pipeline orchestrator."""

import asyncio
import random

import pytest

from commentlens.audit import FetchLog
from commentlens.config import Settings
from commentlens.errors import (
    PipelineCancelled,
    SourceConfigMissing,
    SourceUnavailable,
    UnsupportedSource,
)
from commentlens.models import RawComment
from commentlens.pipeline import Pipeline, run_pipeline
from commentlens.sources import CommentSource, MockCommentSource, get_comment_source

POST = "https://www.reddit.com/r/python/comments/abc123/some_title"


class FailingSource(CommentSource):
    platform = "reddit"

    async def fetch_comments(self, url: str) -> list[RawComment]:
        raise SourceUnavailable("Reddit post not found (404).", status_code=404)


class AuditedSource(MockCommentSource):
    def __init__(self) -> None:
        super().__init__("reddit")
        self.fetch_log = FetchLog()


class SlowSource(CommentSource):
    """Blocks until cancelled."""

    platform = "reddit"

    def __init__(self) -> None:
        self.cancelled = False

    async def fetch_comments(self, url: str) -> list[RawComment]:
        try:
            await asyncio.sleep(30)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return []


class TestPipeline:
    """Tests for Pipeline.run()."""

    def test_run_with_mock_source(
        self, sample_comments: list[RawComment], rng: random.Random
    ) -> None:
        source = MockCommentSource("reddit", sample_comments)
        pipeline = Pipeline(sources={"reddit": source}, rng=rng)

        outcome = asyncio.run(pipeline.run(POST))

        assert source.requested == [POST]
        assert outcome.source_kind == "reddit"
        assert outcome.comments == 3
        assert [p.username for p in outcome.participants] == ["sam_22", "jane"]
        assert outcome.signals_found == 3
        assert len(outcome.explicit_participants) == 2

    def test_empty_thread(self, rng: random.Random) -> None:
        """Zero comments is a valid, empty outcome."""
        pipeline = Pipeline(sources={"facebook": MockCommentSource("facebook")}, rng=rng)

        outcome = asyncio.run(pipeline.run("https://facebook.com/acme/posts/1"))

        assert outcome.participants == []
        assert outcome.signals_found == 0

    def test_unsupported_url(self) -> None:
        """Unsupported URLs are rejected before any source is used."""
        source = MockCommentSource("reddit")
        pipeline = Pipeline(sources={"reddit": source})

        with pytest.raises(UnsupportedSource):
            asyncio.run(pipeline.run("https://vimeo.com/123"))

        assert source.requested == []

    def test_error_gets_context(self, capsys) -> None:
        pipeline = Pipeline(sources={"reddit": FailingSource()})

        with pytest.raises(SourceUnavailable) as exc_info:
            asyncio.run(pipeline.run(POST))

        assert exc_info.value.platform == "reddit"
        assert exc_info.value.url == POST
        assert exc_info.value.status_code == 404
        assert "[Error]" in capsys.readouterr().err

    def test_missing_youtube_key(self) -> None:
        pipeline = Pipeline(Settings())

        with pytest.raises(SourceConfigMissing) as exc_info:
            asyncio.run(pipeline.run("https://youtu.be/dQw4w9WgXcQ"))

        assert exc_info.value.platform == "youtube"

    def test_cancel_in_flight(self) -> None:
        """Setting the cancel event aborts the in-flight fetch."""
        source = SlowSource()
        pipeline = Pipeline(sources={"reddit": source})

        async def scenario() -> None:
            event = asyncio.Event()
            asyncio.get_running_loop().call_later(0.05, event.set)
            await pipeline.run(POST, cancel_event=event)

        with pytest.raises(PipelineCancelled):
            asyncio.run(scenario())

        assert source.cancelled

    def test_cancel_before_start(self) -> None:
        source = MockCommentSource("reddit")
        pipeline = Pipeline(sources={"reddit": source})

        async def scenario() -> None:
            event = asyncio.Event()
            event.set()
            await pipeline.run(POST, cancel_event=event)

        with pytest.raises(PipelineCancelled):
            asyncio.run(scenario())

        assert source.requested == []

    def test_unused_cancel_event(self, sample_comments: list[RawComment]) -> None:
        pipeline = Pipeline(sources={"reddit": MockCommentSource("reddit", sample_comments)})

        async def scenario():
            return await pipeline.run(POST, cancel_event=asyncio.Event())

        outcome = asyncio.run(scenario())
        assert outcome.comments == 3

    def test_adopts_source_fetch_log(self) -> None:
        """The run id is stamped on the adapter's audit trail, which is closed at the end."""
        source = AuditedSource()
        pipeline = Pipeline(sources={"reddit": source})

        asyncio.run(pipeline.run(POST))

        assert pipeline.fetch_log is source.fetch_log
        assert source.fetch_log.run_id == pipeline.run_id
        assert source.fetch_log.finished_at is not None

    def test_no_fetch_log_for_plain_sources(self, sample_comments: list[RawComment]) -> None:
        pipeline = Pipeline(sources={"reddit": MockCommentSource("reddit", sample_comments)})
        asyncio.run(pipeline.run(POST))
        assert pipeline.fetch_log is None


class TestGetCommentSource:
    """Tests for the adapter factory."""

    def test_builds_each_adapter(self, settings: Settings) -> None:
        for kind in ("youtube", "reddit", "facebook"):
            assert get_comment_source(kind, settings).platform == kind

    def test_unknown_kind(self, settings: Settings) -> None:
        with pytest.raises(ValueError):
            get_comment_source("twitter", settings)  # type: ignore


def test_run_pipeline_sync(
    monkeypatch: pytest.MonkeyPatch, sample_comments: list[RawComment]
) -> None:
    """The synchronous wrapper builds adapters through the factory."""
    monkeypatch.setattr(
        "commentlens.pipeline.get_comment_source",
        lambda kind, settings, logger=None: MockCommentSource(kind, sample_comments),
    )

    outcome = run_pipeline(POST, settings=Settings())

    assert outcome.comments == 3
    assert len(outcome.participants) == 2
