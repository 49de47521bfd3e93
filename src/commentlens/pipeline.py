"""
CommentLens pipeline - orchestrates URL -> comments -> participants -> signals.

One asyncio task per run; every network step is awaited in sequence.
"""

import asyncio
import random
import uuid
from datetime import datetime

from .audit import FetchLog
from .classifier import require_source_kind
from .config import Settings
from .errors import CommentLensError, PipelineCancelled
from .logger import ProgressLogger
from .models import PipelineOutcome, SourceKind
from .participants import aggregate_participants, count_signals
from .sources import CommentSource, get_comment_source


class Pipeline:
    """Main pipeline orchestrator."""

    def __init__(
        self,
        settings: Settings | None = None,
        sources: dict[SourceKind, CommentSource] | None = None,
        rng: random.Random | None = None,
        logger: ProgressLogger | None = None,
        verbose: bool = False,
    ):
        self.settings = settings or Settings()
        self.sources = dict(sources or {})
        self.rng = rng
        self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S") + "_" + uuid.uuid4().hex[:6]
        self.logger = logger or ProgressLogger(self.run_id, verbose=verbose)
        self.fetch_log: FetchLog | None = None

    def source_for(self, kind: SourceKind) -> CommentSource:
        """Injected source for a platform, or a fresh adapter from settings."""
        if kind in self.sources:
            return self.sources[kind]
        return get_comment_source(kind, self.settings, logger=self.logger)

    async def run(self, url: str, cancel_event: asyncio.Event | None = None) -> PipelineOutcome:
        """
        Execute the pipeline for one source URL.

        If cancel_event is set while the run is in flight, the in-flight
        request is aborted and PipelineCancelled is raised.
        """
        if cancel_event is None:
            return await self._run(url)

        if cancel_event.is_set():
            raise PipelineCancelled("Run cancelled before start", url=url)

        work = asyncio.ensure_future(self._run(url))
        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()

        if work in done:
            return work.result()

        self.logger.warning("Run cancelled by caller")
        work.cancel()
        try:
            await work
        except asyncio.CancelledError:
            pass
        except CommentLensError as e:
            raise PipelineCancelled("Run cancelled by caller", url=url) from e
        raise PipelineCancelled("Run cancelled by caller", url=url)

    async def _run(self, url: str) -> PipelineOutcome:
        self.logger.phase("Starting run", f"ID={self.run_id}")

        # Step 1: Classify (no network)
        kind = require_source_kind(url)
        self.logger.phase("Classified", f"Step 1/3 - {kind}")

        # Step 2: Fetch comments
        self.logger.phase("Fetching comments", "Step 2/3")
        try:
            source = self.source_for(kind)
            if source.fetch_log is not None:
                source.fetch_log.run_id = self.run_id
                self.fetch_log = source.fetch_log
            comments = await source.fetch_comments(url)
        except CommentLensError as e:
            e.with_context(kind, url)
            self.logger.error(str(e))
            raise
        finally:
            if self.fetch_log is not None:
                self.fetch_log.finish()
        self.logger.comments(kind, len(comments))

        # Step 3: Aggregate participants and assign signals
        self.logger.phase("Aggregating participants", f"Step 3/3 - {len(comments)} comments")
        participants = aggregate_participants(comments, kind, self.rng)
        self.logger.participants(
            len(participants), sum(1 for p in participants if p.is_explicit)
        )

        return PipelineOutcome(
            source_url=url,
            source_kind=kind,
            comments=len(comments),
            participants=participants,
            signals_found=count_signals(participants),
        )


def run_pipeline(
    url: str,
    settings: Settings | None = None,
    verbose: bool = False,
) -> PipelineOutcome:
    """Convenience function to run a pipeline synchronously."""
    pipeline = Pipeline(settings or Settings.from_env(), verbose=verbose)
    return asyncio.run(pipeline.run(url))
