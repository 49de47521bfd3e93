"""
CommentLens comment sources - one adapter per platform behind a common interface.
"""

from abc import ABC, abstractmethod

from .audit import FetchLog
from .config import Settings
from .logger import ProgressLogger
from .models import RawComment, SourceKind


class CommentSource(ABC):
    """Abstract comment source interface."""

    platform: SourceKind
    fetch_log: FetchLog | None = None  # Set by sources that go through ResilientFetcher

    @abstractmethod
    async def fetch_comments(self, url: str) -> list[RawComment]:
        """Fetch every retrievable comment for a post/video URL."""
        pass


class MockCommentSource(CommentSource):
    """Mock source for testing - returns predefined comments."""

    def __init__(self, platform: SourceKind, comments: list[RawComment] | None = None):
        self.platform = platform
        self.comments = comments or []
        self.requested: list[str] = []

    async def fetch_comments(self, url: str) -> list[RawComment]:
        self.requested.append(url)
        return list(self.comments)


def get_comment_source(
    kind: SourceKind,
    settings: Settings,
    logger: ProgressLogger | None = None,
) -> CommentSource:
    """Factory to build the adapter for a platform."""
    if kind == "youtube":
        from .youtube import YouTubeSource

        return YouTubeSource(settings, logger=logger)
    elif kind == "reddit":
        from .reddit import RedditSource

        return RedditSource(settings, logger=logger)
    elif kind == "facebook":
        from .facebook import FacebookSource

        return FacebookSource(settings, logger=logger)
    else:
        raise ValueError(f"Unknown source kind: {kind}")
