"""
YouTube comment source via the Data API v3 commentThreads endpoint.

Stable, authenticated API: one request, typed response, fixed page size.
"""

from typing import Any

import httpx
from pydantic import BaseModel, ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .classifier import extract_youtube_video_id
from .config import Settings
from .errors import MalformedResponse, SourceConfigMissing, SourceUnavailable, TransportTimeout
from .logger import ProgressLogger
from .models import RawComment
from .sources import CommentSource

API_URL = "https://www.googleapis.com/youtube/v3/commentThreads"
PAGE_SIZE = 100  # API maximum for commentThreads


class RateLimitError(Exception):
    """Raised when the API returns 429 Too Many Requests."""

    pass


# =============================================================================
# RESPONSE SCHEMA (only the fields we read)
# =============================================================================


class AuthorChannelId(BaseModel):
    value: str | None = None


class CommentSnippet(BaseModel):
    authorDisplayName: str = ""
    textDisplay: str = ""
    textOriginal: str | None = None
    authorChannelId: AuthorChannelId | None = None


class TopLevelComment(BaseModel):
    snippet: CommentSnippet


class ThreadSnippet(BaseModel):
    topLevelComment: TopLevelComment


class CommentThread(BaseModel):
    snippet: ThreadSnippet


class CommentThreadList(BaseModel):
    items: list[CommentThread] = []
    nextPageToken: str | None = None


def thread_to_comment(thread: CommentThread) -> RawComment | None:
    """Map an API thread to a RawComment; None for empty comments."""
    snippet = thread.snippet.topLevelComment.snippet
    text = snippet.textOriginal or snippet.textDisplay
    if not snippet.authorDisplayName or not text or not text.strip():
        return None
    channel_id = snippet.authorChannelId.value if snippet.authorChannelId else None
    return RawComment(
        username=snippet.authorDisplayName,
        text=text,
        platform_user_id=channel_id,
    )


def _api_error_message(resp: httpx.Response) -> str:
    try:
        data: Any = resp.json()
        return data.get("error", {}).get("message") or resp.reason_phrase
    except (ValueError, AttributeError):
        return resp.reason_phrase


class YouTubeSource(CommentSource):
    """YouTube Data API comment source."""

    platform = "youtube"

    def __init__(self, settings: Settings, logger: ProgressLogger | None = None):
        if not settings.youtube_api_key:
            raise SourceConfigMissing("YOUTUBE_API_KEY is not configured", platform="youtube")
        self.api_key = settings.youtube_api_key
        self.timeout = settings.api_timeout
        self.logger = logger

    @retry(
        retry=retry_if_exception_type(RateLimitError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=2, min=2, max=20),
        reraise=True,
    )
    async def _get_with_retry(self, params: dict[str, str]) -> httpx.Response:
        """Call the API, retrying on rate limit."""
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            resp = await client.get(API_URL, params=params)

        if resp.status_code == 429:
            if self.logger:
                self.logger.warning("YouTube API 429, backing off")
            raise RateLimitError("YouTube API rate limited")
        return resp

    async def fetch_comments(self, url: str) -> list[RawComment]:
        """Fetch top-level comments for a video (one page)."""
        video_id = extract_youtube_video_id(url)
        if not video_id:
            raise SourceUnavailable("Invalid YouTube video ID", platform="youtube", url=url)

        params = {
            "part": "snippet",
            "videoId": video_id,
            "maxResults": str(PAGE_SIZE),
            "textFormat": "plainText",
            "key": self.api_key,
        }

        try:
            resp = await self._get_with_retry(params)
        except RateLimitError as e:
            raise SourceUnavailable(
                "YouTube API rate limit exceeded. Try again later.",
                status_code=429,
                platform="youtube",
                url=url,
            ) from e
        except httpx.TimeoutException as e:
            raise TransportTimeout(
                f"YouTube API timed out: {e}", platform="youtube", url=url
            ) from e
        except httpx.HTTPError as e:
            raise SourceUnavailable(
                f"YouTube API request failed: {e}", platform="youtube", url=url
            ) from e

        if not resp.is_success:
            raise SourceUnavailable(
                f"YouTube API error: {_api_error_message(resp)}",
                status_code=resp.status_code,
                platform="youtube",
                url=url,
            )

        try:
            data = CommentThreadList.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise MalformedResponse(
                "YouTube API returned an unexpected response",
                status_code=resp.status_code,
                platform="youtube",
                url=url,
            ) from e

        comments = []
        for thread in data.items:
            comment = thread_to_comment(thread)
            if comment is not None:
                comments.append(comment)

        if not comments and self.logger:
            self.logger.warning("YouTube API returned no comments")
        return comments
