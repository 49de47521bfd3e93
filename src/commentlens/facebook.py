"""
Facebook comment source via the Graph API.

Without a page token the source degrades to an empty result instead of
failing; zero comments is a valid outcome for callers.
"""

from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from .classifier import extract_facebook_post_id
from .config import Settings
from .errors import MalformedResponse, SourceUnavailable, TransportTimeout
from .logger import ProgressLogger
from .models import RawComment
from .sources import CommentSource

GRAPH_URL = "https://graph.facebook.com/v18.0"


class GraphAuthor(BaseModel):
    id: str | None = None
    name: str | None = None


class GraphComment(BaseModel):
    id: str | None = None
    message: str | None = None
    # Graph only returns "from" for pages the token can see
    author: GraphAuthor | None = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "GraphComment":
        return cls.model_validate({**item, "author": item.get("from")})


class GraphCommentList(BaseModel):
    data: list[dict[str, Any]] = []


def graph_to_comment(comment: GraphComment) -> RawComment | None:
    """Map a Graph comment to a RawComment; None if author or text is missing."""
    if not comment.author or not comment.author.name:
        return None
    if not comment.message or not comment.message.strip():
        return None
    return RawComment(
        username=comment.author.name,
        text=comment.message,
        platform_user_id=comment.author.id,
    )


class FacebookSource(CommentSource):
    """Facebook Graph API comment source."""

    platform = "facebook"

    def __init__(self, settings: Settings, logger: ProgressLogger | None = None):
        self.token = settings.facebook_page_token
        self.timeout = settings.api_timeout
        self.logger = logger

    def is_configured(self) -> bool:
        return bool(self.token)

    async def fetch_comments(self, url: str) -> list[RawComment]:
        """Fetch comments on a post, or [] if no token is configured."""
        post_id = extract_facebook_post_id(url)
        if not post_id:
            raise SourceUnavailable("Invalid Facebook post ID", platform="facebook", url=url)

        if not self.is_configured():
            if self.logger:
                self.logger.warning(
                    "FACEBOOK_PAGE_TOKEN is not configured. Returning empty comments."
                )
            return []

        params = {"access_token": self.token or "", "fields": "id,message,from"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.get(f"{GRAPH_URL}/{post_id}/comments", params=params)
        except httpx.TimeoutException as e:
            raise TransportTimeout(
                f"Facebook API timed out: {e}", platform="facebook", url=url
            ) from e
        except httpx.HTTPError as e:
            raise SourceUnavailable(
                f"Facebook API request failed: {e}", platform="facebook", url=url
            ) from e

        if not resp.is_success:
            try:
                message = resp.json().get("error", {}).get("message") or resp.reason_phrase
            except (ValueError, AttributeError):
                message = resp.reason_phrase
            raise SourceUnavailable(
                f"Facebook API error: {message}",
                status_code=resp.status_code,
                platform="facebook",
                url=url,
            )

        try:
            listing = GraphCommentList.model_validate(resp.json())
            parsed = [GraphComment.from_api(item) for item in listing.data]
        except (ValueError, ValidationError) as e:
            raise MalformedResponse(
                "Facebook API returned an unexpected response",
                status_code=resp.status_code,
                platform="facebook",
                url=url,
            ) from e

        comments = [c for c in (graph_to_comment(p) for p in parsed) if c is not None]
        if not comments and self.logger:
            self.logger.warning("Facebook API returned no comments")
        return comments
