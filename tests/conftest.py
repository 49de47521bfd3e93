"""Pytest configuration and fixtures."""

import random

import pytest
import respx

from commentlens.config import Settings
from commentlens.models import ContactSignal, ParticipantResult, PipelineOutcome, RawComment

REDDIT_POST = "https://www.reddit.com/r/python/comments/abc123/some_title"


def reddit_comment(
    author: str,
    body: str,
    replies: list[dict] | None = None,
    fullname: str | None = None,
) -> dict:
    """Build a t1 comment node in Reddit listing shape."""
    return {
        "kind": "t1",
        "data": {
            "author": author,
            "body": body,
            "author_fullname": fullname or f"t2_{author}",
            "replies": {"kind": "Listing", "data": {"children": replies}} if replies else "",
        },
    }


def reddit_listing(
    comments: list[dict], permalink: str = "/r/python/comments/abc123/some_title/"
) -> list:
    """Build the [post, comments] payload returned by <post>.json."""
    return [
        {
            "kind": "Listing",
            "data": {"children": [{"kind": "t3", "data": {"permalink": permalink}}]},
        },
        {"kind": "Listing", "data": {"children": comments}},
    ]


@pytest.fixture
def settings() -> Settings:
    """Settings with credentials and tiny timeouts."""
    return Settings(
        youtube_api_key="yt-test-key",
        facebook_page_token="fb-test-token",
        direct_timeout=1.0,
        proxy_timeout=1.0,
        api_timeout=1.0,
    )


@pytest.fixture
def rng() -> random.Random:
    """Seeded random source for deterministic inference."""
    return random.Random(1234)


@pytest.fixture
def sample_comments() -> list[RawComment]:
    """A small thread with one repeat commenter."""
    return [
        RawComment(username="sam_22", text="Great video!", platform_user_id="u1"),
        RawComment(username="jane", text="Reach me at Jane.Doe@outlook.com please"),
        RawComment(username="sam_22", text="email me: sam@protonmail.com or sam22@gmail.com"),
    ]


@pytest.fixture
def explicit_signal() -> ContactSignal:
    return ContactSignal(
        value="jane.doe@outlook.com", source="explicit", confidence=95, is_primary=True
    )


@pytest.fixture
def sample_participant(explicit_signal: ContactSignal) -> ParticipantResult:
    """A participant with one explicit address."""
    return ParticipantResult(
        username="jane",
        display_name="Jane",
        profile_url="https://reddit.com/user/jane",
        comment_snippet="Reach me at Jane.Doe@outlook.com please",
        comment_count=1,
        primary_signal=explicit_signal,
        all_signals=[explicit_signal],
    )


@pytest.fixture
def sample_outcome(sample_participant: ParticipantResult) -> PipelineOutcome:
    return PipelineOutcome(
        source_url=REDDIT_POST,
        source_kind="reddit",
        comments=1,
        participants=[sample_participant],
        signals_found=1,
    )


@pytest.fixture
def make_reddit_comment():
    """Builder for t1 comment nodes."""
    return reddit_comment


@pytest.fixture
def make_reddit_listing():
    """Builder for [post, comments] payloads."""
    return reddit_listing


@pytest.fixture
def router():
    """respx router; routes that are never hit are allowed."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock
