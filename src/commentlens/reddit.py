"""
Reddit comment source via the public .json endpoints.

Reddit has no stable public contract for this and actively blocks server
traffic, so this source:
1. Normalizes the URL (protocol, host, query/fragment, trailing slash)
2. Resolves short links (/s/ paths, redd.it) through a three-step ladder
3. Fetches <post>.json through the ResilientFetcher (direct, then proxies)
4. Flattens the nested reply tree
"""

import json
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlparse, urlunparse

import httpx
from bs4 import BeautifulSoup

from .audit import FetchLog
from .config import Settings
from .errors import CommentLensError, MalformedResponse, SourceUnavailable
from .fetcher import FetcherConfig, FetchResult, ResilientFetcher
from .flatten import flatten_comment_tree
from .logger import ProgressLogger
from .models import RawComment
from .sources import CommentSource

CANONICAL_HOST = "www.reddit.com"
REDDIT_HOSTS = {
    "reddit.com",
    "www.reddit.com",
    "old.reddit.com",
    "np.reddit.com",
    "m.reddit.com",
    "new.reddit.com",
}
SHORT_HOSTS = {"redd.it", "www.redd.it"}

BROWSER_UA = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

JSON_HEADERS = {
    "User-Agent": BROWSER_UA,
    "Accept": "application/json",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://www.reddit.com/",
    "Origin": "https://www.reddit.com",
    "DNT": "1",
    "Sec-Fetch-Dest": "empty",
    "Sec-Fetch-Mode": "cors",
    "Sec-Fetch-Site": "same-origin",
    "Cache-Control": "no-cache",
}

MINIMAL_HTML_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; RedditBot/1.0)",
    "Accept": "text/html",
}

BROWSER_HTML_HEADERS = {
    "User-Agent": BROWSER_UA,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://www.reddit.com/",
    "DNT": "1",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "none",
    "Sec-Fetch-User": "?1",
}

FULL_URL_HELP = (
    "To get the full URL:\n"
    "1. Open the Reddit post in your browser\n"
    "2. Copy the URL from the address bar\n"
    "3. It should look like: https://www.reddit.com/r/subreddit/comments/postid/title/"
)


# =============================================================================
# URL NORMALIZATION
# =============================================================================


def normalize_reddit_url(url: str) -> str:
    """
    Canonicalize a Reddit URL before any request depends on its shape.

    Adds https://, drops query and fragment, drops the trailing slash and
    forces www.reddit.com (short-link hosts are left alone).
    """
    cleaned = url.strip()
    if not cleaned.startswith(("http://", "https://")):
        cleaned = f"https://{cleaned}"

    try:
        parsed = urlparse(cleaned)
    except ValueError as e:
        raise SourceUnavailable("Invalid Reddit URL", platform="reddit", url=url) from e

    host = (parsed.hostname or "").lower()
    if host in REDDIT_HOSTS:
        host = CANONICAL_HOST
    elif host not in SHORT_HOSTS and not host.endswith(".reddit.com"):
        raise SourceUnavailable("Invalid Reddit URL", platform="reddit", url=url)

    path = parsed.path.rstrip("/")
    return urlunparse(("https", host, path, "", "", ""))


def is_short_link(url: str) -> bool:
    """True for /s/ share links and redd.it links."""
    parsed = urlparse(url)
    if (parsed.hostname or "").lower() in SHORT_HOSTS:
        return True
    return "/s/" in parsed.path and not parsed.path.endswith(".json")


def is_post_url(url: str) -> bool:
    return "/comments/" in urlparse(url).path


def to_json_url(url: str) -> str:
    """Append .json to a post URL, requiring the /comments/ path shape."""
    if not is_post_url(url):
        raise SourceUnavailable(
            "Invalid Reddit URL format. "
            "Please use the full post URL with /comments/ in the path.\n\n"
            "Example: https://www.reddit.com/r/subreddit/comments/postid/title/",
            platform="reddit",
            url=url,
        )
    return url if url.endswith(".json") else f"{url}.json"


# =============================================================================
# SHORT-LINK RESOLUTION
# =============================================================================


def extract_canonical_url(html: str) -> str | None:
    """Find a canonical post URL in an HTML page (link tag, then JSON-LD)."""
    soup = BeautifulSoup(html, "lxml")

    for link in soup.find_all("link", href=True):
        rel = link.get("rel") or []
        if isinstance(rel, str):
            rel = [rel]
        if "canonical" in [r.lower() for r in rel]:
            return link["href"]

    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        try:
            data = json.loads(script.string or "")
        except ValueError:
            continue
        entries = data if isinstance(data, list) else [data]
        for entry in entries:
            if isinstance(entry, dict) and isinstance(entry.get("url"), str):
                return entry["url"]

    return None


def permalink_from_listing(data: Any) -> str | None:
    """Read the post permalink from a [post, comments] listing."""
    try:
        permalink = data[0]["data"]["children"][0]["data"]["permalink"]
    except (KeyError, IndexError, TypeError):
        return None
    return permalink if isinstance(permalink, str) and permalink else None


Strategy = Callable[[str], Awaitable[str | None]]


class ShortLinkResolver:
    """Resolve a short link to a canonical /comments/ URL."""

    def __init__(self, fetcher: ResilientFetcher, logger: ProgressLogger | None = None):
        self.fetcher = fetcher
        self.logger = logger

    @property
    def strategies(self) -> list[tuple[str, Strategy]]:
        return [
            ("json endpoint", self._via_json),
            ("html, minimal headers", self._via_minimal_html),
            ("html, browser headers", self._via_browser_html),
        ]

    async def resolve(self, url: str) -> str:
        """Try each strategy in order; raise SourceUnavailable if none works."""
        for index, (name, strategy) in enumerate(self.strategies, start=1):
            try:
                resolved = await strategy(url)
            except (CommentLensError, httpx.HTTPError, ValueError) as e:
                self._note(f"Short link strategy {index} ({name}) failed: {e}")
                continue

            if resolved and is_post_url(resolved):
                self._note(f"Short link strategy {index} ({name}) resolved to {resolved}")
                return normalize_reddit_url(resolved)
            self._note(f"Short link strategy {index} ({name}) gave no post URL")

        raise SourceUnavailable(
            "Could not resolve Reddit short link. Reddit may be blocking server requests. "
            "Please use the full post URL instead.\n\n" + FULL_URL_HELP,
            platform="reddit",
            url=url,
        )

    async def _via_json(self, url: str) -> str | None:
        result = await self.fetcher.fetch(
            f"{url}.json",
            JSON_HEADERS,
            validate=lambda data: permalink_from_listing(data) is not None,
        )
        if not result.ok or result.looks_like_html:
            return None
        permalink = permalink_from_listing(result.json())
        if not permalink:
            return None
        if permalink.startswith("http"):
            return permalink
        return f"https://{CANONICAL_HOST}{permalink}"

    async def _via_minimal_html(self, url: str) -> str | None:
        result = await self.fetcher.fetch(url, MINIMAL_HTML_HEADERS)
        return self._post_url_from_page(result)

    async def _via_browser_html(self, url: str) -> str | None:
        result = await self.fetcher.fetch(url, BROWSER_HTML_HEADERS)
        return self._post_url_from_page(result)

    def _post_url_from_page(self, result: FetchResult) -> str | None:
        if not result.ok:
            return None
        # The redirect chain often lands on the post itself
        if result.final_url and is_post_url(result.final_url):
            return result.final_url
        canonical = extract_canonical_url(result.text)
        if canonical and canonical.startswith("/"):
            return f"https://{CANONICAL_HOST}{canonical}"
        return canonical

    def _note(self, msg: str) -> None:
        if self.logger:
            self.logger.detail("ShortLink", msg)


# =============================================================================
# DIAGNOSTICS
# =============================================================================


def describe_status(status_code: int) -> str:
    """A user-actionable explanation for a failed Reddit fetch."""
    if status_code == 403:
        return (
            "Reddit is blocking access to this post (403 Forbidden).\n\n"
            "This typically happens when:\n"
            "- Reddit detects server-side requests from certain IP ranges\n"
            "- The post is private, restricted, or removed\n"
            "- Reddit is rate-limiting requests\n\n"
            "Wait a few minutes, use the full post URL (not a short link), "
            "and check that the post is public."
        )
    if status_code == 404:
        return (
            "Reddit post not found (404). Check that the URL is correct and complete "
            "and that the post still exists."
        )
    if status_code == 429:
        return (
            "Reddit rate limit exceeded (429). Please wait 5-10 minutes before trying again."
        )
    return (
        f"Reddit returned an error (status: {status_code}). Use the full post URL, "
        "check the post is public, and try again in a few minutes."
    )


def is_comment_listing(data: Any) -> bool:
    """True for a [post, comments] payload whose comment listing has children."""
    if not isinstance(data, list) or len(data) < 2:
        return False
    listing = data[1]
    if not isinstance(listing, dict) or not isinstance(listing.get("data"), dict):
        return False
    return isinstance(listing["data"].get("children"), list)


def comments_from_listing(data: Any) -> list[RawComment] | None:
    """
    Flatten the comment listing of a [post, comments] payload.

    Returns None when the payload does not have the expected shape.
    """
    if not is_comment_listing(data):
        return None
    return flatten_comment_tree(data[1]["data"]["children"])


# =============================================================================
# SOURCE
# =============================================================================


class RedditSource(CommentSource):
    """Reddit comment source with short-link resolution and proxy fallback."""

    platform = "reddit"

    def __init__(
        self,
        settings: Settings,
        logger: ProgressLogger | None = None,
        fetcher: ResilientFetcher | None = None,
    ):
        self.logger = logger
        self.fetcher = fetcher or ResilientFetcher(
            FetcherConfig(
                direct_timeout=settings.direct_timeout,
                proxy_timeout=settings.proxy_timeout,
                use_proxies=settings.use_proxies,
            ),
            logger=logger,
            log=FetchLog(),
        )

    @property
    def fetch_log(self) -> FetchLog:
        return self.fetcher.log

    async def resolve_post_url(self, url: str) -> str:
        """Normalized, short-link-resolved .json URL for a post."""
        post_url = normalize_reddit_url(url)
        if is_short_link(post_url):
            post_url = await ShortLinkResolver(self.fetcher, self.logger).resolve(post_url)
        return to_json_url(post_url)

    async def fetch_comments(self, url: str) -> list[RawComment]:
        """Fetch and flatten every comment of a post, including nested replies."""
        api_url = await self.resolve_post_url(url)
        result = await self.fetcher.fetch(api_url, JSON_HEADERS, validate=is_comment_listing)

        if not result.ok:
            raise SourceUnavailable(
                describe_status(result.status_code),
                status_code=result.status_code,
                platform="reddit",
                url=api_url,
            )

        if result.looks_like_html:
            raise MalformedResponse(
                "Reddit returned HTML instead of JSON. The post may not be accessible.",
                status_code=result.status_code,
                platform="reddit",
                url=api_url,
            )

        try:
            data = result.json()
        except MalformedResponse as e:
            e.with_context("reddit", api_url)
            raise

        comments = comments_from_listing(data)
        if comments is None:
            if self.logger:
                self.logger.warning("Reddit returned no comment listing")
            return []

        if self.logger and result.proxy_name:
            self.logger.detail("Reddit", f"comments served by {result.proxy_name}")
        return comments
