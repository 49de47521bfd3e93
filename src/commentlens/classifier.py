"""
CommentLens URL classifier - maps a URL to its source platform.

Pure string checks only: nothing here touches the network.
"""

import re
from urllib.parse import parse_qs, urlparse

from .errors import UnsupportedSource
from .models import SourceKind

# Host fragments per platform, checked in order
HOST_PATTERNS: list[tuple[SourceKind, tuple[str, ...]]] = [
    ("youtube", ("youtube.com", "youtu.be")),
    ("reddit", ("reddit.com", "redd.it")),
    ("facebook", ("facebook.com", "fb.watch")),
]


def _host_of(url: str) -> str:
    """Best-effort host extraction, tolerating a missing scheme."""
    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    try:
        return (urlparse(candidate).hostname or "").lower()
    except ValueError:
        return ""


def classify(url: object) -> SourceKind | None:
    """Return the platform a URL belongs to, or None if unsupported."""
    if not isinstance(url, str) or not url.strip():
        return None

    host = _host_of(url)
    if not host:
        return None

    for kind, patterns in HOST_PATTERNS:
        for pattern in patterns:
            if host == pattern or host.endswith("." + pattern):
                return kind
    return None


def require_source_kind(url: str) -> SourceKind:
    """Classify a URL or raise UnsupportedSource."""
    kind = classify(url)
    if kind is None:
        raise UnsupportedSource(
            "Unsupported platform. Use a YouTube, Reddit or Facebook link.",
            url=url if isinstance(url, str) else None,
        )
    return kind


# =============================================================================
# PLATFORM IDENTIFIERS
# =============================================================================

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{6,}$")


def extract_youtube_video_id(url: str) -> str | None:
    """
    Extract the video id from a YouTube URL.

    Handles youtu.be/ID, watch?v=ID, /shorts/ID and /embed/ID.
    """
    try:
        parsed = urlparse(url if "://" in url else f"https://{url}")
    except ValueError:
        return None

    host = (parsed.hostname or "").lower()
    video_id: str | None = None

    if host == "youtu.be":
        video_id = parsed.path.strip("/").split("/")[0]
    elif "v" in parse_qs(parsed.query):
        video_id = parse_qs(parsed.query)["v"][0]
    else:
        for prefix in ("/shorts/", "/embed/", "/live/"):
            if parsed.path.startswith(prefix):
                video_id = parsed.path[len(prefix) :].split("/")[0]
                break

    if video_id and _VIDEO_ID_RE.match(video_id):
        return video_id
    return None


def extract_facebook_post_id(url: str) -> str | None:
    """
    Extract the post id from a Facebook URL.

    Handles permalink.php?story_fbid=ID, /{page}/posts/ID, /{page}/videos/ID
    and /groups/{group}/posts/ID.
    """
    try:
        parsed = urlparse(url if "://" in url else f"https://{url}")
    except ValueError:
        return None

    if parsed.path.rstrip("/") == "/permalink.php":
        values = parse_qs(parsed.query).get("story_fbid")
        return values[0] if values else None

    segments = [s for s in parsed.path.split("/") if s]

    # /groups/{groupId}/posts/{postId} is covered by the generic "posts" lookup
    for marker in ("posts", "videos"):
        if marker in segments:
            idx = segments.index(marker)
            if idx + 1 < len(segments):
                return segments[idx + 1]

    return None


def profile_url(kind: SourceKind, username: str, platform_user_id: str | None = None) -> str:
    """Build a public profile link for a participant."""
    clean = re.sub(r"[^a-z0-9._-]", "", username.lower())

    if kind == "youtube":
        if platform_user_id:
            return f"https://youtube.com/channel/{platform_user_id}"
        return f"https://youtube.com/@{clean}"
    if kind == "reddit":
        return f"https://reddit.com/user/{clean}"
    if platform_user_id:
        return f"https://facebook.com/profile.php?id={platform_user_id}"
    return f"https://facebook.com/{clean}"
