"""
CommentLens error taxonomy.

Adapters and the retrieval layer raise these; the pipeline enriches them
with platform/URL context and passes them to the caller unchanged in kind.
"""


class CommentLensError(Exception):
    """Base class for all pipeline errors."""

    def __init__(
        self,
        message: str,
        *,
        platform: str | None = None,
        url: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.platform = platform
        self.url = url

    def with_context(self, platform: str | None = None, url: str | None = None):
        """Fill in platform/URL context if not already set. Returns self."""
        if self.platform is None:
            self.platform = platform
        if self.url is None:
            self.url = url
        return self

    def __str__(self) -> str:
        prefix = f"[{self.platform}] " if self.platform else ""
        suffix = f" (url: {self.url})" if self.url else ""
        return f"{prefix}{self.message}{suffix}"


class UnsupportedSource(CommentLensError):
    """URL does not belong to any supported platform."""

    pass


class SourceConfigMissing(CommentLensError):
    """A required platform credential is not configured."""

    pass


class SourceUnavailable(CommentLensError):
    """Upstream gave a definitive error or every fallback was exhausted."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        platform: str | None = None,
        url: str | None = None,
    ):
        super().__init__(message, platform=platform, url=url)
        self.status_code = status_code


class TransportTimeout(SourceUnavailable):
    """A bounded network call exceeded its deadline on the last fallback step."""

    pass


class MalformedResponse(SourceUnavailable):
    """Upstream content did not parse as the expected structured format."""

    pass


class PipelineCancelled(CommentLensError):
    """The run was cancelled by the caller."""

    pass
