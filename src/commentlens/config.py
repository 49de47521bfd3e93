"""
CommentLens settings - credentials and network budgets.

Built once (usually from the environment) and handed to adapters through
their constructors.
"""

import os
from dataclasses import dataclass


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {value!r}") from e


@dataclass
class Settings:
    """Pipeline configuration."""

    youtube_api_key: str | None = None
    facebook_page_token: str | None = None
    use_proxies: bool = True  # Fall back to public proxies when Reddit blocks us
    direct_timeout: float = 8.0  # Seconds for the first, un-proxied attempt
    proxy_timeout: float = 25.0  # Seconds per proxy attempt
    api_timeout: float = 30.0  # Seconds for authenticated API calls

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls(
            youtube_api_key=os.getenv("YOUTUBE_API_KEY") or None,
            facebook_page_token=os.getenv("FACEBOOK_PAGE_TOKEN") or None,
            use_proxies=_env_flag("COMMENTLENS_USE_PROXIES", True),
            direct_timeout=_env_float("COMMENTLENS_DIRECT_TIMEOUT", 8.0),
            proxy_timeout=_env_float("COMMENTLENS_PROXY_TIMEOUT", 25.0),
            api_timeout=_env_float("COMMENTLENS_API_TIMEOUT", 30.0),
        )
