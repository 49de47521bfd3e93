"""
CommentLens fetcher - resilient HTTP fetching through an adversarial channel.

One logical fetch walks a fixed ladder:

    DIRECT -> PROXY_1 -> PROXY_2 -> PROXY_3 -> PROXY_4 -> EXHAUSTED

- A direct answer that is not "blocked" (403) is final, even a 404.
- Blocked or transport failure: public proxies are tried strictly in order.
- Proxy content is only accepted if it is not HTML, parses as JSON and passes
  the caller's payload check.
- Exhausted after a block: the original blocked response is returned.
"""

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal
from urllib.parse import quote

import httpx

from .audit import FetchLog
from .errors import MalformedResponse, SourceUnavailable, TransportTimeout
from .logger import ProgressLogger

BLOCKED_STATUS = 403

StageName = Literal["direct", "proxy", "exhausted"]


@dataclass(frozen=True)
class FetchStage:
    """Where in the fallback ladder an attempt happened."""

    name: StageName
    index: int = 0  # 1-based proxy position, 0 otherwise

    @classmethod
    def direct(cls) -> "FetchStage":
        return cls("direct")

    @classmethod
    def proxy(cls, index: int) -> "FetchStage":
        return cls("proxy", index)

    @classmethod
    def exhausted(cls) -> "FetchStage":
        return cls("exhausted")

    def __str__(self) -> str:
        if self.name == "proxy":
            return f"proxy_{self.index}"
        return self.name


@dataclass
class FetchResult:
    """Result of one logical fetch."""

    url: str
    status_code: int = 0
    text: str = ""
    content_type: str = ""
    final_url: str = ""
    stage: FetchStage = field(default_factory=FetchStage.direct)
    proxy_name: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def blocked(self) -> bool:
        return self.status_code == BLOCKED_STATUS

    @property
    def is_json(self) -> bool:
        return "application/json" in self.content_type.lower()

    @property
    def looks_like_html(self) -> bool:
        return looks_like_html(self.text)

    def json(self) -> Any:
        """Parse the body as JSON or raise MalformedResponse."""
        try:
            return json.loads(self.text)
        except ValueError as e:
            raise MalformedResponse(
                "Upstream returned content that is not valid JSON.",
                status_code=self.status_code,
                url=self.url,
            ) from e


def looks_like_html(text: str) -> bool:
    """True if the body is an HTML document rather than data."""
    head = text.lstrip()[:15].lower()
    return head.startswith("<!doctype") or head.startswith("<html")


# =============================================================================
# PROXY SERVICES
# =============================================================================


def _unwrap_raw(resp: httpx.Response) -> str:
    return resp.text


def _unwrap_allorigins_json(resp: httpx.Response) -> str:
    """AllOrigins /get wraps the upstream body in {"contents": ...}."""
    data = resp.json()
    contents = data.get("contents") if isinstance(data, dict) else None
    if not contents:
        raise ValueError("AllOrigins response has no contents")
    return contents


@dataclass(frozen=True)
class ProxyService:
    """A public pass-through proxy and how to read its answer."""

    name: str
    template: str  # "{url}" is replaced with the percent-encoded target
    unwrap: Callable[[httpx.Response], str] = _unwrap_raw

    def build(self, url: str) -> str:
        return self.template.format(url=quote(url, safe=""))


# Fastest first
PROXY_SERVICES: list[ProxyService] = [
    ProxyService("corsproxy", "https://corsproxy.io/?{url}"),
    ProxyService("allorigins-raw", "https://api.allorigins.win/raw?url={url}"),
    ProxyService(
        "allorigins-get", "https://api.allorigins.win/get?url={url}", _unwrap_allorigins_json
    ),
    ProxyService("codetabs", "https://api.codetabs.com/v1/proxy?quest={url}"),
]


@dataclass
class FetcherConfig:
    """Fetcher configuration."""

    direct_timeout: float = 8.0
    proxy_timeout: float = 25.0
    use_proxies: bool = True
    proxies: list[ProxyService] = field(default_factory=lambda: list(PROXY_SERVICES))


class ResilientFetcher:
    """Fetch through a direct attempt and an ordered proxy chain."""

    def __init__(
        self,
        config: FetcherConfig | None = None,
        logger: ProgressLogger | None = None,
        log: FetchLog | None = None,
    ):
        self.config = config or FetcherConfig()
        self.logger = logger
        self.log = log if log is not None else FetchLog()

    async def _get(
        self, url: str, headers: dict[str, str] | None, timeout: float
    ) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            headers=headers,
        ) as client:
            return await client.get(url)

    async def fetch(
        self,
        url: str,
        headers: dict[str, str] | None = None,
        validate: Callable[[Any], bool] | None = None,
    ) -> FetchResult:
        """
        Fetch a URL, falling back to proxies when blocked.

        Returns the first definitive answer. Raises TransportTimeout or
        SourceUnavailable only if the direct attempt failed at the transport
        level and no proxy produced valid content. When given, validate is
        called on each parsed proxy payload and a falsy result rejects it.
        """
        stage = FetchStage.direct()
        self._attempt(stage, url)

        try:
            resp = await self._get(url, headers, self.config.direct_timeout)
        except httpx.TimeoutException as e:
            self.log.record(url, "direct", "timeout", detail=str(e))
            self._fallback(stage, "timed out")
            direct_error: httpx.HTTPError = e
        except httpx.HTTPError as e:
            self.log.record(url, "direct", "error", detail=str(e))
            self._fallback(stage, f"transport error: {e}")
            direct_error = e
        else:
            result = FetchResult(
                url=url,
                status_code=resp.status_code,
                text=resp.text,
                content_type=resp.headers.get("content-type", ""),
                final_url=str(resp.url),
                stage=stage,
            )
            if not result.blocked:
                self.log.record(url, "direct", "returned", status_code=resp.status_code)
                return result

            self.log.record(url, "direct", "blocked", status_code=resp.status_code)
            if not self.config.use_proxies:
                return result

            self._fallback(stage, f"blocked ({resp.status_code})")
            proxied = await self._try_proxies(url, validate)
            if proxied is not None:
                return proxied

            if self.logger:
                self.logger.warning("All proxies failed, returning original blocked response")
            return result

        if self.config.use_proxies:
            proxied = await self._try_proxies(url, validate)
            if proxied is not None:
                return proxied

        if isinstance(direct_error, httpx.TimeoutException):
            raise TransportTimeout(
                f"Request timed out and no fallback succeeded: {direct_error}", url=url
            ) from direct_error
        raise SourceUnavailable(
            f"Request failed and no fallback succeeded: {direct_error}", url=url
        ) from direct_error

    async def _try_proxies(
        self, url: str, validate: Callable[[Any], bool] | None = None
    ) -> FetchResult | None:
        """Try each proxy in order; first valid JSON payload wins."""
        for index, service in enumerate(self.config.proxies, start=1):
            stage = FetchStage.proxy(index)
            proxy_url = service.build(url)
            self._attempt(stage, proxy_url)

            try:
                resp = await self._get(proxy_url, None, self.config.proxy_timeout)
            except httpx.TimeoutException as e:
                self.log.record(url, "proxy", "timeout", proxy=service.name, detail=str(e))
                self._fallback(stage, f"{service.name} timed out")
                continue
            except httpx.HTTPError as e:
                self.log.record(url, "proxy", "error", proxy=service.name, detail=str(e))
                self._fallback(stage, f"{service.name} failed: {e}")
                continue

            reason = self._reject_reason(service, resp, validate)
            if reason:
                self.log.record(
                    url,
                    "proxy",
                    "rejected",
                    proxy=service.name,
                    status_code=resp.status_code,
                    detail=reason,
                )
                self._fallback(stage, f"{service.name} rejected: {reason}")
                continue

            self.log.record(
                url, "proxy", "accepted", proxy=service.name, status_code=resp.status_code
            )
            return FetchResult(
                url=url,
                status_code=200,
                text=service.unwrap(resp),
                content_type="application/json",
                final_url=url,
                stage=stage,
                proxy_name=service.name,
            )

        self._attempt(FetchStage.exhausted(), url)
        return None

    def _reject_reason(
        self,
        service: ProxyService,
        resp: httpx.Response,
        validate: Callable[[Any], bool] | None = None,
    ) -> str:
        """Empty string if the proxy answer is usable, otherwise why not."""
        if not resp.is_success:
            return f"status {resp.status_code}"
        try:
            body = service.unwrap(resp)
        except ValueError as e:
            return f"unreadable wrapper: {e}"
        if not body or not body.strip():
            return "empty body"
        if looks_like_html(body):
            return "HTML page instead of data"
        try:
            payload = json.loads(body)
        except ValueError:
            return "body is not JSON"
        if validate is not None and not validate(payload):
            return "unexpected payload shape"
        return ""

    def _attempt(self, stage: FetchStage, url: str) -> None:
        if self.logger:
            self.logger.attempt(str(stage), url)

    def _fallback(self, stage: FetchStage, reason: str) -> None:
        if self.logger:
            self.logger.fallback(str(stage), reason)
