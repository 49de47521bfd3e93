"""
CommentLens fetch audit trail - one record per network attempt.
Lets a failed run say exactly which attempt (direct or which proxy) failed and why.
"""

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path


@dataclass
class AttemptRecord:
    """A single fetch attempt."""

    url: str
    stage: str  # "direct" or "proxy"
    proxy: str | None = None
    status_code: int | None = None
    outcome: str = "pending"  # accepted, returned, blocked, rejected, error, timeout
    detail: str = ""
    attempted_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())


@dataclass
class FetchLog:
    """Audit log of every attempt made during one run."""

    run_id: str = ""
    started_at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())
    finished_at: str | None = None
    attempts: list[AttemptRecord] = field(default_factory=list)

    # Summary stats
    total_attempts: int = 0
    total_proxy_attempts: int = 0
    total_accepted: int = 0

    def record(
        self,
        url: str,
        stage: str,
        outcome: str,
        proxy: str | None = None,
        status_code: int | None = None,
        detail: str = "",
    ) -> AttemptRecord:
        """Record an attempt and its outcome."""
        rec = AttemptRecord(
            url=url,
            stage=stage,
            proxy=proxy,
            status_code=status_code,
            outcome=outcome,
            detail=detail[:200],
        )
        self.attempts.append(rec)
        self.total_attempts += 1
        if stage == "proxy":
            self.total_proxy_attempts += 1
        if outcome in ("accepted", "returned"):
            self.total_accepted += 1
        return rec

    def proxies_tried(self) -> list[str]:
        """Names of the proxies attempted, in order."""
        return [a.proxy for a in self.attempts if a.proxy]

    def finish(self) -> None:
        """Mark the log as complete."""
        self.finished_at = datetime.now(UTC).isoformat()

    def save(self, path: Path) -> None:
        """Save to JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2, default=str)
