"""
CommentLens structured logging - operator-grade telemetry for pipeline runs.

Answers three questions:
1. Which stage is the run in?
2. Which fetch attempt is in flight (direct or which proxy)?
3. What came out of it (comments, participants, signals)?
"""

import sys
from datetime import UTC, datetime

# Force line buffering for immediate output (important on Windows/PowerShell)
try:
    sys.stdout.reconfigure(line_buffering=True)  # type: ignore
except Exception:
    pass  # Fallback for non-reconfigurable streams


def _print(*args: object, **kwargs: object) -> None:
    """Print with immediate flush."""
    print(*args, **kwargs, flush=True)


def _eprint(*args: object, **kwargs: object) -> None:
    """Print to stderr with immediate flush."""
    print(*args, **kwargs, file=sys.stderr, flush=True)


def _truncate(text: str, limit: int = 60) -> str:
    return text[:limit] + "..." if len(text) > limit else text


class ProgressLogger:
    """
    Structured progress logger for CommentLens runs.

    Fetch attempts are only shown in verbose mode; phases, fallbacks,
    warnings and errors are always shown.
    """

    def __init__(self, run_id: str, verbose: bool = False):
        self.run_id = run_id
        self.verbose = verbose
        self.start_time = datetime.now(UTC)
        self.phase_times: dict[str, datetime] = {}

    def phase(self, name: str, detail: str = "") -> None:
        """Log a major phase transition."""
        now = datetime.now(UTC)
        self.phase_times[name] = now
        elapsed = (now - self.start_time).total_seconds()

        if detail:
            _print(f"[Phase] {name}: {detail} ({elapsed:.1f}s)")
        else:
            _print(f"[Phase] {name} ({elapsed:.1f}s)")

    def attempt(self, stage: str, url: str) -> None:
        """Log a fetch attempt (verbose only)."""
        if self.verbose:
            _print(f"    [Fetch:{stage}] {_truncate(url)}")

    def detail(self, tag: str, msg: str) -> None:
        """Log a diagnostic line (verbose only)."""
        if self.verbose:
            _print(f"    [{tag}] {msg}")

    def fallback(self, stage: str, reason: str) -> None:
        """Log that an attempt failed and the next fallback step is next."""
        _print(f"    [Fallback] {stage}: {reason}")

    def comments(self, platform: str, count: int) -> None:
        """Log how many raw comments an adapter produced."""
        _print(f"  [Comments] {count} from {platform}")

    def participants(self, total: int, explicit: int) -> None:
        """Log aggregation results."""
        inferred = total - explicit
        _print(f"  [Participants] {total} ({explicit} explicit, {inferred} inferred)")

    def finish(self, participants: int, output_dir: str = "") -> None:
        """Log run completion."""
        elapsed = (datetime.now(UTC) - self.start_time).total_seconds()
        minutes = int(elapsed // 60)
        seconds = int(elapsed % 60)

        _print(f"\n[CommentLens] Run complete in {minutes}m{seconds}s")
        _print(f"  Participants: {participants}")
        if output_dir:
            _print(f"  Output: {output_dir}")

    def error(self, msg: str) -> None:
        """Log an error."""
        _eprint(f"[Error] {msg}")

    def warning(self, msg: str) -> None:
        """Log a warning."""
        _eprint(f"[Warning] {msg}")
