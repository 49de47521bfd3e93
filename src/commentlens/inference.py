"""
Username-based email inference, used only when a participant left no
explicit address anywhere in their comments.

Randomness is injected (a random.Random instance) so tests can seed it.
"""

import random
import re

from .extractor import PRIORITY_DOMAINS
from .models import ContactSignal, SourceKind

SECONDARY_DOMAINS = [
    "hotmail.com",
    "icloud.com",
    "protonmail.com",
    "zoho.com",
    "yandex.com",
    "aol.com",
]

# Share of inferred addresses drawn from the priority domains
PRIORITY_WEIGHT = 0.75

# Video-platform accounts are Google accounts
VIDEO_PLATFORM_DOMAIN = "gmail.com"

INFERRED_CONFIDENCE_MIN = 55
INFERRED_CONFIDENCE_MAX = 75

_default_rng = random.SystemRandom()


def sanitize_username(username: str) -> str:
    """Lowercase and strip everything but ASCII letters and digits."""
    local = re.sub(r"[^a-z0-9]", "", username.lower())
    return local or "user"


def select_domain(rng: random.Random) -> str:
    """Weighted choice: 75% a priority domain, 25% a secondary one."""
    if rng.random() < PRIORITY_WEIGHT:
        return rng.choice(PRIORITY_DOMAINS)
    return rng.choice(SECONDARY_DOMAINS)


def infer_email(username: str, kind: SourceKind, rng: random.Random | None = None) -> str:
    """Synthesize a plausible address from a username."""
    rng = rng or _default_rng
    if kind == "youtube":
        domain = VIDEO_PLATFORM_DOMAIN
    else:
        domain = select_domain(rng)
    return f"{sanitize_username(username)}@{domain}"


def infer_confidence(rng: random.Random | None = None) -> int:
    """Uniform integer in [55, 75], always below explicit confidence."""
    rng = rng or _default_rng
    return rng.randint(INFERRED_CONFIDENCE_MIN, INFERRED_CONFIDENCE_MAX)


def build_inferred_signal(
    username: str, kind: SourceKind, rng: random.Random | None = None
) -> ContactSignal:
    return ContactSignal(
        value=infer_email(username, kind, rng),
        kind="email",
        source="inferred",
        confidence=infer_confidence(rng),
        is_primary=True,
        is_masked=True,
    )
