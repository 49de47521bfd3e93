"""
CommentLens extractor - finds explicit email addresses in comment text.

Key design:
- Regex match, then reject known false positives (image names, placeholders)
- Output is lowercased and deduplicated in discovery order
- Ranking puts major consumer mail domains first, stable within each tier
"""

import re

from .models import ContactSignal

EMAIL_REGEX = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")

# Domains ranked first when a participant left several addresses
PRIORITY_DOMAINS = ["gmail.com", "yahoo.com", "outlook.com"]

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg", ".gif", ".svg", ".webp")

PLACEHOLDER_LOCAL_PARTS = {"test", "example"}
PLACEHOLDER_DOMAINS = {"example.com"}
RESERVED_TLDS = {"example", "test", "invalid", "localhost"}

# "t@e.co" is the shortest shape we still consider noise
MIN_EMAIL_LENGTH = 7

EXPLICIT_CONFIDENCE = 95


def _is_false_positive(email: str, following: str) -> bool:
    """Check a lowercased match against the false-positive filters."""
    if len(email) < MIN_EMAIL_LENGTH:
        return True

    local, _, domain = email.rpartition("@")
    if not local or "." not in domain:
        return True

    # Image filenames like logo@2x.png or icon.png@cdn.host
    if email.endswith(IMAGE_EXTENSIONS) or local.endswith(IMAGE_EXTENSIONS):
        return True
    if following.lower().startswith(IMAGE_EXTENSIONS):
        return True

    if local in PLACEHOLDER_LOCAL_PARTS:
        return True
    if any(d in domain for d in PLACEHOLDER_DOMAINS):
        return True
    if domain.rsplit(".", 1)[-1] in RESERVED_TLDS:
        return True

    return False


def extract_emails(text: str | None) -> list[str]:
    """
    Extract unique email addresses from text.

    Returns lowercased addresses in order of first appearance.
    """
    if not text or not isinstance(text, str):
        return []

    found: dict[str, None] = {}
    for match in EMAIL_REGEX.finditer(text):
        email = match.group(0).lower().strip()
        following = text[match.end() : match.end() + 6]
        if _is_false_positive(email, following):
            continue
        found.setdefault(email, None)

    return list(found)


def email_domain(email: str) -> str:
    """Domain part of an address, lowercased."""
    return email.rpartition("@")[2].lower()


def is_priority_domain(email: str) -> bool:
    return email_domain(email) in PRIORITY_DOMAINS


def rank_emails(emails: list[str]) -> list[str]:
    """Priority-domain addresses first; discovery order kept inside each tier."""
    # sorted() is stable, so the boolean key keeps relative order
    return sorted(emails, key=lambda e: not is_priority_domain(e))


def build_explicit_signals(emails: list[str]) -> list[ContactSignal]:
    """Turn extracted addresses into ranked signals; the first is primary."""
    ranked = rank_emails(list(dict.fromkeys(e.lower() for e in emails)))
    return [
        ContactSignal(
            value=email,
            kind="email",
            source="explicit",
            confidence=EXPLICIT_CONFIDENCE,
            is_primary=index == 0,
        )
        for index, email in enumerate(ranked)
    ]
