"""
CommentLens participant aggregation.

Groups raw comments by username and assigns each participant exactly one
ranked signal set: explicit addresses when any comment has one, otherwise a
single inferred address.
"""

import random

from .classifier import profile_url
from .extractor import build_explicit_signals, extract_emails
from .inference import build_inferred_signal
from .models import (
    SNIPPET_LENGTH,
    ContactSignal,
    ParticipantGroup,
    ParticipantResult,
    RawComment,
    SourceKind,
)


def group_comments(comments: list[RawComment]) -> list[ParticipantGroup]:
    """
    Fold raw comments into one group per username.

    The grouping key is the raw username string; first-appearance order is kept.
    """
    groups: dict[str, ParticipantGroup] = {}

    for comment in comments:
        group = groups.get(comment.username)
        if group is None:
            groups[comment.username] = ParticipantGroup(
                username=comment.username,
                comments=[comment.text],
                platform_user_id=comment.platform_user_id,
            )
            continue

        group.comments.append(comment.text)
        if group.platform_user_id is None and comment.platform_user_id:
            group.platform_user_id = comment.platform_user_id

    return list(groups.values())


def display_name(username: str) -> str:
    """Username with its first character capitalized."""
    return username[:1].upper() + username[1:]


def signals_for_group(
    group: ParticipantGroup, kind: SourceKind, rng: random.Random | None = None
) -> list[ContactSignal]:
    """Explicit signals across all comments, or one inferred fallback."""
    emails: list[str] = []
    for text in group.comments:
        emails.extend(extract_emails(text))

    if emails:
        return build_explicit_signals(emails)
    return [build_inferred_signal(group.username, kind, rng)]


def build_participant(
    group: ParticipantGroup, kind: SourceKind, rng: random.Random | None = None
) -> ParticipantResult:
    """Turn a group into a ParticipantResult."""
    signals = signals_for_group(group, kind, rng)
    return ParticipantResult(
        username=group.username,
        display_name=display_name(group.username),
        profile_url=profile_url(kind, group.username, group.platform_user_id),
        comment_snippet=group.comments[0][:SNIPPET_LENGTH],
        comment_count=group.comment_count,
        primary_signal=signals[0],
        all_signals=signals,
    )


def aggregate_participants(
    comments: list[RawComment], kind: SourceKind, rng: random.Random | None = None
) -> list[ParticipantResult]:
    """Group comments and build one result per participant."""
    return [build_participant(group, kind, rng) for group in group_comments(comments)]


def count_signals(participants: list[ParticipantResult]) -> int:
    return sum(len(p.all_signals) for p in participants)
