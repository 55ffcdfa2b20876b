"""
Identity-based contest deduplication.

Two contests are duplicates iff their ``id`` strings are equal. No fuzzy
matching on name or start time happens here, so the same logical contest
surfaced by two sources with different id schemes is kept twice.
"""

from collections.abc import Iterable

from contesthub.ingestion.schemas import Contest


def dedupe(contests: Iterable[Contest]) -> list[Contest]:
    """
    Drop contests whose id was already seen.

    Stable: the first occurrence of an id wins and input order is kept.
    Idempotent: dedupe(dedupe(xs)) == dedupe(xs).
    """
    seen: set[str] = set()
    unique: list[Contest] = []
    for contest in contests:
        if contest.id in seen:
            continue
        seen.add(contest.id)
        unique.append(contest)
    return unique
