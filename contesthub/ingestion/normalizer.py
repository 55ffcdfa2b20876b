"""
Per-source mapping of raw upstream records into the canonical Contest.

Each source registers exactly one pure mapping function with
@register_normalizer. Importing this module fails if a Source member has
no registered mapping, so adding a source without a normalizer is caught
at import time rather than at request time.

Status is never set here: Contest derives it from start_time and duration
through calculate_status.
"""

import re
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from contesthub.ingestion.schemas import Contest, Source

RawRecord = dict[str, Any]
NormalizerFn = Callable[[RawRecord], Contest]


class UnknownSourceError(LookupError):
    """Raised for a source tag with no registered normalizer (programmer error)."""

    def __init__(self, source: Any):
        super().__init__(f"Unknown source: {source!r}")
        self.source = source


class NormalizationError(ValueError):
    """A raw record from a known source could not be mapped."""

    def __init__(self, source: Source, message: str, raw: RawRecord | None = None):
        super().__init__(f"{source.value}: {message}")
        self.source = source
        self.raw = raw


# Host / site names seen in CLIST and Kontests payloads -> display name.
KNOWN_PLATFORMS: dict[str, str] = {
    "codeforces.com": "Codeforces",
    "codeforces": "Codeforces",
    "codeforces::gym": "Codeforces",
    "codeforces.com/gym": "Codeforces",
    "leetcode.com": "LeetCode",
    "leetcode": "LeetCode",
    "codechef.com": "CodeChef",
    "codechef": "CodeChef",
    "atcoder.jp": "AtCoder",
    "atcoder": "AtCoder",
    "hackerrank.com": "HackerRank",
    "hackerrank": "HackerRank",
    "hackerearth.com": "HackerEarth",
    "hackerearth": "HackerEarth",
    "topcoder.com": "TopCoder",
    "topcoder": "TopCoder",
    "codingcompetitions.withgoogle.com": "Google",
    "kick start": "Google",
    "toph.co": "Toph",
    "toph": "Toph",
    "csacademy.com": "CS Academy",
    "cs academy": "CS Academy",
}

_WHITESPACE = re.compile(r"\s+")

_FALLBACK_FORMATS = (
    "%Y-%m-%d %H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
)


def display_platform(name: str | None) -> str:
    """Map a host or site string to its display name; unknown names pass through."""
    if not name:
        return "Unknown"
    return KNOWN_PLATFORMS.get(name.strip().lower(), name.strip())


def parse_timestamp(value: Any) -> datetime:
    """
    Parse an upstream timestamp into an aware UTC datetime.

    Accepts unix seconds (int, float or numeric string), ISO-8601 strings
    with ``Z`` or an offset, and ``"YYYY-mm-dd HH:MM:SS UTC"``. Naive
    values are read as UTC.

    Raises:
        ValueError: If the value cannot be interpreted as a timestamp
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Not a timestamp: {value!r}")

    if isinstance(value, (int, float)):
        return _from_epoch(value)

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty timestamp")
        try:
            return _from_epoch(float(text))
        except ValueError:
            pass
        if text.endswith(" UTC"):
            text = text[:-4] + "+00:00"
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = _parse_iso(text)
    else:
        raise ValueError(f"Unsupported timestamp type: {type(value).__name__}")

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _from_epoch(value: float) -> datetime:
    try:
        return datetime.fromtimestamp(value, tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"Timestamp out of range: {value!r}") from e


def _parse_iso(text: str) -> datetime:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized timestamp format: {text!r}")


def _seconds_between(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds()))


def _parse_hhmm(value: str) -> int:
    """Parse an ``HH:MM`` duration (hours may exceed 24) into seconds."""
    hours, minutes = value.strip().split(":")
    return int(hours) * 3600 + int(minutes) * 60


_NORMALIZERS: dict[Source, NormalizerFn] = {}


def register_normalizer(source: Source) -> Callable[[NormalizerFn], NormalizerFn]:
    """Register the mapping function for one source."""

    def decorator(fn: NormalizerFn) -> NormalizerFn:
        if source in _NORMALIZERS:
            raise ValueError(f"Normalizer already registered for {source.value}")
        _NORMALIZERS[source] = fn
        return fn

    return decorator


def registered_sources() -> list[Source]:
    return list(_NORMALIZERS)


def normalize(raw: RawRecord, source: Source | str) -> Contest:
    """
    Map one raw record into a Contest.

    Args:
        raw: Source-native record
        source: Source enum member or its string value (case-insensitive)

    Raises:
        UnknownSourceError: If the source has no registered normalizer
        NormalizationError: If the record is malformed
    """
    resolved = _resolve_source(source)
    fn = _NORMALIZERS.get(resolved)
    if fn is None:
        raise UnknownSourceError(source)

    try:
        return fn(raw)
    except (KeyError, TypeError, ValueError, AttributeError, OverflowError, OSError) as e:
        if isinstance(e, NormalizationError):
            raise
        detail = e.errors()[0]["msg"] if isinstance(e, ValidationError) else str(e)
        raise NormalizationError(
            resolved, f"{type(e).__name__}: {detail}", raw=raw
        ) from e


def _resolve_source(source: Source | str) -> Source:
    if isinstance(source, Source):
        return source
    if isinstance(source, str):
        try:
            return Source(source.strip().lower())
        except ValueError:
            raise UnknownSourceError(source) from None
    raise UnknownSourceError(source)


# Source mappings


@register_normalizer(Source.CLIST)
def _normalize_clist(raw: RawRecord) -> Contest:
    resource = raw.get("resource")
    if isinstance(resource, dict):
        platform_name = resource.get("name")
    else:
        platform_name = resource
    platform_name = platform_name or raw.get("host")

    return Contest(
        id=f"clist-{raw['id']}",
        platform=display_platform(platform_name),
        name=raw["event"],
        start_time=parse_timestamp(raw["start"]),
        duration=int(raw.get("duration") or 0),
        url=raw["href"],
    )


@register_normalizer(Source.CODEFORCES)
def _normalize_codeforces(raw: RawRecord) -> Contest:
    contest_id = raw["id"]
    return Contest(
        id=f"codeforces-{contest_id}",
        platform="Codeforces",
        name=raw["name"],
        start_time=parse_timestamp(int(raw["startTimeSeconds"])),
        duration=int(raw["durationSeconds"]),
        url=f"https://codeforces.com/contest/{contest_id}",
    )


@register_normalizer(Source.LEETCODE)
def _normalize_leetcode(raw: RawRecord) -> Contest:
    slug = raw["titleSlug"]
    return Contest(
        id=f"leetcode-{slug}",
        platform="LeetCode",
        name=raw["title"],
        start_time=parse_timestamp(int(raw["startTime"])),
        duration=int(raw["duration"]),
        url=f"https://leetcode.com/contest/{slug}",
    )


@register_normalizer(Source.CODECHEF)
def _normalize_codechef(raw: RawRecord) -> Contest:
    code = raw["contest_code"]
    start = parse_timestamp(raw["contest_start_date_iso"])
    end = parse_timestamp(raw["contest_end_date_iso"])
    return Contest(
        id=f"codechef-{code}",
        platform="CodeChef",
        name=raw["contest_name"],
        start_time=start,
        duration=_seconds_between(start, end),
        url=f"https://www.codechef.com/{code}",
    )


@register_normalizer(Source.ATCODER)
def _normalize_atcoder(raw: RawRecord) -> Contest:
    contest_id = raw["contest_id"]
    return Contest(
        id=f"atcoder-{contest_id}",
        platform="AtCoder",
        name=raw["name"],
        start_time=parse_timestamp(raw["start_time"]),
        duration=_parse_hhmm(raw["duration"]),
        url=f"https://atcoder.jp/contests/{contest_id}",
    )


@register_normalizer(Source.HACKERRANK)
def _normalize_hackerrank(raw: RawRecord) -> Contest:
    slug = raw["slug"]
    start = parse_timestamp(raw["epoch_starttime"])
    end = parse_timestamp(raw["epoch_endtime"])
    return Contest(
        id=f"hackerrank-{slug}",
        platform="HackerRank",
        name=raw["name"],
        start_time=start,
        duration=_seconds_between(start, end),
        url=f"https://www.hackerrank.com/contests/{slug}",
    )


@register_normalizer(Source.TOPCODER)
def _normalize_topcoder(raw: RawRecord) -> Contest:
    challenge_id = raw["id"]
    start = parse_timestamp(raw.get("startDate") or raw["registrationStartDate"])
    end = parse_timestamp(raw.get("endDate") or raw["submissionEndDate"])
    return Contest(
        id=f"topcoder-{challenge_id}",
        platform="TopCoder",
        name=raw.get("name") or raw["challengeName"],
        start_time=start,
        duration=_seconds_between(start, end),
        url=f"https://www.topcoder.com/challenges/{challenge_id}",
    )


@register_normalizer(Source.KONTESTS)
def _normalize_kontests(raw: RawRecord) -> Contest:
    site = raw["site"]
    name = raw["name"]
    start_raw = raw["start_time"]
    duration = raw.get("duration")
    return Contest(
        id=_WHITESPACE.sub("-", f"{site}-{name}-{start_raw}"),
        platform=display_platform(site),
        name=name,
        start_time=parse_timestamp(start_raw),
        duration=int(float(duration)) if duration not in (None, "") else 0,
        url=raw["url"],
    )


_missing = [s.value for s in Source if s not in _NORMALIZERS]
if _missing:
    raise RuntimeError(f"No normalizer registered for: {', '.join(_missing)}")
