"""iCalendar (RFC 5545) export of contests."""

from collections.abc import Iterable
from datetime import datetime, timezone

from contesthub.ingestion.schemas import Contest

PRODID = "-//ContestHub//Contest Calendar//EN"
UID_DOMAIN = "contesthub.dev"
CRLF = "\r\n"
MAX_LINE_OCTETS = 75


def format_ical_datetime(value: datetime) -> str:
    """UTC ``YYYYMMDDTHHMMSSZ``."""
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def escape_text(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def fold_line(line: str) -> str:
    """Fold a content line at 75 octets, continuation lines start with a space."""
    encoded = line.encode("utf-8")
    if len(encoded) <= MAX_LINE_OCTETS:
        return line

    parts: list[str] = []
    current = ""
    limit = MAX_LINE_OCTETS
    for char in line:
        if len((current + char).encode("utf-8")) > limit:
            parts.append(current)
            current = char
            limit = MAX_LINE_OCTETS - 1  # room for the leading space
        else:
            current += char
    parts.append(current)
    return (CRLF + " ").join(parts)


def _format_duration(seconds: int) -> str:
    hours, rem = divmod(seconds, 3600)
    minutes = rem // 60
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    return f"{minutes}m"


def _vevent(contest: Contest, stamp: str) -> list[str]:
    description = (
        f"Platform: {contest.platform}\n"
        f"Duration: {_format_duration(contest.duration)}\n"
        f"URL: {contest.url}"
    )
    return [
        "BEGIN:VEVENT",
        f"UID:{contest.id}@{UID_DOMAIN}",
        f"DTSTAMP:{stamp}",
        f"DTSTART:{format_ical_datetime(contest.start_time)}",
        f"DTEND:{format_ical_datetime(contest.end_time)}",
        f"SUMMARY:{escape_text(f'{contest.platform}: {contest.name}')}",
        f"DESCRIPTION:{escape_text(description)}",
        f"URL:{contest.url}",
        "STATUS:CONFIRMED",
        "SEQUENCE:0",
        f"CATEGORIES:{escape_text(contest.platform)}",
        "END:VEVENT",
    ]


def generate_icalendar(contests: Iterable[Contest], now: datetime | None = None) -> str:
    """
    Render contests as one VCALENDAR with a VEVENT each.

    DTEND is start plus duration (seconds). Lines are CRLF-terminated and
    folded at 75 octets.
    """
    stamp = format_ical_datetime(now or datetime.now(timezone.utc))
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "X-WR-CALNAME:Coding Contests",
        "X-WR-TIMEZONE:UTC",
        "X-WR-CALDESC:Upcoming coding contests from multiple platforms",
    ]
    for contest in contests:
        lines.extend(_vevent(contest, stamp))
    lines.append("END:VCALENDAR")
    return CRLF.join(fold_line(line) for line in lines) + CRLF
