"""Calendar export."""

from contesthub.export.ical import generate_icalendar

__all__ = ["generate_icalendar"]
