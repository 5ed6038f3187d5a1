"""Text report of daily spam counts."""

import enum
from datetime import datetime

from .errors import DateParseError

NO_DATA_LINE = "No spam messages to summarize."

# Fixed English abbreviations so output does not depend on the locale
WEEKDAY_ABBREVIATIONS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


class _Section(enum.Enum):
    BEFORE_FIRST_LINE = enum.auto()
    BEFORE_CUTOFF = enum.auto()
    ON_OR_AFTER_CUTOFF = enum.auto()


def weekday_abbreviation(date_str: str) -> str:
    """Weekday abbreviation for a YYYY-MM-DD date string."""
    try:
        day = datetime.strptime(date_str, "%Y-%m-%d").date()
    except (TypeError, ValueError) as e:
        raise DateParseError(str(date_str)) from e
    return WEEKDAY_ABBREVIATIONS[day.weekday()]


def build_report(counts: dict[str, int], cutoff_date: str) -> list[str]:
    """Render one line per day in date order, then the total.

    A single blank line separates days before ``cutoff_date`` from days
    on or after it, only when both groups are present.
    """
    if not counts:
        return [NO_DATA_LINE]

    lines: list[str] = []
    total = 0
    section = _Section.BEFORE_FIRST_LINE

    for date_str in sorted(counts):
        current = (
            _Section.BEFORE_CUTOFF if date_str < cutoff_date else _Section.ON_OR_AFTER_CUTOFF
        )
        if section is _Section.BEFORE_CUTOFF and current is _Section.ON_OR_AFTER_CUTOFF:
            lines.append("")
        section = current

        count = counts[date_str]
        total += count
        lines.append(f"{weekday_abbreviation(date_str)} {date_str} {count}")

    lines.append(f"Total: {total}")
    return lines
