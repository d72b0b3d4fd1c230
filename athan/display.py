"""Display state snapshots, presentation strings and the widget style."""

import datetime
from dataclasses import dataclass
from typing import Dict, Tuple

from athan.hijri import HijriDate
from athan.schedule import DailySchedule

CLOCK_FORMAT = "%I:%M %p"  # 12-hour clock, e.g. "03:04 PM"


@dataclass(frozen=True)
class DisplayState:
    """
    Everything the renderer needs for one frame.

    A new instance is built on every tick and swapped in whole; nothing
    holds a reference that it mutates.
    """

    schedule: DailySchedule
    next_prayer: str
    next_instant: datetime.datetime
    remaining: datetime.timedelta
    hijri: HijriDate
    now: datetime.datetime


@dataclass(frozen=True)
class Style:
    """Colours, fonts and spacing, handed to every draw call."""

    bg: str = "#42A5F5"
    fg: str = "#444444"
    header_fg: str = "#333333"
    counter_fg: str = "#FFFFFF"
    separator: str = "#8EC9F9"
    font_family: str = "Helvetica"
    text_size: int = 14
    row_size: int = 18
    counter_size: int = 20
    day_size: int = 36
    month_size: int = 24
    year_size: int = 20
    inset: int = 10
    row_pady: int = 6

    def font(self, size: int, weight: str = "normal") -> Tuple[str, int, str]:
        return (self.font_family, size, weight)


def fmt_countdown(seconds) -> str:
    """
    Format a duration as HH:MM:SS.

    Hours are not wrapped at 24, so a jump to tomorrow's Fajr still reads
    correctly. Negative durations render as zero.
    """
    if isinstance(seconds, datetime.timedelta):
        seconds = int(seconds.total_seconds())
    if seconds < 0:
        return "00:00:00"
    h = seconds // 3600
    m = (seconds % 3600) // 60
    s = seconds % 60
    return f"{h:02d}:{m:02d}:{s:02d}"


def format_display(state: DisplayState) -> Dict[str, str]:
    """
    Convert a DisplayState into the strings shown by the widget.

    Keys: one per prayer name (12-hour time), plus next_prayer, countdown,
    hijri_day, hijri_month and hijri_year.
    """
    fields = {name: instant.strftime(CLOCK_FORMAT) for name, instant in state.schedule.items()}
    fields["next_prayer"] = state.next_prayer
    fields["countdown"] = fmt_countdown(state.remaining)
    fields["hijri_day"] = f"{state.hijri.day:02d}"
    fields["hijri_month"] = state.hijri.month_name
    fields["hijri_year"] = f"{state.hijri.year:04d}h"
    return fields
