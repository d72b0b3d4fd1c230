"""Hijri (Umm al-Qura) date for the header line."""

import datetime
from typing import NamedTuple

from hijridate import Gregorian

from athan.errors import ConfigurationError

MONTH_NAMES = {
    1: "Muḥarram",
    2: "Safar",
    3: "Rabi Al-Awwal",
    4: "Rabi Al-Thani",
    5: "Jumada Al-Ula",
    6: "Jumada Al-Thaniyah",
    7: "Rajab",
    8: "Shaban",
    9: "Ramadan",
    10: "Shawwal",
    11: "Du Al-Qadah",
    12: "Du Al-Hijjah",
}


class HijriDate(NamedTuple):
    day: int
    month: int
    year: int

    @property
    def month_name(self) -> str:
        return MONTH_NAMES[self.month]


def current_hijri_date(gregorian_now: datetime.date) -> HijriDate:
    """
    Convert a Gregorian date (or datetime, local to the configured zone)
    to its Hijri equivalent.

    Raises ConfigurationError when the date is outside the range the
    Umm al-Qura tables cover.
    """
    try:
        h = Gregorian(gregorian_now.year, gregorian_now.month, gregorian_now.day).to_hijri()
    except (OverflowError, ValueError) as exc:
        raise ConfigurationError(f"No Hijri date for {gregorian_now}: {exc}") from exc
    return HijriDate(int(h.day), int(h.month), int(h.year))
