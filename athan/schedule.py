"""Daily prayer schedule computation and next-prayer selection."""

import datetime
from dataclasses import dataclass
from typing import Callable, Iterator, NamedTuple, Optional, Tuple
from zoneinfo import ZoneInfo

from adhanpy.PrayerTimes import PrayerTimes
from adhanpy.calculation.CalculationParameters import CalculationParameters

from athan.config import GeoConfig
from athan.errors import ConfigurationError

PRAYER_NAMES = ["Fajr", "Sunrise", "Dhuhr", "Asr", "Maghrib", "Isha"]


@dataclass(frozen=True)
class DailySchedule:
    """The six prayer instants of one calendar day, in the configured zone."""

    date: datetime.date
    fajr: datetime.datetime
    sunrise: datetime.datetime
    dhuhr: datetime.datetime
    asr: datetime.datetime
    maghrib: datetime.datetime
    isha: datetime.datetime

    def __post_init__(self):
        instants = [instant for _, instant in self.items()]
        for earlier, later in zip(instants, instants[1:]):
            if not earlier < later:
                raise ConfigurationError(
                    f"Prayer instants for {self.date} are not strictly increasing"
                )

    def items(self) -> Iterator[Tuple[str, datetime.datetime]]:
        for name in PRAYER_NAMES:
            yield name, getattr(self, name.lower())

    def instant(self, name: str) -> datetime.datetime:
        if name not in PRAYER_NAMES:
            raise KeyError(name)
        return getattr(self, name.lower())


class NextPrayer(NamedTuple):
    name: str
    instant: datetime.datetime
    schedule_date: datetime.date


ScheduleProvider = Callable[[datetime.date, GeoConfig], DailySchedule]


def compute_schedule(date: datetime.date, geo: GeoConfig) -> DailySchedule:
    """
    Compute the prayer schedule for date at the configured location.

    Any failure inside the astronomy library is reported as a
    ConfigurationError: the inputs are static, so it will not go away on
    its own.
    """
    try:
        params = CalculationParameters(method=geo.calculation_method)
        params.madhab = geo.madhab
        pt = PrayerTimes(
            geo.coordinates,
            datetime.datetime(date.year, date.month, date.day),
            calculation_parameters=params,
            time_zone=ZoneInfo(geo.timezone),
        )
        instants = {
            name.lower(): getattr(pt, name.lower()).astimezone(geo.tz)
            for name in PRAYER_NAMES
        }
    except ConfigurationError:
        raise
    except Exception as exc:
        raise ConfigurationError(f"Could not compute prayer times for {date}: {exc}") from exc
    return DailySchedule(date=date, **instants)


def select_next_prayer(schedule: DailySchedule, now: datetime.datetime) -> Optional[str]:
    """
    Return the name of the first prayer whose instant is at or after now.

    Returns None once Isha has passed; the caller then looks at tomorrow.
    """
    for name, instant in schedule.items():
        if instant >= now:
            return name
    return None


def resolve_next_prayer(
    schedule: DailySchedule,
    now: datetime.datetime,
    geo: GeoConfig,
    provider: ScheduleProvider = compute_schedule,
) -> NextPrayer:
    """
    Resolve the next prayer, rolling over to tomorrow's Fajr after Isha.

    Only one day of look-ahead is attempted. If tomorrow's Fajr is not in
    the future either, the configuration is producing nonsense and a
    ConfigurationError is raised.
    """
    name = select_next_prayer(schedule, now)
    if name is not None:
        return NextPrayer(name, schedule.instant(name), schedule.date)

    tomorrow = provider(schedule.date + datetime.timedelta(days=1), geo)
    if tomorrow.fajr < now:
        raise ConfigurationError(
            f"No upcoming Fajr on {tomorrow.date} after {now.isoformat()}"
        )
    return NextPrayer("Fajr", tomorrow.fajr, tomorrow.date)


def remaining_until(target: datetime.datetime, now: datetime.datetime) -> datetime.timedelta:
    """Seconds from now until target, rounded to the second and clamped at zero."""
    seconds = round((target - now).total_seconds())
    return datetime.timedelta(seconds=max(seconds, 0))
