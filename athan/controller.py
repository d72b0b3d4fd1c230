"""
Refresh controller: merges the one-second ticker with redraw requests.

Both sources feed a single FIFO that is drained one event at a time on the
host's main loop. A tick recomputes the DisplayState and swaps it in; a
render request draws whatever state was last published and never touches
the schedule itself.
"""

import datetime
import enum
import logging
from collections import deque
from typing import Callable, Dict, Optional

from athan.config import GeoConfig
from athan.display import DisplayState, Style
from athan.errors import ConfigurationError
from athan.hijri import HijriDate, current_hijri_date
from athan.schedule import (
    DailySchedule,
    ScheduleProvider,
    compute_schedule,
    remaining_until,
    resolve_next_prayer,
)

logger = logging.getLogger("Athan.controller")

REFRESH_MS = 1000


class State(enum.Enum):
    IDLE = "idle"
    COMPUTING = "computing"
    RENDERING = "rendering"
    STOPPED = "stopped"


class Event(enum.Enum):
    TICK = "tick"
    RENDER = "render"
    DESTROY = "destroy"


class RefreshController:
    """
    Owns the DisplayState and the periodic timer.

    scheduler must provide the tkinter timer contract: after(ms, func)
    returning an id, and after_cancel(id). renderer must provide
    draw(state, style).
    """

    def __init__(
        self,
        geo: GeoConfig,
        scheduler,
        renderer,
        style: Style = Style(),
        provider: ScheduleProvider = compute_schedule,
        hijri: Callable[[datetime.date], HijriDate] = current_hijri_date,
        clock: Optional[Callable[[], datetime.datetime]] = None,
        interval_ms: int = REFRESH_MS,
    ):
        self.geo = geo
        self.scheduler = scheduler
        self.renderer = renderer
        self.style = style
        self.provider = provider
        self.hijri = hijri
        self.clock = clock or (lambda: datetime.datetime.now(geo.tz))
        self.interval_ms = interval_ms

        self.state = State.IDLE
        self.display_state: Optional[DisplayState] = None
        self._schedules: Dict[datetime.date, DailySchedule] = {}
        self._hijri_for: Optional[tuple] = None  # (gregorian date, HijriDate)
        self._events: deque = deque()
        self._draining = False
        self._timer_id = None

    # ──────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────────────────
    def start(self) -> None:
        """Arm the ticker and run the first tick straight away."""
        if self.state is State.STOPPED:
            raise RuntimeError("controller has been stopped")
        self._arm_timer()
        self.post(Event.TICK)

    def stop(self) -> None:
        """Cancel the pending timer and drop queued events. Terminal."""
        if self._timer_id is not None:
            self.scheduler.after_cancel(self._timer_id)
            self._timer_id = None
        self._events.clear()
        if self.state is not State.STOPPED:
            logger.info("Refresh controller stopped")
        self.state = State.STOPPED

    @property
    def running(self) -> bool:
        return self.state is not State.STOPPED

    def _arm_timer(self) -> None:
        self._timer_id = self.scheduler.after(self.interval_ms, self._on_timer)

    def _on_timer(self) -> None:
        self._timer_id = None
        if not self.running:
            return
        self._arm_timer()
        self.post(Event.TICK)

    # ──────────────────────────────────────────────────────────────────────
    # Event stream
    # ──────────────────────────────────────────────────────────────────────
    def post(self, event: Event) -> None:
        """
        Queue an event and drain the queue unless a drain is already in
        progress further up the stack, in which case the event waits its
        turn.
        """
        if not self.running:
            return
        self._events.append(event)
        if not self._draining:
            self._drain()

    def request_render(self, *_args) -> None:
        self.post(Event.RENDER)

    def destroy(self, *_args) -> None:
        self.post(Event.DESTROY)

    def _drain(self) -> None:
        self._draining = True
        try:
            while self._events:
                self._dispatch(self._events.popleft())
        except Exception:
            self.stop()
            raise
        finally:
            self._draining = False

    def _dispatch(self, event: Event) -> None:
        if event is Event.TICK:
            self._handle_tick()
        elif event is Event.RENDER:
            self._handle_render()
        elif event is Event.DESTROY:
            self.stop()

    def _handle_tick(self) -> None:
        self.state = State.COMPUTING
        new_state = self.compute(self.clock())
        # Single reference swap; readers see either the old or the new state.
        self.display_state = new_state
        self.state = State.IDLE
        self._events.append(Event.RENDER)

    def _handle_render(self) -> None:
        if self.display_state is None:
            return
        self.state = State.RENDERING
        self.renderer.draw(self.display_state, self.style)
        self.state = State.IDLE

    # ──────────────────────────────────────────────────────────────────────
    # Recomputation
    # ──────────────────────────────────────────────────────────────────────
    def compute(self, now: datetime.datetime) -> DisplayState:
        """Build a fresh DisplayState for now. Raises ConfigurationError."""
        schedule = self.today_schedule(now)
        upcoming = resolve_next_prayer(schedule, now, self.geo, self._cached_schedule)
        remaining = remaining_until(upcoming.instant, now)
        logger.debug("Next prayer %s in %s", upcoming.name, remaining)
        return DisplayState(
            schedule=schedule,
            next_prayer=upcoming.name,
            next_instant=upcoming.instant,
            remaining=remaining,
            hijri=self.hijri_date(now),
            now=now,
        )

    def today_schedule(self, now: datetime.datetime) -> DailySchedule:
        """Return the cached schedule for now's date, computing it on day change."""
        today = now.astimezone(self.geo.tz).date()
        for date in [d for d in self._schedules if d < today]:
            del self._schedules[date]
        return self._cached_schedule(today, self.geo)

    def _cached_schedule(self, date: datetime.date, geo: GeoConfig) -> DailySchedule:
        # holds at most today and tomorrow; older days are evicted above
        schedule = self._schedules.get(date)
        if schedule is None:
            schedule = self.provider(date, geo)
            if not isinstance(schedule, DailySchedule):
                raise ConfigurationError(f"Schedule provider returned {schedule!r} for {date}")
            if self._schedules:
                logger.info("All prayers passed, computed prayer schedule for %s", date)
            else:
                logger.info("Computed prayer schedule for %s", date)
            self._schedules[date] = schedule
        return schedule

    def hijri_date(self, now: datetime.datetime) -> HijriDate:
        today = now.astimezone(self.geo.tz).date()
        if self._hijri_for is None or self._hijri_for[0] != today:
            self._hijri_for = (today, self.hijri(today))
        return self._hijri_for[1]
