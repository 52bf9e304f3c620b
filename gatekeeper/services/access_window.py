"""
Access window (business hours) evaluation.

Non-admin users may only log in (and keep using a session) Monday
to Friday within `[BUSINESS_HOURS_START, BUSINESS_HOURS_END)` in the
reference timezone (Brasília civil time by default), whatever the
server's own locale is.
"""

from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo

from gatekeeper.core.clock import Clock, utcnow
from gatekeeper.core.config import Settings

# ISO weekdays: Monday=1 … Sunday=7
_BUSINESS_ISO_WEEKDAYS = frozenset({1, 2, 3, 4, 5})


@dataclass(frozen=True)
class AccessWindowStatus:
    within_window: bool
    local_time: datetime
    weekday: int   # 0 = Sunday … 6 = Saturday
    hour: int

    @property
    def formatted_time(self) -> str:
        return self.local_time.strftime("%d/%m/%Y, %H:%M:%S")


class AccessWindowEvaluator:
    def __init__(self, settings: Settings, clock: Clock = utcnow) -> None:
        self._tz = ZoneInfo(settings.ACCESS_WINDOW_TIMEZONE)
        self._start_hour = settings.BUSINESS_HOURS_START
        self._end_hour = settings.BUSINESS_HOURS_END
        self._clock = clock

    def evaluate(self, now: datetime | None = None) -> AccessWindowStatus:
        local = (now or self._clock()).astimezone(self._tz)
        iso_weekday = local.isoweekday()
        within = (
            iso_weekday in _BUSINESS_ISO_WEEKDAYS
            and self._start_hour <= local.hour < self._end_hour
        )
        return AccessWindowStatus(
            within_window=within,
            local_time=local,
            weekday=iso_weekday % 7,
            hour=local.hour,
        )

    def is_within_window(self, now: datetime | None = None) -> bool:
        return self.evaluate(now).within_window
