"""
Market calendar: trading days and slot keys in the exchange timezone.
"""

import logging
from datetime import date, datetime
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel

from unicorn_trader.config.config_schema import DEFAULT_HOLIDAYS, ScheduleConfig, SessionWindow

logger = logging.getLogger(__name__)


class RunSlot(BaseModel):
    """One scheduled trading window: calendar date x session label"""
    run_date: date
    session: str

    @property
    def key(self) -> str:
        return f"{self.run_date.isoformat()}:{self.session}"


class MarketCalendar:
    """
    Decides whether the market is open and which slot a moment belongs to.

    Naive datetimes are taken to already be in the exchange timezone.
    """

    def __init__(
        self,
        timezone: str = "America/New_York",
        sessions: Optional[List[SessionWindow]] = None,
        holidays: Optional[Dict[str, str]] = None
    ):
        self.tz = ZoneInfo(timezone)
        self.sessions = sorted(
            sessions or ScheduleConfig().sessions, key=lambda s: s.start_time
        )
        self.holidays = dict(DEFAULT_HOLIDAYS if holidays is None else holidays)

    @classmethod
    def from_config(cls, config: ScheduleConfig) -> 'MarketCalendar':
        return cls(timezone=config.timezone, sessions=config.sessions, holidays=config.holidays)

    def localize(self, now: Optional[datetime] = None) -> datetime:
        if now is None:
            return datetime.now(self.tz)
        if now.tzinfo is None:
            return now.replace(tzinfo=self.tz)
        return now.astimezone(self.tz)

    def closed_reason(self, now: Optional[datetime] = None) -> Optional[str]:
        """Why the market is closed at `now`, or None when it is a trading day"""
        local = self.localize(now)
        if local.weekday() >= 5:
            return local.strftime("%A")
        return self.holidays.get(local.date().isoformat())

    def is_trading_day(self, now: Optional[datetime] = None) -> bool:
        return self.closed_reason(now) is None

    def session_for(self, now: Optional[datetime] = None) -> str:
        """Label of the last session window starting at or before the local time"""
        local_time = self.localize(now).time()
        label = self.sessions[0].label
        for window in self.sessions:
            if window.start_time <= local_time:
                label = window.label
        return label

    def slot_for(self, now: Optional[datetime] = None) -> RunSlot:
        local = self.localize(now)
        return RunSlot(run_date=local.date(), session=self.session_for(local))
