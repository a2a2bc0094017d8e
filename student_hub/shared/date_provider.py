"""Clock used by the time-range filters on discussion listings.

Listings read "now" from the active provider so tests can pin it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Optional


class DateProvider(ABC):
    """Source of the current time."""

    @abstractmethod
    def utcnow(self) -> datetime:
        """Current time as an aware UTC datetime."""


class SystemDateProvider(DateProvider):
    def utcnow(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedDateProvider(DateProvider):
    """Provider returning a settable instant, for tests."""

    def __init__(self, now: Optional[datetime] = None):
        self.set_now(now or datetime(2024, 1, 15, tzinfo=timezone.utc))

    def utcnow(self) -> datetime:
        return self._now

    def set_now(self, now: datetime) -> None:
        """Pin the clock; naive values are taken as UTC."""
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        self._now = now

    def advance(self, delta: timedelta) -> None:
        self._now += delta


_date_provider: DateProvider = SystemDateProvider()


def get_date_provider() -> DateProvider:
    return _date_provider


def set_date_provider(provider: DateProvider) -> None:
    global _date_provider
    _date_provider = provider


def reset_date_provider() -> None:
    global _date_provider
    _date_provider = SystemDateProvider()
