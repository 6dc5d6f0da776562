"""Availability checks against a product's committed reservation windows.

All windows are half-open ``[start, end)``: a rental ending at 10:00 and
another starting at 10:00 do not conflict.
"""

import enum
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from renthub.pricing.exceptions import InvalidBookingWindowError, SlotUnavailableError

DEFAULT_PREPARING_HORIZON = timedelta(hours=24)


@dataclass(frozen=True, order=True)
class Window:
    """A reservation interval."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise InvalidBookingWindowError("End date must be after start date")

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_hours(self) -> float:
        return self.duration.total_seconds() / 3600

    def overlaps(self, other: "Window") -> bool:
        return self.start < other.end and self.end > other.start

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


class BookingStatus(str, enum.Enum):
    """Display status of a product right now."""

    AVAILABLE = "available"
    RENTED = "rented"
    PREPARING = "preparing"


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    conflicts: tuple[Window, ...] = field(default_factory=tuple)
    next_available_date: datetime | None = None


@dataclass(frozen=True)
class StatusProbe:
    status: BookingStatus
    message: str
    next_available_date: datetime
    current_window: Window | None = None
    next_window: Window | None = None
    active_windows: tuple[Window, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class FreePeriod:
    start: datetime
    end: datetime | None  # None = open-ended


def _windows(existing: Iterable[Window] | None) -> list[Window]:
    return sorted(existing or ())


def validate_window(start: datetime, end: datetime, now: datetime | None = None) -> Window:
    """Validate a candidate rental window and return it.

    The start may be any time today or later; earlier days are rejected.
    """
    window = Window(start, end)
    if now is not None:
        start_of_today = now.replace(hour=0, minute=0, second=0, microsecond=0)
        if start < start_of_today:
            raise InvalidBookingWindowError("Start date cannot be in the past")
    return window


def check_availability(existing: Iterable[Window] | None, candidate: Window) -> AvailabilityResult:
    """Check ``candidate`` against committed windows."""
    conflicts = tuple(w for w in _windows(existing) if candidate.overlaps(w))
    if not conflicts:
        return AvailabilityResult(available=True)
    return AvailabilityResult(
        available=False,
        conflicts=conflicts,
        next_available_date=min(w.end for w in conflicts),
    )


def ensure_available(existing: Iterable[Window] | None, candidate: Window) -> None:
    """Raise ``SlotUnavailableError`` if ``candidate`` overlaps a committed window."""
    result = check_availability(existing, candidate)
    if not result.available:
        raise SlotUnavailableError(result.next_available_date, conflicts=len(result.conflicts))


def next_available_date(existing: Iterable[Window] | None, now: datetime) -> datetime:
    """First instant at or after ``now`` not covered by a committed window."""
    cursor = now
    for window in _windows(existing):
        if window.end <= cursor:
            continue
        if cursor < window.start:
            break
        cursor = window.end
    return cursor


def free_periods(existing: Iterable[Window] | None, start_from: datetime) -> list[FreePeriod]:
    """Free gaps between committed windows from ``start_from`` onward."""
    periods = []
    cursor = start_from
    for window in _windows(existing):
        if window.end <= cursor:
            continue
        if cursor < window.start:
            periods.append(FreePeriod(start=cursor, end=window.start))
        cursor = max(cursor, window.end)
    periods.append(FreePeriod(start=cursor, end=None))
    return periods


def current_status(
    existing: Iterable[Window] | None,
    now: datetime,
    horizon: timedelta = DEFAULT_PREPARING_HORIZON,
) -> StatusProbe:
    """Compute the display status of a product at ``now``.

    ``rented`` when a window contains ``now``; ``preparing`` when the next
    window starts within ``horizon``; ``available`` otherwise.
    """
    windows = _windows(existing)
    active = tuple(w for w in windows if w.end > now)
    current = next((w for w in active if w.contains(now)), None)
    upcoming = next((w for w in active if w.start > now), None)
    next_free = next_available_date(windows, now)

    if current is not None:
        return StatusProbe(
            status=BookingStatus.RENTED,
            message=f"Currently rented until {current.end.date().isoformat()}",
            next_available_date=next_free,
            current_window=current,
            next_window=upcoming,
            active_windows=active,
        )
    if upcoming is not None and upcoming.start <= now + horizon:
        return StatusProbe(
            status=BookingStatus.PREPARING,
            message=f"Preparing for next rental on {upcoming.start.date().isoformat()}",
            next_available_date=next_free,
            next_window=upcoming,
            active_windows=active,
        )
    return StatusProbe(
        status=BookingStatus.AVAILABLE,
        message="This product is currently available for rent",
        next_available_date=next_free,
        next_window=upcoming,
        active_windows=active,
    )
