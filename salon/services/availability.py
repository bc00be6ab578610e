from __future__ import annotations

from collections.abc import Collection, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from salon.errors import SlotConflict
from salon.services.timeutil import to_hhmm, to_minutes

Interval = tuple[int, int]

FRIDAY = 4
SATURDAY = 5

DEFAULT_HOURS: Interval = (9 * 60, 18 * 60)
FRIDAY_HOURS: Interval = (9 * 60, 12 * 60)


@dataclass(frozen=True)
class DayLoad:
    """Busy time collected for one date, in raw (unsorted, unmerged) form."""

    is_fully_blocked: bool
    busy_intervals: list[Interval] = field(default_factory=list)


def resolve_working_hours(
    target_date: date, override: Mapping | None = None
) -> Interval | None:
    """Return ``(open, close)`` minutes for *target_date*, or ``None`` when closed.

    A per-date override wins verbatim, even when it is narrower or wider than
    the weekday default.
    """
    if override is not None:
        return to_minutes(override["start_time"]), to_minutes(override["end_time"])

    weekday = target_date.weekday()
    if weekday == SATURDAY:
        return None
    if weekday == FRIDAY:
        return FRIDAY_HOURS
    return DEFAULT_HOURS


def _to_interval(row: Mapping) -> Interval:
    return to_minutes(row["start_time"]), to_minutes(row["end_time"])


def collect_busy_intervals(
    target_date: date,
    blocked_dates: Collection[date],
    blocked_slots: Iterable[Mapping],
    bookings: Iterable[Mapping],
) -> DayLoad:
    """Gather blocked time slots and bookings for *target_date* as minute intervals.

    Rows carry ``start_time`` / ``end_time`` as ``HH:MM`` strings and are
    expected to be pre-filtered to the date and to non-cancelled bookings.
    """
    if target_date in blocked_dates:
        return DayLoad(is_fully_blocked=True)

    busy = [_to_interval(row) for row in blocked_slots]
    busy.extend(_to_interval(row) for row in bookings)
    return DayLoad(is_fully_blocked=False, busy_intervals=busy)


def free_windows(hours: Interval | None, busy: Iterable[Interval]) -> list[Interval]:
    """Subtract *busy* from the working-hours range.

    Returns disjoint, non-empty windows in chronological order.
    """
    if hours is None:
        return []

    open_min, close_min = hours
    windows: list[Interval] = []
    cursor = open_min

    for b_start, b_end in sorted(busy, key=lambda iv: iv[0]):
        if b_start > cursor:
            end = min(b_start, close_min)
            if end > cursor:
                windows.append((cursor, end))
        cursor = max(cursor, b_end)

    if cursor < close_min:
        windows.append((cursor, close_min))
    return windows


def overlaps(a: Interval, b: Interval) -> bool:
    return a[0] < b[1] and a[1] > b[0]


def generate_slots(
    windows: Iterable[Interval],
    duration: int,
    busy: Iterable[Interval] = (),
) -> list[Interval]:
    """Cut each free window into back-to-back slots of *duration* minutes.

    Leftover time shorter than *duration* at the end of a window is dropped.
    Every candidate is also checked against the raw *busy* intervals and
    dropped on overlap.
    """
    if duration <= 0:
        raise ValueError(f"duration must be positive, got {duration}")

    busy = list(busy)
    slots: list[Interval] = []
    for w_start, w_end in windows:
        cursor = w_start
        while cursor + duration <= w_end:
            slot = (cursor, cursor + duration)
            if not any(overlaps(slot, iv) for iv in busy):
                slots.append(slot)
            cursor += duration
    return slots


def apply_same_day_cutoff(
    slots: list[Interval], target_date: date, now: datetime | None
) -> list[Interval]:
    """Drop slots that have already started when *target_date* is today."""
    if now is None or target_date != now.date():
        return slots
    now_minutes = now.hour * 60 + now.minute
    return [slot for slot in slots if slot[0] >= now_minutes]


def format_slots(slots: Iterable[Interval]) -> list[dict]:
    return [{"start_time": to_hhmm(s), "end_time": to_hhmm(e)} for s, e in slots]


def compute_available_slots(
    duration_minutes: int,
    target_date: date,
    bookings: Iterable[Mapping],
    blocked_slots: Iterable[Mapping],
    blocked_dates: Collection[date],
    schedule: Mapping | None = None,
    now: datetime | None = None,
) -> list[dict]:
    """Return the bookable slots for *target_date*.

    Args:
        duration_minutes: length of the selected service.
        target_date: the calendar date to compute slots for.
        bookings: non-cancelled bookings on that date.
        blocked_slots: partial closures on that date.
        blocked_dates: dates that are closed for the whole day.
        schedule: optional working-hours override for that date.
        now: business-local wall clock; enables the same-day cutoff.

    Returns:
        list of ``{"start_time": "HH:MM", "end_time": "HH:MM"}`` dicts.
    """
    load = collect_busy_intervals(target_date, blocked_dates, blocked_slots, bookings)
    if load.is_fully_blocked:
        return []

    hours = resolve_working_hours(target_date, schedule)
    windows = free_windows(hours, load.busy_intervals)
    slots = generate_slots(windows, duration_minutes, load.busy_intervals)
    return format_slots(apply_same_day_cutoff(slots, target_date, now))


def ensure_slot_free(
    target_date: date,
    start_time: str,
    end_time: str,
    bookings: Iterable[Mapping],
    blocked_slots: Iterable[Mapping],
    blocked_dates: Collection[date],
    schedule: Mapping | None = None,
) -> None:
    """Re-check a chosen slot against fresh data right before it is booked.

    Raises:
        SlotConflict: the date is blocked, the slot falls outside working
            hours, or it overlaps a booking or a blocked time slot.
    """
    candidate = (to_minutes(start_time), to_minutes(end_time))
    load = collect_busy_intervals(target_date, blocked_dates, blocked_slots, bookings)
    if load.is_fully_blocked:
        raise SlotConflict(f"{target_date} is closed")

    hours = resolve_working_hours(target_date, schedule)
    if hours is None or candidate[0] < hours[0] or candidate[1] > hours[1]:
        raise SlotConflict(f"{start_time}-{end_time} is outside working hours")

    for interval in load.busy_intervals:
        if overlaps(candidate, interval):
            raise SlotConflict(
                f"{start_time}-{end_time} overlaps {to_hhmm(interval[0])}-{to_hhmm(interval[1])}"
            )


def open_dates(
    start: date,
    days: int,
    blocked_dates: Collection[date],
    schedules: Mapping[date, Mapping] | None = None,
    now: datetime | None = None,
) -> list[date]:
    """Dates in ``[start, start + days)`` that are neither blocked nor closed.

    When *now* falls on one of those dates, that date is dropped once its
    closing time has passed.
    """
    schedules = schedules or {}
    result: list[date] = []
    for offset in range(days):
        day = start + timedelta(days=offset)
        if day in blocked_dates:
            continue
        hours = resolve_working_hours(day, schedules.get(day))
        if hours is None or hours[1] <= hours[0]:
            continue
        if now is not None and day == now.date() and now.hour * 60 + now.minute >= hours[1]:
            continue
        result.append(day)
    return result
