"""
Timeline builder: turns the day's tasks, groups and breaks into segments that
tile the visible day.

Layout order for auto-placed work is deep -> light -> admin, longest blocks
first inside a tier, then by order_index. Every 60-minute task is split into a
50-minute focus block followed by a 10-minute recovery break.
"""
import logging
import re
from datetime import datetime
from typing import Optional, Union

from grouping import prune_groups
from models import (
    DURATION_ORDER,
    TIER_ORDER,
    Break,
    BreakSegment,
    Duration,
    GapSegment,
    Segment,
    Task,
    TaskGroup,
    TaskSegment,
    Tier,
)

logger = logging.getLogger(__name__)

DAY_LENGTH_HOURS = 18
SLOT_MINUTES = 15
FOCUS_BLOCK_MINUTES = 50
RECOVERY_BREAK_MINUTES = 10
INTER_TIER_BREAK_MINUTES = 60
USER_BREAK_MINUTES = 30

_CLOCK = re.compile(r"(\d{1,2}):(\d{2})(?::\d{2}(?:\.\d+)?)?")

Placeable = Union[Task, TaskGroup]


class MalformedTimeReference(ValueError):
    """A time value that cannot be read as an hour and minute."""


def parse_time_reference(value: Optional[str]) -> tuple[int, int]:
    """
    Read (hour, minute) from an ISO datetime ("2025-01-21T15:00", with or
    without seconds/offset) or a bare clock time ("15:00", "9:30").
    """
    text = (value or "").strip()
    if not text:
        raise MalformedTimeReference("empty time reference")

    if "T" in text or " " in text:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise MalformedTimeReference(f"unparseable datetime {value!r}") from None
        return parsed.hour, parsed.minute

    match = _CLOCK.fullmatch(text)
    if not match:
        raise MalformedTimeReference(f"unparseable time {value!r}")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise MalformedTimeReference(f"time out of range {value!r}")
    return hour, minute


def day_start_minutes(day_start: str) -> int:
    """Minute of day the visible window opens at. Only the hour counts."""
    hour, _minute = parse_time_reference(day_start)
    return hour * 60


def time_slots(day_start: str) -> list[str]:
    """Drop-target labels for every 15-minute slot of the visible day, e.g. "9:15"."""
    first_hour = day_start_minutes(day_start) // 60
    return [
        f"{(first_hour + h) % 24}:{minute:02d}"
        for h in range(DAY_LENGTH_HOURS)
        for minute in range(0, 60, SLOT_MINUTES)
    ]


def build_timeline(
    tasks: list[Task],
    breaks: list[Break],
    day_start: str = "09:00",
    groups: Optional[list[TaskGroup]] = None,
) -> list[Segment]:
    """
    Build the day's segment sequence.

    Only uncompleted "today" work is placed; grouped tasks are placed through
    their group. Tasks with a readable time_slot_override go exactly where
    requested; everything else is laid out from day start, skipping time taken
    by overrides and user breaks. Raises MalformedTimeReference for a bad
    day_start.

    Groups are first pruned of completed or missing members, so a group's
    block only counts live members and a group left with one member is placed
    as that task.
    """
    window_start = day_start_minutes(day_start)
    window_end = window_start + DAY_LENGTH_HOURS * 60

    tasks, groups = prune_groups(tasks, groups or [])
    day_tasks = [t for t in tasks if t.scheduled_day == "today" and not t.completed and not t.is_grouped]
    day_groups = [g for g in groups if g.scheduled_day == "today" and not g.completed]

    placed: list[Segment] = []
    occupied: list[tuple[int, int]] = []
    auto: list[Placeable] = []

    # 1) Manual placements
    for task in day_tasks:
        if task.time_slot_override is None:
            auto.append(task)
            continue
        try:
            hour, minute = parse_time_reference(task.time_slot_override)
        except MalformedTimeReference as e:
            logger.warning("Task %s has a malformed override (%s); auto-placing it", task.id, e)
            auto.append(task)
            continue
        at = _window_minute(hour, minute, window_start)
        placed.extend(_place(task, at))
        occupied.append((at, at + int(task.duration)))
    auto.extend(day_groups)

    # 2) User breaks sit at fixed times, trimmed around pinned tasks
    pinned = list(occupied)
    user_breaks = []
    for b in breaks:
        at = _window_minute(b.hour, b.minute, window_start)
        for start, end in _subtract((at, at + USER_BREAK_MINUTES), pinned):
            user_breaks.append(BreakSegment(
                start=start,
                duration=end - start,
                label=b.label or "Break",
                break_type=b.break_type,
                automatic=False,
            ))
            occupied.append((start, end))

    # 3) Auto placement: deep, recharge break, light, admin
    cursor = window_start
    for tier in TIER_ORDER:
        queue = _tier_queue(auto, tier)
        for item in queue:
            length = _block_minutes(item)
            cursor = _next_free(cursor, length, occupied)
            placed.extend(_place(item, cursor))
            cursor += length
        if tier == Tier.DEEP and queue:
            cursor = _next_free(cursor, INTER_TIER_BREAK_MINUTES, occupied)
            placed.append(BreakSegment(start=cursor, duration=INTER_TIER_BREAK_MINUTES, label="Recharge break"))
            cursor += INTER_TIER_BREAK_MINUTES

    placed.extend(user_breaks)
    placed.sort(key=lambda seg: seg.start)
    return _tile(placed, window_start, window_end)


def _tile(items: list[Segment], window_start: int, window_end: int) -> list[Segment]:
    """Walk items in start order, filling holes with gaps and clipping overlaps."""
    segments: list[Segment] = []
    cursor = window_start
    for item in items:
        start = max(item.start, cursor)
        end = min(item.start + item.duration, window_end)
        if end <= start:
            logger.debug("Dropping %s at minute %d: hidden by earlier content or outside the day", item.kind, item.start)
            continue
        if start > cursor:
            segments.append(GapSegment(start=cursor - window_start, duration=start - cursor))
        segments.append(item.model_copy(update={"start": start - window_start, "duration": end - start}))
        cursor = end

    if cursor < window_end:
        segments.append(GapSegment(start=cursor - window_start, duration=window_end - cursor))
    return segments


def _window_minute(hour: int, minute: int, window_start: int) -> int:
    """Absolute minute for a clock time; times before the window start roll into the next day if visible."""
    at = hour * 60 + minute
    if at < window_start and at + 24 * 60 < window_start + DAY_LENGTH_HOURS * 60:
        at += 24 * 60
    return at


def _subtract(interval: tuple[int, int], taken: list[tuple[int, int]]) -> list[tuple[int, int]]:
    """Parts of interval not covered by any taken interval, in order."""
    pieces = [interval]
    for t_start, t_end in taken:
        remaining = []
        for start, end in pieces:
            if t_end <= start or end <= t_start:
                remaining.append((start, end))
                continue
            if start < t_start:
                remaining.append((start, t_start))
            if t_end < end:
                remaining.append((t_end, end))
        pieces = remaining
    return sorted(pieces)


def _next_free(cursor: int, length: int, occupied: list[tuple[int, int]]) -> int:
    """First minute >= cursor where a block of length fits between occupied intervals."""
    moved = True
    while moved:
        moved = False
        for start, end in occupied:
            if cursor < end and start < cursor + length:
                cursor = end
                moved = True
    return cursor


def _tier_queue(items: list[Placeable], tier: Tier) -> list[Placeable]:
    """Items of one tier: 60, 30, 15 minute cells, each by order_index (unset last)."""
    in_tier = [item for item in items if item.category == tier]
    return sorted(
        in_tier,
        key=lambda item: (
            DURATION_ORDER.index(item.duration),
            item.order_index is None,
            item.order_index or 0,
        ),
    )


def _block_minutes(item: Placeable) -> int:
    if isinstance(item, TaskGroup):
        return item.total_minutes
    return int(item.duration)


def _place(item: Placeable, at: int) -> list[Segment]:
    """Segments for one item starting at absolute minute `at`."""
    if isinstance(item, TaskGroup):
        return [TaskSegment(
            start=at,
            duration=item.total_minutes,
            item_id=item.id,
            item_type="group",
            title=item.title,
            category=item.category,
            is_priority=item.is_priority,
        )]

    if item.duration == Duration.HOUR:
        return [
            TaskSegment(
                start=at,
                duration=FOCUS_BLOCK_MINUTES,
                item_id=item.id,
                title=item.title,
                category=item.category,
                is_priority=item.is_priority,
            ),
            BreakSegment(start=at + FOCUS_BLOCK_MINUTES, duration=RECOVERY_BREAK_MINUTES),
        ]

    return [TaskSegment(
        start=at,
        duration=int(item.duration),
        item_id=item.id,
        title=item.title,
        category=item.category,
        is_priority=item.is_priority,
    )]
