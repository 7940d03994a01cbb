import logging
from typing import Optional

from grouping import assign_members, group_tasks, prune_groups
from models import Break, DayPlan, Task, TaskGroup
from ordering import normalize_cells
from timeline import build_timeline

logger = logging.getLogger(__name__)


def plan_day(
    tasks: list[Task],
    breaks: list[Break],
    day_start: str = "09:00",
    groups: Optional[list[TaskGroup]] = None,
) -> DayPlan:
    """
    One recompute pass after an edit: drop stale group members, group today's
    loose tasks, restore cell ordering, then lay out the timeline.
    """
    tasks, groups = prune_groups(tasks, groups or [])

    today = [t for t in tasks if t.scheduled_day == "today"]
    result = group_tasks(today, taken_ids=[g.id for g in groups])
    if result.groups:
        groups = groups + result.groups
        tasks = assign_members(tasks, groups)
        logger.info("Planning pass created %d group(s)", len(result.groups))

    board = normalize_cells(tasks, groups)
    segments = build_timeline(board.tasks, breaks, day_start, groups=board.groups)
    return DayPlan(tasks=board.tasks, groups=board.groups, segments=segments)
