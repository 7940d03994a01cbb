import logging
import re
from collections import Counter
from typing import Iterable, Optional

from models import GroupingResult, Task, TaskGroup
from similarity import TITLE_PATTERNS, matching_patterns, normalize_title, titles_similar

logger = logging.getLogger(__name__)

GROUP_CAP_MINUTES = 60

_COUNT_SUFFIX = re.compile(r"\((\d+)\)$")


class IncompatibleGroupMembership(ValueError):
    """The task cannot join the group: different cell, duplicate, or over the cap."""


def group_tasks(tasks: list[Task], taken_ids: Iterable[str] = ()) -> GroupingResult:
    """
    Partition tasks into groups of similar same-cell tasks and standalone tasks.

    Completed and already grouped tasks are not candidates and are left out of
    the result. Candidates are visited in input order; a seed only groups when
    it and all of its similar partners fit under GROUP_CAP_MINUTES together,
    otherwise the seed stays standalone and its partners remain available to
    later seeds.

    Group ids are derived from the seed task id and never collide with
    taken_ids (ids of groups the caller already holds).
    """
    candidates = [t for t in tasks if not t.completed and not t.is_grouped]
    consumed: set[str] = set()
    used_ids = set(taken_ids)
    groups: list[TaskGroup] = []
    standalone: list[Task] = []

    for task in candidates:
        if task.id in consumed:
            continue

        similar = [
            other for other in candidates
            if other.id != task.id
            and other.id not in consumed
            and other.category == task.category
            and other.duration == task.duration
            and titles_similar(task.title, other.title)
        ]

        if not similar:
            standalone.append(task)
            consumed.add(task.id)
            continue

        members = [task] + similar
        if len(members) * int(task.duration) > GROUP_CAP_MINUTES:
            logger.debug(
                "Not grouping %s with %d similar tasks: %d min over cap",
                task.id, len(similar), len(members) * int(task.duration),
            )
            standalone.append(task)
            consumed.add(task.id)
            continue

        group = _make_group(task, members, used_ids)
        used_ids.add(group.id)
        groups.append(group)
        consumed.update(m.id for m in members)
        logger.info("Grouped %d tasks into %r", len(members), group.title)

    return GroupingResult(groups=groups, ungrouped_tasks=standalone)


def group_title(titles: list[str]) -> str:
    """Name a group after its dominant pattern or word, with a trailing member count."""
    count = len(titles)
    pattern_counts: Counter[str] = Counter()
    for title in titles:
        pattern_counts.update(matching_patterns(title))
    if pattern_counts:
        best = max(pattern_counts.values())
        for name in TITLE_PATTERNS:
            if pattern_counts.get(name) == best and best * 2 >= count:
                return f"{name} tasks ({count})"

    word_counts: Counter[str] = Counter()
    for title in titles:
        words = dict.fromkeys(w for w in normalize_title(title).split() if len(w) > 3)
        word_counts.update(words)
    if word_counts:
        word, freq = word_counts.most_common(1)[0]
        if freq * 2 >= count:
            return f"{word.capitalize()} tasks ({count})"

    return f"Similar tasks ({count})"


def add_task_to_group(group: TaskGroup, task: Task) -> TaskGroup:
    """Return a copy of group with task appended. Raises IncompatibleGroupMembership."""
    if task.category != group.category or task.duration != group.duration:
        raise IncompatibleGroupMembership(
            f"Task {task.id} is {task.category.value}/{int(task.duration)}m, "
            f"group {group.id} is {group.category.value}/{int(group.duration)}m"
        )
    if task.id in group.task_ids:
        raise IncompatibleGroupMembership(f"Task {task.id} is already in group {group.id}")
    if task.completed:
        raise IncompatibleGroupMembership(f"Task {task.id} is completed")
    if task.group_id and task.group_id != group.id:
        raise IncompatibleGroupMembership(f"Task {task.id} already belongs to group {task.group_id}")

    total = (len(group.task_ids) + 1) * int(group.duration)
    if total > GROUP_CAP_MINUTES:
        raise IncompatibleGroupMembership(
            f"Group {group.id} would last {total} min, cap is {GROUP_CAP_MINUTES}"
        )

    task_ids = group.task_ids + [task.id]
    return group.model_copy(update={
        "task_ids": task_ids,
        "title": _bump_count(group.title, len(task_ids)),
    })


def remove_task_from_group(group: TaskGroup, task_id: str) -> Optional[TaskGroup]:
    """
    Return a copy of group without task_id, or None when the group dissolves.
    On None the caller must ungroup the remaining member.
    """
    task_ids = [tid for tid in group.task_ids if tid != task_id]
    if len(task_ids) <= 1:
        logger.info("Group %s dissolved", group.id)
        return None
    return group.model_copy(update={
        "task_ids": task_ids,
        "title": _bump_count(group.title, len(task_ids)),
    })


def ungroup(task: Task) -> Task:
    return task.model_copy(update={"is_grouped": False, "group_id": None})


def assign_members(tasks: list[Task], groups: list[TaskGroup]) -> list[Task]:
    """Set is_grouped/group_id on every task from group membership."""
    owner = {tid: g.id for g in groups for tid in g.task_ids}
    updated = []
    for task in tasks:
        group_id = owner.get(task.id)
        if group_id is not None:
            updated.append(task.model_copy(update={"is_grouped": True, "group_id": group_id}))
        elif task.is_grouped or task.group_id:
            updated.append(ungroup(task))
        else:
            updated.append(task)
    return updated


def prune_groups(tasks: list[Task], groups: list[TaskGroup]) -> tuple[list[Task], list[TaskGroup]]:
    """
    Drop members that no longer exist or are completed, dissolving groups that
    fall to one member. Returns tasks with membership flags brought in line.
    """
    live = {t.id for t in tasks if not t.completed}
    kept: list[TaskGroup] = []
    for group in groups:
        if group.completed:
            continue
        current: Optional[TaskGroup] = group
        for tid in group.task_ids:
            if tid not in live and current is not None:
                current = remove_task_from_group(current, tid)
        if current is not None:
            kept.append(current)
    return assign_members(tasks, kept), kept


def _make_group(seed: Task, members: list[Task], used_ids: set[str]) -> TaskGroup:
    group_id = f"group-{seed.id}"
    suffix = 2
    while group_id in used_ids:
        group_id = f"group-{seed.id}-{suffix}"
        suffix += 1
    return TaskGroup(
        id=group_id,
        title=group_title([m.title for m in members]),
        category=seed.category,
        duration=seed.duration,
        task_ids=[m.id for m in members],
        scheduled_day=seed.scheduled_day,
        order_index=seed.order_index,
        is_priority=seed.is_priority,
    )


def _bump_count(title: str, n: int) -> str:
    """Update a trailing "(n)" count; titles without one are left alone."""
    if _COUNT_SUFFIX.search(title):
        return _COUNT_SUFFIX.sub(f"({n})", title)
    return title
