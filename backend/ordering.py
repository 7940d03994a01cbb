"""
Priority/reorder manager.

A cell is every uncompleted, ungrouped task plus every uncompleted group that
shares one (category, duration) pair. Tasks and groups in a cell share a single
ordering: after any operation here, their order_index values are exactly
1..N. Members of a group are outside the cell and keep their own order_index.

Every public operation takes the caller's collections and returns new ones;
inputs are never mutated.
"""
import logging
from datetime import date
from typing import Literal, Optional, Sequence, Union

from grouping import GROUP_CAP_MINUTES, IncompatibleGroupMembership, remove_task_from_group, ungroup
from models import (
    Board,
    Duration,
    MoveToCellEvent,
    MoveWithinCellEvent,
    ReorderEvent,
    ScheduleAtEvent,
    Task,
    TaskGroup,
    Tier,
    TogglePriorityEvent,
)
from timeline import parse_time_reference

logger = logging.getLogger(__name__)

# Cells whose first item is granted priority when nobody holds it
AUTO_PRIORITY_CELLS = ((Tier.DEEP, Duration.HOUR), (Tier.LIGHT, Duration.HOUR))

CellItem = Union[Task, TaskGroup]
CellKey = tuple[Tier, Duration]


class CellOrderingViolation(RuntimeError):
    """A cell's order_index values are not exactly 1..N."""


class UnknownItem(LookupError):
    """A reorder event named a task or group that is not in the collection."""


# ---------------------------------------------------------------------------
# Pure cell helpers
# ---------------------------------------------------------------------------

def sort_cell(items: Sequence[CellItem]) -> list[CellItem]:
    """Items by current order_index; unset indexes go last, ties keep input order."""
    return sorted(items, key=lambda item: (item.order_index is None, item.order_index or 0))


def renumber_cell(items: Sequence[CellItem]) -> list[CellItem]:
    """Copies of items numbered 1..N in the order given."""
    return [
        item if item.order_index == index else item.model_copy(update={"order_index": index})
        for index, item in enumerate(items, start=1)
    ]


def check_cell(items: Sequence[CellItem]) -> None:
    """Raise CellOrderingViolation unless order_index values are exactly 1..N."""
    indexes = sorted((item.order_index for item in items if item.order_index is not None))
    unset = len(items) - len(indexes)
    if unset:
        raise CellOrderingViolation(f"{unset} item(s) without order_index")
    if indexes != list(range(1, len(items) + 1)):
        raise CellOrderingViolation(f"order_index values {indexes} are not contiguous")


def cell_key(item: CellItem) -> CellKey:
    return item.category, item.duration


class _Collection:
    """Working copy of tasks and groups, keyed by id, preserving input order."""

    def __init__(self, tasks: Sequence[Task], groups: Sequence[TaskGroup]):
        self.tasks: dict[str, Task] = {t.id: t for t in tasks}
        self.groups: dict[str, TaskGroup] = {g.id: g for g in groups}

    def get(self, item_id: str) -> CellItem:
        if item_id in self.tasks:
            return self.tasks[item_id]
        if item_id in self.groups:
            return self.groups[item_id]
        raise UnknownItem(f"No task or group with id {item_id!r}")

    def put(self, item: CellItem) -> None:
        if isinstance(item, TaskGroup):
            self.groups[item.id] = item
        else:
            self.tasks[item.id] = item

    def in_cell(self, item: CellItem) -> bool:
        if item.completed:
            return False
        return isinstance(item, TaskGroup) or not item.is_grouped

    def cell(self, key: CellKey) -> list[CellItem]:
        members: list[CellItem] = [t for t in self.tasks.values() if self.in_cell(t) and cell_key(t) == key]
        members += [g for g in self.groups.values() if self.in_cell(g) and cell_key(g) == key]
        return sort_cell(members)

    def cell_keys(self) -> list[CellKey]:
        keys = dict.fromkeys(cell_key(item) for item in self._all() if self.in_cell(item))
        return list(keys)

    def write_cell(self, ordered: Sequence[CellItem]) -> None:
        for item in renumber_cell(ordered):
            self.put(item)

    def leave_group(self, task: Task) -> Task:
        """Take a grouped task out of its group, dissolving the group if needed."""
        group = self.groups.get(task.group_id) if task.group_id else None
        task = ungroup(task).model_copy(update={"order_index": None})
        self.put(task)
        if group is None:
            return task

        remaining = remove_task_from_group(group, task.id)
        if remaining is not None:
            self.groups[group.id] = remaining
            return task

        # Dissolved: the survivor re-enters its cell where the group stood
        del self.groups[group.id]
        for survivor_id in group.task_ids:
            if survivor_id != task.id and survivor_id in self.tasks:
                survivor = self.tasks[survivor_id]
                self.put(ungroup(survivor).model_copy(update={"order_index": group.order_index}))
        return task

    def board(self) -> Board:
        return Board(tasks=list(self.tasks.values()), groups=list(self.groups.values()))

    def _all(self) -> list[CellItem]:
        return [*self.tasks.values(), *self.groups.values()]


# ---------------------------------------------------------------------------
# Invariant restoration
# ---------------------------------------------------------------------------

def _normalize(collection: _Collection) -> None:
    for key in collection.cell_keys():
        members = collection.cell(key)
        try:
            check_cell(members)
        except CellOrderingViolation as e:
            # Newly added items arrive without an index; only clashes and holes are anomalies
            if all(m.order_index is not None for m in members):
                logger.warning("Repairing cell %s/%d: %s", key[0].value, int(key[1]), e)
            collection.write_cell(members)
    _auto_priority(collection)


def _auto_priority(collection: _Collection) -> None:
    for key in AUTO_PRIORITY_CELLS:
        members = [m for m in collection.cell(key) if isinstance(m, Task)]
        if members and not any(m.is_priority for m in members):
            first = members[0]
            logger.debug("Granting priority to %s, first in %s/%d", first.id, key[0].value, int(key[1]))
            collection.put(first.model_copy(update={"is_priority": True}))


def normalize_cells(tasks: list[Task], groups: list[TaskGroup]) -> Board:
    """Repair any cell whose order_index values are not 1..N, then apply auto-priority."""
    collection = _Collection(tasks, groups)
    _normalize(collection)
    return collection.board()


def ensure_auto_priority(tasks: list[Task], groups: list[TaskGroup]) -> Board:
    """Grant priority to the first task of a 60-minute deep or light cell that has none."""
    collection = _Collection(tasks, groups)
    _auto_priority(collection)
    return collection.board()


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def toggle_priority(tasks: list[Task], groups: list[TaskGroup], item_id: str) -> Board:
    """
    Flip is_priority. Turning it on places the item right after the cell's
    other priority items; turning it off places it after the last
    non-priority item.
    """
    collection = _Collection(tasks, groups)
    item = collection.get(item_id)
    flipped = item.model_copy(update={"is_priority": not item.is_priority})
    collection.put(flipped)

    if collection.in_cell(flipped):
        others = [m for m in collection.cell(cell_key(flipped)) if m.id != flipped.id]
        leading = [m for m in others if m.is_priority]
        trailing = [m for m in others if not m.is_priority]
        if flipped.is_priority:
            collection.write_cell(leading + [flipped] + trailing)
        else:
            collection.write_cell(leading + trailing + [flipped])

    _normalize(collection)
    return collection.board()


def move_to_cell(
    tasks: list[Task],
    groups: list[TaskGroup],
    item_ids: list[str],
    category: Tier,
    duration: Duration,
    position: Literal["top", "end"] = "end",
) -> Board:
    """
    Recategorize items into (category, duration), inserted as a block at the
    top or end of the destination cell. Clears time overrides. A grouped task
    leaves its group first; a group brings its members' category/duration
    along and must still fit the group cap.
    """
    collection = _Collection(tasks, groups)
    destination: CellKey = (category, duration)
    moving: list[CellItem] = []

    for item_id in dict.fromkeys(item_ids):
        item = collection.get(item_id)
        source = cell_key(item)

        if isinstance(item, TaskGroup):
            total = len(item.task_ids) * int(duration)
            if total > GROUP_CAP_MINUTES:
                raise IncompatibleGroupMembership(
                    f"Group {item.id} would last {total} min at {int(duration)}m, cap is {GROUP_CAP_MINUTES}"
                )
            for member_id in item.task_ids:
                if member_id in collection.tasks:
                    member = collection.tasks[member_id]
                    collection.put(member.model_copy(update={"category": category, "duration": duration}))
            item = item.model_copy(update={"category": category, "duration": duration})
        else:
            if item.is_grouped:
                item = collection.leave_group(item)
            item = item.model_copy(update={
                "category": category,
                "duration": duration,
                "time_slot_override": None,
            })
        collection.put(item)
        moving.append(item)

        if source != destination:
            collection.write_cell(collection.cell(source))

    moving_ids = {m.id for m in moving}
    rest = [m for m in collection.cell(destination) if m.id not in moving_ids]
    placed = [collection.get(m.id) for m in moving if collection.in_cell(collection.get(m.id))]
    if position == "top":
        collection.write_cell(placed + rest)
    else:
        collection.write_cell(rest + placed)

    _normalize(collection)
    return collection.board()


def move_within_cell(tasks: list[Task], groups: list[TaskGroup], item_id: str, target_id: str) -> Board:
    """
    Drop an item onto a sibling. Moving down lands after the target, moving up
    lands before it. A target in another cell pulls the item into that cell
    first.
    """
    if item_id == target_id:
        return normalize_cells(tasks, groups)

    collection = _Collection(tasks, groups)
    item = collection.get(item_id)
    target = collection.get(target_id)
    if not collection.in_cell(target):
        raise UnknownItem(f"{target_id!r} is not a drop target: completed or inside a group")

    if cell_key(item) != cell_key(target) or not collection.in_cell(item):
        board = move_to_cell(tasks, groups, [item_id], target.category, target.duration, "end")
        collection = _Collection(board.tasks, board.groups)

    members = collection.cell(cell_key(target))
    ids = [m.id for m in members]
    if item_id not in ids:
        raise UnknownItem(f"{item_id!r} cannot be ordered: it is completed")

    moving_down = ids.index(item_id) < ids.index(target_id)
    moved = members.pop(ids.index(item_id))
    target_index = [m.id for m in members].index(target_id)
    members.insert(target_index + 1 if moving_down else target_index, moved)
    collection.write_cell(members)

    _normalize(collection)
    return collection.board()


def schedule_at(tasks: list[Task], groups: list[TaskGroup], item_id: str, time: str, on: Optional[date] = None) -> Board:
    """
    Pin a task to a clock time, as when it is dropped on a timeline marker.
    A grouped task leaves its group so it can be shown at that time. The
    override is a bare "HH:MM" unless a calendar day is given.
    """
    collection = _Collection(tasks, groups)
    item = collection.get(item_id)
    if isinstance(item, TaskGroup):
        raise UnknownItem(f"{item_id!r} is a group; only tasks can be pinned to a time")
    hour, minute = parse_time_reference(time)
    if item.is_grouped:
        item = collection.leave_group(item)
    override = f"{hour:02d}:{minute:02d}"
    if on is not None:
        override = f"{on.isoformat()}T{override}"
    collection.put(item.model_copy(update={"time_slot_override": override}))
    _normalize(collection)
    return collection.board()


def reorder(tasks: list[Task], groups: list[TaskGroup], event: ReorderEvent) -> Board:
    """Apply one reorder event and return the updated collections."""
    if isinstance(event, TogglePriorityEvent):
        return toggle_priority(tasks, groups, event.item_id)
    if isinstance(event, MoveToCellEvent):
        return move_to_cell(tasks, groups, event.item_ids, event.category, event.duration, event.position)
    if isinstance(event, MoveWithinCellEvent):
        return move_within_cell(tasks, groups, event.item_id, event.target_id)
    if isinstance(event, ScheduleAtEvent):
        return schedule_at(tasks, groups, event.item_id, event.time, on=event.on)
    raise TypeError(f"Unhandled reorder event {type(event).__name__}")
