"""
Tests for the priority/reorder manager in ordering.py.
"""
from datetime import date

import pytest

from grouping import IncompatibleGroupMembership
from models import (
    Duration,
    MoveToCellEvent,
    MoveWithinCellEvent,
    ScheduleAtEvent,
    TaskGroup,
    Tier,
    TogglePriorityEvent,
)
from ordering import (
    CellOrderingViolation,
    UnknownItem,
    check_cell,
    ensure_auto_priority,
    move_to_cell,
    move_within_cell,
    normalize_cells,
    renumber_cell,
    reorder,
    schedule_at,
    toggle_priority,
)


def by_id(board):
    return {item.id: item for item in [*board.tasks, *board.groups]}


def cell_order(board, category, duration):
    """Ids of a cell's items in order_index order."""
    items = [
        item for item in [*board.tasks, *board.groups]
        if item.category == Tier(category) and item.duration == Duration(duration)
        and not item.completed and not getattr(item, "is_grouped", False)
    ]
    return [item.id for item in sorted(items, key=lambda i: i.order_index)]


def assert_contiguous(board):
    cells = {}
    for item in [*board.tasks, *board.groups]:
        if item.completed or getattr(item, "is_grouped", False):
            continue
        cells.setdefault((item.category, item.duration), []).append(item.order_index)
    for indexes in cells.values():
        assert sorted(indexes) == list(range(1, len(indexes) + 1))


@pytest.fixture
def admin_cell(make_task):
    """Three admin/30 tasks, the first one prioritized."""
    return [
        make_task("a", category="admin", duration=30, order_index=1, is_priority=True),
        make_task("b", category="admin", duration=30, order_index=2),
        make_task("c", category="admin", duration=30, order_index=3),
    ]


def make_group(group_id="g1", task_ids=("m1", "m2"), category="admin", duration=15, **fields):
    return TaskGroup(
        id=group_id,
        title=f"Email tasks ({len(task_ids)})",
        category=Tier(category),
        duration=Duration(duration),
        task_ids=list(task_ids),
        **fields,
    )


class TestCellHelpers:
    """Tests for renumber_cell and check_cell."""

    def test_renumber_is_pure(self, admin_cell):
        """Renumbering returns copies and leaves the input alone."""
        reversed_cell = list(reversed(admin_cell))
        renumbered = renumber_cell(reversed_cell)
        assert [(t.id, t.order_index) for t in renumbered] == [("c", 1), ("b", 2), ("a", 3)]
        assert admin_cell[0].order_index == 1

    def test_check_cell_accepts_contiguous(self, admin_cell):
        """1..N passes."""
        check_cell(admin_cell)

    @pytest.mark.parametrize("indexes", [(1, 1, 2), (1, 3, 4), (1, None, 2)])
    def test_check_cell_rejects(self, make_task, indexes):
        """Duplicates, holes and unset indexes are violations."""
        cell = [make_task(f"t{i}", order_index=idx) for i, idx in enumerate(indexes)]
        with pytest.raises(CellOrderingViolation):
            check_cell(cell)


class TestNormalizeCells:
    """Tests for normalize_cells."""

    def test_repairs_gaps_and_duplicates(self, make_task):
        """Broken cells come back as 1..N, keeping relative order."""
        tasks = [
            make_task("x", category="light", duration=30, order_index=5),
            make_task("y", category="light", duration=30, order_index=2),
            make_task("z", category="light", duration=30, order_index=None),
        ]
        board = normalize_cells(tasks, [])
        assert cell_order(board, "light", 30) == ["y", "x", "z"]
        assert_contiguous(board)

    def test_groups_share_cell_ordering(self, make_task):
        """A group and a loose task in one cell are numbered together."""
        tasks = [
            make_task("loose", category="admin", duration=15, order_index=1),
            make_task("m1", category="admin", duration=15, is_grouped=True, group_id="g1", order_index=7),
            make_task("m2", category="admin", duration=15, is_grouped=True, group_id="g1"),
        ]
        board = normalize_cells(tasks, [make_group(order_index=1)])
        assert cell_order(board, "admin", 15) == ["loose", "g1"]
        # Members keep their own index
        assert by_id(board)["m1"].order_index == 7

    def test_does_not_mutate_input(self, make_task):
        """Callers keep their original objects."""
        tasks = [make_task("x", order_index=4)]
        normalize_cells(tasks, [])
        assert tasks[0].order_index == 4


class TestAutoPriority:
    """Tests for automatic priority in 60-minute deep and light cells."""

    def test_first_deep_hour_task_gets_priority(self, make_task):
        """Nobody prioritized, so the first task is."""
        tasks = [
            make_task("a", category="deep", duration=60, order_index=1),
            make_task("b", category="deep", duration=60, order_index=2),
        ]
        items = by_id(ensure_auto_priority(tasks, []))
        assert items["a"].is_priority is True
        assert items["b"].is_priority is False

    def test_existing_priority_kept(self, make_task):
        """An explicit priority elsewhere in the cell is respected."""
        tasks = [
            make_task("a", category="light", duration=60, order_index=1),
            make_task("b", category="light", duration=60, order_index=2, is_priority=True),
        ]
        items = by_id(ensure_auto_priority(tasks, []))
        assert items["a"].is_priority is False

    def test_other_cells_untouched(self, admin_cell):
        """Admin and shorter cells never get automatic priority."""
        tasks = [t.model_copy(update={"is_priority": False}) for t in admin_cell]
        items = by_id(ensure_auto_priority(tasks, []))
        assert not any(t.is_priority for t in items.values())


class TestTogglePriority:
    """Tests for toggle_priority."""

    def test_sole_priority_off_goes_last(self, admin_cell):
        """Clearing the only priority item moves it to the end and renumbers the rest from 1."""
        board = toggle_priority(admin_cell, [], "a")
        items = by_id(board)

        assert items["a"].is_priority is False
        assert items["a"].order_index == 3
        assert (items["b"].order_index, items["c"].order_index) == (1, 2)

    def test_priority_on_goes_after_other_priorities(self, admin_cell):
        """A newly prioritized item lines up behind existing priority items."""
        board = toggle_priority(admin_cell, [], "c")
        assert cell_order(board, "admin", 30) == ["a", "c", "b"]
        assert by_id(board)["c"].is_priority is True

    def test_toggle_group(self, make_task):
        """Groups can be prioritized like tasks."""
        tasks = [make_task("loose", category="admin", duration=15, order_index=1)]
        board = toggle_priority(tasks, [make_group(order_index=2)], "g1")
        assert cell_order(board, "admin", 15) == ["g1", "loose"]

    def test_unknown_id(self, admin_cell):
        """Ids not in the collection are rejected."""
        with pytest.raises(UnknownItem):
            toggle_priority(admin_cell, [], "nope")


class TestMoveToCell:
    """Tests for move_to_cell."""

    def test_move_to_end(self, admin_cell, make_task):
        """The moved task lands last and both cells stay contiguous."""
        tasks = admin_cell + [make_task("l1", category="light", duration=30, order_index=1)]
        board = move_to_cell(tasks, [], ["b"], Tier.LIGHT, Duration.HALF)

        assert cell_order(board, "admin", 30) == ["a", "c"]
        assert cell_order(board, "light", 30) == ["l1", "b"]
        assert_contiguous(board)

    def test_move_block_to_top(self, admin_cell, make_task):
        """Several items move as a block, in the order given."""
        tasks = admin_cell + [make_task("l1", category="light", duration=30, order_index=1)]
        board = move_to_cell(tasks, [], ["c", "b"], Tier.LIGHT, Duration.HALF, position="top")
        assert cell_order(board, "light", 30) == ["c", "b", "l1"]

    def test_clears_override(self, make_task):
        """Recategorizing returns the task to automatic placement."""
        tasks = [make_task("t", category="admin", duration=15, order_index=1, time_slot_override="10:00")]
        board = move_to_cell(tasks, [], ["t"], Tier.LIGHT, Duration.QUARTER)
        assert by_id(board)["t"].time_slot_override is None

    def test_grouped_task_leaves_group(self, make_task):
        """Moving a member out of a pair dissolves the group."""
        tasks = [
            make_task("m1", category="admin", duration=15, is_grouped=True, group_id="g1"),
            make_task("m2", category="admin", duration=15, is_grouped=True, group_id="g1"),
        ]
        board = move_to_cell(tasks, [make_group(order_index=1)], ["m1"], Tier.LIGHT, Duration.QUARTER)
        items = by_id(board)

        assert board.groups == []
        assert items["m1"].category == Tier.LIGHT and not items["m1"].is_grouped
        assert not items["m2"].is_grouped
        assert items["m2"].order_index == 1

    def test_group_brings_members(self, make_task):
        """A moved group recategorizes its members too."""
        tasks = [
            make_task("m1", category="admin", duration=15, is_grouped=True, group_id="g1"),
            make_task("m2", category="admin", duration=15, is_grouped=True, group_id="g1"),
        ]
        board = move_to_cell(tasks, [make_group(order_index=1)], ["g1"], Tier.LIGHT, Duration.HALF)
        items = by_id(board)

        assert items["g1"].category == Tier.LIGHT
        assert items["m1"].duration == Duration.HALF
        assert items["m2"].category == Tier.LIGHT

    def test_group_over_cap_rejected(self, make_task):
        """A pair cannot become two 60-minute blocks."""
        with pytest.raises(IncompatibleGroupMembership):
            move_to_cell([], [make_group()], ["g1"], Tier.DEEP, Duration.HOUR)

    def test_move_into_deep_hour_grants_priority(self, make_task):
        """Landing in an empty 60-minute deep cell makes the task its priority item."""
        tasks = [make_task("t", category="admin", duration=30, order_index=1)]
        board = move_to_cell(tasks, [], ["t"], Tier.DEEP, Duration.HOUR)
        assert by_id(board)["t"].is_priority is True


class TestMoveWithinCell:
    """Tests for move_within_cell."""

    def test_move_down_lands_after_target(self, admin_cell):
        """Dragging a down onto c puts a after c."""
        board = move_within_cell(admin_cell, [], "a", "c")
        assert cell_order(board, "admin", 30) == ["b", "c", "a"]

    def test_move_up_lands_before_target(self, admin_cell):
        """Dragging c up onto a puts c before a."""
        board = move_within_cell(admin_cell, [], "c", "a")
        assert cell_order(board, "admin", 30) == ["c", "a", "b"]

    def test_drop_on_self(self, admin_cell):
        """Dropping on itself changes nothing."""
        board = move_within_cell(admin_cell, [], "b", "b")
        assert cell_order(board, "admin", 30) == ["a", "b", "c"]

    def test_drop_in_other_cell(self, admin_cell, make_task):
        """A target in another cell pulls the item over first."""
        tasks = admin_cell + [
            make_task("l1", category="light", duration=30, order_index=1),
            make_task("l2", category="light", duration=30, order_index=2),
        ]
        board = move_within_cell(tasks, [], "b", "l1")
        # Pulled in at the end, then moved up before the target
        assert cell_order(board, "light", 30) == ["b", "l1", "l2"]
        assert cell_order(board, "admin", 30) == ["a", "c"]
        assert_contiguous(board)

    def test_completed_target(self, admin_cell, make_task):
        """Completed items are not drop targets."""
        tasks = admin_cell + [make_task("done", category="admin", duration=30, completed=True)]
        with pytest.raises(UnknownItem):
            move_within_cell(tasks, [], "a", "done")


class TestScheduleAt:
    """Tests for schedule_at."""

    def test_sets_override_with_day(self, admin_cell):
        """With a calendar day the override is a full ISO date and time."""
        board = schedule_at(admin_cell, [], "b", "13:30", on=date(2025, 1, 21))
        assert by_id(board)["b"].time_slot_override == "2025-01-21T13:30"

    def test_override_without_day_is_clock_time(self, admin_cell):
        """Without a day the same drop always yields the same bare clock time."""
        first = schedule_at(admin_cell, [], "b", "9:05")
        second = schedule_at(admin_cell, [], "b", "9:05")
        assert by_id(first)["b"].time_slot_override == "09:05"
        assert first == second

    def test_bad_time(self, admin_cell):
        """An unreadable marker is an error."""
        from timeline import MalformedTimeReference
        with pytest.raises(MalformedTimeReference):
            schedule_at(admin_cell, [], "b", "lunch")

    def test_group_cannot_be_pinned(self):
        """Only tasks carry overrides."""
        with pytest.raises(UnknownItem):
            schedule_at([], [make_group()], "g1", "10:00")


class TestReorder:
    """Tests for reorder event dispatch."""

    def test_dispatches_each_event(self, admin_cell):
        """Every event kind reaches its operation and keeps cells contiguous."""
        events = [
            TogglePriorityEvent(item_id="a"),
            MoveWithinCellEvent(item_id="c", target_id="b"),
            MoveToCellEvent(item_ids=["b"], category=Tier.LIGHT, duration=Duration.QUARTER),
            ScheduleAtEvent(item_id="a", time="11:00"),
        ]
        tasks, groups = admin_cell, []
        for event in events:
            board = reorder(tasks, groups, event)
            assert_contiguous(board)
            tasks, groups = board.tasks, board.groups

        items = {t.id: t for t in tasks}
        assert items["b"].category == Tier.LIGHT
        assert items["a"].time_slot_override == "11:00"
