from datetime import date
from enum import Enum, IntEnum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


class Tier(str, Enum):
    """Energy tier of a task; also the order tiers are laid out in the day."""
    DEEP = "deep"
    LIGHT = "light"
    ADMIN = "admin"


class Duration(IntEnum):
    QUARTER = 15
    HALF = 30
    HOUR = 60


class Category8(str, Enum):
    """Fine-grained labels returned by the classifier."""
    ANALYTICAL = "Analytical × Strategic"
    CREATIVE = "Creative × Generative"
    LEARNING = "Learning × Absorptive"
    CONSTRUCTIVE = "Constructive × Building"
    SOCIAL = "Social & Relational"
    CRITICAL = "Critical & Structuring"
    CLERICAL = "Clerical & Admin Routines"
    LOGISTICS = "Logistics & Maintenance"


CATEGORY_TO_TIER: dict[Category8, Tier] = {
    Category8.ANALYTICAL: Tier.DEEP,
    Category8.CREATIVE: Tier.DEEP,
    Category8.LEARNING: Tier.DEEP,
    Category8.CONSTRUCTIVE: Tier.DEEP,
    Category8.SOCIAL: Tier.LIGHT,
    Category8.CRITICAL: Tier.LIGHT,
    Category8.CLERICAL: Tier.ADMIN,
    Category8.LOGISTICS: Tier.ADMIN,
}

TIER_ORDER = (Tier.DEEP, Tier.LIGHT, Tier.ADMIN)
DURATION_ORDER = (Duration.HOUR, Duration.HALF, Duration.QUARTER)

ScheduledDay = Literal["today", "tomorrow"]
BreakType = Literal["exercise", "nap", "food", "meeting", "other"]


class Task(BaseModel):
    id: str
    title: str
    category: Tier
    duration: Duration
    completed: bool = False
    time_slot_override: Optional[str] = None  # ISO format: YYYY-MM-DDTHH:MM or HH:MM
    scheduled_day: ScheduledDay = "today"
    order_index: Optional[int] = None  # 1-based rank within its (category, duration) cell
    is_priority: bool = False
    is_grouped: bool = False
    group_id: Optional[str] = None


class TaskGroup(BaseModel):
    id: str
    title: str
    category: Tier
    duration: Duration
    task_ids: list[str]
    completed: bool = False
    scheduled_day: ScheduledDay = "today"
    order_index: Optional[int] = None
    is_priority: bool = False

    @property
    def total_minutes(self) -> int:
        return len(self.task_ids) * int(self.duration)


class Break(BaseModel):
    """User-declared break; always 30 minutes long."""
    id: str
    hour: int = Field(..., ge=0, le=23)
    minute: int = 0
    break_type: BreakType = "other"
    label: str = ""

    @field_validator("minute")
    @classmethod
    def minute_on_quarter_hour(cls, v: int) -> int:
        if v not in (0, 15, 30, 45):
            raise ValueError("minute must be one of 0, 15, 30, 45")
        return v


class TaskSegment(BaseModel):
    kind: Literal["task"] = "task"
    start: int  # minutes from day start
    duration: int
    item_id: str
    item_type: Literal["task", "group"] = "task"
    title: str
    category: Tier
    is_priority: bool = False


class BreakSegment(BaseModel):
    kind: Literal["break"] = "break"
    start: int
    duration: int
    label: str = "Break"
    break_type: Optional[BreakType] = None
    automatic: bool = True  # False for user-added breaks


class GapSegment(BaseModel):
    kind: Literal["gap"] = "gap"
    start: int
    duration: int


Segment = Annotated[Union[TaskSegment, BreakSegment, GapSegment], Field(discriminator="kind")]


# Reorder events: intent-level operations coming from drag/drop or keyboard
class TogglePriorityEvent(BaseModel):
    kind: Literal["toggle_priority"] = "toggle_priority"
    item_id: str


class MoveToCellEvent(BaseModel):
    kind: Literal["move_to_cell"] = "move_to_cell"
    item_ids: list[str] = Field(..., min_length=1)
    category: Tier
    duration: Duration
    position: Literal["top", "end"] = "end"


class MoveWithinCellEvent(BaseModel):
    kind: Literal["move_within_cell"] = "move_within_cell"
    item_id: str
    target_id: str


class ScheduleAtEvent(BaseModel):
    kind: Literal["schedule_at"] = "schedule_at"
    item_id: str
    time: str  # time marker the item was dropped on, e.g. "13:30"
    on: Optional[date] = None


ReorderEvent = Annotated[
    Union[TogglePriorityEvent, MoveToCellEvent, MoveWithinCellEvent, ScheduleAtEvent],
    Field(discriminator="kind"),
]


class Board(BaseModel):
    """Task and group collections as owned by the caller."""
    tasks: list[Task] = Field(default_factory=list)
    groups: list[TaskGroup] = Field(default_factory=list)


class GroupingResult(BaseModel):
    groups: list[TaskGroup] = Field(default_factory=list)
    ungrouped_tasks: list[Task] = Field(default_factory=list)


class DayPlan(BaseModel):
    tasks: list[Task] = Field(default_factory=list)
    groups: list[TaskGroup] = Field(default_factory=list)
    segments: list[Segment] = Field(default_factory=list)


class Classification(BaseModel):
    title: str
    label: Category8
    category: Tier
    duration: Duration


# Request bodies
class ClassifyRequest(BaseModel):
    titles: list[str]


class GroupTasksRequest(BaseModel):
    tasks: list[Task]


class AddToGroupRequest(BaseModel):
    group: TaskGroup
    task: Task


class RemoveFromGroupRequest(BaseModel):
    group: TaskGroup
    task_id: str


class TimelineRequest(BaseModel):
    tasks: list[Task] = Field(default_factory=list)
    groups: list[TaskGroup] = Field(default_factory=list)
    breaks: list[Break] = Field(default_factory=list)
    day_start: Optional[str] = None  # HH:MM, defaults to DAY_START


class ReorderRequest(BaseModel):
    tasks: list[Task] = Field(default_factory=list)
    groups: list[TaskGroup] = Field(default_factory=list)
    event: ReorderEvent


class WorkloadRequest(BaseModel):
    tasks: list[Task]
