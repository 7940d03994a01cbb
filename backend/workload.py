from typing import Literal

from pydantic import BaseModel, Field

from models import TIER_ORDER, Duration, Task, Tier

# Hours per day
PRODUCTIVITY_LIMITS = {
    "deep": {"trained_max": 4, "ceiling": 5},
    "light": {"ceiling": 6},
    "total": {"ceiling": 7},
}


class TierSummary(BaseModel):
    counts: dict[int, int] = Field(default_factory=lambda: {int(d): 0 for d in Duration})
    total_hours: float = 0.0


class WorkloadSummary(BaseModel):
    tiers: dict[Tier, TierSummary] = Field(default_factory=lambda: {t: TierSummary() for t in TIER_ORDER})
    grand_total_hours: float = 0.0


class WorkloadWarning(BaseModel):
    type: Literal["deep", "light", "total"]
    message: str
    severity: Literal["warning", "error"]


def summarize_by_tier(tasks: list[Task]) -> WorkloadSummary:
    """Roll uncompleted tasks up into per-tier counts and hours."""
    summary = WorkloadSummary()
    for task in tasks:
        if task.completed:
            continue
        tier = summary.tiers[task.category]
        tier.counts[int(task.duration)] += 1
        tier.total_hours += int(task.duration) / 60
        summary.grand_total_hours += int(task.duration) / 60
    return summary


def workload_warnings(summary: WorkloadSummary) -> list[WorkloadWarning]:
    warnings: list[WorkloadWarning] = []

    deep = summary.tiers[Tier.DEEP].total_hours
    if deep > PRODUCTIVITY_LIMITS["deep"]["ceiling"]:
        warnings.append(WorkloadWarning(
            type="deep",
            message=f"Deep work: {deep:.1f}h exceeds ceiling ({PRODUCTIVITY_LIMITS['deep']['ceiling']}h)",
            severity="error",
        ))
    elif deep > PRODUCTIVITY_LIMITS["deep"]["trained_max"]:
        warnings.append(WorkloadWarning(
            type="deep",
            message=f"Deep work: {deep:.1f}h exceeds trained limit ({PRODUCTIVITY_LIMITS['deep']['trained_max']}h)",
            severity="warning",
        ))

    light = summary.tiers[Tier.LIGHT].total_hours
    if light > PRODUCTIVITY_LIMITS["light"]["ceiling"]:
        warnings.append(WorkloadWarning(
            type="light",
            message=f"Light work: {light:.1f}h exceeds ceiling ({PRODUCTIVITY_LIMITS['light']['ceiling']}h)",
            severity="error",
        ))

    total = summary.grand_total_hours
    if total > PRODUCTIVITY_LIMITS["total"]["ceiling"]:
        warnings.append(WorkloadWarning(
            type="total",
            message=f"Total work: {total:.1f}h exceeds daily ceiling ({PRODUCTIVITY_LIMITS['total']['ceiling']}h)",
            severity="error",
        ))

    return warnings
