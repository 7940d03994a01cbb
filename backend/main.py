from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import os
import logging
import uvicorn
from dotenv import load_dotenv

from models import (
    AddToGroupRequest,
    Board,
    Classification,
    ClassifyRequest,
    DayPlan,
    GroupingResult,
    GroupTasksRequest,
    RemoveFromGroupRequest,
    ReorderRequest,
    Segment,
    TaskGroup,
    TimelineRequest,
    WorkloadRequest,
)
from classifier import DEFAULT_MODEL, TaskClassifier
from grouping import IncompatibleGroupMembership, add_task_to_group, group_tasks, remove_task_from_group
from ordering import UnknownItem, reorder
from planner import plan_day
from timeline import MalformedTimeReference, build_timeline, time_slots
from workload import summarize_by_tier, workload_warnings

load_dotenv()

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)

ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
CLASSIFIER_MODEL = os.getenv("CLASSIFIER_MODEL", DEFAULT_MODEL)
DAY_START = os.getenv("DAY_START", "09:00")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

if not ANTHROPIC_API_KEY or ANTHROPIC_API_KEY == "your-api-key-here":
    logger.warning("ANTHROPIC_API_KEY not set; classification will use the fallback category")
    classifier = TaskClassifier(model=CLASSIFIER_MODEL)
else:
    classifier = TaskClassifier(model=CLASSIFIER_MODEL, api_key=ANTHROPIC_API_KEY)


@app.get("/slots")
def get_slots(day_start: str = DAY_START) -> list[str]:
    try:
        return time_slots(day_start)
    except MalformedTimeReference as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/classify")
async def classify(request: ClassifyRequest) -> list[Classification]:
    """Label raw task titles; falls back to a light-tier default on any AI failure."""
    return await classifier.classify(request.titles)


@app.post("/groups")
def create_groups(request: GroupTasksRequest) -> GroupingResult:
    return group_tasks(request.tasks)


@app.post("/groups/add")
def add_to_group(request: AddToGroupRequest) -> TaskGroup:
    try:
        return add_task_to_group(request.group, request.task)
    except IncompatibleGroupMembership as e:
        raise HTTPException(status_code=409, detail=str(e))


@app.post("/groups/remove")
def remove_from_group(request: RemoveFromGroupRequest) -> dict:
    """Returns {"group": null} when the group dissolved."""
    if request.task_id not in request.group.task_ids:
        raise HTTPException(status_code=404, detail="Task not in group")
    group = remove_task_from_group(request.group, request.task_id)
    return {"group": group.model_dump(mode="json") if group else None}


@app.post("/timeline")
def timeline(request: TimelineRequest) -> list[Segment]:
    try:
        return build_timeline(request.tasks, request.breaks, request.day_start or DAY_START, groups=request.groups)
    except MalformedTimeReference as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/reorder")
def apply_reorder(request: ReorderRequest) -> Board:
    try:
        return reorder(request.tasks, request.groups, request.event)
    except UnknownItem as e:
        raise HTTPException(status_code=404, detail=str(e))
    except IncompatibleGroupMembership as e:
        raise HTTPException(status_code=409, detail=str(e))
    except MalformedTimeReference as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/plan")
def plan(request: TimelineRequest) -> DayPlan:
    """Regroup, renumber and lay out the day in one pass."""
    try:
        return plan_day(request.tasks, request.breaks, request.day_start or DAY_START, groups=request.groups)
    except MalformedTimeReference as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.post("/workload")
def workload(request: WorkloadRequest) -> dict:
    summary = summarize_by_tier(request.tasks)
    return {
        "summary": summary.model_dump(mode="json"),
        "warnings": [w.model_dump(mode="json") for w in workload_warnings(summary)],
    }


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
