from .task import Task, TaskStatus
from .update import Update, MAX_UPDATE_LENGTH
from .time_entry import TimeEntry
from .daily_plan import DailyPlanItem, MAX_PLAN_ITEM_LENGTH

# Export all models for easy importing
__all__ = [
    "Task",
    "TaskStatus",
    "Update",
    "MAX_UPDATE_LENGTH",
    "TimeEntry",
    "DailyPlanItem",
    "MAX_PLAN_ITEM_LENGTH",
]
