"""
Urgency score for a single task.

Higher means more urgent. Due dates dominate, scheduled-in-the-past and
priority add, a start date in the future subtracts.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Optional

from utils import dates

if TYPE_CHECKING:
    from models.task import Task

DUE_COEFFICIENT = 12.0
SCHEDULED_COEFFICIENT = 5.0
STARTED_COEFFICIENT = -3.0

# Ordered the same way priorities rank: High > Medium > Low > None.
PRIORITY_SCORES = {
    "1": 6.0,   # High
    "2": 3.9,   # Medium
    "3": 1.95,  # Low
    "4": 0.0,   # None
}


def due_multiplier(due_date: date, on: date) -> float:
    """0.2 when far in the future, ramping linearly to 1.0 at a week overdue."""
    days_overdue = (on - due_date).days
    if days_overdue >= 7:
        return 1.0
    if days_overdue >= -14:
        return ((days_overdue + 14) * 0.8) / 21 + 0.2
    return 0.2


def calculate(task: "Task", on: Optional[date] = None) -> float:
    on = on or dates.today()
    urgency = 0.0

    if task.due_date is not None:
        urgency += due_multiplier(task.due_date, on) * DUE_COEFFICIENT

    if task.scheduled_date is not None and task.scheduled_date <= on:
        urgency += SCHEDULED_COEFFICIENT

    if task.start_date is not None and task.start_date > on:
        urgency += STARTED_COEFFICIENT

    urgency += PRIORITY_SCORES[task.priority.value]
    return urgency
