from .task import NO_PARENT, Priority, Status, Task, TaskBlock
from .recurrence import Recurrence
from .layout import LayoutOptions

__all__ = [
    "NO_PARENT",
    "Priority",
    "Status",
    "Task",
    "TaskBlock",
    "Recurrence",
    "LayoutOptions",
]
