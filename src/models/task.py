"""
Core task data models.

A Task is one checklist line plus the position metadata the indexer knows
about it. Tasks are immutable: the indexer builds new values instead of
editing old ones (``dataclasses.replace``). A TaskBlock groups one top-level
task with the tasks nested beneath it.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Optional, Tuple

from models import urgency as _urgency
from models.recurrence import Recurrence

# Parent value of a list item that sits at the root of its list.
NO_PARENT = -1


class Status(str, Enum):
    TODO = "Todo"
    DONE = "Done"
    BLOCKED = "Blocked"
    IN_PROGRESS = "InProgress"


class Priority(str, Enum):
    """
    Task priority.

    Values sort lexicographically in rank order, so ``a.value < b.value``
    means ``a`` outranks ``b`` (High > Medium > Low > None).
    """

    HIGH = "1"
    MEDIUM = "2"
    LOW = "3"
    NONE = "4"

    def outranks(self, other: Priority) -> bool:
        return self.value < other.value


@dataclass(frozen=True)
class Task:
    """A single checklist line from a vault document."""

    description: str
    path: str = ""
    status: Status = Status.TODO
    priority: Priority = Priority.NONE
    indentation: str = ""
    original_status_character: str = " "
    start_date: Optional[date] = None
    scheduled_date: Optional[date] = None
    due_date: Optional[date] = None
    done_date: Optional[date] = None
    recurrence: Optional[Recurrence] = None
    block_link: str = ""
    section_start: int = 0
    section_index: int = 0
    preceding_header: Optional[str] = None
    id: int = 0
    parent: int = NO_PARENT

    @classmethod
    def from_line(cls, line: str, **position) -> Optional[Task]:
        """Parse a markdown line; see parsers.task_parser.parse_task_line."""
        from parsers.task_parser import parse_task_line

        return parse_task_line(line, **position)

    @property
    def urgency(self) -> float:
        return _urgency.calculate(self)

    @property
    def is_done(self) -> bool:
        return self.status == Status.DONE

    @property
    def has_parent(self) -> bool:
        return self.parent >= 0

    def with_path(self, path: str) -> Task:
        return replace(self, path=path)

    def to_string(self) -> str:
        """Canonical markdown body: description followed by signifiers."""
        from parsers.task_parser import render_task_body

        return render_task_body(self)

    def to_file_line_string(self) -> str:
        return f"{self.indentation}- [{self.original_status_character}] {self.to_string()}"


@dataclass(frozen=True)
class TaskBlock:
    """
    A top-level task and its nested children, in source order.

    Either empty or every task shares the same path. Nesting is a single
    level: grandchildren are folded into the same block.
    """

    tasks: Tuple[Task, ...] = field(default_factory=tuple)

    @property
    def top(self) -> Optional[Task]:
        return self.tasks[0] if self.tasks else None

    @property
    def path(self) -> Optional[str]:
        return self.tasks[0].path if self.tasks else None

    @property
    def is_fully_done(self) -> bool:
        return all(task.is_done for task in self.tasks)

    def __len__(self) -> int:
        return len(self.tasks)

    def __iter__(self):
        return iter(self.tasks)

    def with_path(self, path: str) -> TaskBlock:
        """Same block, every task moved to ``path``."""
        return TaskBlock(tuple(task.with_path(path) for task in self.tasks))
