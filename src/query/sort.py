"""
Ordering of TaskBlocks.

Sort.by builds one composite comparator: the query's own criteria first,
then a fixed fallback chain (urgency, status, due date, priority, path).
Each comparator reduces a block to a single value before comparing:

    urgency      highest urgency of any task
    priority     highest-ranked priority of any task
    start/scheduled/due
                 earliest date present on any task
    done         latest done date present on any task
    path         the top-level task's path
    description  the top-level task's description, as rendered
    status       fully-done blocks last

A present date always sorts before a missing one, in either direction.
"""

import re
from dataclasses import dataclass
from datetime import date
from functools import cmp_to_key
from typing import Callable, Iterable, List, Optional, Sequence

from models.task import Task, TaskBlock
from settings import get_settings

Comparator = Callable[[TaskBlock, TaskBlock], int]

SORTING_PROPERTIES = (
    "urgency",
    "status",
    "priority",
    "start",
    "scheduled",
    "due",
    "done",
    "path",
    "description",
)


@dataclass(frozen=True)
class Sorting:
    property: str
    reverse: bool = False


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def compare_by_date(a: Optional[date], b: Optional[date], reverse: bool = False) -> int:
    if a is not None and b is None:
        return -1
    if a is None and b is not None:
        return 1
    if a is None or b is None or a == b:
        return 0
    result = -1 if a < b else 1
    return -result if reverse else result


def _earliest(dates: Iterable[Optional[date]]) -> Optional[date]:
    present = [d for d in dates if d is not None]
    return min(present) if present else None


def _latest(dates: Iterable[Optional[date]]) -> Optional[date]:
    present = [d for d in dates if d is not None]
    return max(present) if present else None


# ---------------------------------------------------------------------------
# Description normalisation
# ---------------------------------------------------------------------------

_LINK_RE = re.compile(r"^\[\[?([^\]]*)\]\]?(?:\([^)]*\))?")
_ITALIC_BOLD_RE = re.compile(r"^\*\*?([^*]*)\*\*?")
_HIGHLIGHT_RE = re.compile(r"^==?([^=]*)==")


def clean_description(description: str) -> str:
    """
    Approximate how a description renders, for sorting.

    Drops the global filter, then unwraps a leading link (using the alias
    of ``[[target|alias]]``), bold/italic span and highlight span.
    """
    global_filter = get_settings().global_filter
    if global_filter:
        description = description.replace(global_filter, "", 1)
    description = description.strip()

    m = _LINK_RE.match(description)
    if m:
        inner = m.group(1)
        description = inner[inner.find("|") + 1:] + description[m.end():]

    m = _ITALIC_BOLD_RE.match(description)
    if m:
        description = m.group(1) + description[m.end():]

    m = _HIGHLIGHT_RE.match(description)
    if m:
        description = m.group(1) + description[m.end():]

    return description


# ---------------------------------------------------------------------------
# Sort
# ---------------------------------------------------------------------------

class Sort:
    @staticmethod
    def by(query, task_blocks: Sequence[TaskBlock]) -> List[TaskBlock]:
        """
        Return ``task_blocks`` sorted by ``query.sorting`` plus the fallback chain.

        ``query`` is anything with a ``sorting`` sequence of Sorting. The
        input is not modified; the sort is stable.
        """
        user_comparators = [
            Sort.comparator_for(sorting.property, sorting.reverse)
            for sorting in query.sorting
        ]
        composite = Sort.make_composite_comparator(user_comparators + Sort.default_comparators())
        return sorted(task_blocks, key=cmp_to_key(composite))

    @staticmethod
    def default_comparators() -> List[Comparator]:
        return [
            Sort.compare_by_urgency,
            Sort.compare_by_status,
            Sort.compare_by_due_date,
            Sort.compare_by_priority,
            Sort.compare_by_path,
        ]

    @staticmethod
    def comparator_for(prop: str, reverse: bool = False) -> Comparator:
        if prop not in SORTING_PROPERTIES:
            raise ValueError(f"Unknown sorting property: {prop}")

        date_getters = {
            "start": lambda t: t.start_date,
            "scheduled": lambda t: t.scheduled_date,
            "due": lambda t: t.due_date,
        }
        if prop in date_getters:
            return Sort._make_date_comparator(date_getters[prop], _earliest, reverse)
        if prop == "done":
            return Sort._make_date_comparator(lambda t: t.done_date, _latest, reverse)

        comparator = {
            "urgency": Sort.compare_by_urgency,
            "status": Sort.compare_by_status,
            "priority": Sort.compare_by_priority,
            "path": Sort.compare_by_path,
            "description": Sort.compare_by_description,
        }[prop]
        return Sort.make_reversed_comparator(comparator) if reverse else comparator

    @staticmethod
    def make_reversed_comparator(comparator: Comparator) -> Comparator:
        return lambda a, b: -comparator(a, b)

    @staticmethod
    def make_composite_comparator(comparators: List[Comparator]) -> Comparator:
        def composite(a: TaskBlock, b: TaskBlock) -> int:
            for comparator in comparators:
                result = comparator(a, b)
                if result != 0:
                    return result
            return 0

        return composite

    @staticmethod
    def _make_date_comparator(
        getter: Callable[[Task], Optional[date]],
        reduce: Callable[[Iterable[Optional[date]]], Optional[date]],
        reverse: bool,
    ) -> Comparator:
        def compare(a: TaskBlock, b: TaskBlock) -> int:
            return compare_by_date(
                reduce(getter(t) for t in a.tasks),
                reduce(getter(t) for t in b.tasks),
                reverse,
            )

        return compare

    @staticmethod
    def compare_by_urgency(a: TaskBlock, b: TaskBlock) -> int:
        # Higher urgency first. Empty blocks go first; two empty blocks tie.
        if not a.tasks or not b.tasks:
            return (len(a.tasks) > 0) - (len(b.tasks) > 0)
        a_urgency = max(t.urgency for t in a.tasks)
        b_urgency = max(t.urgency for t in b.tasks)
        return _sign(b_urgency - a_urgency)

    @staticmethod
    def compare_by_status(a: TaskBlock, b: TaskBlock) -> int:
        # Fully done blocks sink; everything else keeps its relative order.
        return int(a.is_fully_done) - int(b.is_fully_done)

    @staticmethod
    def compare_by_priority(a: TaskBlock, b: TaskBlock) -> int:
        if not a.tasks or not b.tasks:
            return 0
        a_priority = min(t.priority.value for t in a.tasks)
        b_priority = min(t.priority.value for t in b.tasks)
        return (a_priority > b_priority) - (a_priority < b_priority)

    @staticmethod
    def compare_by_due_date(a: TaskBlock, b: TaskBlock) -> int:
        return compare_by_date(
            _earliest(t.due_date for t in a.tasks),
            _earliest(t.due_date for t in b.tasks),
        )

    @staticmethod
    def compare_by_path(a: TaskBlock, b: TaskBlock) -> int:
        if not a.tasks or not b.tasks:
            return 0
        a_path, b_path = a.tasks[0].path, b.tasks[0].path
        return (a_path > b_path) - (a_path < b_path)

    @staticmethod
    def compare_by_description(a: TaskBlock, b: TaskBlock) -> int:
        # Only top-level descriptions take part.
        if not a.tasks or not b.tasks:
            return 0
        a_text = clean_description(a.tasks[0].description).casefold()
        b_text = clean_description(b.tasks[0].description).casefold()
        return (a_text > b_text) - (a_text < b_text)
