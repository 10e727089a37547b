"""
Query language interpreter.

A query is plain text, one instruction per line:

    not done
    due before next monday
    path includes projects/
    sort by priority
    limit to 20 tasks

Each trimmed line is checked against an ordered production table; the first
production that matches compiles the line. Blank lines and ``#`` comments do
nothing. A line no production matches records an error, and so do bad
dates; the last error wins. Errors are stored, never raised: callers must
check ``error`` and skip the filters when it is set.
"""

import re
from dataclasses import replace
from datetime import date
from typing import Callable, List, Optional, Tuple

from models.layout import LayoutOptions
from models.task import Priority, Status, TaskBlock
from query.sort import SORTING_PROPERTIES, Sorting
from settings import get_settings
from utils.dates import parse_date

Filter = Callable[[TaskBlock], bool]
Matcher = Callable[[str], bool]

_QUALIFIER = r"(?:(?i:(before|after|on))(?:\s+|$))?"
_INCLUDE_MODE = r"(?i:(includes|does\s+not\s+include))"

PRIORITY_RE = re.compile(r"^priority\s+(?:is\s+)?(?:(?i:(above|below))\s+)?(?i:(low|none|medium|high))")
HAPPENS_RE = re.compile(r"^happens\s+" + _QUALIFIER + r"(.*)")
STARTS_RE = re.compile(r"^starts\s+" + _QUALIFIER + r"(.*)")
SCHEDULED_RE = re.compile(r"^scheduled\s+" + _QUALIFIER + r"(.*)")
DUE_RE = re.compile(r"^due\s+" + _QUALIFIER + r"(.*)")
DONE_RE = re.compile(r"^done\s+" + _QUALIFIER + r"(.*)")
PATH_RE = re.compile(r"^path\s+" + _INCLUDE_MODE + r"\s+(.*)")
DESCRIPTION_RE = re.compile(r"^description\s+" + _INCLUDE_MODE + r"\s+(.*)")
HEADING_RE = re.compile(r"^heading\s+" + _INCLUDE_MODE + r"\s+(.*)")
LIMIT_RE = re.compile(r"^limit\s+(?:to\s+)?(\d+)(?:\s+tasks?)?")
SORT_BY_RE = re.compile(
    r"^sort\s+by\s+(?i:(" + "|".join(SORTING_PROPERTIES) + r"))(\s+reverse)?"
)
HIDE_OPTIONS_RE = re.compile(
    r"^hide\s+(?i:(task\s+count|backlink|priority|start\s+date|scheduled\s+date"
    r"|done\s+date|due\s+date|recurrence\s+rule|edit\s+button))"
)
SHORT_MODE_RE = re.compile(r"^short")
COMMENT_RE = re.compile(r"^#.*")

_PRIORITIES = {
    "low": Priority.LOW,
    "none": Priority.NONE,
    "medium": Priority.MEDIUM,
    "high": Priority.HIGH,
}

_HIDE_OPTIONS = {
    "task count": "hide_task_count",
    "backlink": "hide_backlinks",
    "priority": "hide_priority",
    "start date": "hide_start_date",
    "scheduled date": "hide_scheduled_date",
    "done date": "hide_done_date",
    "due date": "hide_due_date",
    "recurrence rule": "hide_recurrence_rule",
    "edit button": "hide_edit_button",
}


def _normalize(text: str) -> str:
    return " ".join(text.lower().split())


def _literal(expected: str) -> Matcher:
    return lambda line: line == expected


def _pattern(regex: re.Pattern) -> Matcher:
    return lambda line: regex.match(line) is not None


def _includes(haystack: str, needle: str) -> bool:
    return needle.lower() in haystack.lower()


def _date_predicate(qualifier: Optional[str], filter_date: date) -> Callable[[date], bool]:
    qualifier = (qualifier or "on").lower()
    if qualifier == "before":
        return lambda d: d < filter_date
    if qualifier == "after":
        return lambda d: d > filter_date
    return lambda d: d == filter_date


class Query:
    def __init__(self, source: str) -> None:
        self._limit: Optional[int] = None
        self._layout_options = LayoutOptions()
        self._filters: List[Filter] = []
        self._error: Optional[str] = None
        self._sorting: List[Sorting] = []

        productions = self._productions()
        for line in (raw.strip() for raw in source.split("\n")):
            for matches, compile_line in productions:
                if matches(line):
                    compile_line(line)
                    break
            else:
                self._error = "do not understand query"

    # ------------------------------------------------------------------
    # Public surface
    # ------------------------------------------------------------------

    @property
    def limit(self) -> Optional[int]:
        return self._limit

    @property
    def layout_options(self) -> LayoutOptions:
        return replace(self._layout_options)

    @property
    def filters(self) -> Tuple[Filter, ...]:
        return tuple(self._filters)

    @property
    def sorting(self) -> Tuple[Sorting, ...]:
        return tuple(self._sorting)

    @property
    def error(self) -> Optional[str]:
        return self._error

    # ------------------------------------------------------------------
    # Production table
    # ------------------------------------------------------------------

    def _productions(self) -> List[Tuple[Matcher, Callable[[str], None]]]:
        """Ordered (matcher, compiler) pairs; the first match wins."""
        return [
            (_literal(""), lambda line: None),
            (_literal("done"), lambda line: self._add(lambda tb: all(t.status == Status.DONE for t in tb.tasks))),
            (_literal("not done"), lambda line: self._add(lambda tb: any(t.status != Status.DONE for t in tb.tasks))),
            # Recurrence of sub-tasks is not considered.
            (_literal("is recurring"), lambda line: self._add(lambda tb: bool(tb.tasks) and tb.tasks[0].recurrence is not None)),
            (_literal("is not recurring"), lambda line: self._add(lambda tb: bool(tb.tasks) and tb.tasks[0].recurrence is None)),
            (_literal("exclude sub-items"), lambda line: self._add(lambda tb: bool(tb.tasks) and tb.tasks[0].indentation == "")),
            (_literal("no start date"), lambda line: self._add(lambda tb: all(t.start_date is not None for t in tb.tasks))),
            (_literal("no scheduled date"), lambda line: self._add(lambda tb: all(t.scheduled_date is not None for t in tb.tasks))),
            (_literal("no due date"), lambda line: self._add(lambda tb: all(t.due_date is not None for t in tb.tasks))),
            (_pattern(SHORT_MODE_RE), self._parse_short_mode),
            (_pattern(PRIORITY_RE), self._parse_priority_filter),
            (_pattern(HAPPENS_RE), self._parse_happens_filter),
            (_pattern(STARTS_RE), self._parse_start_filter),
            (_pattern(SCHEDULED_RE), self._parse_scheduled_filter),
            (_pattern(DUE_RE), self._parse_due_filter),
            (_pattern(DONE_RE), self._parse_done_filter),
            (_pattern(PATH_RE), self._parse_path_filter),
            (_pattern(DESCRIPTION_RE), self._parse_description_filter),
            (_pattern(HEADING_RE), self._parse_heading_filter),
            (_pattern(LIMIT_RE), self._parse_limit),
            (_pattern(SORT_BY_RE), self._parse_sort_by),
            (_pattern(HIDE_OPTIONS_RE), self._parse_hide_options),
            (_pattern(COMMENT_RE), lambda line: None),
        ]

    def _add(self, task_filter: Filter) -> None:
        self._filters.append(task_filter)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    def _parse_short_mode(self, line: str) -> None:
        self._layout_options.short_mode = True

    def _parse_hide_options(self, line: str) -> None:
        m = HIDE_OPTIONS_RE.match(line)
        option = _HIDE_OPTIONS.get(_normalize(m.group(1)))
        if option is None:
            self._error = "do not understand hide option"
            return
        setattr(self._layout_options, option, True)

    # ------------------------------------------------------------------
    # Priority
    # ------------------------------------------------------------------

    def _parse_priority_filter(self, line: str) -> None:
        m = PRIORITY_RE.match(line)
        threshold = _PRIORITIES[m.group(2).lower()]
        qualifier = (m.group(1) or "").lower()
        if qualifier == "above":
            # Some task outranks the threshold: keep the whole block.
            self._add(lambda tb: any(t.priority.outranks(threshold) for t in tb.tasks))
        elif qualifier == "below":
            # Some task outranks the threshold: drop the whole block.
            self._add(lambda tb: not any(t.priority.outranks(threshold) for t in tb.tasks))
        else:
            self._add(
                lambda tb: all(
                    t.priority == threshold or t.priority.outranks(threshold) for t in tb.tasks
                )
            )

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------

    def _parse_filter_date(self, regex: re.Pattern, line: str, name: str):
        """Return (qualifier, date), or None after recording an error."""
        m = regex.match(line)
        filter_date = parse_date(m.group(2))
        if filter_date is None:
            self._error = f"do not understand {name} date"
            return None
        return m.group(1), filter_date

    def _parse_happens_filter(self, line: str) -> None:
        parsed = self._parse_filter_date(HAPPENS_RE, line, "happens")
        if parsed is None:
            return
        matches = _date_predicate(*parsed)
        self._add(
            lambda tb: any(
                matches(d)
                for t in tb.tasks
                for d in (t.start_date, t.scheduled_date, t.due_date)
                if d is not None
            )
        )

    def _parse_start_filter(self, line: str) -> None:
        parsed = self._parse_filter_date(STARTS_RE, line, "start")
        if parsed is None:
            return
        matches = _date_predicate(*parsed)
        # A task without a start date has always started.
        self._add(
            lambda tb: any(matches(t.start_date) if t.start_date else True for t in tb.tasks)
        )

    def _parse_scheduled_filter(self, line: str) -> None:
        parsed = self._parse_filter_date(SCHEDULED_RE, line, "scheduled")
        if parsed is None:
            return
        matches = _date_predicate(*parsed)
        self._add(
            lambda tb: any(t.scheduled_date is not None and matches(t.scheduled_date) for t in tb.tasks)
        )

    def _parse_due_filter(self, line: str) -> None:
        parsed = self._parse_filter_date(DUE_RE, line, "due")
        if parsed is None:
            return
        matches = _date_predicate(*parsed)
        self._add(
            lambda tb: any(t.due_date is not None and matches(t.due_date) for t in tb.tasks)
        )

    def _parse_done_filter(self, line: str) -> None:
        parsed = self._parse_filter_date(DONE_RE, line, "done")
        if parsed is None:
            return
        matches = _date_predicate(*parsed)
        # Every task in the block must be done at the right time.
        self._add(
            lambda tb: all(t.done_date is not None and matches(t.done_date) for t in tb.tasks)
        )

    # ------------------------------------------------------------------
    # Text
    # ------------------------------------------------------------------

    def _parse_path_filter(self, line: str) -> None:
        m = PATH_RE.match(line)
        text = m.group(2)

        def includes(tb: TaskBlock) -> bool:
            return bool(tb.tasks) and _includes(tb.tasks[0].path, text)

        self._add_text_filter(m.group(1), includes)

    def _parse_description_filter(self, line: str) -> None:
        m = DESCRIPTION_RE.match(line)
        text = m.group(2)
        global_filter = get_settings().global_filter

        def description(raw: str) -> str:
            # Match on the task's content only, not the global filter.
            if global_filter:
                raw = raw.replace(global_filter, "", 1)
            return raw.strip()

        def includes(tb: TaskBlock) -> bool:
            return any(_includes(description(t.description), text) for t in tb.tasks)

        self._add_text_filter(m.group(1), includes)

    def _parse_heading_filter(self, line: str) -> None:
        m = HEADING_RE.match(line)
        text = m.group(2)

        def includes(tb: TaskBlock) -> bool:
            return any(
                t.preceding_header is not None and _includes(t.preceding_header, text)
                for t in tb.tasks
            )

        self._add_text_filter(m.group(1), includes)

    def _add_text_filter(self, mode: str, includes: Filter) -> None:
        if _normalize(mode) == "includes":
            self._add(includes)
        else:
            self._add(lambda tb: not includes(tb))

    # ------------------------------------------------------------------
    # Limit / sorting
    # ------------------------------------------------------------------

    def _parse_limit(self, line: str) -> None:
        # Group 1 is always digits per the regex.
        self._limit = int(LIMIT_RE.match(line).group(1))

    def _parse_sort_by(self, line: str) -> None:
        m = SORT_BY_RE.match(line)
        self._sorting.append(Sorting(property=m.group(1).lower(), reverse=bool(m.group(2))))
