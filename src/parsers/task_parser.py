"""
Parser for single checklist lines in Obsidian Tasks emoji format.

Main API:
    parse_task_line(line, **position)  → Task | None
    render_task_body(task)             → str

Signifiers live at the end of the line and may appear in any order, so they
are peeled off the end of the body one at a time until nothing more matches.
"""

import re
from typing import Optional

from models.recurrence import Recurrence
from models.task import NO_PARENT, Priority, Status, Task
from settings import get_settings
from utils.dates import format_date, parse_iso_date

TASK_RE = re.compile(r"^([\s\t]*)[-*] +\[(.)\] *(.*)")

PRIORITY_RE = re.compile(r"([⏫🔼🔽])$")
START_DATE_RE = re.compile(r"🛫 ?(\d{4}-\d{2}-\d{2})$")
SCHEDULED_DATE_RE = re.compile(r"[⏳⌛] ?(\d{4}-\d{2}-\d{2})$")
DUE_DATE_RE = re.compile(r"[📅📆🗓]\ufe0f? ?(\d{4}-\d{2}-\d{2})$")
DONE_DATE_RE = re.compile(r"✅ ?(\d{4}-\d{2}-\d{2})$")
RECURRENCE_RE = re.compile(r"🔁 ?([a-zA-Z0-9, !]+)$")
BLOCK_LINK_RE = re.compile(r" \^[a-zA-Z0-9-]+$")

# Upper bound on signifier passes; a line carries at most one of each.
MAX_SIGNIFIER_RUNS = 20

PRIORITY_EMOJI = {
    Priority.HIGH: "⏫",
    Priority.MEDIUM: "🔼",
    Priority.LOW: "🔽",
}
_EMOJI_PRIORITY = {v: k for k, v in PRIORITY_EMOJI.items()}

# Checkbox char → status
_CHECKBOX_STATUS = {
    " ": Status.TODO,
    "x": Status.DONE,
    "X": Status.DONE,
    "/": Status.IN_PROGRESS,
    "-": Status.BLOCKED,
}


def _parse_checkbox(char: str) -> Status:
    return _CHECKBOX_STATUS.get(char, Status.TODO)


def parse_task_line(
    line: str,
    *,
    path: str = "",
    section_start: int = 0,
    section_index: int = 0,
    preceding_header: Optional[str] = None,
    id: int = 0,
    parent: int = NO_PARENT,
) -> Optional[Task]:
    """
    Parse one markdown line into a Task.

    Returns None if the line is not a checklist item, or if a global filter
    is configured and the line does not carry it.
    """
    m = TASK_RE.match(line)
    if m is None:
        return None

    indentation, status_char, body = m.group(1), m.group(2), m.group(3).strip()

    global_filter = get_settings().global_filter
    if global_filter and global_filter not in body:
        return None

    description = body
    priority = Priority.NONE
    start_date = scheduled_date = due_date = done_date = None
    recurrence_text = None
    block_link = ""

    block_match = BLOCK_LINK_RE.search(description)
    if block_match:
        block_link = block_match.group(0)
        description = description[: block_match.start()].strip()

    for _ in range(MAX_SIGNIFIER_RUNS):
        matched = False

        pm = PRIORITY_RE.search(description)
        if pm:
            priority = _EMOJI_PRIORITY[pm.group(1)]
            description = description[: pm.start()].strip()
            matched = True

        dm = DONE_DATE_RE.search(description)
        if dm:
            done_date = parse_iso_date(dm.group(1))
            description = description[: dm.start()].strip()
            matched = True

        dm = DUE_DATE_RE.search(description)
        if dm:
            due_date = parse_iso_date(dm.group(1))
            description = description[: dm.start()].strip()
            matched = True

        sm = SCHEDULED_DATE_RE.search(description)
        if sm:
            scheduled_date = parse_iso_date(sm.group(1))
            description = description[: sm.start()].strip()
            matched = True

        sm = START_DATE_RE.search(description)
        if sm:
            start_date = parse_iso_date(sm.group(1))
            description = description[: sm.start()].strip()
            matched = True

        rm = RECURRENCE_RE.search(description)
        if rm:
            recurrence_text = rm.group(1).strip()
            description = description[: rm.start()].strip()
            matched = True

        if not matched:
            break

    recurrence = None
    if recurrence_text:
        recurrence = Recurrence.from_text(
            recurrence_text,
            start_date=start_date,
            scheduled_date=scheduled_date,
            due_date=due_date,
        )

    return Task(
        description=description,
        path=path,
        status=_parse_checkbox(status_char),
        priority=priority,
        indentation=indentation,
        original_status_character=status_char,
        start_date=start_date,
        scheduled_date=scheduled_date,
        due_date=due_date,
        done_date=done_date,
        recurrence=recurrence,
        block_link=block_link,
        section_start=section_start,
        section_index=section_index,
        preceding_header=preceding_header,
        id=id,
        parent=parent,
    )


def render_task_body(task: Task) -> str:
    """Render a task's body in canonical signifier order."""
    parts = [task.description]

    if task.priority in PRIORITY_EMOJI:
        parts.append(PRIORITY_EMOJI[task.priority])
    if task.recurrence:
        parts.append(f"🔁 {task.recurrence.to_text()}")
    if task.start_date:
        parts.append(f"🛫 {format_date(task.start_date)}")
    if task.scheduled_date:
        parts.append(f"⏳ {format_date(task.scheduled_date)}")
    if task.due_date:
        parts.append(f"📅 {format_date(task.due_date)}")
    if task.done_date:
        parts.append(f"✅ {format_date(task.done_date)}")

    return " ".join(parts) + task.block_link
