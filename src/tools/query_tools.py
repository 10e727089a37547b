"""
Query tool handlers.

Core logic lives in handle_* functions (return dicts).
MCP wrappers in register_query_tools() serialize to JSON strings.
"""

import json
import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP

from models.task import Task, TaskBlock
from query.runner import run_query
from utils.dates import format_date

log = logging.getLogger(__name__)


def _next_occurrence(task: Task) -> Optional[dict]:
    """Dates of a recurring task's next instance, or None."""
    if task.recurrence is None:
        return None
    upcoming = task.recurrence.next(completed_on=task.done_date)
    if upcoming is None:
        return None
    return {field: format_date(value) for field, value in upcoming.items()}


def _task_to_dict(task: Task) -> dict:
    """Serialize a Task to a JSON-serializable dict."""
    return {
        "description": task.description,
        "path": task.path,
        "status": task.status.value,
        "priority": task.priority.name.lower(),
        "indentation": task.indentation,
        "start_date": format_date(task.start_date),
        "scheduled_date": format_date(task.scheduled_date),
        "due_date": format_date(task.due_date),
        "done_date": format_date(task.done_date),
        "recurrence": task.recurrence.to_text() if task.recurrence else None,
        "next_occurrence": _next_occurrence(task),
        "block_link": task.block_link,
        "preceding_header": task.preceding_header,
        "section_start": task.section_start,
        "section_index": task.section_index,
        "urgency": round(task.urgency, 3),
        "line": task.to_file_line_string(),
    }


def _block_to_dict(block: TaskBlock) -> dict:
    return {
        "path": block.path,
        "tasks": [_task_to_dict(t) for t in block.tasks],
    }


# ---------------------------------------------------------------------------
# Handler functions (return dicts, shared by MCP tools and REST API)
# ---------------------------------------------------------------------------


def handle_task_query(cache, *, query: str) -> dict:
    result = run_query(query, cache.get_tasks())
    if result.error is not None:
        return {"error": result.error}

    blocks = [_block_to_dict(b) for b in result.task_blocks]
    return {
        "error": None,
        "state": cache.get_state().value,
        "layout": result.layout_options.to_dict(),
        "count": len(blocks),
        "task_blocks": blocks,
    }


def handle_cache_status(cache) -> dict:
    return cache.status()


# ---------------------------------------------------------------------------
# MCP tool registration (thin wrappers)
# ---------------------------------------------------------------------------


def register_query_tools(mcp: FastMCP, cache) -> None:
    """Register the query MCP tools onto the FastMCP instance."""

    @mcp.tool()
    def task_query(query: str) -> str:
        """
        Run a tasks query against the vault index.

        One instruction per line, e.g.:

            not done
            due before next week
            path includes projects/
            sort by priority
            limit to 10 tasks

        Filters: done, not done, is recurring, is not recurring,
        exclude sub-items, no start/scheduled/due date,
        priority [is] [above|below] <low|none|medium|high>,
        happens/starts/scheduled/due/done [before|after|on] <date>,
        path/description/heading (includes|does not include) <text>.
        Also: sort by <property> [reverse], limit [to] N [tasks],
        hide <option>, short, and # comments.

        Args:
            query: Query text

        Returns:
            JSON with "error" (null on success), "layout" and "task_blocks".
            Each block is a top-level task followed by its sub-tasks.
        """
        return json.dumps(handle_task_query(cache, query=query), indent=2)

    @mcp.tool()
    def cache_status() -> str:
        """
        Show task index statistics.

        Returns:
            JSON with index state, block/task/file counts and last load time.
        """
        return json.dumps(handle_cache_status(cache), indent=2)
