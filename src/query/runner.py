"""Run a query source against a snapshot of TaskBlocks."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from models.layout import LayoutOptions
from models.task import TaskBlock
from query.query import Query
from query.sort import Sort

log = logging.getLogger(__name__)


@dataclass
class QueryResult:
    task_blocks: List[TaskBlock] = field(default_factory=list)
    layout_options: LayoutOptions = field(default_factory=LayoutOptions)
    error: Optional[str] = None


def run_query(source: str, task_blocks: Sequence[TaskBlock]) -> QueryResult:
    """
    Filter, sort and limit ``task_blocks`` according to ``source``.

    A query that failed to parse yields no blocks and carries the error;
    its filters are never executed.
    """
    query = Query(source)
    if query.error is not None:
        log.debug("Query rejected: %s", query.error)
        return QueryResult(layout_options=query.layout_options, error=query.error)

    filters = query.filters
    matching = [tb for tb in task_blocks if all(f(tb) for f in filters)]
    ordered = Sort.by(query, matching)
    if query.limit is not None:
        ordered = ordered[: query.limit]

    log.debug("Query matched %d of %d task blocks", len(ordered), len(task_blocks))
    return QueryResult(task_blocks=ordered, layout_options=query.layout_options)
