"""
Tests for query/sort.py.

Covers:
- compare_by_date: present before absent in both directions
- each block reduction (urgency, priority, dates, path, description, status)
- user criteria before the fallback chain, reverse, stability
- empty blocks
"""

import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from models.task import Priority, Status, Task, TaskBlock
from query.query import Query
from query.sort import SORTING_PROPERTIES, Sort, Sorting, clean_description, compare_by_date
from settings import update_settings


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _block(*tasks: Task) -> TaskBlock:
    return TaskBlock(tuple(tasks))


def _task(description: str = "task", **fields) -> Task:
    fields.setdefault("path", "notes.md")
    return Task(description=description, **fields)


def _sorted(source: str, blocks):
    return Sort.by(Query(source), blocks)


def _names(blocks):
    return [b.tasks[0].description for b in blocks]


@pytest.fixture(autouse=True)
def _fixed_today(monkeypatch):
    monkeypatch.setattr("utils.dates.today", lambda: date(2024, 1, 10))
    update_settings(global_filter="")
    yield
    update_settings(global_filter="")


# ---------------------------------------------------------------------------
# compare_by_date
# ---------------------------------------------------------------------------

class TestCompareByDate:
    def test_earlier_first(self):
        assert compare_by_date(date(2024, 1, 1), date(2024, 1, 2)) == -1
        assert compare_by_date(date(2024, 1, 2), date(2024, 1, 1)) == 1

    def test_equal_days(self):
        assert compare_by_date(date(2024, 1, 1), date(2024, 1, 1)) == 0
        assert compare_by_date(None, None) == 0

    def test_present_before_absent_in_both_directions(self):
        assert compare_by_date(date(2024, 1, 1), None) == -1
        assert compare_by_date(None, date(2024, 1, 1)) == 1
        assert compare_by_date(date(2024, 1, 1), None, reverse=True) == -1
        assert compare_by_date(None, date(2024, 1, 1), reverse=True) == 1

    def test_reverse_flips_present_dates(self):
        assert compare_by_date(date(2024, 1, 1), date(2024, 1, 2), reverse=True) == 1


# ---------------------------------------------------------------------------
# Reductions
# ---------------------------------------------------------------------------

class TestReductions:
    def test_due_uses_earliest_date_in_block(self):
        late = _block(_task("late", due_date=date(2024, 3, 1)))
        mixed = _block(
            _task("mixed", due_date=date(2024, 4, 1)),
            _task("child", due_date=date(2024, 2, 1), parent=0),
        )
        assert _names(_sorted("sort by due", [late, mixed])) == ["mixed", "late"]

    def test_done_uses_latest_date_in_block(self):
        a = _block(
            _task("a", status=Status.DONE, done_date=date(2024, 1, 1)),
            _task("a child", status=Status.DONE, done_date=date(2024, 1, 9), parent=0),
        )
        b = _block(_task("b", status=Status.DONE, done_date=date(2024, 1, 5)))
        assert _names(_sorted("sort by done", [a, b])) == ["b", "a"]
        assert _names(_sorted("sort by done reverse", [b, a])) == ["a", "b"]

    def test_missing_dates_last_even_reversed(self):
        undated = _block(_task("undated"))
        early = _block(_task("early", scheduled_date=date(2024, 1, 1)))
        late = _block(_task("late", scheduled_date=date(2024, 2, 1)))
        assert _names(_sorted("sort by scheduled", [undated, late, early])) == [
            "early",
            "late",
            "undated",
        ]
        assert _names(_sorted("sort by scheduled reverse", [undated, early, late])) == [
            "late",
            "early",
            "undated",
        ]

    def test_priority_uses_highest_ranked_task(self):
        low = _block(_task("low", priority=Priority.LOW))
        hidden_high = _block(
            _task("hidden high"),
            _task("child", priority=Priority.HIGH, parent=0),
        )
        medium = _block(_task("medium", priority=Priority.MEDIUM))
        assert _names(_sorted("sort by priority", [low, medium, hidden_high])) == [
            "hidden high",
            "medium",
            "low",
        ]

    def test_urgency_highest_first(self):
        overdue = _block(_task("overdue", due_date=date(2023, 12, 1)))
        someday = _block(_task("someday"))
        assert _names(_sorted("sort by urgency", [someday, overdue])) == ["overdue", "someday"]

    def test_status_puts_fully_done_last(self):
        done = _block(_task("done", status=Status.DONE))
        partial = _block(
            _task("partial", status=Status.DONE),
            _task("open child", parent=0),
        )
        assert _names(_sorted("sort by status", [done, partial])) == ["partial", "done"]

    def test_path(self):
        b = _block(_task("b", path="b.md"))
        a = _block(_task("a", path="a.md"))
        assert _names(_sorted("sort by path", [b, a])) == ["a", "b"]

    def test_description_ignores_markup_and_case(self):
        link = _block(_task("[[Zebra|apple pie]] recipe"))
        bold = _block(_task("**Banana** bread"))
        plain = _block(_task("cherry tart"))
        assert _names(_sorted("sort by description", [plain, bold, link])) == [
            "[[Zebra|apple pie]] recipe",
            "**Banana** bread",
            "cherry tart",
        ]


class TestCleanDescription:
    def test_link_alias(self):
        assert clean_description("[[Some Note|alias]] rest") == "alias rest"

    def test_link_without_alias(self):
        assert clean_description("[[Some Note]] rest") == "Some Note rest"

    def test_highlight(self):
        assert clean_description("==urgent== call") == "urgent call"

    def test_global_filter_removed(self):
        update_settings(global_filter="#task")
        assert clean_description("#task buy milk") == "buy milk"


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

class TestSortBy:
    def test_user_criteria_come_first(self):
        urgent_z = _block(_task("z", path="z.md", due_date=date(2024, 1, 1)))
        calm_a = _block(_task("a", path="a.md"))
        # Defaults alone put the overdue task first
        assert _names(_sorted("", [calm_a, urgent_z])) == ["z", "a"]
        assert _names(_sorted("sort by path", [urgent_z, calm_a])) == ["a", "z"]

    def test_later_criteria_break_ties(self):
        a = _block(_task("a", path="same.md", priority=Priority.LOW))
        b = _block(_task("b", path="same.md", priority=Priority.HIGH))
        assert _names(_sorted("sort by path\nsort by priority", [a, b])) == ["b", "a"]

    def test_stable_for_equal_blocks(self):
        blocks = [_block(_task(f"t{i}")) for i in range(5)]
        assert _names(_sorted("sort by path", blocks)) == ["t0", "t1", "t2", "t3", "t4"]

    def test_input_not_modified(self):
        blocks = [_block(_task("b", path="b.md")), _block(_task("a", path="a.md"))]
        _sorted("sort by path", blocks)
        assert _names(blocks) == ["b", "a"]

    def test_reverse(self):
        a = _block(_task("a", path="a.md"))
        b = _block(_task("b", path="b.md"))
        assert _names(_sorted("sort by path reverse", [a, b])) == ["b", "a"]

    def test_unknown_property_raises(self):
        with pytest.raises(ValueError):
            Sort.comparator_for("colour")

    @pytest.mark.parametrize("prop", SORTING_PROPERTIES)
    def test_every_sorting_property_has_a_comparator(self, prop):
        a = _block(_task("a", path="a.md", due_date=date(2024, 1, 1)))
        b = _block(_task("b", path="b.md"))
        forward = Sort.comparator_for(prop)
        backward = Sort.comparator_for(prop, reverse=True)
        assert forward(a, a) == 0
        assert backward(b, b) == 0

    def test_sorting_value(self):
        assert Sorting("due").reverse is False


class TestEmptyBlocks:
    def test_empty_blocks_first_under_urgency(self):
        empty = TaskBlock()
        full = _block(_task("full", due_date=date(2024, 1, 1)))
        assert Sort.compare_by_urgency(empty, full) == -1
        assert Sort.compare_by_urgency(full, empty) == 1

    def test_two_empty_blocks_compare_equal(self):
        assert Sort.compare_by_urgency(TaskBlock(), TaskBlock()) == 0
        assert Sort.compare_by_path(TaskBlock(), TaskBlock()) == 0
        assert Sort.compare_by_priority(TaskBlock(), TaskBlock()) == 0

    def test_sorting_with_empty_blocks_does_not_fail(self):
        result = Sort.by(Query("sort by description"), [_block(_task("x")), TaskBlock()])
        assert len(result) == 2
        assert result[0].tasks == ()
