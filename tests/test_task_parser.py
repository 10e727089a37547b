"""
Tests for parsers/task_parser.py and the Task model.

Covers:
- checklist detection and status characters
- signifiers in any order: priority, dates, recurrence, block link
- global filter
- canonical rendering
"""

import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from models.task import NO_PARENT, Priority, Status, Task
from parsers.task_parser import parse_task_line
from settings import update_settings


@pytest.fixture(autouse=True)
def _reset_settings():
    update_settings(global_filter="")
    yield
    update_settings(global_filter="")


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

class TestDetection:
    def test_simple_task(self):
        task = parse_task_line("- [ ] Buy milk")
        assert task.description == "Buy milk"
        assert task.status == Status.TODO
        assert task.priority == Priority.NONE
        assert task.indentation == ""
        assert task.parent == NO_PARENT

    def test_star_bullet(self):
        assert parse_task_line("* [ ] Buy milk").description == "Buy milk"

    @pytest.mark.parametrize("line", ["- plain bullet", "Some text", "", "-[ ] no space", "- [] empty box"])
    def test_not_a_task(self, line):
        assert parse_task_line(line) is None

    @pytest.mark.parametrize(
        "char, status",
        [
            (" ", Status.TODO),
            ("x", Status.DONE),
            ("X", Status.DONE),
            ("/", Status.IN_PROGRESS),
            ("-", Status.BLOCKED),
            ("?", Status.TODO),
        ],
    )
    def test_status_characters(self, char, status):
        task = parse_task_line(f"- [{char}] something")
        assert task.status == status
        assert task.original_status_character == char

    def test_indentation_kept(self):
        task = parse_task_line("    - [/] Sub task")
        assert task.indentation == "    "
        assert task.status == Status.IN_PROGRESS

    def test_position_passed_through(self):
        task = parse_task_line(
            "- [ ] positioned",
            path="a/b.md",
            section_start=3,
            section_index=2,
            preceding_header="Header",
            id=5,
            parent=4,
        )
        assert task.path == "a/b.md"
        assert (task.section_start, task.section_index, task.id, task.parent) == (3, 2, 5, 4)
        assert task.preceding_header == "Header"
        assert task.has_parent

    def test_from_line(self):
        task = Task.from_line("- [x] done thing", path="x.md")
        assert task.is_done
        assert task.path == "x.md"


# ---------------------------------------------------------------------------
# Signifiers
# ---------------------------------------------------------------------------

class TestSignifiers:
    def test_all_signifiers(self):
        task = parse_task_line(
            "- [x] Pay rent ⏫ 🛫 2024-01-01 ⏳ 2024-01-03 📅 2024-01-05 ✅ 2024-01-04"
        )
        assert task.description == "Pay rent"
        assert task.priority == Priority.HIGH
        assert task.start_date == date(2024, 1, 1)
        assert task.scheduled_date == date(2024, 1, 3)
        assert task.due_date == date(2024, 1, 5)
        assert task.done_date == date(2024, 1, 4)

    def test_any_order(self):
        task = parse_task_line("- [ ] Task 📅 2024-01-05 🔽 🛫 2024-01-01")
        assert task.description == "Task"
        assert task.priority == Priority.LOW
        assert task.due_date == date(2024, 1, 5)
        assert task.start_date == date(2024, 1, 1)

    @pytest.mark.parametrize("emoji", ["📅", "📆", "🗓"])
    def test_due_emoji_variants(self, emoji):
        assert parse_task_line(f"- [ ] x {emoji} 2024-02-29").due_date == date(2024, 2, 29)

    def test_scheduled_hourglass_variant(self):
        assert parse_task_line("- [ ] x ⌛ 2024-03-01").scheduled_date == date(2024, 3, 1)

    def test_medium_priority(self):
        assert parse_task_line("- [ ] x 🔼").priority == Priority.MEDIUM

    def test_signifiers_only_at_end(self):
        task = parse_task_line("- [ ] 📅 2024-01-05 is not at the end")
        assert task.due_date is None
        assert task.description == "📅 2024-01-05 is not at the end"

    def test_invalid_date_is_dropped(self):
        task = parse_task_line("- [ ] x 📅 2024-13-45")
        assert task.due_date is None
        assert task.description == "x"

    def test_block_link(self):
        task = parse_task_line("- [ ] Task 📅 2024-01-05 ^abc-1")
        assert task.block_link == " ^abc-1"
        assert task.due_date == date(2024, 1, 5)
        assert task.description == "Task"

    def test_recurrence(self):
        task = parse_task_line("- [ ] Water plants 🔁 every week 📅 2024-01-05")
        assert task.description == "Water plants"
        assert task.recurrence is not None
        assert task.recurrence.to_text() == "every week"
        assert task.recurrence.due_date == date(2024, 1, 5)

    def test_invalid_recurrence_is_none(self):
        task = parse_task_line("- [ ] x 🔁 whenever")
        assert task.recurrence is None
        assert task.description == "x"


# ---------------------------------------------------------------------------
# Global filter
# ---------------------------------------------------------------------------

class TestGlobalFilter:
    def test_line_without_filter_is_not_a_task(self):
        update_settings(global_filter="#task")
        assert parse_task_line("- [ ] Buy milk") is None

    def test_line_with_filter(self):
        update_settings(global_filter="#task")
        task = parse_task_line("- [ ] #task Buy milk")
        assert task.description == "#task Buy milk"


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

class TestRendering:
    def test_canonical_order(self):
        task = parse_task_line("- [ ] Pay 📅 2024-01-05 🔁 every week ⏫ ^id1")
        assert task.to_string() == "Pay ⏫ 🔁 every week 📅 2024-01-05 ^id1"

    def test_file_line(self):
        task = parse_task_line("  - [X] Done ✅ 2024-01-01")
        assert task.to_file_line_string() == "  - [X] Done ✅ 2024-01-01"

    def test_with_path(self):
        task = parse_task_line("- [ ] x", path="old.md")
        moved = task.with_path("new.md")
        assert moved.path == "new.md"
        assert task.path == "old.md"
        assert moved.description == task.description
