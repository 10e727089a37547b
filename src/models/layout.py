"""Display toggles a query can set with ``hide ...`` and ``short`` lines."""

from dataclasses import asdict, dataclass


@dataclass
class LayoutOptions:
    hide_task_count: bool = False
    hide_backlinks: bool = False
    hide_priority: bool = False
    hide_start_date: bool = False
    hide_scheduled_date: bool = False
    hide_done_date: bool = False
    hide_due_date: bool = False
    hide_recurrence_rule: bool = False
    hide_edit_button: bool = False
    short_mode: bool = False

    def to_dict(self) -> dict:
        return asdict(self)
