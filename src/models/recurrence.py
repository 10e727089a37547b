"""
Recurrence rules attached to tasks via the 🔁 signifier.

A rule is plain text such as ``every week``, ``every 3 days``,
``every 2 weeks on monday, friday`` or ``every month when done``. The rule is
bound to the task's dates: the due date is the reference date, falling back
to scheduled and then start.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Optional, Tuple

from utils import dates

_WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_RULE_RE = re.compile(
    r"^every(?:\s+(?P<interval>\d+))?\s+(?P<unit>day|week|month|year)s?"
    r"(?:\s+on\s+(?P<days>[a-z,\s]+?))?"
    r"(?P<when_done>\s+when\s+done)?$",
    re.IGNORECASE,
)
_WEEKDAY_RULE_RE = re.compile(
    r"^every\s+(?P<days>[a-z,\s]+?)(?P<when_done>\s+when\s+done)?$",
    re.IGNORECASE,
)


def _parse_weekdays(text: Optional[str]) -> Optional[Tuple[int, ...]]:
    if not text:
        return ()
    days = []
    for part in re.split(r"[,\s]+|\s+and\s+", text.strip().lower()):
        if not part or part == "and":
            continue
        if part not in _WEEKDAYS:
            return None
        days.append(_WEEKDAYS.index(part))
    return tuple(sorted(set(days)))


@dataclass(frozen=True)
class Recurrence:
    """A parsed recurrence rule plus the dates it was attached to."""

    rule_text: str
    interval: int
    unit: str
    weekdays: Tuple[int, ...] = ()
    when_done: bool = False
    start_date: Optional[date] = None
    scheduled_date: Optional[date] = None
    due_date: Optional[date] = None

    @classmethod
    def from_text(
        cls,
        recurrence_rule_text: str,
        *,
        start_date: Optional[date] = None,
        scheduled_date: Optional[date] = None,
        due_date: Optional[date] = None,
    ) -> Optional[Recurrence]:
        """Parse rule text; returns None when the text is not a valid rule."""
        text = " ".join(recurrence_rule_text.split())
        m = _RULE_RE.match(text)
        if m:
            weekdays = _parse_weekdays(m.group("days"))
            if weekdays is None:
                return None
            unit = m.group("unit").lower()
            if weekdays and unit != "week":
                return None
            interval = int(m.group("interval") or 1)
        else:
            m = _WEEKDAY_RULE_RE.match(text)
            if not m:
                return None
            weekdays = _parse_weekdays(m.group("days"))
            if not weekdays:
                return None
            unit, interval = "week", 1

        if interval < 1:
            return None

        return cls(
            rule_text=text,
            interval=interval,
            unit=unit,
            weekdays=weekdays,
            when_done=bool(m.group("when_done")),
            start_date=start_date,
            scheduled_date=scheduled_date,
            due_date=due_date,
        )

    def to_text(self) -> str:
        return self.rule_text

    @property
    def reference_date(self) -> Optional[date]:
        return self.due_date or self.scheduled_date or self.start_date

    def next(self, completed_on: Optional[date] = None) -> Optional[Dict[str, Optional[date]]]:
        """
        Dates of the next occurrence.

        Returns a dict with ``start_date``, ``scheduled_date`` and ``due_date``
        shifted by the same offset as the reference date, or None when the
        rule has no date to recur from.
        """
        reference = self.reference_date
        if reference is None:
            return None

        anchor = (completed_on or dates.today()) if self.when_done else reference
        next_reference = self._next_after(anchor)
        offset = next_reference - reference

        return {
            "start_date": self.start_date + offset if self.start_date else None,
            "scheduled_date": self.scheduled_date + offset if self.scheduled_date else None,
            "due_date": self.due_date + offset if self.due_date else None,
        }

    def _next_after(self, anchor: date) -> date:
        if not self.weekdays:
            return dates.shift(anchor, self.unit, self.interval)

        for weekday in self.weekdays:
            if weekday > anchor.weekday():
                return anchor + timedelta(days=weekday - anchor.weekday())
        # Wrap to the first listed weekday, skipping interval - 1 weeks.
        week_start = anchor - timedelta(days=anchor.weekday())
        return week_start + timedelta(weeks=self.interval, days=self.weekdays[0])
