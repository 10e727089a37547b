"""
Structural metadata for a markdown document.

Produces the same shape of information an editor's metadata cache exposes:
the list items of a document (with line ranges, the line of their
structural parent and their checkbox character) and the document's
top-level sections (heading, list, paragraph, code, yaml) with line ranges.
Blank lines belong to no section.

Main API:
    parse_metadata(content) → FileMetadata
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from models.task import NO_PARENT

LIST_ITEM_RE = re.compile(r"^(\s*)(?:[-*+]|\d+[.)])(?: +(.*))?$")
CHECKBOX_RE = re.compile(r"^\[(.)\]")
HEADING_RE = re.compile(r"^#{1,6}(?: |$)")
FENCE_RE = re.compile(r"^\s*(```|~~~)")

SECTION_HEADING = "heading"
SECTION_LIST = "list"
SECTION_PARAGRAPH = "paragraph"
SECTION_CODE = "code"
SECTION_YAML = "yaml"


@dataclass(frozen=True)
class ListItem:
    """One list item. ``task`` is the checkbox character, or None for plain bullets."""

    line: int
    end_line: int
    parent: int = NO_PARENT
    task: Optional[str] = None

    @property
    def is_task(self) -> bool:
        return self.task is not None


@dataclass(frozen=True)
class Section:
    type: str
    start_line: int
    end_line: int

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


@dataclass
class FileMetadata:
    list_items: List[ListItem] = field(default_factory=list)
    sections: List[Section] = field(default_factory=list)

    @property
    def headings(self) -> List[Section]:
        return [s for s in self.sections if s.type == SECTION_HEADING]


# ---------------------------------------------------------------------------
# Low-level helpers
# ---------------------------------------------------------------------------

def _indent_width(indent_str: str) -> int:
    return len(indent_str.replace("\t", "    "))


def _frontmatter_end(lines: List[str]) -> int:
    """
    Index of the closing ``---`` of YAML frontmatter, or -1 if there is none.

    Frontmatter must start on the first line; an unclosed block is not
    frontmatter.
    """
    if not lines or lines[0].strip() != "---":
        return -1
    for i in range(1, len(lines)):
        if lines[i].strip() == "---":
            return i
    return -1


def _next_non_blank(lines: List[str], start: int) -> int:
    i = start
    while i < len(lines) and not lines[i].strip():
        i += 1
    return i


# ---------------------------------------------------------------------------
# Main parse API
# ---------------------------------------------------------------------------

def parse_metadata(content: str) -> FileMetadata:
    """Scan markdown content line by line into list items and sections."""
    lines = content.split("\n")
    metadata = FileMetadata()
    sections = metadata.sections
    items = metadata.list_items

    i = 0
    fm_end = _frontmatter_end(lines)
    if fm_end > 0:
        sections.append(Section(SECTION_YAML, 0, fm_end))
        i = fm_end + 1

    while i < len(lines):
        line = lines[i]
        stripped = line.strip()

        if not stripped:
            i += 1
            continue

        if FENCE_RE.match(line):
            fence = FENCE_RE.match(line).group(1)
            start = i
            i += 1
            while i < len(lines) and not lines[i].strip().startswith(fence):
                i += 1
            end = min(i, len(lines) - 1)
            sections.append(Section(SECTION_CODE, start, end))
            i = end + 1
            continue

        if HEADING_RE.match(stripped) and not line[0].isspace():
            sections.append(Section(SECTION_HEADING, i, i))
            i += 1
            continue

        if LIST_ITEM_RE.match(line):
            start = i
            i, list_items = _scan_list(lines, i)
            items.extend(list_items)
            sections.append(Section(SECTION_LIST, start, i - 1))
            continue

        start = i
        i += 1
        while i < len(lines):
            nxt = lines[i]
            if not nxt.strip() or FENCE_RE.match(nxt) or LIST_ITEM_RE.match(nxt):
                break
            if HEADING_RE.match(nxt.strip()) and not nxt[0].isspace():
                break
            i += 1
        sections.append(Section(SECTION_PARAGRAPH, start, i - 1))

    return metadata


def _scan_list(lines: List[str], start: int) -> Tuple[int, List[ListItem]]:
    """
    Consume one list starting at ``start``.

    Returns (index one past the list's last non-blank line, list items).
    A blank line only ends the list when the next non-blank line is neither
    a list item nor indented continuation text.
    """
    items: List[ListItem] = []
    # (indent width, line number, index into items) of open ancestors
    stack: List[Tuple[int, int, int]] = []
    i = start
    last_content = start

    while i < len(lines):
        line = lines[i]

        if not line.strip():
            nxt = _next_non_blank(lines, i)
            if nxt >= len(lines):
                break
            if not (LIST_ITEM_RE.match(lines[nxt]) or lines[nxt][0].isspace()):
                break
            i = nxt
            continue

        m = LIST_ITEM_RE.match(line)
        if m:
            width = _indent_width(m.group(1))
            while stack and stack[-1][0] >= width:
                stack.pop()
            parent = stack[-1][1] if stack else NO_PARENT

            checkbox = CHECKBOX_RE.match(m.group(2) or "")
            items.append(
                ListItem(
                    line=i,
                    end_line=i,
                    parent=parent,
                    task=checkbox.group(1) if checkbox else None,
                )
            )
            stack.append((width, i, len(items) - 1))
        elif HEADING_RE.match(line.strip()) and not line[0].isspace():
            break
        elif FENCE_RE.match(line) and not line[0].isspace():
            break
        elif items:
            # Continuation text extends the innermost open item.
            owner = stack[-1][2] if stack else len(items) - 1
            prev = items[owner]
            items[owner] = ListItem(prev.line, i, prev.parent, prev.task)

        last_content = i
        i += 1

    return last_content + 1, items
