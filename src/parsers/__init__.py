from .task_parser import parse_task_line, render_task_body
from .metadata_parser import FileMetadata, ListItem, Section, parse_metadata

__all__ = [
    "parse_task_line",
    "render_task_body",
    "FileMetadata",
    "ListItem",
    "Section",
    "parse_metadata",
]
