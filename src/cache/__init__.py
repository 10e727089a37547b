from .task_cache import State, TaskCache, parse_task_blocks

__all__ = ["State", "TaskCache", "parse_task_blocks"]
