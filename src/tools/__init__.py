from .query_tools import register_query_tools

__all__ = ["register_query_tools"]
