from .query import Query
from .runner import QueryResult, run_query
from .sort import SORTING_PROPERTIES, Sort, Sorting

__all__ = ["Query", "QueryResult", "SORTING_PROPERTIES", "Sort", "Sorting", "run_query"]
