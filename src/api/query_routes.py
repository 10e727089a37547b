"""REST API routes for queries over the task index."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from tools.query_tools import handle_cache_status, handle_task_query


class QueryBody(BaseModel):
    query: str


def register_query_routes(app_router: APIRouter, cache) -> None:
    """Attach query REST routes that use the shared cache."""

    @app_router.post("/query")
    def run_task_query(body: QueryBody):
        result = handle_task_query(cache, query=body.query)
        if result["error"] is not None:
            raise HTTPException(status_code=400, detail=result["error"])
        return result

    @app_router.get("/cache/status")
    def get_cache_status():
        return handle_cache_status(cache)
