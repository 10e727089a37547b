"""FastAPI application factory for the task query REST API."""

from fastapi import APIRouter, FastAPI

from api.query_routes import register_query_routes


def create_app(cache) -> FastAPI:
    """Build and return a FastAPI app wired to the given TaskCache."""
    app = FastAPI(title="tasks-vault", docs_url="/api/docs", openapi_url="/api/openapi.json")

    api = APIRouter(prefix="/api")
    register_query_routes(api, cache)
    app.include_router(api)

    return app
