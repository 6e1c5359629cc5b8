"""
FastAPI application factory.

Usage:
    algolite --path ./data --port 9200

    # or with uvicorn directly, indexes rooted at ALGOLITE_PATH
    uvicorn algolite.api.app:create_app --factory --port 9200
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from algolite.api.routes.health import router as health_router
from algolite.api.routes.indexes import router as indexes_router
from algolite.constants.app_message import AppMessage
from algolite.dependencies.index_provider import get_index_registry
from algolite.repositories.index_registry import IndexRegistry
from algolite.services.query_service import QueryService
from algolite.services.recommendation_service import RecommendationService
from algolite.services.record_service import RecordService
from algolite.utils.errors import AlgoliteError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    registry: IndexRegistry = app.state.registry
    try:
        registry.init_existing_indexes()
    except Exception as e:
        # startup continues without the indexes that failed to load
        logger.error(f"Can not initialize indexes: {str(e)}", exc_info=True)

    yield

    registry.close()
    logger.info("Closed all indexes")


async def algolite_error_handler(request: Request, exc: AlgoliteError) -> JSONResponse:
    logger.info(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content={'message': str(exc), 'status': exc.status_code},
    )


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"{request.method} {request.url.path} failed: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={'message': AppMessage.INTERNAL_SERVER_ERROR, 'status': 500},
    )


def create_app(registry: Optional[IndexRegistry] = None) -> FastAPI:
    """
    Create the Algolia-compatible application.

    Args:
        registry: Index registry to serve; defaults to the one rooted at ALGOLITE_PATH

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(title="algolite", description="Local emulation of the Algolia REST API", lifespan=lifespan)

    registry = registry or get_index_registry()
    app.state.registry = registry
    app.state.query_service = QueryService(registry=registry)
    app.state.record_service = RecordService(registry=registry)
    app.state.recommendation_service = RecommendationService(registry=registry)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AlgoliteError, algolite_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(health_router, tags=["Health"])
    app.include_router(indexes_router, tags=["Indexes"])
    return app
