"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.dependencies import set_filter_service
from api.routers import health, objects, search, spaces
from core.config import get_settings
from core.property_cache import PropertyCache
from core.redis import RedisClient, set_redis_client
from schemas.errors import FilterErrorBody, FilterErrorResponse
from services.exceptions import FilterError, FilterErrorKind
from services.filter_service import FilterService
from services.property_service import SpacePropertyService

logger = logging.getLogger(__name__)

# Client closed request (nginx convention)
STATUS_CLIENT_CLOSED_REQUEST = 499

ERROR_STATUS_CODES: dict[FilterErrorKind, int] = {
    FilterErrorKind.BAD_INPUT: 400,
    FilterErrorKind.NOT_FOUND: 400,
    FilterErrorKind.UNSUPPORTED_FOR_TYPE: 400,
    FilterErrorKind.INVALID_VALUE: 400,
    FilterErrorKind.CANCELLED: STATUS_CLIENT_CLOSED_REQUEST,
    FilterErrorKind.INTERNAL: 500,
}


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    # Startup: Connect to Redis
    redis_client = RedisClient(
        url=app_settings.redis_url,
        enabled=app_settings.redis_enabled,
        pool_size=app_settings.redis_pool_size,
    )
    await redis_client.connect()
    set_redis_client(redis_client)

    # Startup: Load property definitions and build the filter service
    property_cache = PropertyCache(redis_client, ttl=app_settings.property_cache_ttl)
    if app_settings.properties_file is not None:
        property_service = SpacePropertyService.from_yaml(
            app_settings.properties_file, cache=property_cache,
        )
    else:
        logger.warning("PROPERTIES_FILE not set; no space properties are defined")
        property_service = SpacePropertyService(cache=property_cache)
    set_filter_service(FilterService(property_service, app_settings))

    yield

    # Shutdown: Clean up filter service and Redis
    set_filter_service(None)
    await redis_client.close()
    set_redis_client(None)


app_settings = get_settings()

logging.basicConfig(
    level=app_settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Filter API",
    description="Compiles REST filter expressions into backend dataview filters.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(FilterError)
async def filter_exception_handler(_request: Request, exc: FilterError) -> JSONResponse:
    """Map filter errors to status codes with a structured body."""
    status_code = ERROR_STATUS_CODES.get(exc.kind, 500)
    if status_code >= 500:
        logger.error("Filter compilation failed: %s", exc.message)
    else:
        logger.debug("Filter rejected (%s): %s", exc.kind, exc.message)
    body = FilterErrorResponse(detail=FilterErrorBody(error=exc.kind, message=exc.message))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(spaces.router)
app.include_router(objects.router)
app.include_router(search.router)
