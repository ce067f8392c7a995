"""Exception handling for the sample apps."""
import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from webapps.counter_store import CounterUnavailableError

logger = logging.getLogger(__name__)


async def handle_counter_unavailable(request: Request, exc: CounterUnavailableError) -> JSONResponse:
    """Redis is down or still starting: tell the client to come back later."""
    logger.warning(f"Counter unavailable for {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Counter backend unavailable"},
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Log unhandled errors and answer with a generic 500."""
    try:
        return await call_next(request)
    except Exception as err:
        logger.exception(err)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )
