import logging

from fastapi import FastAPI
from fastapi.routing import APIRoute

from webapps.config.settings import Settings, get_settings
from webapps.counter_store import CounterUnavailableError
from webapps.errors import handle_broad_exceptions, handle_counter_unavailable
from webapps.routers.counter import router as counter_router
from webapps.routers.health import router as health_router
from webapps.routers.pages import greeting_router, router as pages_router

logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create the sample app selected by `settings.app_variant`."""
    settings = settings or get_settings()

    app = FastAPI(
        title="Sample Web App",
        summary=f"The '{settings.app_variant}' sample served in the Docker and AWS labs",
        version="v1",
        docs_url="/docs",
        generate_unique_id_function=custom_generate_unique_id,
    )
    app.state.settings = settings

    if settings.app_variant == "counter":
        app.include_router(counter_router, tags=["counter"])
    else:
        app.include_router(greeting_router, tags=["pages"])
    if settings.app_variant == "routed":
        app.include_router(pages_router, tags=["pages"])
    app.include_router(health_router, tags=["health"])

    app.add_exception_handler(
        exc_class_or_status_code=CounterUnavailableError,
        handler=handle_counter_unavailable,
    )
    app.middleware("http")(handle_broad_exceptions)

    logger.info(f"Created '{settings.app_variant}' sample app")
    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    return f"{route.tags[0]}-{route.name}"


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = app.state.settings
    logging.basicConfig(
        level=settings.log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    uvicorn.run(app, host="0.0.0.0", port=5000)
