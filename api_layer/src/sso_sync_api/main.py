from textwrap import dedent

import pydantic
from fastapi import FastAPI
from fastapi.routing import APIRoute
from loguru import logger

from sso_sync_api.errors import handle_broad_exceptions
from sso_sync_api.errors import handle_pydantic_validation_errors
from sso_sync_api.errors import handle_sync_errors
from sso_sync_api.monitoring.logger import configure_logger
from sso_sync_api.monitoring.request_context import RequestContextMiddleware
from sso_sync_api.registry.pool import RegistryDBPool
from sso_sync_api.routes.routes_health import ROUTER_HEALTH
from sso_sync_api.routes.routes_sync import ROUTER_SYNC
from sso_sync_api.routes.routes_tenants import ROUTER_TENANTS
from sso_sync_api.routes.routes_users import ROUTER_USERS
from sso_sync_api.settings import Settings
from sso_sync_api.sync.errors import SyncError
from sso_sync_api.tenant_store.factory import TenantStoreFactory


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create a FastAPI application.

    Configuration is loaded directly from environment variables via pydantic-settings,
    or from a .env file in the api_layer directory during local development.
    """
    settings = settings or Settings()

    configure_logger(log_level=settings.log_level, environment=settings.environment)

    logger.info(
        "Configuration loaded successfully",
        registry_schema=settings.registry_db_schema,
        sync_max_concurrency=settings.sync_max_concurrency,
        tenant_http_timeout_seconds=settings.tenant_http_timeout_seconds,
        environment=settings.environment,
    )

    app = FastAPI(
        title="SSO Site Sync API",
        version="v1",
        description=dedent(
            """
        Pushes users of the central registry into every connected tenant site and
        reads them back, adapting to whatever user table each tenant exposes.

        | Area | Notes |
        | --- | --- |
        | Sync | single tenant, several tenants, all tenants, all users |
        | Tenants | registry management, user listing, table probing, row edits |
        | Users | canonical user registry |
        """
        ),
        generate_unique_id_function=custom_generate_unique_id,
    )
    app.state.settings = settings

    app.state.registry_pool = RegistryDBPool(
        settings.registry_db_connection_string,
        schema=settings.registry_db_schema,
        min_size=settings.registry_db_min_pool_size,
        max_size=settings.registry_db_max_pool_size,
    )
    app.state.store_factory = TenantStoreFactory(
        timeout_seconds=settings.tenant_http_timeout_seconds,
        identity_page_size=settings.identity_page_size,
    )

    @app.on_event("startup")
    async def startup_registry():
        """Open the registry pool and the shared tenant HTTP client."""
        await app.state.registry_pool.initialize()
        await app.state.store_factory.start()
        logger.success("SSO site sync API started")

    @app.on_event("shutdown")
    async def shutdown_registry():
        """Close the tenant HTTP client and the registry pool."""
        await app.state.store_factory.close()
        await app.state.registry_pool.close()
        logger.info("SSO site sync API stopped")

    # Add request context middleware for tracking who/where requests come from
    app.add_middleware(RequestContextMiddleware)
    app.include_router(ROUTER_HEALTH, prefix="/api")
    app.include_router(ROUTER_SYNC, prefix="/api")
    app.include_router(ROUTER_TENANTS, prefix="/api")
    app.include_router(ROUTER_USERS, prefix="/api")

    app.add_exception_handler(
        exc_class_or_status_code=pydantic.ValidationError,
        handler=handle_pydantic_validation_errors,
    )
    app.add_exception_handler(
        exc_class_or_status_code=SyncError,
        handler=handle_sync_errors,
    )

    app.middleware("http")(handle_broad_exceptions)

    return app


def custom_generate_unique_id(route: APIRoute):
    """
    Generate prettier `operationId`s in the OpenAPI schema.

    These become the function names in generated client SDKs.
    """
    if route.tags:
        return f"{route.tags[0]}-{route.name}"
    return route.name


if __name__ == "__main__":
    import uvicorn

    app = create_app()
    uvicorn.run(app, host="0.0.0.0", port=8000)
