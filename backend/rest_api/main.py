"""
REST API main application.
Entry point for the FastAPI REST server.

The /ws endpoint is mounted on the same application so HTTP writes and
WebSocket clients share one in-process broadcaster. Run ws_gateway.main
separately with EVENT_TRANSPORT=redis to scale the sockets out.
"""

from fastapi import FastAPI
from sqlalchemy import text

from rest_api.core.cors import configure_cors
from rest_api.core.errors import register_exception_handlers
from rest_api.core.lifespan import lifespan
from rest_api.core.middlewares import register_middlewares
from rest_api.routers.auth import router as auth_router
from rest_api.routers.catalog import categories_router, products_router
from rest_api.routers.daily_close import router as daily_close_router
from rest_api.routers.inventory import router as inventory_router
from rest_api.routers.orders import router as orders_router
from rest_api.routers.reports import router as reports_router
from rest_api.routers.socket import router as socket_router
from rest_api.routers.tables import router as tables_router
from rest_api.routers.users import router as users_router
from shared.config.settings import settings
from shared.infrastructure.db import SessionLocal
from shared.security.rate_limit import limiter
from ws_gateway.endpoint import router as ws_router

API_VERSION = "1.0.0"


def create_app() -> FastAPI:
    app = FastAPI(
        title="Restaurant REST API",
        description="Ordering, inventory and daily close API with real-time notifications",
        version=API_VERSION,
        lifespan=lifespan,
    )

    # Rate limiting
    app.state.limiter = limiter

    register_exception_handlers(app)
    register_middlewares(app)
    configure_cors(app)

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(tables_router)
    app.include_router(categories_router)
    app.include_router(products_router)
    app.include_router(orders_router)
    app.include_router(inventory_router)
    app.include_router(daily_close_router)
    app.include_router(reports_router)
    app.include_router(socket_router)
    app.include_router(ws_router)

    @app.get("/api/health", tags=["health"])
    def health_check():
        """Liveness plus database and socket status."""
        try:
            with SessionLocal() as db:
                db.execute(text("SELECT 1"))
            database = "healthy"
        except Exception as e:
            database = f"unhealthy: {type(e).__name__}"

        registry = getattr(app.state, "registry", None)
        return {
            "status": "healthy" if database == "healthy" else "degraded",
            "service": "rest-api",
            "environment": settings.environment,
            "version": API_VERSION,
            "database": database,
            "connections": registry.total_connections if registry else 0,
        }

    return app


app = create_app()


# =============================================================================
# Development entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "rest_api.main:app",
        host="0.0.0.0",
        port=settings.rest_api_port,
        reload=settings.environment == "development",
    )
