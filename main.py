import logging
import os

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.openapi.utils import get_openapi

import models  # noqa: F401
from core.celery import celery_app
from core.config import settings
from core.db import Base, engine
from core.errors import register_exception_handlers
from core.logging_config import RequestLoggingMiddleware, setup_logging
from routes.admin import router as admin_router
from routes.auth import router as auth_router
from routes.delivery_services import router as delivery_services_router
from routes.locations import router as locations_router
from routes.menu_categories import router as menu_categories_router
from routes.menu_items import router as menu_items_router
from routes.orders import router as orders_router
from routes.payments import router as payments_router
from routes.restaurant import router as restaurant_router
from routes.stripe_webhook import router as stripe_webhook_router
from routes.tax_service_rates import router as tax_service_rates_router

load_dotenv()

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
)


def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )
    openapi_schema.setdefault("components", {})["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer",
            "bearerFormat": "JWT",
        }
    }
    # Apply BearerAuth globally so docs/redoc can send it
    openapi_schema["security"] = [{"BearerAuth": []}]
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

# Ensure tables exist (for dev/test; in prod use Alembic)
Base.metadata.create_all(bind=engine)

app.include_router(auth_router)
app.include_router(locations_router)
app.include_router(menu_categories_router)
app.include_router(menu_items_router)
app.include_router(orders_router)
app.include_router(payments_router)
app.include_router(stripe_webhook_router)
app.include_router(delivery_services_router)
app.include_router(tax_service_rates_router)
app.include_router(restaurant_router)
app.include_router(admin_router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
    }


@app.get("/celery-health")
async def celery_health_check():
    """Check Celery worker status"""
    try:
        inspect = celery_app.control.inspect(timeout=1.0)
        stats = inspect.stats()
    except Exception as e:
        logger.warning("Celery health check failed: %s", e)
        return {"status": "unhealthy", "error": str(e)}
    if stats:
        return {"status": "healthy", "workers": len(stats)}
    return {"status": "no_workers", "message": "No Celery workers running"}


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8000))

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=port,
        reload=settings.DEBUG,
    )
