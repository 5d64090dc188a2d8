"""
FastAPI app for the KeliLink backend
Run with: uvicorn api.main:app --reload
"""
from fastapi import FastAPI

try:
    from accounts import peddlers_router, vendors_router
    from ai import router as ai_router
    from cache import redis_client
    from config import USE_MOCK_DB, validate_settings
    from data_rights import router as data_rights_router
    from errors import add_exception_handlers
    from find import router as find_router
    from logging_config import get_logger
    from nearby import peddlers_nearby_router, vendors_nearby_router
    from reviews import router as reviews_router
    from users import router as users_router
except ImportError:
    from api.accounts import peddlers_router, vendors_router
    from api.ai import router as ai_router
    from api.cache import redis_client
    from api.config import USE_MOCK_DB, validate_settings
    from api.data_rights import router as data_rights_router
    from api.errors import add_exception_handlers
    from api.find import router as find_router
    from api.logging_config import get_logger
    from api.nearby import peddlers_nearby_router, vendors_nearby_router
    from api.reviews import router as reviews_router
    from api.users import router as users_router


logger = get_logger("main")


def create_app() -> FastAPI:
    # Refuse to start without JWT_SECRET (and credentials for real Firebase)
    validate_settings()

    app = FastAPI(title="KeliLink API", version="1.0.0")
    add_exception_handlers(app)

    # Reviews before the account routers so /reviews is never shadowed
    app.include_router(reviews_router)
    app.include_router(peddlers_router)
    app.include_router(vendors_router)
    app.include_router(peddlers_nearby_router)
    app.include_router(vendors_nearby_router)
    app.include_router(find_router)
    app.include_router(users_router)
    app.include_router(data_rights_router)
    app.include_router(ai_router)

    @app.get("/health")
    def health():
        redis_ok = redis_client.ping()
        return {
            "status": "ok",
            "redis": "connected" if redis_ok else "unavailable",
            "database": "mock" if USE_MOCK_DB else "firestore",
        }

    @app.get("/")
    def root():
        return {"message": "KeliLink API - street peddler finder"}

    logger.info(f"KeliLink API ready (database={'mock' if USE_MOCK_DB else 'firestore'})")
    return app


app = create_app()
