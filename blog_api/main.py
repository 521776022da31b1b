import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError

from blog_api.code_store import code_store
from blog_api.config import Settings, settings
from blog_api.errors import install_exception_handlers
from blog_api.guard import AuthorizationGuard
from blog_api.middleware import SafetyNetMiddleware, TimingMiddleware
from blog_api.routers import articles, auth, categories, comments, uploads
from blog_api.storage import storage
from blog_api.tokens import TokenService

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def configure_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    try:
        await code_store.connect()
    except (RedisError, OSError) as exc:
        # Everything but email verification works without Redis.
        logger.warning("Redis unavailable, verification codes disabled: %s", exc)
    storage.connect()
    yield
    # Shutdown
    await code_store.disconnect()


def create_app(app_settings: Settings = settings) -> FastAPI:
    """
    Build the application.

    The token service is constructed here, once, from *app_settings*; a
    missing secret fails startup instead of the first authenticated request.
    """
    token_service = TokenService(
        app_settings.JWT_SECRET,
        expiration_hours=app_settings.JWT_EXPIRATION_HOURS,
    )

    app = FastAPI(
        title="Blog API",
        description="Blog content service with token auth and cursor pagination",
        version=VERSION,
        lifespan=lifespan,
    )
    app.state.token_service = token_service
    app.state.auth_guard = AuthorizationGuard(token_service)

    install_exception_handlers(app)

    # Middleware (last added is outermost)
    app.add_middleware(SafetyNetMiddleware)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth.router)
    app.include_router(articles.router)
    app.include_router(comments.router)
    app.include_router(categories.router)
    app.include_router(uploads.router)

    @app.get("/health")
    async def health():
        return {"status": "healthy", "version": VERSION}

    return app


configure_logging()
app = create_app()
