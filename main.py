# Standard library imports
import logging
from contextlib import asynccontextmanager

# Third-party imports
from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

# Local imports
from config import get_settings
from database import Base, engine
from errors import PosterError
from auth.middleware import get_session_id
from auth.session_store import TokenStore, get_token_store

# Plugin system
from plugin_manager import plugin_manager

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def create_scheduler():
    """Scheduler publishing with the credentials captured at schedule time."""
    from plugins.twitter.poster import TwitterPoster
    from plugins.twitter.scheduler import InMemoryPendingPostStore, PostScheduler

    settings = get_settings()

    async def publish(post):
        poster = TwitterPoster(get_token_store())
        return await poster.publish(post.credentials, post.caption)

    return PostScheduler(
        InMemoryPendingPostStore(),
        publish,
        interval=settings.SCHEDULER_INTERVAL_SECONDS,
        max_attempts=settings.SCHEDULER_MAX_ATTEMPTS
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    if settings.SCHEDULER_ENABLED:
        app.state.scheduler.start()
    try:
        yield
    finally:
        await app.state.scheduler.stop()


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Social Media Poster", lifespan=lifespan)

    # Initialize database
    if settings.TOKEN_STORE_BACKEND.lower() == "database":
        Base.metadata.create_all(bind=engine)

    # The cookie only carries the opaque session id; Starlette marks it HttpOnly
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY,
        session_cookie=settings.SESSION_COOKIE_NAME,
        max_age=settings.SESSION_EXPIRY_HOURS * 3600,
        same_site=settings.SESSION_SAME_SITE,
        https_only=settings.SESSION_HTTPS_ONLY
    )

    @app.exception_handler(PosterError)
    async def poster_error_handler(request: Request, exc: PosterError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.error_code} - {exc.message}"
                     f" - upstream: {exc.upstream_body}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Discover plugins and mount their routes
    plugin_manager.discover_plugins()
    for service_name, router in plugin_manager.get_service_routers().items():
        app.include_router(router)
        logger.info(f"Mounted routes for service: {service_name}")

    app.state.scheduler = create_scheduler()

    @app.get("/")
    async def root():
        """Entry point: where to start the login flows."""
        return {
            "name": "Social Media Poster",
            "login": {"oauth2": "/auth/start", "oauth1": "/auth/twitter"}
        }

    @app.get("/dashboard")
    async def dashboard(
        session_id: str = Depends(get_session_id),
        token_store: TokenStore = Depends(get_token_store)
    ):
        """Authentication status of the current session."""
        record = token_store.get(session_id)
        credentials = record.credentials() if record else None
        if credentials is None:
            return {"authenticated": False}
        return {
            "authenticated": True,
            "auth_type": "oauth1" if credentials.is_oauth1 else "oauth2",
            "expires_at": record.expires_at.isoformat() if record.expires_at else None
        }

    @app.get("/success")
    async def success():
        return {"status": "success"}

    @app.get("/failure")
    async def failure(error: str = "unknown", message: str = ""):
        return {"status": "failure", "error": error, "message": message}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host="0.0.0.0",
        port=8000,
        log_level="info"
    )
