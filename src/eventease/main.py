"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance. The auth collaborators (token service, credential store, gate,
identity linker, Google client) are built here exactly once and hung on
app.state, so route dependencies read them from the request instead of
importing globals. Tests call create_app() with their own settings and
session factory.

Lifespan manages what needs a running loop: the optional Redis
connection and disposing of the database engine.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from eventease import __version__
from eventease.api import api_router
from eventease.auth.gate import AuthGate
from eventease.auth.linker import IdentityLinker
from eventease.auth.oauth import GoogleOAuthClient
from eventease.auth.store import SqlCredentialStore
from eventease.auth.tokens import TokenService
from eventease.config import Settings
from eventease.db.engine import build_engine, build_session_factory
from eventease.errors import register_exception_handlers
from eventease.middleware.rate_limit import RateLimitMiddleware, connect_redis
from eventease.middleware.request_id import RequestIdMiddleware
from eventease.middleware.security import SecurityHeadersMiddleware

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(
        "eventease.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
        google_oauth=settings.google_oauth_enabled,
    )
    if settings.jwt_secret_ephemeral:
        logger.warning(
            "eventease.ephemeral_jwt_secret",
            hint="tokens stop verifying on restart; set EVENTEASE_JWT_SECRET",
        )

    try:
        app.state.redis = await connect_redis(settings.redis_url)
        logger.info("eventease.redis_connected", url=settings.redis_url)
    except Exception as e:
        # Redis is optional; without it there is no rate limiting
        logger.warning("eventease.redis_unavailable", error=str(e))
        app.state.redis = None

    yield

    logger.info("eventease.shutdown")
    if app.state.redis is not None:
        await app.state.redis.aclose()
        app.state.redis = None
    if app.state.engine is not None:
        await app.state.engine.dispose()


def _build_google_client(settings: Settings) -> Optional[GoogleOAuthClient]:
    if not settings.google_oauth_enabled:
        logger.info("eventease.google_oauth_disabled")
        return None
    return GoogleOAuthClient(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        callback_url=settings.google_callback_url,
    )


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    if settings is None:
        from eventease.config import settings as default_settings

        settings = default_settings

    app = FastAPI(
        title="EventEase API",
        description="Event planning API — events, invitations, RSVPs",
        version=__version__,
        lifespan=lifespan,
    )

    # ── Shared services ──────────────────────────────────────
    engine = None
    if session_factory is None:
        engine = build_engine(settings)
        session_factory = build_session_factory(engine)

    tokens = TokenService(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        default_lifetime=settings.token_lifetime,
    )
    store = SqlCredentialStore(session_factory, bcrypt_rounds=settings.bcrypt_rounds)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.redis = None
    app.state.tokens = tokens
    app.state.store = store
    app.state.auth_gate = AuthGate(tokens, store, cookie_name=settings.cookie_name)
    app.state.linker = IdentityLinker(
        store,
        tokens,
        auto_link=settings.oauth_auto_link,
        lifetime=settings.token_lifetime,
        bcrypt_rounds=settings.bcrypt_rounds,
    )
    app.state.google = _build_google_client(settings)

    # ── Middleware stack ──────────────────────────────────────
    # Note: Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → RequestId → Security → RateLimit → handler
    app.add_middleware(
        RateLimitMiddleware,
        default_rpm=settings.rate_limit_rpm,
        auth_rpm=settings.rate_limit_auth_rpm,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(
        app,
        expose_internals=settings.debug or settings.environment == "development",
    )
    app.include_router(api_router)
    return app


# Default app instance (used by uvicorn: eventease.main:app)
app = create_app()
