import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from app.api.v1.health import router as health_router
from app.api.v1.discover import router as discover_router
from app.api.v1.simulations import router as simulations_router
from app.api.v1.analytics import router as analytics_router
from app.core.cors import cors_options
from app.core.rate_limit import limiter
from app.core.config import settings
from app.core.lifespan import lifespan

logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="Career Discovery API", version="0.1.0", lifespan=lifespan)

app.add_middleware(CORSMiddleware, **cors_options())
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(discover_router, prefix="/v1", tags=["Discover"])
app.include_router(simulations_router, prefix="/v1", tags=["Simulations"])
app.include_router(analytics_router, prefix="/v1", tags=["Analytics"])
