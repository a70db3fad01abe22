import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi import _rate_limit_exceeded_handler
import sentry_sdk

from app.api.v1.health import router as health_router
from app.api.v1.ai import router as ai_router
from app.api.v1.resume import router as resume_router
from app.api.v1.waitlist import router as waitlist_router
from app.api.v1.jobs import router as jobs_router
from app.api.v1.analytics import router as analytics_router
from app.core.cors import cors_options
from app.core.rate_limit import limiter
from app.core.config import settings
from app.core.lifespan import lifespan

logging.basicConfig(level=settings.log_level, format="%(message)s")
if settings.sentry_dsn:
    sentry_sdk.init(dsn=settings.sentry_dsn)

app = FastAPI(title="Resume Insight API", version="0.1.0", lifespan=lifespan)

app.add_middleware(CORSMiddleware, **cors_options())
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.include_router(health_router, prefix="/v1", tags=["Health"])
app.include_router(ai_router, prefix="/v1", tags=["AI"])
app.include_router(resume_router, prefix="/v1", tags=["Resume"])
app.include_router(waitlist_router, prefix="/v1", tags=["Waitlist"])
app.include_router(jobs_router, prefix="/v1", tags=["Jobs"])
app.include_router(analytics_router, prefix="/v1", tags=["Analytics"])
