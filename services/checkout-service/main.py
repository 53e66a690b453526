"""Main application entry point."""
import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import redis
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor

from config import (
    REDIS_URL,
    API_VERSION,
    PORT,
    CORS_ORIGINS,
    RATE_LIMIT_ENABLED,
    RATE_LIMIT_PER_MINUTE_IP,
    RATE_LIMIT_PER_MINUTE_SESSION
)
import database
from errors import StoreUnavailable
from monitoring import init_profiling
from logging_config import setup_logging
from routers import products, cart, orders
from redis_rate_limiter import RedisRateLimiter
from security_headers import SecurityHeadersMiddleware, RequestSizeLimitMiddleware

# Setup structured logging
setup_logging()
logger = logging.getLogger(__name__)

# Sync client shared by the rate limiter and the session cart store
redis_client = redis.from_url(REDIS_URL, decode_responses=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting application...")

    # Schema bootstrap failure must not stop the process; /api/health reports it.
    try:
        database.init_db()
    except Exception as e:
        logger.error("Schema init failed", extra={"error": str(e)})

    app.state.redis_client = redis_client
    logger.info("Redis client initialized")

    init_profiling()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    redis_client.close()
    logger.info("Application shutdown complete")


app = FastAPI(
    title="Checkout Service",
    version=API_VERSION,
    lifespan=lifespan
)

if RATE_LIMIT_ENABLED:
    app.add_middleware(
        RedisRateLimiter,
        redis_client=redis_client,
        requests_per_minute_ip=RATE_LIMIT_PER_MINUTE_IP,
        requests_per_minute_session=RATE_LIMIT_PER_MINUTE_SESSION
    )

app.add_middleware(RequestSizeLimitMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Outermost, so rejections from the middleware above carry the headers too
app.add_middleware(SecurityHeadersMiddleware)

FastAPIInstrumentor.instrument_app(app)
SQLAlchemyInstrumentor().instrument(engine=database.engine)
RedisInstrumentor().instrument()


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    """Render errors as {"error": <code>}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None)
    )


@app.exception_handler(StoreUnavailable)
async def store_unavailable(request: Request, exc: StoreUnavailable):
    logger.error("Backing store unavailable", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(status_code=503, content={"error": StoreUnavailable.code})


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    logger.info("Rejected invalid input", extra={"path": request.url.path})
    return JSONResponse(status_code=400, content={"error": "invalid_input"})


@app.get("/api/health")
async def health():
    """Liveness check backed by the relational store."""
    try:
        ok = database.healthcheck()
    except StoreUnavailable:
        return JSONResponse(status_code=500, content={"ok": False, "error": "db_unhealthy"})
    return {"ok": ok}


app.include_router(products.router)
app.include_router(cart.router)
app.include_router(orders.router)


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=PORT)
