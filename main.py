# main.py
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from config.logging_config import configure_logging
from config.settings import CORS_ORIGINS
from middleware.rate_limit import limiter
from middleware.request_logging import RequestLoggingMiddleware
from routers.auth_routes import router as auth_router
from routers.market_routes import router as market_router
from routers.portfolio_routes import router as portfolio_router
from routers.wishlist_routes import router as wishlist_router
from schemas.general import fail
from services.currency_service import ExchangeRateService
from services.price_service import build_price_service
from services.search_service import build_search_service

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Stock Portfolio Tracker")

app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

# Long-lived collaborators; each owns its own TTL cache.
app.state.limiter = limiter
app.state.price_service = build_price_service()
app.state.search_service = build_search_service()
app.state.fx_service = ExchangeRateService()


# ─── Error envelope ────────────────────────────────────────────────

def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    missing = [str(e["loc"][-1]) for e in errors if e.get("type") == "missing"]
    if missing:
        return f"Missing required fields: {', '.join(missing)}"
    if not errors:
        return "Invalid request"

    first = errors[0]
    msg = str(first.get("msg") or "Invalid request")
    if msg.startswith("Value error, "):
        # our own validators already write user-facing messages
        return msg[len("Value error, "):]
    loc = [str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path")]
    return f"{'.'.join(loc)}: {msg}" if loc else msg


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = fail(str(exc.detail), exc.status_code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return fail(_validation_message(exc), 400)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return fail(f"Rate limit exceeded: {exc.detail}", 429)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled error path=%s", request.url.path)
    return fail("Internal server error", 500)


# Include routers
app.include_router(auth_router, prefix="/api/auth")
app.include_router(portfolio_router, prefix="/api/portfolio")
app.include_router(wishlist_router, prefix="/api/wishlist")
app.include_router(market_router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok"}


# db startup
from database import Base, engine  # noqa: E402
import models  # noqa: E402,F401  this triggers models/__init__.py which imports all tables

Base.metadata.create_all(bind=engine)
