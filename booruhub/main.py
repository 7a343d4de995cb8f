import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .database import init_db, init_engine
from .errors import BooruError, InvalidURLError, NotFoundError, RateLimitedError, UnauthorizedError
from .routes import favorites, images, posts, tags
from .routes import settings as settings_routes

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version="1.0.0")

app.include_router(settings_routes.router)
app.include_router(posts.router)
app.include_router(tags.router)
app.include_router(images.router)
app.include_router(favorites.router)

def status_for_error(error: BooruError) -> int:
    if isinstance(error, InvalidURLError):
        return 400
    if isinstance(error, UnauthorizedError):
        return 401
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, RateLimitedError):
        return 429
    return 502

@app.exception_handler(BooruError)
async def booru_error_handler(request: Request, exc: BooruError):
    """Upstream failures become JSON errors that say whether a retry makes sense"""
    status_code = status_for_error(exc)
    body = {
        "detail": str(exc),
        "error": type(exc).__name__,
        "retryable": exc.is_retryable,
        "recovery_suggestion": exc.recovery_suggestion,
    }
    headers = {}
    if isinstance(exc, RateLimitedError) and exc.retry_after is not None:
        body["retry_after"] = exc.retry_after
        headers["Retry-After"] = str(int(exc.retry_after))
    logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content=body, headers=headers)

@app.on_event("startup")
async def startup_event():
    """Run on startup"""
    init_engine()
    init_db()
    logger.info(f"{settings.APP_NAME} started successfully")
