import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from blogcms import __version__
from blogcms.cache import RevocationSet, RevocationUnavailable
from blogcms.config import settings
from blogcms.database import create_tables, dispose_engine
from blogcms.exceptions import AppError, ValidationFailure
from blogcms.middleware import TimingMiddleware
from blogcms.routers import articles, page_views, users
from blogcms.sanitizers import sanitize_error

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if settings.CREATE_TABLES_ON_STARTUP:
        await create_tables()
    revocations = RevocationSet(settings.REDIS_URL)
    await revocations.connect()  # App keeps serving if Redis is down
    app.state.revocations = revocations
    yield
    # Shutdown
    await revocations.disconnect()
    await dispose_engine()


app = FastAPI(
    title="Blog CMS API",
    description="Users, articles and page-view analytics for a blog",
    version=__version__,
    lifespan=lifespan,
)
# Replaced by the lifespan; keeps the app usable when lifespan events are not run.
app.state.revocations = RevocationSet(settings.REDIS_URL)


# ---------------------------------------------------------------------------
# Error handlers
# ---------------------------------------------------------------------------

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": str(err["loc"][-1]) if err.get("loc") else "unknown", "message": err["msg"]}
        for err in exc.errors()
    ]
    failure = ValidationFailure(details=details)
    return JSONResponse(status_code=failure.status_code, content=failure.to_dict())


@app.exception_handler(RevocationUnavailable)
@app.exception_handler(Exception)
async def server_fault_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content=sanitize_error(exc, settings.DEBUG))


# Middleware
app.add_middleware(TimingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(users.router)
app.include_router(articles.router)
app.include_router(page_views.router)


@app.get("/health")
async def health():
    return {"status": "healthy", "version": __version__}
