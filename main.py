from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette_authlib.middleware import AuthlibMiddleware as SessionMiddleware
import uvicorn

import logs
import secretmanager
from config import PROJECT_ROOT_DIR, settings
from database import get_async_engine, get_async_session_factory
from errors import LittrError, http_error_handler, littr_error_handler, unhandled_error_handler

# Import routers
from routers import api, frontend

logger = logs.dev(settings.LOG_LEVEL) if settings.is_dev else logs.prod()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application startup: Initializing resources...")
    app.state.db = get_async_session_factory()
    logger.with_context(env=settings.ENV, base_url=settings.api_base_url).info("Database session factory initialized.")

    yield
    logger.info("Application shutdown: Cleaning up resources...")
    await get_async_engine().dispose()
    logger.info("Database engine disposed.")


app = FastAPI(lifespan=lifespan, title=settings.APP_NAME)
app.include_router(api.router)
app.include_router(frontend.router)
app.mount("/static", StaticFiles(directory=str(PROJECT_ROOT_DIR / "static")), name="static")

app.add_exception_handler(LittrError, littr_error_handler)
app.add_exception_handler(StarletteHTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

app.middleware("http")(logs.request_logger(logger, show_headers=settings.is_dev))
app.add_middleware(
    SessionMiddleware, secret_key=secretmanager.get_session_secret(), https_only=settings.HTTPS
)
app.add_middleware(
    TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS
)


if __name__ == "__main__":
    host, port = settings.listen_address
    uvicorn.run(app, host=host, port=port)
