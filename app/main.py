"""
Structure Inspection API - Main Application

Relays the rating aggregation engine and the structural identity codec over
HTTP. Errors are rendered as RFC 7807 problem details.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from app.api.v2.router import api_router
from app.config import settings
from app.database import dispose_db, init_db
from app.exceptions import InspectionException, create_exception_handlers
from app.middleware import RequestIdMiddleware, RequestIdLogFilter

API_VERSION = "1.0.0"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"


def configure_logging() -> None:
    """Root logging with the request ID on every line."""
    logging.basicConfig(level=logging.DEBUG if settings.DEBUG else logging.INFO, format=LOG_FORMAT)
    for handler in logging.getLogger().handlers:
        handler.addFilter(RequestIdLogFilter())
    # SQL echo goes through the engine's own logger; keep it out of INFO output
    if not settings.sqlalchemy_echo:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting Structure Inspection API (%s)", settings.ENVIRONMENT)
    try:
        await init_db()
        logger.info("Structure tables ready")
    except Exception as e:
        # Don't log full exception details which may contain credentials
        logger.error("Database initialization failed: %s", type(e).__name__)
        logger.warning("Starting without database; structure endpoints will fail until it is reachable")
    yield
    await dispose_db()
    logger.info("Structure Inspection API stopped")


app = FastAPI(
    title="Structure Inspection API",
    description="Building inspection records, health ratings and structural identity numbers",
    version=API_VERSION,
    docs_url="/docs" if settings.DOCS_ENABLED else None,
    redoc_url="/redoc" if settings.DOCS_ENABLED else None,
    lifespan=lifespan,
)

allowed_origins = [
    settings.FRONTEND_URL,
    "http://localhost:5173",  # Vite dev server
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestIdMiddleware)

handlers = create_exception_handlers(allowed_origins)
app.add_exception_handler(InspectionException, handlers["inspection"])
app.add_exception_handler(StarletteHTTPException, handlers["http"])
app.add_exception_handler(RequestValidationError, handlers["validation"])
app.add_exception_handler(Exception, handlers["generic"])

app.include_router(api_router, prefix="/api/v2")


@app.get("/")
async def root():
    info = {
        "name": "Structure Inspection API",
        "version": API_VERSION,
        "structures": "/api/v2/structures",
        "identity": "/api/v2/identity",
    }
    if settings.DOCS_ENABLED:
        info["docs"] = "/docs"
    return info


@app.get("/health")
async def health_check():
    return {"status": "healthy", "version": API_VERSION, "environment": settings.ENVIRONMENT}


# For running with uvicorn directly (development only)
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
