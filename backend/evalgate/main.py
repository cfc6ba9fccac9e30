"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from evalgate.config import settings
from evalgate.database import Base, engine
from evalgate.errors import StoreUnavailable

# Import routers
from evalgate.routers import users, guides, evaluation_requests

# Import all models so Base.metadata knows about them
from evalgate.models.user import User                                # noqa: F401
from evalgate.models.guide import GuideProfile                       # noqa: F401
from evalgate.models.evaluation_request import EvaluationRequest     # noqa: F401
from evalgate.models.request_transition import RequestTransition     # noqa: F401
from evalgate.models.notification import Notification               # noqa: F401

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Evalgate",
    description="Athlete evaluation requests with time-gated on-site verification",
    version="0.1.0",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(users.router, prefix="/api/users", tags=["Users"])
app.include_router(guides.router, prefix="/api/guides", tags=["Guides"])
app.include_router(
    evaluation_requests.router, prefix="/api/evaluation-requests", tags=["EvaluationRequests"]
)


@app.exception_handler(SQLAlchemyError)
async def store_error_handler(request: Request, exc: SQLAlchemyError):
    """Store failures are transient for the caller, never a business outcome."""
    logger.exception("Data store error on %s %s", request.method, request.url.path)
    error = StoreUnavailable()
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


@app.on_event("startup")
def on_startup():
    """Create database tables on startup (for SQLite dev mode)."""
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)


@app.get("/api/health")
def health_check():
    return {"status": "ok"}
