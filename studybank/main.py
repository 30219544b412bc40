"""
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from studybank.core.config import settings
from studybank.core.database import init_db
from studybank.core.errors import StudyBankError
from studybank.api.auth import router as auth_router
from studybank.api.author import router as author_router
from studybank.api.practice import router as practice_router
from studybank.api.review import router as review_router
from studybank.api.dashboard import router as dashboard_router
from studybank.api.notebook import router as notebook_router
from studybank.api.admin import router as admin_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})...")
    if not settings.is_production():
        # production schemas are managed outside the app
        init_db()
        logger.info("Database schema ensured")
    yield
    logger.info("Shutdown complete")


app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error(status_code: int, message, error_type: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": {"message": message, "type": error_type, "status_code": status_code, **extra}},
    )


@app.exception_handler(StudyBankError)
async def studybank_exception_handler(request: Request, exc: StudyBankError):
    """Map core errors (auth, persistence, validation, not found) to HTTP."""
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return _error(exc.status_code, str(exc), exc.error_type)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _error(exc.status_code, exc.detail, "http_error")


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return _error(status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error", "validation_error",
                  details=jsonable_errors(exc))


def jsonable_errors(exc: RequestValidationError) -> list:
    return [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in exc.errors()]


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    if settings.is_production():
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "An internal error occurred", "internal_error")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), "internal_error", debug=True)


app.include_router(auth_router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["auth"])
app.include_router(author_router, prefix=f"{settings.API_V1_PREFIX}/author", tags=["authoring"])
app.include_router(practice_router, prefix=f"{settings.API_V1_PREFIX}/practice", tags=["practice"])
app.include_router(review_router, prefix=f"{settings.API_V1_PREFIX}/review", tags=["review"])
app.include_router(dashboard_router, prefix=f"{settings.API_V1_PREFIX}/dashboard", tags=["dashboard"])
app.include_router(notebook_router, prefix=f"{settings.API_V1_PREFIX}/notebook", tags=["notebook"])
app.include_router(admin_router, prefix=f"{settings.API_V1_PREFIX}/admin", tags=["admin"])


@app.get("/health", tags=["Health"])
def health():
    return {"status": "ok", "version": settings.APP_VERSION}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("studybank.main:app", host="0.0.0.0", port=8000, log_level=settings.LOG_LEVEL.lower())
