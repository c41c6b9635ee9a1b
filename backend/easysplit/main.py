"""
FastAPI entrypoint for EasySplit backend application.
"""
import logging
import time
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from easysplit.core.config import settings
from easysplit.core.exceptions import CodeGenerationError, ExcessContributionError, InvalidContributionError, MenuReferenceError
from easysplit.core.utils import format_error
from easysplit.api.router import api_router
from easysplit.db.session import init_db

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.AUTO_CREATE_TABLES:
        init_db()
    yield


app = FastAPI(
    title="EasySplit API",
    description="Backend API for splitting restaurant bills by share code",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log one line per API request."""
    start = time.perf_counter()
    response = await call_next(request)
    if request.url.path.startswith("/api"):
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s %s in %.0fms",
            request.method, request.url.path, response.status_code, duration_ms
        )
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=format_error(exc.detail),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Schema violations are 400s with structured details."""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_error("Validation error", jsonable_encoder(exc.errors())),
    )


@app.exception_handler(ExcessContributionError)
async def excess_contribution_exception_handler(request: Request, exc: ExcessContributionError):
    """Rejected before anything is persisted."""
    logger.warning("Rejected split on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_error("Excess contribution", str(exc)),
    )


@app.exception_handler(InvalidContributionError)
async def invalid_contribution_exception_handler(request: Request, exc: InvalidContributionError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_error("Invalid contribution", str(exc)),
    )


@app.exception_handler(MenuReferenceError)
async def menu_reference_exception_handler(request: Request, exc: MenuReferenceError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=format_error("Menu not found", str(exc)),
    )


@app.exception_handler(CodeGenerationError)
async def code_generation_exception_handler(request: Request, exc: CodeGenerationError):
    logger.error("Code generation exhausted on %s: %s", request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=format_error("Internal server error"),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=format_error("Internal server error"),
    )


# Include API routes
app.include_router(api_router, prefix="/api")


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"message": "EasySplit API is running"}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}


def run():
    """Console entrypoint: serve the API with uvicorn."""
    import uvicorn
    uvicorn.run("easysplit.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
