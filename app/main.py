# app/main.py
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
import logging

from app.api.dependencies import NO_CACHE_HEADERS
from app.api.v1.router import api_router
from app.config import Settings, get_settings
from app.database import create_engine, create_session_factory
from app.exceptions import ChatError, MethodNotAllowed
from app.services.schema_guard import SchemaGuard

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=NO_CACHE_HEADERS)


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ChatError)
    async def chat_error_handler(request: Request, exc: ChatError):
        if exc.status_code >= 500:
            logger.error(f"{request.url.path} failed: {exc.detail}")
        else:
            logger.info(f"{request.url.path} rejected: {exc.detail}")
        return error_response(exc.status_code, exc.detail)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.info(f"{request.url.path} rejected: invalid body")
        return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request body")

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            return error_response(exc.status_code, MethodNotAllowed.default_detail)
        return error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(SQLAlchemyError)
    async def storage_error_handler(request: Request, exc: SQLAlchemyError):
        logger.error(f"{request.url.path} storage error: {str(exc)}")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Storage operation failed")


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """
    Build the API application.

    The engine and session factory are created here and kept on app.state;
    request handlers get sessions through the get_db dependency.
    """
    settings = settings or get_settings()
    engine = engine or create_engine(settings.DATABASE_URL)
    session_factory = create_session_factory(engine)

    if settings.CREATE_TABLES_ON_STARTUP:
        db = session_factory()
        try:
            SchemaGuard(db).ensure_schema()
        finally:
            db.close()

    app = FastAPI(
        title="Marketplace Chat API",
        description="Conversations and messages between renters and owners",
        version="0.1.0"
    )
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.settings = settings

    # CORS middleware for frontend access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include API routes
    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/")
    async def root():
        """Health check and welcome message"""
        return {
            "message": "Welcome to the Marketplace Chat API",
            "status": "online",
            "version": "0.1.0"
        }

    return app


if __name__ == "__main__":
    import uvicorn
    configure_logging(get_settings().LOG_LEVEL)
    uvicorn.run("app.main:create_app", factory=True, host="0.0.0.0", port=8000, reload=True)
