import logging
import sys
import uvicorn
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from utils.logging import app_logger
from utils.request_middleware import RequestLoggingMiddleware, PerformanceLoggingMiddleware
from utils.errors import ConfigurationError, InputValidationError
from utils.settings import Settings, get_settings

from db.postgres_client import get_db_pool
from db.usage_repository import UsageRepository
from agents.tutor_agent import TutorAgent
from realtime.broadcaster import ConnectionManager
from api.routes import router


logger = logging.getLogger("profe_ia.server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    try:
        settings.require()

        db_pool = await get_db_pool(settings.database_url)
        app.state.db_pool = db_pool
        logger.info("✅ Conectado correctamente a la base de datos")

        app.state.usage_repo = UsageRepository(db_pool)
        await app.state.usage_repo.ensure_schema()

        app.state.tutor_agent = TutorAgent(
            model_name=settings.model,
            api_key=settings.openai_api_key,
        )
        logger.info(f"TutorAgent initialized with model {settings.model}")
    except Exception as e:
        logger.error(f"❌ Startup failed: {e}")
        raise

    yield

    try:
        await app.state.db_pool.close()
        logger.info("Database pool closed")
    except Exception as e:
        logger.error(f"Shutdown cleanup failed: {e}")


async def input_validation_handler(request: Request, exc: InputValidationError):
    return JSONResponse(status_code=400, content={"error": exc.message})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title="Profe IA API",
        description="Grade-aware tutoring chat with history and live usage feed",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings
    app.state.broadcaster = ConnectionManager()

    app.add_middleware(PerformanceLoggingMiddleware, slow_request_threshold_ms=5000)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(InputValidationError, input_validation_handler)
    app.include_router(router)
    return app


app = create_app()


def main():
    settings = get_settings()
    try:
        settings.require()
    except ConfigurationError as e:
        app_logger.logger.error(f"❌ {e}")
        sys.exit(1)

    logger.info(f"🚀 Servidor corriendo en http://localhost:{settings.port}")
    uvicorn.run(app, host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    main()
