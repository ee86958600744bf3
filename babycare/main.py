# Initialize logging first, before other imports
from babycare.core.logging import setup_logging
setup_logging()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
import logging

from babycare.core.config import settings
from babycare.services.session import CareSession
from babycare.api.v1.api import api_router

# Get logger
logger = logging.getLogger(__name__)

def create_app(session: CareSession = None) -> FastAPI:
    """Create FastAPI application with all configurations."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """FastAPI lifespan event handler."""
        logger.info("=== APPLICATION STARTUP ===")
        care_session = session or CareSession(database_url=settings.DATABASE_URL)
        try:
            await care_session.ready()
            logger.info("Store ready")
        except Exception as e:
            logger.error(f"Store initialization failed: {e}")
            logger.error(f"Database URL being used: {settings.DATABASE_URL}")
            raise
        app.state.session = care_session
        logger.info("=== APPLICATION STARTUP COMPLETE ===")
        yield

        logger.info("=== APPLICATION SHUTDOWN ===")
        try:
            await care_session.close()
            logger.info("Store closed successfully")
        except Exception as e:
            logger.error(f"Error closing store: {e}")
        logger.info("=== APPLICATION SHUTDOWN COMPLETE ===")

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=settings.VERSION,
        description=settings.DESCRIPTION,
        lifespan=lifespan
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )

    app.include_router(api_router, prefix=settings.API_V1_STR)

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
