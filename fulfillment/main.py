"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from fulfillment.api.routes import router
from fulfillment.config import get_settings
from fulfillment.errors import FulfillmentError
from fulfillment.state.manager import get_state_manager
from fulfillment.utils.logging import get_logger, setup_logging

# Setup logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    logger.info("application_starting")

    state_manager = await get_state_manager()
    logger.info("state_manager_initialized")

    yield

    # Shutdown
    logger.info("application_shutting_down")
    await state_manager.disconnect()


app = FastAPI(
    title="Hyperlocal Fulfillment",
    description="Order lifecycle, rider dispatch and delivery estimates for a hyperlocal marketplace",
    version="0.1.0",
    lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(FulfillmentError)
async def fulfillment_error_handler(request: Request, exc: FulfillmentError) -> JSONResponse:
    """Render domain errors as JSON with their own status code."""
    logger.info(
        "request_rejected",
        path=request.url.path,
        error=exc.code,
        message=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy", "service": "hyperlocal-fulfillment"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "message": "Hyperlocal Fulfillment API",
        "docs": "/docs",
        "health": "/health",
    }


app.include_router(router, prefix="/api/v1", tags=["api"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "fulfillment.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.environment == "development",
    )
