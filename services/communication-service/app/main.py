"""
Communication Service - Main Application
Validates inter-service messages and forwards them to RabbitMQ
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import structlog

from app.routes import health, messages
from app.services.gateway import DispatchGateway
from app.services.route_table import get_route_table
from app.services.schema_registry import get_schema_registry
from app.services.validation import ValidationEngine
from app.utils.broker import KombuPublisher
from app.utils.config import (
    get_app_config,
    get_broker_config,
    get_cors_credentials,
    get_cors_headers,
    get_cors_methods,
    get_cors_origins,
    get_gateway_config,
    validate_configuration,
)
from app.utils.exceptions import GatewayError


logging.basicConfig(level=logging.INFO, format="%(message)s")

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events"""
    logger.info("Starting Communication Service")
    validate_configuration()

    registry = get_schema_registry()
    route_table = get_route_table()
    route_table.check_against(registry)

    publisher = KombuPublisher(get_broker_config())
    try:
        publisher.connect()
    except Exception as e:
        logger.error("Failed to initialize broker connection", error=str(e))
        raise
    app.state.publisher = publisher
    app.state.gateway = DispatchGateway(
        publisher=publisher,
        api_key=get_gateway_config().api_key,
        engine=ValidationEngine(registry),
        route_table=route_table,
    )

    yield

    publisher.close()
    logger.info("Communication Service shutdown complete")


app_config = get_app_config()

app = FastAPI(
    title="Communication Service",
    description="Validates inter-service messages and forwards them to the message broker",
    version=app_config.service_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=get_cors_credentials(),
    allow_methods=get_cors_methods(),
    allow_headers=get_cors_headers(),
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests"""
    logger.info(
        "Request received",
        method=request.method,
        url=str(request.url),
        client_ip=request.client.host if request.client else "unknown"
    )

    response = await call_next(request)

    logger.info(
        "Request completed",
        method=request.method,
        url=str(request.url),
        status_code=response.status_code
    )

    return response


@app.exception_handler(GatewayError)
async def gateway_exception_handler(request: Request, exc: GatewayError):
    """Render gateway rejections as a single error string"""
    return JSONResponse(status_code=exc.status_code, content={"error": exc.reason})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.error(
        "Unhandled exception",
        error=str(exc),
        method=request.method,
        url=str(request.url),
        exc_info=True
    )

    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"}
    )


# Register routes
app.include_router(health.router, tags=["Health"])
app.include_router(messages.router, prefix=f"{app_config.api_prefix}/messages", tags=["Messages"])


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": app_config.service_name,
        "version": app_config.service_version,
        "status": "running",
        "docs": "/docs"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=app_config.port,
        log_level="info"
    )
