"""
FastAPI application entry point.

Run with:
    uvicorn backend.app.main:app --reload --port 5001

Or from the project root:
    python -m uvicorn backend.app.main:app --reload
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ── Core infrastructure ──
from backend.app.core.cache import create_cache
from backend.app.core.config import settings
from backend.app.core.logging_config import setup_logging, get_logger
from backend.app.core.errors import register_error_handlers
from backend.app.core.middleware import RequestLoggingMiddleware
from backend.app.core.health import HealthStatus, run_health_check
from backend.app.api.schemas import ServiceInfo
from backend.app.ingestion.weather_client import WeatherAPIClient
from backend.app.ingestion.weather_service import WeatherService

# ── API routers ──
from backend.app.api.v1.disasters import router as disaster_router
from backend.app.api.v1.weather import router as weather_router

# ── Initialise logging ──
setup_logging()
logger = get_logger(__name__)


# ── Application lifespan (startup / shutdown) ──

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the weather service unless one was injected, close it on exit."""
    logger.info(
        "Starting %s v%s [%s]",
        settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
    )
    owned = getattr(app.state, "weather_service", None) is None
    if owned:
        cache = await create_cache()
        app.state.weather_service = WeatherService(WeatherAPIClient(), cache)
        if not settings.WEATHER_API_KEY:
            logger.warning("WEATHER_API_KEY is not set; upstream calls will fail")
    yield
    if owned:
        await app.state.weather_service.close()
        app.state.weather_service = None
    logger.info("Shutting down %s", settings.APP_NAME)


def _service(request: Request) -> Optional[WeatherService]:
    return getattr(request.app.state, "weather_service", None)


def create_app(weather_service: Optional[WeatherService] = None) -> FastAPI:
    """Application factory; tests inject a WeatherService with fake transports."""
    app = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Location-based weather and disaster risk assessment. "
            "Classifies CAP-style provider alerts, extracts threshold risks "
            "from multi-day forecasts, aggregates them into an overall risk "
            "level with ordered safety recommendations, and grades current "
            "conditions for outdoor safety. Weather snapshots are cached "
            "in Redis and served stale when the provider is unreachable."
        ),
        version=settings.APP_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.weather_service = weather_service

    # ── Middleware stack (outermost first) ──

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS if not settings.CORS_ALLOW_ALL else ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    # ── Error handlers ──
    register_error_handlers(app)

    # ── Register routers ──
    app.include_router(weather_router)
    app.include_router(disaster_router)

    # ── Root & health endpoints ──

    @app.get("/", tags=["root"], response_model=ServiceInfo)
    async def root():
        return ServiceInfo(
            service=settings.APP_NAME,
            version=settings.APP_VERSION,
            environment=settings.ENVIRONMENT,
            modules=[
                "alert-classification",
                "forecast-risk-extraction",
                "risk-assessment",
                "weather-safety",
                "weather-cache",
            ],
        )

    @app.get("/health", tags=["health"])
    async def health_check(request: Request):
        """Deep health probe over every subsystem."""
        service = _service(request)
        report = await run_health_check(
            service.client if service else None,
            service.cache if service else None,
        )
        return report.to_dict()

    @app.get("/health/live", tags=["health"])
    async def liveness():
        """Kubernetes liveness probe."""
        return {"status": "alive"}

    @app.get("/health/ready", tags=["health"])
    async def readiness(request: Request):
        """Kubernetes readiness probe; 503 when unhealthy."""
        service = _service(request)
        report = await run_health_check(
            service.client if service else None,
            service.cache if service else None,
        )
        if report.status == HealthStatus.UNHEALTHY:
            return JSONResponse(status_code=503, content=report.to_dict())
        return report.to_dict()

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "backend.app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.RELOAD,
    )
