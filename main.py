from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
import os
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from core.cache import init_cache
from core.config import settings
from core.logging_config import setup_logging
from core.scheduler import Scheduler

# Feature routes
from features.stations.routes.station_routes import router as station_router
from features.tides.routes.tide_routes import router as tide_router
from features.triggers.routes.trigger_routes import router as trigger_router
from features.conditions.routes.condition_routes import router as condition_router

# Services and clients
from features.common.exceptions.engine_exceptions import DataUnavailableError, InvalidRangeError
from features.stations.services.catalog_loader import StationCatalogLoader
from features.stations.services.geo_index import GeoIndex
from features.stations.services.recommendation_ranker import RecommendationRanker
from features.stations.services.station_service import StationService
from features.tides.services.noaa_tide_client import NOAATideClient
from features.tides.services.tide_interpolator import TideInterpolator
from features.triggers.services.trigger_evaluator import TriggerEvaluator
from features.conditions.services.open_meteo_client import OpenMeteoClient
from features.conditions.services.ndbc_buoy_client import NDBCBuoyClient
from features.conditions.services.conditions_service import ConditionsService
from features.alerts.services.alert_runner import AlertEvaluationService, JsonSpotProvider

setup_logging()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    scheduler = None
    clients = []
    app.state.scheduler = None
    try:
        logger.info("🚀 Starting Swell Watch API...")
        init_cache()

        # Station catalogs are loaded once and never change
        geo_index = GeoIndex(StationCatalogLoader().load())
        ranker = RecommendationRanker(geo_index)

        tide_client = NOAATideClient()
        forecast_client = OpenMeteoClient()
        buoy_client = NDBCBuoyClient()
        clients.extend([tide_client, forecast_client, buoy_client])

        tide_interpolator = TideInterpolator(tide_client)
        conditions_service = ConditionsService(
            geo_index=geo_index,
            tide_interpolator=tide_interpolator,
            forecast_fetcher=forecast_client,
            buoy_fetcher=buoy_client
        )
        evaluator = TriggerEvaluator()

        app.state.geo_index = geo_index
        app.state.station_service = StationService(geo_index, ranker)
        app.state.tide_interpolator = tide_interpolator
        app.state.trigger_evaluator = evaluator
        app.state.conditions_service = conditions_service
        app.state.alert_service = AlertEvaluationService(
            conditions_service=conditions_service,
            evaluator=evaluator,
            spot_provider=JsonSpotProvider(settings.spots_file) if settings.spots_file else None
        )

        if settings.spots_file:
            scheduler = Scheduler(app.state.alert_service)
            scheduler.start()
            app.state.scheduler = scheduler
        else:
            logger.info("No spots file configured, alert cycle disabled")

        logger.info("✨ API startup complete - ready to serve requests")
        yield

    except Exception as e:
        logger.error(f"❌ Startup error: {str(e)}")
        raise
    finally:
        logger.info("🔄 Shutting down API...")
        if scheduler:
            scheduler.shutdown()
        for client in clients:
            await client.close()
        logger.info("👋 API shutdown complete")

app = FastAPI(
    title="Swell Watch API",
    description="Surf condition matching against user-defined triggers",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(DataUnavailableError)
async def data_unavailable_handler(request: Request, exc: DataUnavailableError):
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc), "station_id": exc.station_id}
    )

@app.exception_handler(InvalidRangeError)
async def invalid_range_handler(request: Request, exc: InvalidRangeError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})

# Include feature routers
app.include_router(station_router)
app.include_router(tide_router)
app.include_router(trigger_router)
app.include_router(condition_router)

@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint"""
    scheduler = getattr(request.app.state, "scheduler", None)
    return {
        "status": "healthy",
        "time": datetime.now(timezone.utc).isoformat(),
        "next_alert_cycle": scheduler.get_next_run_time() if scheduler else None
    }

if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", 5010))

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=True,
        log_level="info",
        workers=1
    )
