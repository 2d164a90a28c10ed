from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Any, Optional
from pathlib import Path

CATALOG_DIR = Path(__file__).parent.parent / "features" / "stations" / "data"

class Settings(BaseSettings):
    """Application settings."""

    # Static station catalogs
    tide_stations_file: Path = CATALOG_DIR / "tide_stations.json"
    buoy_stations_file: Path = CATALOG_DIR / "ndbc_buoys.json"

    cache: Dict[str, Any] = {
        "enabled": True,
        "prefix": "swellwatch"
    }

    # NDBC settings
    ndbc_base_url: str = "https://www.ndbc.noaa.gov/data/realtime2/"
    ndbc_data_types: Dict[str, str] = {
        "std": "txt",           # Standard meteorological data
    }
    buoy_stale_minutes: int = 45
    buoy_max_age_hours: int = 48

    # NOAA CO-OPS tide predictions
    coops_base_url: str = "https://api.tidesandcurrents.noaa.gov/api/prod/datagetter"
    coops_params: Dict = {
        "product": "predictions",
        "datum": "MLLW",
        "units": "english",
        "time_zone": "gmt",
        "format": "json",
        "application": "swellwatch"
    }

    # Open-Meteo forecast
    open_meteo_marine_url: str = "https://marine-api.open-meteo.com/v1/marine"
    open_meteo_forecast_url: str = "https://api.open-meteo.com/v1/forecast"

    request: Dict = {
        "timeout": 30,
        "user_agent": "SwellWatch/1.0 (surf alert service)"
    }

    # Tide cache and fetch window
    tide_cache_ttl_seconds: int = 3600
    tide_fetch_range_hours: int = 72
    tide_fetch_padding_hours: int = 12
    tide_include_hourly: bool = True

    # Station resolution
    max_tide_station_distance_miles: float = 100.0
    max_buoy_distance_miles: float = 500.0

    # Recommendation ranking
    ranking_swell_path_weight: float = 0.6
    ranking_proximity_weight: float = 0.4
    ranking_band_miles: float = 50.0
    ranking_default_limit: int = 10

    # Trigger evaluation
    enforce_min_wind_speed: bool = False

    # Alert evaluation cycle
    alert_cycle_minutes: int = 30
    spots_file: Optional[Path] = None

    def get_cache_ttl(self) -> Dict[str, Optional[int]]:
        """Get cache TTL values for HTTP responses."""
        return {
            "stations_geojson": None,   # No expiration for static station lists
        }

    model_config = SettingsConfigDict(
        env_prefix="swellwatch_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
