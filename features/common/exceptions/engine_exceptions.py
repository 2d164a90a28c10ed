from typing import Optional

class EngineError(Exception):
    """Base exception for trigger engine errors."""
    pass

class InvalidRangeError(EngineError):
    """Raised when a numeric or directional range is malformed."""
    pass

class UpstreamError(EngineError):
    """Raised when an upstream data source fails or returns unusable data."""

    def __init__(self, source: str, message: str):
        self.source = source
        self.message = message
        super().__init__(f"{source}: {message}")

class UpstreamTimeoutError(UpstreamError):
    """Raised when an upstream data source does not answer in time."""
    pass

class DataUnavailableError(EngineError):
    """Raised when neither fresh nor cached data exists for a station or spot.

    Callers must treat this as an unknown outcome, not as a failed match.
    """

    def __init__(self, station_id: Optional[str], reason: str):
        self.station_id = station_id
        self.reason = reason
        target = station_id or "spot"
        super().__init__(f"No data available for {target}: {reason}")
