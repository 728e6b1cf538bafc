class TripPlannerError(Exception):
    """Base exception for trip planning errors."""


class ExternalServiceError(TripPlannerError):
    """Raised when an upstream API call fails."""


class InvalidLocationError(TripPlannerError):
    """Raised when an endpoint is missing or cannot be resolved."""


class NoRouteFoundError(TripPlannerError):
    """Raised when a drivable route cannot be generated."""


class ActivityAdvisorError(TripPlannerError):
    """Raised when activity suggestions cannot be fetched."""


class TripSimulationError(TripPlannerError):
    """Base exception for terminal simulation failures."""


class BatteryCriticallyLowError(TripSimulationError):
    """Raised when the battery cannot safely reach even the closest charger."""


class InsufficientBatteryError(TripSimulationError):
    """Raised when the battery cannot cover the leg to the next charger."""


class InfeasiblePlanError(TripSimulationError):
    """Raised when the simulation ends without arriving at the destination."""
