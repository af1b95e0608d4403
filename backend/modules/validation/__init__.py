"""
modules/validation package: input guards before scheduling.
"""
from modules.validation.trip_validator import (
    TripValidationError,
    ValidationResult,
    validate_leg,
    validate_legs,
    validate_scenario_references,
    validate_trip,
    validate_trip_window,
)

__all__ = [
    "TripValidationError",
    "ValidationResult",
    "validate_leg",
    "validate_legs",
    "validate_scenario_references",
    "validate_trip",
    "validate_trip_window",
]
