# File: src/ecocharge/domain/exceptions.py
"""
Exception hierarchy for the charging service

Field-level failures carry a mapping of field name to message so that a
caller can show every problem with a form at once.
"""

from typing import Dict, Optional


class ChargingServiceError(Exception):
    """Base exception for charging service errors"""
    pass


class FieldValidationError(ChargingServiceError):
    """User-correctable input errors, reported per field"""

    def __init__(self, errors: Dict[str, str], message: Optional[str] = None):
        self.errors = dict(errors)
        super().__init__(message or f"Invalid fields: {', '.join(sorted(self.errors))}")


class BookingValidationError(FieldValidationError):
    """Booking form failed validation"""
    pass


class ReviewValidationError(FieldValidationError):
    """Review input failed validation"""
    pass


class RegistrationError(FieldValidationError):
    """Account registration input failed validation"""
    pass


class UnauthenticatedError(ChargingServiceError):
    """Operation requires a signed-in user"""
    pass


class PermissionDeniedError(ChargingServiceError):
    """Signed-in user lacks the required role"""
    pass


class StationNotFoundError(ChargingServiceError):
    """Referenced station id is not in the catalog"""

    def __init__(self, station_id: str):
        self.station_id = station_id
        super().__init__(f"Charging station '{station_id}' not found")


class UserNotFoundError(ChargingServiceError):
    """Referenced user is not in the catalog"""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"User '{key}' not found")


class SnapshotStoreError(ChargingServiceError):
    """Persistence backend failed to save or load a snapshot"""
    pass
