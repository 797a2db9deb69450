# File: src/ecocharge/application/booking_service.py
"""
Booking Application Service

Use Case: Book a charging session
1. Parse the submitted form (raw dict or BookingFormInput)
2. Validate every field against the station, collecting all failures
3. Price the session with the chosen connector and the station's peak rule
4. Create the Booking and the updated User in a single step

The service never edits the User it is given. On success it returns a new
User that carries the appended booking and the credited loyalty points
together; the caller (normally AccountSession) stores that record.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Any, Union, Callable, List
from datetime import datetime
from decimal import Decimal
import logging

from ..config import EngineConfig
from ..domain.models import (
    Station, User, Booking, VehicleDetails, BookingStatus,
    generate_id, generate_time_slots
)
from ..domain.strategies import PricingCalculator, PricingResult
from ..domain.exceptions import UnauthenticatedError, BookingValidationError
from .dtos import BookingFormInput, parse_leniently


FormData = Union[BookingFormInput, Dict[str, Any]]

FIELD_MESSAGES = {
    "date": "Please select a date",
    "time": "Please select a time",
    "connector_type": "Please select a connector",
    "connector_unavailable": "Selected connector is not available at this station",
    "slot": "Please select one of the available time slots",
    "make": "Please enter vehicle make",
    "model": "Please enter vehicle model",
    "battery_size": "Please enter battery size",
    "battery_size_positive": "Battery size must be greater than 0",
    "current_charge": "Current charge must be between 0-100%",
}


# ============================================================================
# RESULT DTO
# ============================================================================

@dataclass
class BookingResult:
    """Outcome of a booking submission"""
    success: bool
    booking: Optional[Booking] = None
    user: Optional[User] = None
    pricing: Optional[PricingResult] = None
    errors: Dict[str, str] = field(default_factory=dict)
    message: Optional[str] = None

    def raise_for_errors(self) -> 'BookingResult':
        """Raise BookingValidationError for a failed submission, else return self"""
        if not self.success:
            raise BookingValidationError(self.errors, self.message)
        return self


# ============================================================================
# VALIDATION
# ============================================================================

class BookingValidator:
    """
    Checks a booking form against a station

    All rules are evaluated; the result maps each failing field to a
    message, and is empty when the form can be committed.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.time_slots: List[str] = generate_time_slots(
            self.config.first_slot_hour,
            self.config.last_slot_hour,
            self.config.slot_step_minutes
        )
        self.logger = logging.getLogger(self.__class__.__name__)

    def validate(self, form: BookingFormInput, station: Station) -> Dict[str, str]:
        errors: Dict[str, str] = {}

        if form.date is None:
            errors["date"] = FIELD_MESSAGES["date"]

        if not form.time:
            errors["time"] = FIELD_MESSAGES["time"]
        elif form.time not in self.time_slots:
            errors["time"] = FIELD_MESSAGES["slot"]

        if not form.connector_type:
            errors["connector_type"] = FIELD_MESSAGES["connector_type"]
        elif station.find_available_connector(form.connector_type) is None:
            errors["connector_type"] = FIELD_MESSAGES["connector_unavailable"]

        vehicle = form.vehicle
        if not vehicle.make:
            errors["make"] = FIELD_MESSAGES["make"]
        if not vehicle.model:
            errors["model"] = FIELD_MESSAGES["model"]
        if vehicle.battery_size is None:
            errors["battery_size"] = FIELD_MESSAGES["battery_size"]
        elif vehicle.battery_size <= 0:
            errors["battery_size"] = FIELD_MESSAGES["battery_size_positive"]

        if not Decimal('0') <= vehicle.current_charge <= Decimal('100'):
            errors["current_charge"] = FIELD_MESSAGES["current_charge"]

        duration_error = self._validate_duration(form.duration)
        if duration_error:
            errors["duration"] = duration_error

        return errors

    def _validate_duration(self, duration: Decimal) -> Optional[str]:
        low = Decimal(str(self.config.min_duration_hours))
        high = Decimal(str(self.config.max_duration_hours))
        step = Decimal(str(self.config.duration_step_hours))
        if not low <= duration <= high:
            return f"Duration must be between {low} and {high} hours"
        if duration % step != 0:
            return f"Duration must be in steps of {step} hours"
        return None


# ============================================================================
# BOOKING SERVICE
# ============================================================================

class BookingService:
    """Validates, prices and commits charging session bookings"""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        calculator: Optional[PricingCalculator] = None,
        validator: Optional[BookingValidator] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config or EngineConfig()
        self.calculator = calculator or PricingCalculator(self.config.loyalty_points_per_currency_unit)
        self.validator = validator or BookingValidator(self.config)
        self.clock = clock or datetime.now
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def time_slots(self) -> List[str]:
        return list(self.validator.time_slots)

    def quote(self, form: FormData, station: Station) -> PricingResult:
        """
        Live price for a partially filled form
        Returns the empty quote until a known connector and a duration are chosen.
        """
        form, _ = self._parse(form)
        connector = station.find_connector(form.connector_type) if form.connector_type else None
        if connector is None:
            return PricingResult.empty()
        return self.calculator.price(
            connector.price,
            station.peak_hours,
            form.time,
            form.duration,
            form.vehicle.battery_size if form.vehicle.battery_size and form.vehicle.battery_size > 0 else None
        )

    def submit_booking(self, form: FormData, station: Station, user: Optional[User]) -> BookingResult:
        """
        Validate and commit a booking for ``user`` at ``station``

        Raises UnauthenticatedError when no user is signed in. Validation
        failures are returned in the result, never raised.
        """
        if user is None:
            self.logger.warning(f"Booking attempt at {station.id} without a signed-in user")
            raise UnauthenticatedError("Please login to book a charging session")

        self.logger.info(f"Processing booking for user {user.id} at station {station.id}")

        form, parse_errors = self._parse(form)
        errors = self.validator.validate(form, station)
        errors.update(parse_errors)

        if errors:
            self.logger.warning(f"Booking rejected for user {user.id}: {sorted(errors)}")
            return BookingResult(
                success=False,
                errors=errors,
                message="Please correct the highlighted fields"
            )

        connector = station.find_available_connector(form.connector_type)
        pricing = self.calculator.price(
            connector.price,
            station.peak_hours,
            form.time,
            form.duration,
            form.vehicle.battery_size
        )

        booking = Booking(
            id=generate_id("booking"),
            station_id=station.id,
            station_name=station.name,
            connector_type=connector.type,
            date=form.date,
            time=form.time,
            duration_hours=form.duration,
            vehicle=VehicleDetails(
                make=form.vehicle.make.strip(),
                model=form.vehicle.model.strip(),
                battery_size_kwh=form.vehicle.battery_size,
                current_charge=form.vehicle.current_charge
            ),
            total_cost=pricing.total,
            loyalty_points_earned=pricing.loyalty_points_earned,
            status=BookingStatus.CONFIRMED,
            payment_method=form.payment_method,
            created_at=self.clock()
        )
        updated_user = user.with_booking(booking)

        self.logger.info(
            f"Booking {booking.id} confirmed: {booking.total_cost:.2f} {self.config.currency}, "
            f"+{booking.loyalty_points_earned} pts for {user.id}"
        )
        return BookingResult(
            success=True,
            booking=booking,
            user=updated_user,
            pricing=pricing,
            message="Booking confirmed successfully!"
        )

    @staticmethod
    def _parse(form: FormData):
        if isinstance(form, BookingFormInput):
            return form, {}
        return parse_leniently(BookingFormInput, form)


_default_service = BookingService()


def submit_booking(form: FormData, station: Station, user: Optional[User]) -> BookingResult:
    """Submit a booking with the default configuration"""
    return _default_service.submit_booking(form, station, user)
