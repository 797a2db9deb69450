# File: src/ecocharge/application/dtos.py
"""
Data Transfer Objects (DTOs) for the EcoCharge engine

Input DTOs describe the forms the engine accepts:
1. SearchQuery - station finder filters
2. BookingFormInput / VehicleDetailsInput - the booking form
3. ReviewInput - the review form
4. RegistrationInput - account sign-up

DTO Principles:
- Explicit fields; anything not listed is rejected or ignored
- Field names accept snake_case or the camelCase keys sent by the web form
- Type coercion happens here, business rules live in the services
- SearchQuery never fails: malformed filter values mean "no filter"
"""

from typing import Dict, Optional, Any, Tuple, Type, TypeVar
from decimal import Decimal
import datetime as dt
import copy
import json
import re

from pydantic import BaseModel, Field, ConfigDict, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from ..domain.models import StationStatus, PaymentMethod
from ..domain.search import PriceRange, StationCriteria


T = TypeVar('T', bound='BaseDTO')

_CAMEL_BOUNDARY = re.compile(r'(?<!^)(?=[A-Z])')


def to_snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub('_', name).lower()


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
        arbitrary_types_allowed=True,
        extra='ignore'
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to dictionary"""
        return self.model_dump(exclude_none=exclude_none, **kwargs)

    def to_json(self, **kwargs) -> str:
        """Convert DTO to JSON string"""
        return self.model_dump_json(**kwargs)

    @classmethod
    def from_dict(cls: Type[T], data: Dict[str, Any]) -> T:
        """Create DTO from dictionary"""
        return cls.model_validate(data)

    @classmethod
    def from_json(cls: Type[T], json_str: str) -> T:
        """Create DTO from JSON string"""
        return cls.model_validate(json.loads(json_str))


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """
    Flatten a pydantic ValidationError into {field: message}
    Keys are the snake_case name of the innermost field.
    """
    errors: Dict[str, str] = {}
    for error in exc.errors():
        loc = [part for part in error.get('loc', ()) if isinstance(part, str)]
        key = to_snake(loc[-1]) if loc else '__root__'
        errors.setdefault(key, error.get('msg', 'Invalid value'))
    return errors


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _strip_paths(data: Dict[str, Any], exc: ValidationError) -> Tuple[Dict[str, Any], int]:
    """Copy of ``data`` without the values that failed validation"""
    cleaned = copy.deepcopy(data)
    removed = 0
    for error in exc.errors():
        loc = [part for part in error.get('loc', ()) if isinstance(part, str)]
        if not loc:
            continue
        container = cleaned
        for part in loc[:-1]:
            nested = None
            for key in (part, to_camel(part), to_snake(part)):
                if isinstance(container.get(key), dict):
                    nested = container[key]
                    break
            if nested is None:
                container = None
                break
            container = nested
        if container is None:
            continue
        leaf = loc[-1]
        for key in {leaf, to_camel(leaf), to_snake(leaf)}:
            if key in container:
                del container[key]
                removed += 1
    return cleaned, removed


def parse_leniently(dto_class: Type[T], data: Dict[str, Any]) -> Tuple[T, Dict[str, str]]:
    """
    Validate ``data`` without losing the valid fields

    Returns the DTO built from every value that parsed, plus a mapping of
    the fields that did not. Values that fail are dropped and fall back to
    the field default, so later business validation still sees the rest
    of the form. Every field of ``dto_class`` must have a default.
    """
    errors: Dict[str, str] = {}
    current = copy.deepcopy(dict(data))
    while True:
        try:
            return dto_class.model_validate(current), errors
        except ValidationError as exc:
            for key, message in field_errors(exc).items():
                errors.setdefault(key, message)
            current, removed = _strip_paths(current, exc)
            if not removed:
                return dto_class(), errors


# ============================================================================
# SEARCH DTOs
# ============================================================================

class SearchQuery(BaseDTO):
    """
    Station finder query

    Every field is optional and an empty field means "no constraint".
    Values that cannot be understood are treated as empty rather than
    rejected, so a stale or hand-edited filter never breaks the finder.
    """
    model_config = ConfigDict(frozen=True)

    free_text: Optional[str] = Field(default=None, description="Matches station name or address")
    connector_type: Optional[str] = Field(default=None, description="Requires an available connector of this type")
    price_range: Optional[PriceRange] = Field(default=None, description="low / medium / high per-kWh band")
    status: Optional[StationStatus] = Field(default=None, description="Exact station status")
    amenities: Tuple[str, ...] = Field(default=(), description="Every listed amenity is required")

    @field_validator('free_text', 'connector_type', mode='before')
    @classmethod
    def _text_or_none(cls, v):
        if not isinstance(v, str):
            return None
        v = v.strip()
        return v or None

    @field_validator('price_range', mode='before')
    @classmethod
    def _price_range_or_none(cls, v):
        return _enum_or_none(PriceRange, v)

    @field_validator('status', mode='before')
    @classmethod
    def _status_or_none(cls, v):
        return _enum_or_none(StationStatus, v)

    @field_validator('amenities', mode='before')
    @classmethod
    def _amenity_tuple(cls, v):
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple, set, frozenset)):
            return ()
        seen = {}
        for item in v:
            if isinstance(item, str) and item.strip():
                seen.setdefault(item.strip(), None)
        return tuple(seen)

    def toggle_amenity(self, amenity: str) -> 'SearchQuery':
        """Query with ``amenity`` added, or removed if already present"""
        if amenity in self.amenities:
            remaining = tuple(a for a in self.amenities if a != amenity)
        else:
            remaining = self.amenities + (amenity,)
        return self.model_copy(update={"amenities": remaining})

    def to_criteria(self) -> StationCriteria:
        return StationCriteria(
            free_text=self.free_text,
            connector_type=self.connector_type,
            price_range=self.price_range,
            status=self.status,
            amenities=frozenset(self.amenities)
        )


def _enum_or_none(enum_class, value):
    if isinstance(value, enum_class):
        return value
    if isinstance(value, str):
        try:
            return enum_class(value.strip().lower())
        except ValueError:
            return None
    return None


# ============================================================================
# BOOKING DTOs
# ============================================================================

class VehicleDetailsInput(BaseDTO):
    """Vehicle section of the booking form"""
    make: Optional[str] = Field(default=None, description="Vehicle make, e.g. Tata")
    model: Optional[str] = Field(default=None, description="Vehicle model, e.g. Nexon EV")
    battery_size: Optional[Decimal] = Field(default=None, description="Battery size in kWh")
    current_charge: Decimal = Field(default=Decimal('50'), description="Current charge percentage")

    @field_validator('make', 'model', 'battery_size', mode='before')
    @classmethod
    def _blank_is_missing(cls, v):
        return _blank_to_none(v)


class BookingFormInput(BaseDTO):
    """Booking form as submitted; presence and ranges are checked by BookingValidator"""
    date: Optional[dt.date] = Field(default=None, description="Session date")
    time: Optional[str] = Field(default=None, description="Session start slot, HH:MM")
    connector_type: Optional[str] = Field(default=None, description="Connector type to book")
    duration: Decimal = Field(default=Decimal('2'), description="Estimated duration in hours")
    vehicle: VehicleDetailsInput = Field(default_factory=VehicleDetailsInput)
    payment_method: PaymentMethod = Field(default=PaymentMethod.CARD, description="card or wallet")

    @field_validator('date', 'time', 'connector_type', mode='before')
    @classmethod
    def _blank_is_missing(cls, v):
        return _blank_to_none(v)


# ============================================================================
# REVIEW / ACCOUNT DTOs
# ============================================================================

class ReviewInput(BaseDTO):
    """Review form"""
    rating: int = Field(ge=1, le=5, description="Star rating 1-5")
    comment: str = Field(description="Review text")

    @field_validator('comment')
    @classmethod
    def validate_comment(cls, v):
        if not v.strip():
            raise ValueError("Please write a review comment")
        return v.strip()


class RegistrationInput(BaseDTO):
    """Account sign-up form"""
    name: str = Field(min_length=1, description="Display name")
    email: str = Field(description="Email address, unique per account")
    phone: str = Field(default="", description="Phone number")

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if not v.strip():
            raise ValueError("Please enter your name")
        return v.strip()

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """Basic email validation"""
        v = v.strip().lower()
        if '@' not in v or v.startswith('@') or v.endswith('@'):
            raise ValueError("Invalid email address")
        return v
