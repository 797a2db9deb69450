# File: src/ecocharge/application/account.py
"""
Account session

Ties the services to one catalog for a single signed-in user:
1. register / sign_in / sign_out
2. book and review as the current user
3. persist the user's record after every committed change and restore it
   on the next sign-in

A committed change is written to the snapshot store before the catalog
record is swapped, so a storage failure leaves the session unchanged.
Events are published after the commit; subscriber errors are logged and
do not reach the caller.
"""

from typing import Optional, Dict, Any, Union, List
import logging

from pydantic import ValidationError

from ..config import EngineConfig
from ..domain.models import User, Review, UserRole, generate_id
from ..domain.strategies import PricingResult
from ..domain.exceptions import RegistrationError, UserNotFoundError
from ..infrastructure.repositories import Catalog, UserSnapshotStore, InMemorySnapshotStore
from ..infrastructure.messaging import EventBus, DomainEvent, EventType
from .dtos import RegistrationInput, field_errors
from .booking_service import BookingService, BookingResult, FormData
from .review_service import ReviewService
from .station_finder import StationFinder, QueryData
from .admin_service import AdminService


class AccountSession:
    """One user's view of the engine"""

    def __init__(
        self,
        catalog: Catalog,
        snapshot_store: Optional[UserSnapshotStore] = None,
        event_bus: Optional[EventBus] = None,
        config: Optional[EngineConfig] = None,
        booking_service: Optional[BookingService] = None,
        review_service: Optional[ReviewService] = None
    ):
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.snapshot_store = snapshot_store or InMemorySnapshotStore()
        self.event_bus = event_bus or EventBus()
        self.booking_service = booking_service or BookingService(self.config)
        self.review_service = review_service or ReviewService()
        self.finder = StationFinder(catalog)
        self.admin = AdminService(catalog, self.event_bus)
        self._user_id: Optional[str] = None
        self.logger = logging.getLogger(self.__class__.__name__)

    # ================================================================ accounts

    @property
    def current_user(self) -> Optional[User]:
        if self._user_id is None:
            return None
        return self.catalog.get_user(self._user_id)

    @property
    def is_signed_in(self) -> bool:
        return self._user_id is not None

    def register(self, data: Union[RegistrationInput, Dict[str, Any]]) -> User:
        """Create an account with no points and the user role, and sign in"""
        if not isinstance(data, RegistrationInput):
            try:
                data = RegistrationInput.model_validate(data)
            except ValidationError as e:
                raise RegistrationError(field_errors(e))

        if self.catalog.find_user_by_email(data.email) is not None:
            self.logger.warning(f"Registration rejected, email in use: {data.email}")
            raise RegistrationError({"email": "Email already registered"})

        user = User(
            id=generate_id("user"),
            name=data.name,
            email=data.email,
            phone=data.phone,
            role=UserRole.USER,
            loyalty_points=0
        )
        self.snapshot_store.save(user)
        self.catalog.add_user(user)
        self._user_id = user.id

        self.logger.info(f"Registered user {user.id} ({user.email})")
        self._publish(EventType.USER_REGISTERED, user.id, {"email": user.email})
        return user

    def sign_in(self, email: str) -> User:
        """Sign in by email, restoring the user's saved record if there is one"""
        user = self.catalog.find_user_by_email(email)
        if user is None:
            self.logger.warning(f"Sign-in failed for {email}")
            raise UserNotFoundError(email)
        self._user_id = user.id
        restored = self.restore()
        self.logger.info(f"User {user.id} signed in")
        return restored or user

    def sign_out(self) -> None:
        if self._user_id is not None:
            self.logger.info(f"User {self._user_id} signed out")
        self._user_id = None

    def restore(self) -> Optional[User]:
        """Replace the current user's record with the saved snapshot"""
        if self._user_id is None:
            return None
        snapshot = self.snapshot_store.load(self._user_id)
        if snapshot is None:
            return None
        user = self.catalog.replace_user(snapshot)
        self.catalog.merge_reviews(snapshot.reviews)
        self.logger.debug(f"Restored snapshot for {self._user_id}")
        return user

    # ================================================================ bookings

    def quote(self, station_id: str, form: FormData) -> PricingResult:
        return self.booking_service.quote(form, self.catalog.get_station(station_id))

    def book(self, station_id: str, form: FormData) -> BookingResult:
        """
        Book at ``station_id`` as the current user
        Raises UnauthenticatedError when signed out and StationNotFoundError
        for an unknown station.
        """
        station = self.catalog.get_station(station_id)
        result = self.booking_service.submit_booking(form, station, self.current_user)
        if not result.success:
            return result

        self._commit(result.user)
        self._publish(
            EventType.BOOKING_CONFIRMED,
            result.booking.id,
            {
                "user_id": result.user.id,
                "station_id": station.id,
                "total_cost": str(result.booking.total_cost),
                "loyalty_points_earned": result.booking.loyalty_points_earned
            }
        )
        return result

    def bookings(self) -> List:
        user = self.current_user
        return list(user.bookings) if user else []

    # ================================================================= reviews

    def review(self, station_id: str, rating: Any, comment: Any) -> Review:
        station = self.catalog.get_station(station_id)
        outcome = self.review_service.create_review(station, self.current_user, rating, comment)

        self._commit(outcome.user)
        self.catalog.add_review(outcome.review)
        self._publish(
            EventType.REVIEW_ADDED,
            station.id,
            {"review_id": outcome.review.id, "rating": outcome.review.rating}
        )
        return outcome.review

    # ================================================================= search

    def search(self, query: QueryData = None):
        return self.finder.search(query)

    # ================================================================= helpers

    def _commit(self, user: User) -> None:
        self.snapshot_store.save(user)
        self.catalog.replace_user(user)

    def _publish(self, event_type: EventType, aggregate_id: str, data: Dict[str, Any]) -> None:
        # Called after a commit; a failing subscriber must not undo it for the caller
        try:
            self.event_bus.publish(DomainEvent(event_type=event_type, aggregate_id=aggregate_id, data=data))
        except Exception as e:
            self.logger.error(f"Event {event_type.value} for {aggregate_id} was not fully delivered: {e}")
