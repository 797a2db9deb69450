# File: src/ecocharge/application/review_service.py
"""
Review Application Service

Use Case: Rate a station
1. Require a signed-in user
2. Validate the rating (1-5) and the comment (non-blank)
3. Create the Review and the user record that lists it

Use Case: Show a station's ratings
- summarize() folds the reviews into an average and a star histogram
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional, Dict, Any, Callable, Iterable
import logging

from pydantic import ValidationError

from ..domain.models import Station, User, Review, generate_id
from ..domain.reviews import ReviewSummary, aggregate
from ..domain.exceptions import UnauthenticatedError, ReviewValidationError
from .dtos import ReviewInput, field_errors


@dataclass(frozen=True)
class ReviewOutcome:
    """A new review and the author's updated record"""
    review: Review
    user: User


class ReviewService:
    """Creates reviews; storing them is the caller's job"""

    def __init__(self, clock: Optional[Callable[[], date]] = None):
        self.clock = clock or date.today
        self.logger = logging.getLogger(self.__class__.__name__)

    def create_review(
        self,
        station: Station,
        user: Optional[User],
        rating: Any,
        comment: Any
    ) -> ReviewOutcome:
        """
        Build a review of ``station`` by ``user``

        Raises UnauthenticatedError without a user and ReviewValidationError
        (with per-field messages) for a bad rating or an empty comment.
        """
        if user is None:
            self.logger.warning(f"Review attempt for {station.id} without a signed-in user")
            raise UnauthenticatedError("Please login to write a review")

        try:
            form = ReviewInput(rating=rating, comment=comment if comment is not None else "")
        except ValidationError as e:
            errors = field_errors(e)
            self.logger.warning(f"Review rejected for user {user.id}: {sorted(errors)}")
            raise ReviewValidationError(errors)

        review = Review(
            id=generate_id("review"),
            station_id=station.id,
            station_name=station.name,
            user_id=user.id,
            user_name=user.name,
            rating=form.rating,
            comment=form.comment,
            date=self.clock()
        )
        self.logger.info(f"User {user.id} rated {station.id} {review.rating}/5")
        return ReviewOutcome(review=review, user=user.with_review(review))

    @staticmethod
    def summarize(reviews: Iterable[Review]) -> ReviewSummary:
        return aggregate(reviews)

    def summary_for(self, catalog, station_id: str) -> Dict[str, Any]:
        """Summary plus the station's reviews, newest first"""
        station = catalog.get_station(station_id)
        reviews = catalog.reviews_for_station(station_id)
        return {
            "station_id": station.id,
            "summary": self.summarize(reviews),
            "reviews": list(reversed(reviews))
        }
