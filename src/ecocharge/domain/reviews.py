# File: src/ecocharge/domain/reviews.py
"""
Review aggregation

Folds a station's reviews into an average rating and a five-bucket star
histogram. Empty input is well defined: average 0 and every bucket at 0 %.
"""

from dataclasses import dataclass
from typing import Dict, Any, Iterable, List, Tuple

from .models import Review


STAR_ORDER = (5, 4, 3, 2, 1)


@dataclass(frozen=True)
class RatingBucket:
    star: int
    count: int
    percentage: float

    def to_dict(self) -> Dict[str, Any]:
        return {"star": self.star, "count": self.count, "percentage": self.percentage}


@dataclass(frozen=True)
class ReviewSummary:
    average: float
    total: int
    histogram: Tuple[RatingBucket, ...]

    def bucket(self, star: int) -> RatingBucket:
        for bucket in self.histogram:
            if bucket.star == star:
                return bucket
        raise KeyError(f"No bucket for {star} stars")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average": self.average,
            "total": self.total,
            "histogram": [b.to_dict() for b in self.histogram]
        }


def aggregate(reviews: Iterable[Review]) -> ReviewSummary:
    ratings: List[int] = [review.rating for review in reviews]
    total = len(ratings)

    average = sum(ratings) / total if total else 0.0

    histogram = []
    for star in STAR_ORDER:
        count = ratings.count(star)
        percentage = count / total * 100 if total else 0.0
        histogram.append(RatingBucket(star=star, count=count, percentage=percentage))

    return ReviewSummary(average=average, total=total, histogram=tuple(histogram))
