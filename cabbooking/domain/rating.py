"""Driver rating maths."""

from __future__ import annotations

from typing import Optional

from .errors import InvalidRating

MIN_RATING = 1
MAX_RATING = 5


def validate_rating(rating: int) -> int:
    if isinstance(rating, bool) or not isinstance(rating, int):
        raise InvalidRating(f"Rating must be an integer, got {rating!r}")
    if not MIN_RATING <= rating <= MAX_RATING:
        raise InvalidRating(
            f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {rating}"
        )
    return rating


def running_average(
    current: Optional[float], total_ratings: int, new_rating: int
) -> tuple[float, int]:
    """
    Fold *new_rating* into a running average.

    Returns ``(new_average, new_total)``.  A driver with no rating yet counts
    as an average of 0 over ``total_ratings`` votes.
    """
    total_points = (current or 0.0) * total_ratings
    new_total = total_ratings + 1
    return (total_points + new_rating) / new_total, new_total
