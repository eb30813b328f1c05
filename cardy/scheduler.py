"""ReviewScheduler: review timing per flashcard and due-list selection.

All functions here are pure: they take records and return updated copies.
Persisting the result is the caller's job (see cardy.study).
"""

import dataclasses
from datetime import date, datetime, timedelta

from cardy.errors import InvalidInput
from cardy.models import RATINGS, Deck, Flashcard, as_utc
from cardy.policies.fixed import FixedIntervalPolicy

CORRECT_RATINGS = ("easy", "medium")


def validate_rating(rating) -> str:
    if rating not in RATINGS:
        raise InvalidInput(f"Unknown rating: {rating!r} (expected one of {', '.join(RATINGS)})")
    return rating


class ReviewScheduler:
    def __init__(self, policy=None):
        self.policy = policy or FixedIntervalPolicy()

    def is_due(self, card: Flashcard, as_of: datetime) -> bool:
        if card.last_reviewed_at is None:
            return True
        if card.next_review_at is None:
            return True
        return as_utc(as_of) >= as_utc(card.next_review_at)

    def select_due(self, pool: list[Flashcard], limit: int,
                   as_of: datetime) -> list[Flashcard]:
        """Never-reviewed cards first, then overdue ones, pool order within each."""
        if limit <= 0:
            return []
        unseen = [c for c in pool if c.last_reviewed_at is None]
        overdue = [c for c in pool
                   if c.last_reviewed_at is not None and self.is_due(c, as_of)]
        return (unseen + overdue)[:limit]

    def interval(self, rating: str) -> timedelta:
        return self.policy.interval(validate_rating(rating))

    def record_review(self, card: Flashcard, rating: str,
                      observed_at: datetime) -> Flashcard:
        interval = self.interval(rating)
        observed_at = as_utc(observed_at)
        return dataclasses.replace(
            card,
            difficulty=rating,
            last_reviewed_at=observed_at,
            next_review_at=observed_at + interval,
            updated_at=observed_at,
        )


def _as_day(value) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def next_streak(streak: int, last_study_date, today) -> int:
    """Consecutive days extend the streak, a gap resets it, same day keeps it."""
    last = _as_day(last_study_date)
    today = _as_day(today)
    if last is None:
        return 1
    gap = (today - last).days
    if gap == 0:
        return max(streak, 1)
    if gap == 1:
        return streak + 1
    if gap < 0:
        # clock went backwards; keep what we have
        return max(streak, 1)
    return 1


def touch_streak(deck: Deck, observed_at: datetime) -> Deck:
    today = as_utc(observed_at).date()
    return dataclasses.replace(
        deck,
        streak=next_streak(deck.streak, deck.last_study_date, today),
        last_study_date=max(today.isoformat(), deck.last_study_date or ""),
        updated_at=as_utc(observed_at),
    )


def apply_review_to_deck(deck: Deck, rating: str, observed_at: datetime) -> Deck:
    """Fold one review into the deck aggregates. card_count is left alone."""
    validate_rating(rating)
    reviews = deck.reviews + 1
    correct = deck.correct_reviews + (1 if rating in CORRECT_RATINGS else 0)
    deck = touch_streak(deck, observed_at)
    return dataclasses.replace(
        deck,
        reviews=reviews,
        correct_reviews=correct,
        accuracy=round(correct * 100 / reviews),
    )
