"""StudyService: due lists, review recording and study sessions over a repository."""

import dataclasses
import sys
from datetime import datetime

from cardy.errors import InvalidInput, PersistenceUnavailable
from cardy.kvstore import KeyValueStore, encode_json
from cardy.models import Flashcard, ReviewOutcome, StudySession, as_utc, utcnow
from cardy.repository import Repository
from cardy.scheduler import ReviewScheduler, apply_review_to_deck, touch_streak, validate_rating

DEFAULT_DUE_LIMIT = 20
POOL_KEY_PREFIX = "cardy_pool_"


def pool_key(deck_id: str) -> str:
    return f"{POOL_KEY_PREFIX}{deck_id}"


class StudyService:
    """Study operations on top of a repository.

    The last pool loaded for each deck is kept in memory and, when a
    pool_store is given, in that local key-value store, so a later process
    can still list due cards while the repository is unreachable.
    """

    def __init__(self, repository: Repository, scheduler: ReviewScheduler | None = None,
                 clock=utcnow, pool_store: KeyValueStore | None = None):
        self.repository = repository
        self.scheduler = scheduler or ReviewScheduler()
        self._clock = clock
        self._pool_store = pool_store
        # last successfully loaded pool per deck
        self._pools: dict[str, list[Flashcard]] = {}

    def _load_pool(self, deck_id: str) -> list[Flashcard]:
        try:
            pool = self.repository.list_flashcards(deck_id)
        except PersistenceUnavailable as e:
            last = self._last_pool(deck_id)
            if last is None:
                raise
            print(f"Warning: store unavailable, using last known cards for deck {deck_id}: {e}",
                  file=sys.stderr)
            return last
        self._keep_pool(deck_id, pool)
        return pool

    def _last_pool(self, deck_id: str) -> list[Flashcard] | None:
        if deck_id in self._pools:
            return list(self._pools[deck_id])
        if self._pool_store is None:
            return None
        try:
            records = self._pool_store.get_json(pool_key(deck_id))
            if records is None:
                return None
            pool = [Flashcard.from_dict(r) for r in records]
        except (PersistenceUnavailable, KeyError, TypeError, ValueError) as e:
            print(f"Warning: last known cards for deck {deck_id} unreadable: {e}",
                  file=sys.stderr)
            return None
        self._pools[deck_id] = pool
        return list(pool)

    def _keep_pool(self, deck_id: str, pool: list[Flashcard]):
        self._pools[deck_id] = list(pool)
        if self._pool_store is None:
            return
        try:
            self._pool_store.set(pool_key(deck_id), encode_json([c.to_dict() for c in pool]))
        except PersistenceUnavailable as e:
            print(f"Warning: could not keep cards of deck {deck_id} for offline use: {e}",
                  file=sys.stderr)

    def due_flashcards(self, deck_id: str, limit: int = DEFAULT_DUE_LIMIT,
                       as_of: datetime | None = None) -> list[Flashcard]:
        as_of = as_of or self._clock()
        return self.scheduler.select_due(self._load_pool(deck_id), limit, as_of)

    def record_review(self, flashcard_id: str, rating: str,
                      observed_at: datetime | None = None) -> Flashcard:
        """Apply a rating to a flashcard and its deck, persisted as one write."""
        outcome = ReviewOutcome(flashcard_id=flashcard_id, rating=validate_rating(rating),
                                observed_at=as_utc(observed_at or self._clock()))
        card = self.repository.get_flashcard(outcome.flashcard_id)
        deck = self.repository.get_deck(card.deck_id)
        updated = self.scheduler.record_review(card, outcome.rating, outcome.observed_at)
        deck = apply_review_to_deck(deck, outcome.rating, outcome.observed_at)
        self.repository.save_review(updated, deck)
        self._remember(updated)
        return updated

    def _remember(self, card: Flashcard):
        if self._last_pool(card.deck_id) is None:
            return
        pool = self._pools[card.deck_id]
        for i, c in enumerate(pool):
            if c.id == card.id:
                pool[i] = card
                self._keep_pool(card.deck_id, pool)
                return

    # study sessions

    def start_session(self, user_id: str, deck_id: str) -> StudySession:
        self.repository.get_deck(deck_id)
        return self.repository.create_session(user_id, deck_id, started_at=self._clock())

    def end_session(self, session_id: str, cards_studied: int,
                    correct_answers: int) -> StudySession:
        if cards_studied < 0 or correct_answers < 0 or correct_answers > cards_studied:
            raise InvalidInput(
                f"Invalid session totals: {correct_answers} correct of {cards_studied}")
        now = self._clock()
        session = dataclasses.replace(
            self.repository.get_session(session_id),
            ended_at=now, cards_studied=cards_studied, correct_answers=correct_answers)
        deck = touch_streak(self.repository.get_deck(session.deck_id), now)
        self.repository.end_session(session, deck)
        return session

    def user_study_stats(self, user_id: str) -> dict:
        sessions = [s for s in self.repository.list_sessions(user_id=user_id, limit=0)
                    if s.ended_at is not None]
        total_cards = sum(s.cards_studied for s in sessions)
        total_correct = sum(s.correct_answers for s in sessions)
        total_minutes = sum((s.ended_at - s.started_at).total_seconds() / 60 for s in sessions)
        return {
            "total_sessions": len(sessions),
            "total_cards_studied": total_cards,
            "total_correct_answers": total_correct,
            "accuracy": (total_correct / total_cards * 100) if total_cards else 0,
            "average_session_time": (total_minutes / len(sessions)) if sessions else 0,
            "total_study_time": total_minutes,
        }
