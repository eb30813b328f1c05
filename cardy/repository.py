"""Flashcard, deck and study session storage.

Repository defines the operations every backend provides; LocalRepository
keeps each collection as a JSON list in a key-value store (offline-first
mode). The MongoDB backend lives in cardy.remote.
"""

import dataclasses
import uuid

from cardy.errors import InvalidInput, NotFound, PersistenceUnavailable
from cardy.kvstore import KeyValueStore, encode_json
from cardy.models import RATINGS, Deck, Flashcard, StudySession, utcnow

DECKS_KEY = "cardy_decks"
FLASHCARDS_KEY = "cardy_flashcards"
SESSIONS_KEY = "cardy_study_sessions"

_DECK_PROTECTED = {"id", "owner_id", "created_at", "card_count"}
_FLASHCARD_PROTECTED = {"id", "deck_id", "created_at"}


def new_id() -> str:
    return str(uuid.uuid4())


def apply_fields(record, fields: dict, protected: set[str]):
    """Return a copy of record with fields replaced, rejecting unknown or protected names."""
    known = {f.name for f in dataclasses.fields(record)}
    for name in fields:
        if name not in known:
            raise InvalidInput(f"Unknown field for {type(record).__name__}: {name}")
        if name in protected:
            raise InvalidInput(f"Field cannot be updated: {name}")
    if "difficulty" in fields and fields["difficulty"] not in (None, *RATINGS):
        raise InvalidInput(f"Unknown rating: {fields['difficulty']!r}")
    return dataclasses.replace(record, **fields)


class Repository:
    """Operations shared by the local and remote backends."""

    # decks
    def create_deck(self, owner_id: str, title: str = "Untitled Deck",
                    description: str = "", tags: list[str] | None = None,
                    is_public: bool = False) -> Deck:
        raise NotImplementedError

    def get_deck(self, deck_id: str) -> Deck:
        raise NotImplementedError

    def list_decks(self, owner_id: str) -> list[Deck]:
        raise NotImplementedError

    def list_public_decks(self, limit: int = 10) -> list[Deck]:
        raise NotImplementedError

    def update_deck(self, deck_id: str, **fields) -> Deck:
        raise NotImplementedError

    def delete_deck(self, deck_id: str) -> None:
        raise NotImplementedError

    # flashcards
    def create_flashcard(self, deck_id: str, front: str = "", back: str = "",
                         difficulty: str | None = None) -> Flashcard:
        raise NotImplementedError

    def get_flashcard(self, flashcard_id: str) -> Flashcard:
        raise NotImplementedError

    def list_flashcards(self, deck_id: str) -> list[Flashcard]:
        raise NotImplementedError

    def update_flashcard(self, flashcard_id: str, **fields) -> Flashcard:
        raise NotImplementedError

    def delete_flashcard(self, flashcard_id: str) -> None:
        raise NotImplementedError

    def save_review(self, flashcard: Flashcard, deck: Deck) -> None:
        """Persist a reviewed flashcard and its deck's aggregates together."""
        raise NotImplementedError

    # study sessions
    def create_session(self, user_id: str, deck_id: str, started_at=None) -> StudySession:
        raise NotImplementedError

    def get_session(self, session_id: str) -> StudySession:
        raise NotImplementedError

    def update_session(self, session: StudySession) -> None:
        raise NotImplementedError

    def end_session(self, session: StudySession, deck: Deck) -> None:
        """Persist an ended session and its deck's streak together."""
        raise NotImplementedError

    def list_sessions(self, user_id: str | None = None, deck_id: str | None = None,
                      limit: int = 10) -> list[StudySession]:
        raise NotImplementedError

    def close(self) -> None:
        pass


class LocalRepository(Repository):
    def __init__(self, store: KeyValueStore, clock=utcnow):
        self.store = store
        self._clock = clock

    def _load(self, key: str) -> list[dict]:
        records = self.store.get_json(key, [])
        if not isinstance(records, list):
            raise PersistenceUnavailable(f"unreadable collection under {key!r}: not a list")
        return records

    def _decks(self) -> list[Deck]:
        return [Deck.from_dict(d) for d in self._load(DECKS_KEY)]

    def _flashcards(self) -> list[Flashcard]:
        return [Flashcard.from_dict(f) for f in self._load(FLASHCARDS_KEY)]

    def _sessions(self) -> list[StudySession]:
        return [StudySession.from_dict(s) for s in self._load(SESSIONS_KEY)]

    def _write(self, decks=None, flashcards=None, sessions=None):
        items = {}
        if decks is not None:
            items[DECKS_KEY] = encode_json([d.to_dict() for d in decks])
        if flashcards is not None:
            items[FLASHCARDS_KEY] = encode_json([f.to_dict() for f in flashcards])
        if sessions is not None:
            items[SESSIONS_KEY] = encode_json([s.to_dict() for s in sessions])
        self.store.set_many(items)

    @staticmethod
    def _index(records, record_id: str, kind: str) -> int:
        for i, r in enumerate(records):
            if r.id == record_id:
                return i
        raise NotFound(f"{kind} not found: {record_id}")

    def _with_card_count(self, decks: list[Deck], flashcards: list[Flashcard],
                         deck_id: str) -> list[Deck]:
        i = self._index(decks, deck_id, "Deck")
        count = sum(1 for f in flashcards if f.deck_id == deck_id)
        decks[i] = dataclasses.replace(decks[i], card_count=count, updated_at=self._clock())
        return decks

    # decks

    def create_deck(self, owner_id, title="Untitled Deck", description="",
                    tags=None, is_public=False) -> Deck:
        now = self._clock()
        deck = Deck(id=new_id(), owner_id=owner_id, title=title or "Untitled Deck",
                    description=description or "", tags=list(tags or []),
                    is_public=bool(is_public), created_at=now, updated_at=now)
        decks = self._decks()
        decks.append(deck)
        self._write(decks=decks)
        return deck

    def get_deck(self, deck_id) -> Deck:
        decks = self._decks()
        return decks[self._index(decks, deck_id, "Deck")]

    def list_decks(self, owner_id) -> list[Deck]:
        decks = [d for d in self._decks() if d.owner_id == owner_id]
        return sorted(decks, key=lambda d: d.updated_at, reverse=True)

    def list_public_decks(self, limit=10) -> list[Deck]:
        decks = [d for d in self._decks() if d.is_public]
        return sorted(decks, key=lambda d: d.updated_at, reverse=True)[:limit]

    def update_deck(self, deck_id, **fields) -> Deck:
        decks = self._decks()
        i = self._index(decks, deck_id, "Deck")
        decks[i] = apply_fields(decks[i], fields, _DECK_PROTECTED)
        decks[i] = dataclasses.replace(decks[i], updated_at=self._clock())
        self._write(decks=decks)
        return decks[i]

    def delete_deck(self, deck_id) -> None:
        decks = self._decks()
        del decks[self._index(decks, deck_id, "Deck")]
        flashcards = [f for f in self._flashcards() if f.deck_id != deck_id]
        self._write(decks=decks, flashcards=flashcards)

    def recompute_card_count(self, deck_id: str) -> Deck:
        """Rebuild the cached card_count of a deck from its flashcards."""
        decks = self._with_card_count(self._decks(), self._flashcards(), deck_id)
        self._write(decks=decks)
        return decks[self._index(decks, deck_id, "Deck")]

    # flashcards

    def create_flashcard(self, deck_id, front="", back="", difficulty=None) -> Flashcard:
        if difficulty not in (None, *RATINGS):
            raise InvalidInput(f"Unknown rating: {difficulty!r}")
        decks = self._decks()
        self._index(decks, deck_id, "Deck")
        now = self._clock()
        card = Flashcard(id=new_id(), deck_id=deck_id, front=front or "", back=back or "",
                         difficulty=difficulty, created_at=now, updated_at=now)
        flashcards = self._flashcards()
        flashcards.append(card)
        decks = self._with_card_count(decks, flashcards, deck_id)
        self._write(decks=decks, flashcards=flashcards)
        return card

    def get_flashcard(self, flashcard_id) -> Flashcard:
        flashcards = self._flashcards()
        return flashcards[self._index(flashcards, flashcard_id, "Flashcard")]

    def list_flashcards(self, deck_id) -> list[Flashcard]:
        cards = [f for f in self._flashcards() if f.deck_id == deck_id]
        return sorted(cards, key=lambda f: f.created_at)

    def update_flashcard(self, flashcard_id, **fields) -> Flashcard:
        flashcards = self._flashcards()
        i = self._index(flashcards, flashcard_id, "Flashcard")
        flashcards[i] = apply_fields(flashcards[i], fields, _FLASHCARD_PROTECTED)
        flashcards[i] = dataclasses.replace(flashcards[i], updated_at=self._clock())
        self._write(flashcards=flashcards)
        return flashcards[i]

    def delete_flashcard(self, flashcard_id) -> None:
        flashcards = self._flashcards()
        i = self._index(flashcards, flashcard_id, "Flashcard")
        deck_id = flashcards.pop(i).deck_id
        decks = self._decks()
        try:
            decks = self._with_card_count(decks, flashcards, deck_id)
        except NotFound:
            # orphaned card, nothing to recount
            decks = None
        self._write(decks=decks, flashcards=flashcards)

    def save_review(self, flashcard, deck) -> None:
        flashcards = self._flashcards()
        decks = self._decks()
        flashcards[self._index(flashcards, flashcard.id, "Flashcard")] = flashcard
        i = self._index(decks, deck.id, "Deck")
        # card_count is owned by add/remove, never by a review
        decks[i] = dataclasses.replace(deck, card_count=decks[i].card_count)
        self._write(decks=decks, flashcards=flashcards)

    # study sessions

    def create_session(self, user_id, deck_id, started_at=None) -> StudySession:
        session = StudySession(id=new_id(), user_id=user_id, deck_id=deck_id,
                               started_at=started_at or self._clock())
        sessions = self._sessions()
        sessions.append(session)
        self._write(sessions=sessions)
        return session

    def get_session(self, session_id) -> StudySession:
        sessions = self._sessions()
        return sessions[self._index(sessions, session_id, "Study session")]

    def update_session(self, session) -> None:
        sessions = self._sessions()
        sessions[self._index(sessions, session.id, "Study session")] = session
        self._write(sessions=sessions)

    def end_session(self, session, deck) -> None:
        sessions = self._sessions()
        decks = self._decks()
        sessions[self._index(sessions, session.id, "Study session")] = session
        i = self._index(decks, deck.id, "Deck")
        decks[i] = dataclasses.replace(deck, card_count=decks[i].card_count)
        self._write(decks=decks, sessions=sessions)

    def list_sessions(self, user_id=None, deck_id=None, limit=10) -> list[StudySession]:
        sessions = [s for s in self._sessions()
                    if (user_id is None or s.user_id == user_id)
                    and (deck_id is None or s.deck_id == deck_id)]
        sessions.sort(key=lambda s: s.started_at, reverse=True)
        return sessions[:limit] if limit else sessions
