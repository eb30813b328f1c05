"""MongoDB-backed repository for the hosted deployment mode."""

import contextlib
import dataclasses

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.errors import PyMongoError

from cardy.errors import InvalidInput, NotFound, PersistenceUnavailable
from cardy.models import RATINGS, Deck, Flashcard, StudySession, parse_ts, utcnow
from cardy.repository import (_DECK_PROTECTED, _FLASHCARD_PROTECTED, Repository,
                              apply_fields, new_id)

_TS_FIELDS = ("created_at", "updated_at", "last_reviewed_at", "next_review_at",
              "started_at", "ended_at")


def to_document(record) -> dict:
    """Serialize a record for Mongo, keeping timestamps as native datetimes."""
    doc = record.to_dict()
    for name in _TS_FIELDS:
        if name in doc:
            doc[name] = parse_ts(doc[name])
    return doc


@contextlib.contextmanager
def _store_errors(action: str):
    try:
        yield
    except PyMongoError as e:
        raise PersistenceUnavailable(f"{action} failed: {e}") from e


class MongoRepository(Repository):
    """Repository over the decks, flashcards and study_sessions collections.

    Multi-document writes (a flashcard plus its deck aggregate) run inside a
    client session transaction so they land together or not at all.
    """

    def __init__(self, db, clock=utcnow):
        self.db = db
        self.client = db.client
        self.decks = db.decks
        self.flashcards = db.flashcards
        self.sessions = db.study_sessions
        self._clock = clock

    @classmethod
    def connect(cls, uri: str, database_name: str = "cardy") -> "MongoRepository":
        if not uri:
            raise InvalidInput("mongo_uri is required for remote storage")
        client = MongoClient(uri, serverSelectionTimeoutMS=5000, tz_aware=True)
        return cls(client[database_name])

    def close(self) -> None:
        self.client.close()

    def _transaction(self, action: str, callback):
        with _store_errors(action):
            with self.client.start_session() as session:
                return session.with_transaction(callback)

    def _find_one(self, collection, record_id: str, kind: str, session=None) -> dict:
        with _store_errors(f"reading {kind} {record_id}"):
            doc = collection.find_one({"id": record_id}, {"_id": 0}, session=session)
        if doc is None:
            raise NotFound(f"{kind} not found: {record_id}")
        return doc

    def _recount(self, deck_id: str, session) -> None:
        count = self.flashcards.count_documents({"deck_id": deck_id}, session=session)
        self.decks.update_one(
            {"id": deck_id},
            {"$set": {"card_count": count, "updated_at": self._clock()}},
            session=session)

    # decks

    def create_deck(self, owner_id, title="Untitled Deck", description="",
                    tags=None, is_public=False) -> Deck:
        now = self._clock()
        deck = Deck(id=new_id(), owner_id=owner_id, title=title or "Untitled Deck",
                    description=description or "", tags=list(tags or []),
                    is_public=bool(is_public), created_at=now, updated_at=now)
        with _store_errors("creating deck"):
            self.decks.insert_one(to_document(deck))
        return deck

    def get_deck(self, deck_id) -> Deck:
        return Deck.from_dict(self._find_one(self.decks, deck_id, "Deck"))

    def list_decks(self, owner_id) -> list[Deck]:
        with _store_errors("listing decks"):
            cursor = self.decks.find({"owner_id": owner_id}, {"_id": 0}).sort(
                "updated_at", DESCENDING)
            return [Deck.from_dict(d) for d in cursor]

    def list_public_decks(self, limit=10) -> list[Deck]:
        with _store_errors("listing public decks"):
            cursor = self.decks.find({"is_public": True}, {"_id": 0}).sort(
                "updated_at", DESCENDING).limit(limit)
            return [Deck.from_dict(d) for d in cursor]

    def update_deck(self, deck_id, **fields) -> Deck:
        deck = apply_fields(self.get_deck(deck_id), fields, _DECK_PROTECTED)
        deck = dataclasses.replace(deck, updated_at=self._clock())
        with _store_errors(f"updating deck {deck_id}"):
            self.decks.replace_one({"id": deck_id}, to_document(deck))
        return deck

    def delete_deck(self, deck_id) -> None:
        self.get_deck(deck_id)

        def txn(session):
            self.flashcards.delete_many({"deck_id": deck_id}, session=session)
            self.decks.delete_one({"id": deck_id}, session=session)

        self._transaction(f"deleting deck {deck_id}", txn)

    # flashcards

    def create_flashcard(self, deck_id, front="", back="", difficulty=None) -> Flashcard:
        if difficulty not in (None, *RATINGS):
            raise InvalidInput(f"Unknown rating: {difficulty!r}")
        self.get_deck(deck_id)
        now = self._clock()
        card = Flashcard(id=new_id(), deck_id=deck_id, front=front or "", back=back or "",
                         difficulty=difficulty, created_at=now, updated_at=now)

        def txn(session):
            self.flashcards.insert_one(to_document(card), session=session)
            self._recount(deck_id, session)

        self._transaction("creating flashcard", txn)
        return card

    def get_flashcard(self, flashcard_id) -> Flashcard:
        return Flashcard.from_dict(self._find_one(self.flashcards, flashcard_id, "Flashcard"))

    def list_flashcards(self, deck_id) -> list[Flashcard]:
        with _store_errors(f"listing flashcards of {deck_id}"):
            cursor = self.flashcards.find({"deck_id": deck_id}, {"_id": 0}).sort(
                "created_at", ASCENDING)
            return [Flashcard.from_dict(f) for f in cursor]

    def update_flashcard(self, flashcard_id, **fields) -> Flashcard:
        card = apply_fields(self.get_flashcard(flashcard_id), fields, _FLASHCARD_PROTECTED)
        card = dataclasses.replace(card, updated_at=self._clock())
        with _store_errors(f"updating flashcard {flashcard_id}"):
            self.flashcards.replace_one({"id": flashcard_id}, to_document(card))
        return card

    def delete_flashcard(self, flashcard_id) -> None:
        deck_id = self.get_flashcard(flashcard_id).deck_id

        def txn(session):
            self.flashcards.delete_one({"id": flashcard_id}, session=session)
            self._recount(deck_id, session)

        self._transaction(f"deleting flashcard {flashcard_id}", txn)

    def save_review(self, flashcard, deck) -> None:
        deck_doc = to_document(deck)
        # card_count is owned by add/remove, never by a review
        deck_doc.pop("card_count")

        def txn(session):
            res = self.flashcards.replace_one(
                {"id": flashcard.id}, to_document(flashcard), session=session)
            if res.matched_count == 0:
                raise NotFound(f"Flashcard not found: {flashcard.id}")
            res = self.decks.update_one({"id": deck.id}, {"$set": deck_doc}, session=session)
            if res.matched_count == 0:
                raise NotFound(f"Deck not found: {deck.id}")

        self._transaction(f"saving review of {flashcard.id}", txn)

    # study sessions

    def create_session(self, user_id, deck_id, started_at=None) -> StudySession:
        session = StudySession(id=new_id(), user_id=user_id, deck_id=deck_id,
                               started_at=started_at or self._clock())
        with _store_errors("creating study session"):
            self.sessions.insert_one(to_document(session))
        return session

    def get_session(self, session_id) -> StudySession:
        return StudySession.from_dict(self._find_one(self.sessions, session_id, "Study session"))

    def update_session(self, session) -> None:
        with _store_errors(f"updating study session {session.id}"):
            res = self.sessions.replace_one({"id": session.id}, to_document(session))
        if res.matched_count == 0:
            raise NotFound(f"Study session not found: {session.id}")

    def end_session(self, session, deck) -> None:
        def txn(s):
            res = self.sessions.replace_one({"id": session.id}, to_document(session), session=s)
            if res.matched_count == 0:
                raise NotFound(f"Study session not found: {session.id}")
            res = self.decks.update_one(
                {"id": deck.id},
                {"$set": {"streak": deck.streak, "last_study_date": deck.last_study_date,
                          "updated_at": deck.updated_at}},
                session=s)
            if res.matched_count == 0:
                raise NotFound(f"Deck not found: {deck.id}")

        self._transaction(f"ending study session {session.id}", txn)

    def list_sessions(self, user_id=None, deck_id=None, limit=10) -> list[StudySession]:
        query = {}
        if user_id is not None:
            query["user_id"] = user_id
        if deck_id is not None:
            query["deck_id"] = deck_id
        with _store_errors("listing study sessions"):
            cursor = self.sessions.find(query, {"_id": 0}).sort("started_at", DESCENDING)
            if limit:
                cursor = cursor.limit(limit)
            return [StudySession.from_dict(s) for s in cursor]
