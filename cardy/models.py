"""Shared data classes used across cardy, repositories, and policies."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

SUITS = ("hearts", "diamonds", "clubs", "spades")
RANKS = ("ace", "2", "3", "4", "5", "6", "7", "8", "9", "10", "jack", "queen", "king")
RATINGS = ("easy", "medium", "hard")

RED_SUITS = ("hearts", "diamonds")
IMAGE_BASE_URL = "https://deckofcardsapi.com/static/img"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_ts(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return as_utc(dt).isoformat()


def parse_ts(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


@dataclass(frozen=True)
class Card:
    suit: str
    rank: str

    @property
    def display_name(self) -> str:
        return f"{self.rank.capitalize()} of {self.suit.capitalize()}"

    @property
    def color(self) -> str:
        return "red" if self.suit in RED_SUITS else "black"

    @property
    def code(self) -> str:
        rank_code = "0" if self.rank == "10" else self.rank[0].upper()
        return rank_code + self.suit[0].upper()

    @property
    def image_url(self) -> str:
        return f"{IMAGE_BASE_URL}/{self.code}.png"


@dataclass(frozen=True)
class CardDefinition:
    name: str
    number: str
    suit: str
    rank: str
    keywords: tuple[str, ...] = ()
    summary: str = ""
    in_love_meaning: str = ""
    blessing_card: str = ""
    blessing_meaning: str = ""
    duty_card: str = ""
    duty_meaning: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name, "number": self.number,
            "suit": self.suit, "rank": self.rank,
            "keywords": list(self.keywords), "summary": self.summary,
            "in_love_meaning": self.in_love_meaning,
            "blessing_card": self.blessing_card,
            "blessing_meaning": self.blessing_meaning,
            "duty_card": self.duty_card, "duty_meaning": self.duty_meaning,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CardDefinition":
        data = dict(data)
        data["keywords"] = tuple(data.get("keywords") or ())
        return cls(**data)


@dataclass
class DrawnCard:
    card: Card
    meaning: str
    definition: CardDefinition | None = None

    def to_dict(self) -> dict:
        return {
            "suit": self.card.suit,
            "rank": self.card.rank,
            "display_name": self.card.display_name,
            "color": self.card.color,
            "image_url": self.card.image_url,
            "meaning": self.meaning,
            "definition": self.definition.to_dict() if self.definition else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DrawnCard":
        definition = data.get("definition")
        return cls(
            card=Card(data["suit"], data["rank"]),
            meaning=data.get("meaning", ""),
            definition=CardDefinition.from_dict(definition) if definition else None,
        )


@dataclass
class DailyDraw:
    date: str
    cards: list[DrawnCard]
    generated_at: str

    def to_dict(self) -> dict:
        return {
            "date": self.date,
            "generated_at": self.generated_at,
            "cards": [c.to_dict() for c in self.cards],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DailyDraw":
        return cls(
            date=data["date"],
            cards=[DrawnCard.from_dict(c) for c in data["cards"]],
            generated_at=data["generated_at"],
        )

    def identities(self) -> list[tuple[str, str]]:
        return [(c.card.suit, c.card.rank) for c in self.cards]


@dataclass
class Flashcard:
    id: str
    deck_id: str
    front: str
    back: str
    difficulty: str | None = None
    last_reviewed_at: datetime | None = None
    next_review_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "deck_id": self.deck_id,
            "front": self.front,
            "back": self.back,
            "difficulty": self.difficulty,
            "last_reviewed_at": format_ts(self.last_reviewed_at),
            "next_review_at": format_ts(self.next_review_at),
            "created_at": format_ts(self.created_at),
            "updated_at": format_ts(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Flashcard":
        return cls(
            id=data["id"],
            deck_id=data["deck_id"],
            front=data.get("front", ""),
            back=data.get("back", ""),
            difficulty=data.get("difficulty"),
            last_reviewed_at=parse_ts(data.get("last_reviewed_at")),
            next_review_at=parse_ts(data.get("next_review_at")),
            created_at=parse_ts(data.get("created_at")) or utcnow(),
            updated_at=parse_ts(data.get("updated_at")) or utcnow(),
        )


@dataclass
class Deck:
    id: str
    owner_id: str
    title: str
    description: str = ""
    tags: list[str] = field(default_factory=list)
    is_public: bool = False
    card_count: int = 0
    reviews: int = 0
    correct_reviews: int = 0
    accuracy: int = 0
    streak: int = 0
    last_study_date: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "tags": list(self.tags),
            "is_public": self.is_public,
            "card_count": self.card_count,
            "reviews": self.reviews,
            "correct_reviews": self.correct_reviews,
            "accuracy": self.accuracy,
            "streak": self.streak,
            "last_study_date": self.last_study_date,
            "created_at": format_ts(self.created_at),
            "updated_at": format_ts(self.updated_at),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Deck":
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            title=data.get("title", "Untitled Deck"),
            description=data.get("description", ""),
            tags=list(data.get("tags") or []),
            is_public=bool(data.get("is_public", False)),
            card_count=int(data.get("card_count", 0)),
            reviews=int(data.get("reviews", 0)),
            correct_reviews=int(data.get("correct_reviews", 0)),
            accuracy=int(data.get("accuracy", 0)),
            streak=int(data.get("streak", 0)),
            last_study_date=data.get("last_study_date"),
            created_at=parse_ts(data.get("created_at")) or utcnow(),
            updated_at=parse_ts(data.get("updated_at")) or utcnow(),
        )


@dataclass
class ReviewOutcome:
    flashcard_id: str
    rating: str
    observed_at: datetime


@dataclass
class StudySession:
    id: str
    user_id: str
    deck_id: str
    started_at: datetime
    ended_at: datetime | None = None
    cards_studied: int = 0
    correct_answers: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "deck_id": self.deck_id,
            "started_at": format_ts(self.started_at),
            "ended_at": format_ts(self.ended_at),
            "cards_studied": self.cards_studied,
            "correct_answers": self.correct_answers,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StudySession":
        return cls(
            id=data["id"],
            user_id=data["user_id"],
            deck_id=data["deck_id"],
            started_at=parse_ts(data["started_at"]),
            ended_at=parse_ts(data.get("ended_at")),
            cards_studied=int(data.get("cards_studied", 0)),
            correct_answers=int(data.get("correct_answers", 0)),
        )
