"""Card catalog: static card definitions indexed by (suit, rank)."""

import csv
import io
import pathlib
import sys
from importlib.resources import files

from cardy.models import RANKS, SUITS, Card, CardDefinition

_RANK_WORDS = {
    "ace": "ace", "one": "ace", "a": "ace", "1": "ace",
    "two": "2", "three": "3", "four": "4", "five": "5", "six": "6",
    "seven": "7", "eight": "8", "nine": "9", "ten": "10",
    "jack": "jack", "j": "jack", "queen": "queen", "q": "queen",
    "king": "king", "k": "king",
}
_RANK_WORDS.update({r: r for r in RANKS if r.isdigit()})

RANK_MEANINGS = {
    "ace": "Aces represent new beginnings, opportunities, and potential. This card suggests being open to new possibilities.",
    "2": "Twos represent balance, partnership, and choices. This card suggests finding harmony in duality.",
    "3": "Threes represent creativity, growth, and expression. This card suggests collaborative energy and expansion.",
    "4": "Fours represent stability, structure, and foundation. This card suggests building solid bases for your endeavors.",
    "5": "Fives represent change, adaptation, and freedom. This card suggests embracing transitions and flexibility.",
    "6": "Sixes represent harmony, healing, and nurturing. This card suggests finding balance and caring for yourself and others.",
    "7": "Sevens represent reflection, analysis, and spiritual awareness. This card suggests looking inward for answers.",
    "8": "Eights represent power, achievement, and mastery. This card suggests taking control of your circumstances.",
    "9": "Nines represent completion, fulfillment, and wisdom. This card suggests reaching the final stages of a cycle.",
    "10": "Tens represent culmination, transition, and endings that lead to new beginnings. This card suggests completing one phase to start another.",
    "jack": "Jacks represent youth, enthusiasm, and new ideas. This card suggests approaching situations with fresh energy and creativity.",
    "queen": "Queens represent nurturing power, emotional intelligence, and inner wisdom. This card suggests leading with compassion and intuition.",
    "king": "Kings represent authority, leadership, and mastery. This card suggests taking charge and expressing your power with wisdom.",
}

SUIT_MEANINGS = {
    "hearts": "Hearts represent emotions, relationships, and matters of the heart. They suggest focusing on your emotional connections today.",
    "diamonds": "Diamonds represent wealth, resources, and material aspects of life. They suggest paying attention to your resources and values today.",
    "clubs": "Clubs represent knowledge, growth, and achievement. They suggest focusing on personal development and learning today.",
    "spades": "Spades represent challenges, obstacles, and transformation. They suggest facing difficulties with courage and seeing them as opportunities for growth.",
}


def generic_meaning(card: Card) -> str:
    return f"{RANK_MEANINGS[card.rank]} {SUIT_MEANINGS[card.suit]}"


def parse_card_name(name: str) -> tuple[str, str] | None:
    """Parse "Four of Hearts" into ("hearts", "4"). Whole words only."""
    parts = name.strip().lower().split()
    if len(parts) != 3 or parts[1] != "of":
        return None
    rank = _RANK_WORDS.get(parts[0])
    suit = parts[2]
    if rank is None or suit not in SUITS:
        return None
    return suit, rank


def _parse_keywords(raw: str) -> tuple[str, ...]:
    raw = raw.strip().strip("[]")
    return tuple(k.strip().strip("'\"") for k in raw.split(",") if k.strip())


def parse_definitions(text: str) -> list[CardDefinition]:
    definitions = []
    for row in csv.DictReader(io.StringIO(text)):
        name = (row.get("name") or "").strip()
        identity = parse_card_name(name)
        if identity is None:
            print(f"Warning: skipping card definition with unparseable name {name!r}",
                  file=sys.stderr)
            continue
        suit, rank = identity
        definitions.append(CardDefinition(
            name=name,
            number=(row.get("number") or "").strip(),
            suit=suit,
            rank=rank,
            keywords=_parse_keywords(row.get("keywords") or ""),
            summary=(row.get("summary") or "").strip(),
            in_love_meaning=(row.get("in_love_meaning") or "").strip(),
            blessing_card=(row.get("blessing_card") or "").strip(),
            blessing_meaning=(row.get("blessing_meaning") or "").strip(),
            duty_card=(row.get("duty_card") or "").strip(),
            duty_meaning=(row.get("duty_meaning") or "").strip(),
        ))
    return definitions


def load_definitions(path: pathlib.Path | str | None = None) -> list[CardDefinition]:
    if path is None:
        text = files("cardy.data").joinpath("card_definitions.csv").read_text(encoding="utf-8")
    else:
        text = pathlib.Path(path).read_text(encoding="utf-8")
    return parse_definitions(text)


class CardCatalog:
    """Read-only lookup of card definitions.

    Built once at startup and injected wherever definitions are needed:

        catalog = CardCatalog.load()
        catalog.lookup("hearts", "4")      # CardDefinition
        catalog.lookup("spades", "king")   # None, no definition shipped
    """

    def __init__(self, definitions: list[CardDefinition]):
        self._by_identity: dict[tuple[str, str], CardDefinition] = {}
        for d in definitions:
            # first definition for an identity wins
            self._by_identity.setdefault((d.suit, d.rank), d)

    @classmethod
    def load(cls, path: pathlib.Path | str | None = None) -> "CardCatalog":
        return cls(load_definitions(path))

    def lookup(self, suit: str, rank: str) -> CardDefinition | None:
        return self._by_identity.get((suit, rank))

    def lookup_card(self, card: Card) -> CardDefinition | None:
        return self.lookup(card.suit, card.rank)

    def by_name(self, name: str) -> CardDefinition | None:
        identity = parse_card_name(name)
        if identity is None:
            return None
        return self._by_identity.get(identity)

    def __len__(self) -> int:
        return len(self._by_identity)

    def __iter__(self):
        return iter(self._by_identity.values())
