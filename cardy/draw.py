"""Daily draw: the same 3 cards for every user on a given UTC calendar day."""

import json
import math
import random
import re
import sys
from datetime import date, datetime, timezone

from cardy.catalog import CardCatalog, generic_meaning
from cardy.errors import InvalidInput, PersistenceUnavailable
from cardy.kvstore import KeyValueStore, encode_json
from cardy.models import RANKS, SUITS, Card, DailyDraw, DrawnCard, as_utc, format_ts, utcnow

DAILY_CARDS_KEY = "daily_cards"
DRAW_SIZE = 3

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def seeded_random(seed: float) -> float:
    """Reproducible value in [0, 1) for a given seed."""
    x = math.sin(seed) * 10000
    return x - math.floor(x)


def parse_day(value) -> date:
    if isinstance(value, datetime):
        return as_utc(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and _DAY_RE.match(value):
        try:
            return date.fromisoformat(value)
        except ValueError as e:
            raise InvalidInput(f"Invalid calendar day: {value!r}") from e
    raise InvalidInput(f"Invalid calendar day: {value!r} (expected YYYY-MM-DD)")


def today_utc(now: datetime | None = None) -> date:
    return as_utc(now or utcnow()).date()


def date_seed(day: date) -> int:
    """Milliseconds since the epoch at UTC midnight of day."""
    midnight = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return int(midnight.timestamp()) * 1000


def full_deck() -> list[Card]:
    return [Card(suit, rank) for suit in SUITS for rank in RANKS]


def shuffle_deck(seed: int) -> list[Card]:
    """Fisher-Yates over the full deck, step i drawing seeded_random(seed + i)."""
    deck = full_deck()
    for i in range(len(deck) - 1, 0, -1):
        j = min(int(math.floor(seeded_random(seed + i) * (i + 1))), i)
        deck[i], deck[j] = deck[j], deck[i]
    return deck


class DailyDrawEngine:
    """Computes and caches the draw for a calendar day.

    The cache lives in the key-value store under "daily_cards" and holds the
    latest draw only; a draw for a new day supersedes it.
    """

    def __init__(self, store: KeyValueStore, catalog: CardCatalog,
                 shuffle=shuffle_deck, clock=utcnow, seed_source=None):
        self.store = store
        self.catalog = catalog
        self._shuffle = shuffle
        self._clock = clock
        self._seed_source = seed_source or (lambda: random.randrange(2 ** 41))

    def get_draw_for_date(self, day) -> DailyDraw:
        day = parse_day(day)
        cached = self._read_cached(day)
        if cached is not None:
            return cached
        draw = self._compute(day, date_seed(day))
        self._write(draw)
        return draw

    def refresh_for_date(self, day) -> DailyDraw:
        """Redraw with a fresh seed and overwrite the cache.

        The result is no longer the shared draw other users see that day.
        """
        day = parse_day(day)
        draw = self._compute(day, self._seed_source())
        self._write(draw)
        return draw

    def get_today_draw(self) -> DailyDraw:
        return self.get_draw_for_date(today_utc(self._clock()))

    def refresh_today(self) -> DailyDraw:
        return self.refresh_for_date(today_utc(self._clock()))

    def _compute(self, day: date, seed: int) -> DailyDraw:
        selected = self._shuffle(seed)[:DRAW_SIZE]
        cards = []
        for card in selected:
            definition = self.catalog.lookup_card(card)
            meaning = definition.summary if definition and definition.summary else generic_meaning(card)
            cards.append(DrawnCard(card=card, meaning=meaning, definition=definition))
        return DailyDraw(date=day.isoformat(), cards=cards,
                         generated_at=format_ts(self._clock()))

    def _read_cached(self, day: date) -> DailyDraw | None:
        try:
            raw = self.store.get(DAILY_CARDS_KEY)
        except PersistenceUnavailable as e:
            print(f"Warning: daily draw cache unavailable, recomputing: {e}", file=sys.stderr)
            return None
        if raw is None:
            return None
        try:
            for entry in json.loads(raw):
                if entry.get("date") == day.isoformat():
                    return DailyDraw.from_dict(entry)
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            print(f"Warning: discarding unreadable daily draw cache: {e}", file=sys.stderr)
        return None

    def _write(self, draw: DailyDraw):
        try:
            self.store.set(DAILY_CARDS_KEY, encode_json([draw.to_dict()]))
        except PersistenceUnavailable as e:
            print(f"Warning: could not cache daily draw for {draw.date}: {e}", file=sys.stderr)
