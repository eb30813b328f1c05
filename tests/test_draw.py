"""Tests for the daily draw engine."""

import json
from datetime import date, datetime, timedelta, timezone

import pytest

from cardy.catalog import CardCatalog, generic_meaning
from cardy.draw import (DAILY_CARDS_KEY, DailyDrawEngine, date_seed, full_deck, parse_day,
                        seeded_random, shuffle_deck, today_utc)
from cardy.errors import InvalidInput, PersistenceUnavailable
from cardy.kvstore import MemoryStore
from cardy.models import Card


class CountingShuffle:
    def __init__(self, fn=shuffle_deck):
        self.fn = fn
        self.seeds = []

    def __call__(self, seed):
        self.seeds.append(seed)
        return self.fn(seed)


class BrokenStore(MemoryStore):
    def __init__(self, fail_get=False, fail_set=False):
        super().__init__()
        self.fail_get = fail_get
        self.fail_set = fail_set

    def get(self, key):
        if self.fail_get:
            raise PersistenceUnavailable("store offline")
        return super().get(key)

    def set_many(self, items):
        if self.fail_set:
            raise PersistenceUnavailable("store offline")
        super().set_many(items)


def _engine(store=None, catalog=None, **kwargs):
    return DailyDrawEngine(store if store is not None else MemoryStore(),
                           catalog if catalog is not None else CardCatalog.load(), **kwargs)


def test_seeded_random_range_and_reproducible():
    for seed in (0, 1, 1744329600000, 1744329600051):
        x = seeded_random(seed)
        assert 0 <= x < 1
        assert seeded_random(seed) == x


def test_date_seed_is_utc_midnight_millis():
    assert date_seed(date(2025, 4, 11)) == 1744329600000
    assert date_seed(date(1970, 1, 1)) == 0


def test_full_deck_has_52_distinct_cards():
    deck = full_deck()
    assert len(deck) == 52
    assert len(set(deck)) == 52
    assert deck[0] == Card("hearts", "ace")
    assert deck[-1] == Card("spades", "king")


def test_shuffle_is_a_permutation():
    shuffled = shuffle_deck(date_seed(date(2025, 4, 11)))
    assert len(shuffled) == 52
    assert set(shuffled) == set(full_deck())


def test_determinism_with_fresh_caches():
    a = _engine().get_draw_for_date("2025-04-11")
    b = _engine().get_draw_for_date("2025-04-11")
    assert a.identities() == b.identities()
    assert len(a.cards) == 3


def test_end_to_end_same_pairs_twice():
    engine = _engine()
    first = engine.get_draw_for_date("2025-04-11")
    second = engine.get_draw_for_date("2025-04-11")
    assert first.identities() == second.identities()
    assert first.date == "2025-04-11"


def test_no_duplicates_over_a_year():
    engine = _engine()
    day = date(2025, 1, 1)
    for _ in range(366):
        draw = engine.get_draw_for_date(day)
        assert len(set(draw.identities())) == 3
        day += timedelta(days=1)


def test_draw_is_shuffle_prefix():
    day = date(2025, 4, 11)
    draw = _engine().get_draw_for_date(day)
    expected = shuffle_deck(date_seed(day))[:3]
    assert [c.card for c in draw.cards] == expected


def test_cache_stability():
    shuffle = CountingShuffle()
    store = MemoryStore()
    engine = _engine(store, shuffle=shuffle)
    first = engine.get_draw_for_date("2025-04-11")
    cached_bytes = store.get(DAILY_CARDS_KEY)
    second = engine.get_draw_for_date("2025-04-11")
    assert len(shuffle.seeds) == 1
    assert second == first
    assert store.get(DAILY_CARDS_KEY) == cached_bytes


def test_cache_shared_between_engines_on_same_store():
    store = MemoryStore()
    first = _engine(store).get_draw_for_date("2025-04-11")
    shuffle = CountingShuffle()
    second = _engine(store, shuffle=shuffle).get_draw_for_date("2025-04-11")
    assert shuffle.seeds == []
    assert second == first


def test_new_day_supersedes_cache():
    shuffle = CountingShuffle()
    store = MemoryStore()
    engine = _engine(store, shuffle=shuffle)
    engine.get_draw_for_date("2025-04-11")
    engine.get_draw_for_date("2025-04-12")
    assert len(shuffle.seeds) == 2
    entries = json.loads(store.get(DAILY_CARDS_KEY))
    assert [e["date"] for e in entries] == ["2025-04-12"]


def test_refresh_recomputes_with_fresh_seed_and_overwrites():
    shuffle = CountingShuffle()
    store = MemoryStore()
    engine = _engine(store, shuffle=shuffle, seed_source=lambda: 12345)
    engine.get_draw_for_date("2025-04-11")
    refreshed = engine.refresh_for_date("2025-04-11")
    assert shuffle.seeds == [date_seed(date(2025, 4, 11)), 12345]
    assert [c.card for c in refreshed.cards] == shuffle_deck(12345)[:3]
    # the redraw is what this device now sees for the day
    assert engine.get_draw_for_date("2025-04-11") == refreshed
    assert len(shuffle.seeds) == 2


def test_definitions_joined_by_identity():
    def fixed_shuffle(seed):
        return [Card("hearts", "4"), Card("spades", "king"), Card("clubs", "10")] + full_deck()[3:]

    draw = _engine(shuffle=fixed_shuffle).get_draw_for_date("2025-04-11")
    four, king, ten = draw.cards
    assert four.definition.name == "Four of Hearts"
    assert four.meaning == four.definition.summary
    assert king.definition is None
    assert king.meaning == generic_meaning(Card("spades", "king"))
    assert ten.definition.name == "Ten of Clubs"


def test_catalog_miss_never_fails_the_draw():
    draw = _engine(catalog=CardCatalog([])).get_draw_for_date("2025-04-11")
    assert len(draw.cards) == 3
    assert all(c.definition is None for c in draw.cards)
    assert all(c.meaning for c in draw.cards)


def test_cache_read_failure_falls_back_to_compute(capsys):
    draw = _engine(BrokenStore(fail_get=True)).get_draw_for_date("2025-04-11")
    assert draw.identities() == _engine().get_draw_for_date("2025-04-11").identities()
    assert "Warning" in capsys.readouterr().err


def test_cache_write_failure_still_returns_draw(capsys):
    draw = _engine(BrokenStore(fail_set=True)).get_draw_for_date("2025-04-11")
    assert len(draw.cards) == 3
    assert "could not cache" in capsys.readouterr().err


def test_corrupt_cache_is_replaced(capsys):
    store = MemoryStore()
    store.set(DAILY_CARDS_KEY, b"{not json")
    draw = _engine(store).get_draw_for_date("2025-04-11")
    assert len(draw.cards) == 3
    assert json.loads(store.get(DAILY_CARDS_KEY))[0]["date"] == "2025-04-11"
    assert "unreadable" in capsys.readouterr().err


def test_today_uses_utc_calendar_day():
    # 23:30 in UTC-5 is already the next day in UTC
    late_evening = datetime(2025, 4, 11, 23, 30, tzinfo=timezone(timedelta(hours=-5)))
    engine = _engine(clock=lambda: late_evening)
    assert engine.get_today_draw().date == "2025-04-12"
    assert today_utc(late_evening) == date(2025, 4, 12)


def test_refresh_today_uses_clock():
    now = datetime(2025, 4, 11, 9, 0, tzinfo=timezone.utc)
    engine = _engine(clock=lambda: now, seed_source=lambda: 7)
    draw = engine.refresh_today()
    assert draw.date == "2025-04-11"
    assert draw.generated_at == now.isoformat()


def test_parse_day_inputs():
    assert parse_day("2025-04-11") == date(2025, 4, 11)
    assert parse_day(date(2025, 4, 11)) == date(2025, 4, 11)
    assert parse_day(datetime(2025, 4, 11, 23, 0)) == date(2025, 4, 11)


@pytest.mark.parametrize("bad", ["2025-4-11", "20250411", "2025-02-30", "", None, 20250411])
def test_parse_day_rejects_malformed(bad):
    with pytest.raises(InvalidInput):
        parse_day(bad)
    with pytest.raises(ValueError):
        _engine().get_draw_for_date(bad)
