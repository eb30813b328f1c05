"""Fixed interval policy: each rating always maps to the same interval.

There is no streak-based growth; a card rated "easy" five times in a row is
still scheduled 7 days out.
"""

from datetime import timedelta

from cardy.errors import InvalidInput

INTERVALS = {
    "easy": timedelta(days=7),
    "medium": timedelta(days=3),
    "hard": timedelta(days=1),
}


class Policy:
    policy_id = "fixed"

    def interval(self, rating: str) -> timedelta:
        try:
            return INTERVALS[rating]
        except KeyError:
            raise InvalidInput(f"Unknown rating: {rating!r}") from None


FixedIntervalPolicy = Policy
