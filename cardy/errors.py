"""Error kinds raised by cardy."""


class CardyError(Exception):
    pass


class NotFound(CardyError, LookupError):
    """A referenced flashcard, deck, session or catalog entry is absent."""


class InvalidInput(CardyError, ValueError):
    """Malformed date, unknown rating, or other bad caller input."""


class PersistenceUnavailable(CardyError):
    """The underlying store could not be reached or written.

    Callers that hold a last known good state fall back to it; everything
    else lets this propagate as a recoverable failure.
    """
