"""cardy — daily card draws and spaced-repetition flashcards."""

__version__ = "0.1.0"

from cardy.models import Card, CardDefinition, DailyDraw, Deck, DrawnCard, Flashcard
from cardy.app import App

__all__ = ["App", "Card", "CardDefinition", "DailyDraw", "Deck", "DrawnCard", "Flashcard"]
