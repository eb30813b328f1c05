"""Sample decks for a fresh install."""

from cardy.models import Deck
from cardy.repository import Repository

SAMPLE_DECKS = [
    {
        "title": "Daily Affirmations",
        "description": "Positive affirmations to start your day",
        "tags": ["personal", "growth"],
        "is_public": False,
        "cards": [
            ("I am capable", "I have the skills and abilities to achieve my goals", "easy"),
            ("I am worthy", "I deserve love, respect, and good things in my life", "medium"),
            ("I am resilient", "I can overcome any challenge that comes my way", "medium"),
            ("I am grateful", "I appreciate the abundance in my life", "easy"),
            ("I am present", "I focus on the here and now, not the past or future", "hard"),
        ],
    },
    {
        "title": "Zodiac Signs",
        "description": "Learn about the 12 zodiac signs and their traits",
        "tags": ["astrology", "learning"],
        "is_public": True,
        "cards": [
            ("Aries (March 21 - April 19)",
             "Fire sign. Traits: Bold, ambitious, impulsive, passionate", "medium"),
            ("Taurus (April 20 - May 20)",
             "Earth sign. Traits: Reliable, patient, practical, devoted", "medium"),
            ("Gemini (May 21 - June 20)",
             "Air sign. Traits: Curious, adaptable, communicative, witty", "easy"),
        ],
    },
]


def seed_sample_data(repository: Repository, user_id: str) -> list[Deck]:
    """Create the sample decks unless the user already has decks."""
    if repository.list_decks(user_id):
        return []
    created = []
    for sample in SAMPLE_DECKS:
        deck = repository.create_deck(user_id, title=sample["title"],
                                      description=sample["description"],
                                      tags=sample["tags"], is_public=sample["is_public"])
        for front, back, difficulty in sample["cards"]:
            repository.create_flashcard(deck.id, front=front, back=back, difficulty=difficulty)
        created.append(repository.get_deck(deck.id))
    return created
