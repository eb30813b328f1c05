"""CLI: command-line interface for cardy."""

import argparse
import sys

from cardy.app import App
from cardy.errors import InvalidInput, NotFound, PersistenceUnavailable
from cardy.seed import seed_sample_data


def cmd_today(args, app: App):
    app.init_store()
    engine = app.draw_engine
    if args.refresh:
        draw = engine.refresh_for_date(args.date) if args.date else engine.refresh_today()
    else:
        draw = engine.get_draw_for_date(args.date) if args.date else engine.get_today_draw()

    print(f"Cards of the day for {draw.date}:")
    for drawn in draw.cards:
        print(f"\n  {drawn.card.display_name} ({drawn.card.color})")
        if drawn.definition and drawn.definition.keywords:
            print(f"  Keywords: {', '.join(drawn.definition.keywords)}")
        print(f"  {drawn.meaning}")
    app.close()


def _next_review(card) -> str:
    if card.next_review_at is None:
        return "unscheduled"
    return f"{card.next_review_at:%Y-%m-%d %H:%M} UTC"


def cmd_due(args, app: App):
    app.init_store()
    app.load_scheduler()
    limit = args.limit if args.limit is not None else int(app.settings.get("due_limit", 20))
    cards = app.study.due_flashcards(args.deck_id, limit=limit)
    if not cards:
        print("No cards due.")
    for card in cards:
        when = "new" if card.last_reviewed_at is None else f"due {_next_review(card)}"
        print(f"{card.id}  [{when}]  {card.front}")
    app.close()


def cmd_review(args, app: App):
    app.init_store()
    app.load_scheduler()
    card = app.study.record_review(args.flashcard_id, args.rating)
    print(f"Reviewed '{card.front}' as {card.difficulty}; next review {_next_review(card)}")
    app.close()


def cmd_decks(args, app: App):
    app.init_store()
    decks = app.repository.list_decks(args.user_id)
    if not decks:
        print("No decks.")
    for deck in decks:
        print(f"{deck.id}  {deck.title}: {deck.card_count} cards, "
              f"accuracy {deck.accuracy}%, streak {deck.streak}")
    app.close()


def cmd_seed(args, app: App):
    app.init_store()
    created = seed_sample_data(app.repository, args.user_id)
    if created:
        print(f"Created {len(created)} sample deck(s)")
    else:
        print("User already has decks; nothing seeded.")
    app.close()


def cmd_stats(args, app: App):
    app.init_store()
    stats = app.study.user_study_stats(args.user_id)
    print(f"Sessions:       {stats['total_sessions']}")
    print(f"Cards studied:  {stats['total_cards_studied']}")
    print(f"Accuracy:       {stats['accuracy']:.0f}%")
    print(f"Study time:     {stats['total_study_time']:.1f} min "
          f"(avg {stats['average_session_time']:.1f} min)")
    app.close()


COMMANDS = {
    "today": cmd_today,
    "due": cmd_due,
    "review": cmd_review,
    "decks": cmd_decks,
    "seed": cmd_seed,
    "stats": cmd_stats,
}


def main():
    parser = argparse.ArgumentParser(prog="cardy", description="Daily cards and flashcard study")
    subparsers = parser.add_subparsers(dest="command")

    p_today = subparsers.add_parser("today", help="Show the cards of the day")
    p_today.add_argument("--date", help="Calendar day YYYY-MM-DD (default: today, UTC)")
    p_today.add_argument("--refresh", action="store_true",
                         help="Redraw, replacing the shared draw on this device")

    p_due = subparsers.add_parser("due", help="List flashcards due for review")
    p_due.add_argument("deck_id")
    p_due.add_argument("--limit", type=int, help="Maximum cards (default: settings due_limit)")

    p_review = subparsers.add_parser("review", help="Record a review outcome")
    p_review.add_argument("flashcard_id")
    p_review.add_argument("rating", choices=["easy", "medium", "hard"])

    p_decks = subparsers.add_parser("decks", help="List a user's decks")
    p_decks.add_argument("user_id")

    p_seed = subparsers.add_parser("seed", help="Create sample decks for a user")
    p_seed.add_argument("user_id")

    p_stats = subparsers.add_parser("stats", help="Show study session statistics")
    p_stats.add_argument("user_id")

    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        sys.exit(1)

    app = App()
    if not app.cardy_dir.exists():
        app.cardy_dir.mkdir(parents=True, exist_ok=True)
        print(f"Created cardy directory: {app.cardy_dir}")

    try:
        COMMANDS[args.command](args, app)
    except (NotFound, InvalidInput) as e:
        app.close()
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except PersistenceUnavailable as e:
        app.close()
        print(f"Error: storage unavailable, try again: {e}", file=sys.stderr)
        sys.exit(2)
