"""Tests for CLI argument parsing and command dispatch."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

import pytest

from cardy.cli import main
from cardy.errors import NotFound, PersistenceUnavailable
from cardy.models import Flashcard


def _mock_app(MockApp):
    mock_app = MagicMock()
    MockApp.return_value = mock_app
    mock_app.cardy_dir = MagicMock()
    mock_app.cardy_dir.exists.return_value = True
    mock_app.settings = {"due_limit": 20}
    return mock_app


def test_no_command_prints_help(capsys):
    with patch("sys.argv", ["cardy"]):
        with pytest.raises(SystemExit) as exc:
            main()
    assert exc.value.code == 1
    assert "usage:" in capsys.readouterr().out.lower()


def test_today_dispatches_to_engine():
    with patch("sys.argv", ["cardy", "today", "--date", "2025-04-11"]):
        with patch("cardy.cli.App") as MockApp:
            mock_app = _mock_app(MockApp)
            mock_app.draw_engine.get_draw_for_date.return_value.cards = []

            main()

            mock_app.init_store.assert_called_once()
            mock_app.draw_engine.get_draw_for_date.assert_called_once_with("2025-04-11")
            mock_app.draw_engine.refresh_for_date.assert_not_called()
            mock_app.close.assert_called_once()


def test_today_refresh():
    with patch("sys.argv", ["cardy", "today", "--refresh"]):
        with patch("cardy.cli.App") as MockApp:
            mock_app = _mock_app(MockApp)
            mock_app.draw_engine.refresh_today.return_value.cards = []

            main()

            mock_app.draw_engine.refresh_today.assert_called_once_with()


def test_due_uses_settings_limit():
    with patch("sys.argv", ["cardy", "due", "d1"]):
        with patch("cardy.cli.App") as MockApp:
            mock_app = _mock_app(MockApp)
            mock_app.study.due_flashcards.return_value = []

            main()

            mock_app.load_scheduler.assert_called_once()
            mock_app.study.due_flashcards.assert_called_once_with("d1", limit=20)


def test_review_not_found_exits_1(capsys):
    with patch("sys.argv", ["cardy", "review", "missing", "easy"]):
        with patch("cardy.cli.App") as MockApp:
            mock_app = _mock_app(MockApp)
            mock_app.study.record_review.side_effect = NotFound("flashcard not found: missing")

            with pytest.raises(SystemExit) as exc:
                main()

    assert exc.value.code == 1
    assert "not found" in capsys.readouterr().err
    mock_app.close.assert_called()


def test_storage_unavailable_exits_2(capsys):
    with patch("sys.argv", ["cardy", "decks", "u1"]):
        with patch("cardy.cli.App") as MockApp:
            mock_app = _mock_app(MockApp)
            mock_app.repository.list_decks.side_effect = PersistenceUnavailable("offline")

            with pytest.raises(SystemExit) as exc:
                main()

    assert exc.value.code == 2
    assert "unavailable" in capsys.readouterr().err


def test_review_rejects_unknown_rating():
    with patch("sys.argv", ["cardy", "review", "c1", "trivial"]):
        with pytest.raises(SystemExit) as exc:
            main()
    assert exc.value.code == 2


def test_seed_then_list_decks(tmp_path, monkeypatch, capsys):
    monkeypatch.setenv("CARDY_DIR", str(tmp_path / "cardy"))
    monkeypatch.delenv("CARDY_MONGO_URI", raising=False)

    with patch("sys.argv", ["cardy", "seed", "u1"]):
        main()
    assert "Created 2 sample deck(s)" in capsys.readouterr().out

    with patch("sys.argv", ["cardy", "decks", "u1"]):
        main()
    out = capsys.readouterr().out
    assert "Daily Affirmations: 5 cards" in out
    assert "Zodiac Signs: 3 cards" in out


def test_due_lists_unscheduled_card(capsys):
    card = Flashcard(id="c1", deck_id="d1", front="Aries", back="Fire",
                     last_reviewed_at=datetime(2025, 4, 10, tzinfo=timezone.utc))
    with patch("sys.argv", ["cardy", "due", "d1"]):
        with patch("cardy.cli.App") as MockApp:
            mock_app = _mock_app(MockApp)
            mock_app.study.due_flashcards.return_value = [card]

            main()

    assert "c1  [due unscheduled]  Aries" in capsys.readouterr().out


def test_review_prints_next_review(capsys):
    card = Flashcard(id="c1", deck_id="d1", front="Aries", back="Fire", difficulty="easy",
                     next_review_at=datetime(2025, 4, 18, 9, 0, tzinfo=timezone.utc))
    with patch("sys.argv", ["cardy", "review", "c1", "easy"]):
        with patch("cardy.cli.App") as MockApp:
            mock_app = _mock_app(MockApp)
            mock_app.study.record_review.return_value = card

            main()

    assert "next review 2025-04-18 09:00 UTC" in capsys.readouterr().out
