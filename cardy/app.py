"""App: central object that wires together cardy_dir, store, catalog, repository, scheduler."""

import pathlib
import sys

from cardy.catalog import CardCatalog
from cardy.config import get_cardy_dir, load_settings
from cardy.draw import DailyDrawEngine
from cardy.errors import InvalidInput
from cardy.kvstore import KeyValueStore, SqliteStore
from cardy.policies import load_policy
from cardy.repository import LocalRepository, Repository
from cardy.scheduler import ReviewScheduler
from cardy.study import StudyService


class App:
    """Holds all shared state for a cardy process.

    Usage:
        app = App(cardy_dir="/path/to/cardy")
        app.init_store()                 # uses cardy_dir/cardy.db
        app.load_scheduler()             # uses settings["policy"]
        draw = app.draw_engine.get_today_draw()
        app.study.record_review(card_id, "easy")
        app.close()

    For testing:
        app = App(cardy_dir=tmp_path)
        app.init_store(":memory:")
    """

    def __init__(self, cardy_dir: pathlib.Path | str | None = None):
        if cardy_dir is None:
            cardy_dir = get_cardy_dir()
        self.cardy_dir = pathlib.Path(cardy_dir)
        self.settings = load_settings(self.cardy_dir)
        self.catalog = CardCatalog.load()
        self.store: KeyValueStore | None = None
        self.repository: Repository | None = None
        self.scheduler: ReviewScheduler | None = None
        self.draw_engine: DailyDrawEngine | None = None
        self.study: StudyService | None = None

    def init_store(self, db_path: pathlib.Path | str | None = None) -> KeyValueStore:
        """Open the local key-value store and the services built on it.

        Args:
            db_path: Path to the SQLite database file, or ":memory:" for
                     in-memory databases (useful for testing). Defaults to
                     cardy_dir/cardy.db.
        """
        if db_path is None:
            db_path = self.cardy_dir / "cardy.db"
        self.store = SqliteStore.open(db_path)
        self.draw_engine = DailyDrawEngine(self.store, self.catalog)
        self.repository = self._open_repository()
        if self.scheduler is None:
            self.scheduler = ReviewScheduler()
        self.study = StudyService(self.repository, self.scheduler, pool_store=self.store)
        return self.store

    def _open_repository(self) -> Repository:
        storage = self.settings.get("storage", "local")
        if storage == "local":
            return LocalRepository(self.store)
        if storage == "remote":
            from cardy.remote import MongoRepository
            return MongoRepository.connect(self.settings.get("mongo_uri", ""),
                                           self.settings.get("database_name", "cardy"))
        raise InvalidInput(f"Unknown storage mode: {storage!r} (expected 'local' or 'remote')")

    def load_scheduler(self, name: str | None = None) -> ReviewScheduler:
        """Load the interval policy and build the scheduler around it.

        Args:
            name: Policy name. Defaults to settings["policy"].
        """
        if name is None:
            name = self.settings.get("policy", "fixed")
        try:
            policy = load_policy(name, self.cardy_dir)
        except Exception as e:
            print(f"Warning: cannot load policy '{name}', using fixed intervals: {e}",
                  file=sys.stderr)
            policy = None
        self.scheduler = ReviewScheduler(policy)
        if self.repository is not None:
            self.study = StudyService(self.repository, self.scheduler, pool_store=self.store)
        return self.scheduler

    def close(self):
        """Close the repository and the store."""
        if self.repository:
            self.repository.close()
            self.repository = None
        if self.store:
            self.store.close()
            self.store = None
