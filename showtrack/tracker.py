"""
ShowTracker - show database on top of a KeyedStore.

Raw paths:
    shows            show database (id -> record)
    filters          active filters, see ``shows.default_filters``
    ui.currentView   name of the view a front end is showing
    ui.searchTerm    last search term

Computed paths (and their declared dependencies):
    filteredShows                 shows, filters
    stats                         shows
    showsByPlatform.<platform>    shows
    returningShows                shows
    weekViewData                  shows, filters

All mutations go through the store so they can be undone and are persisted.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from showtrack import shows as show_views
from showtrack.config import PLATFORMS, TRACKER_MAX_HISTORY, TRACKER_PERSISTENCE_KEY
from showtrack.persistence import PersistenceAdapter
from showtrack.shows import Show, ShowDatabase, normalize_show
from showtrack.store import KeyedStore, StoreConfig
from showtrack.util.observer_bus import WILDCARD

logger = logging.getLogger(__name__)

ShowId = Union[int, str]


class ShowTracker:
    """
    Reactive, undoable show database.

    Args:
        initial_shows: Seed database, used unless persisted state is loaded
        config: Store configuration; defaults to the tracker's persistence key
        persistence: Adapter handed to the underlying store
        load_persisted: Try ``load()`` before seeding
    """

    def __init__(
        self,
        initial_shows: Optional[ShowDatabase] = None,
        config: Optional[StoreConfig] = None,
        persistence: Optional[PersistenceAdapter] = None,
        load_persisted: bool = False,
    ):
        if config is None:
            config = StoreConfig(
                persistence_key=TRACKER_PERSISTENCE_KEY,
                max_history_size=TRACKER_MAX_HISTORY,
            )
        self._store = KeyedStore(config, persistence)
        self._define_computed_properties()

        if load_persisted and self._store.load():
            self._complete_loaded_state()
        else:
            self._initialize_state(initial_shows or {})

        logger.info(f"ShowTracker initialized: shows={len(self.get_all_shows())}")

    def _initial_paths(self, shows: ShowDatabase) -> Dict[str, Any]:
        return {
            "shows": {str(show_id): show for show_id, show in shows.items()},
            "filters": show_views.default_filters(),
            "ui.currentView": "all-shows",
            "ui.searchTerm": "",
        }

    def _initialize_state(self, shows: ShowDatabase) -> None:
        # One batch, so the first undo target is the seeded state
        self._store.batch(self._initial_paths(shows), "initialize")

    def _complete_loaded_state(self) -> None:
        missing = {
            path: value
            for path, value in self._initial_paths({}).items()
            if not self._store.has(path)
        }
        if missing:
            self._store.batch(missing, "initialize")
        else:
            self._store.checkpoint("load persisted state")

    def _shows(self) -> ShowDatabase:
        return self._store.get("shows") or {}

    def _filters(self) -> Dict[str, Any]:
        return self._store.get("filters") or {}

    def _define_computed_properties(self) -> None:
        store = self._store

        store.register_computed(
            "filteredShows",
            lambda: show_views.filter_shows(self._shows(), self._filters()),
            ["shows", "filters"],
        )
        store.register_computed(
            "stats", lambda: show_views.compute_stats(self._shows()), ["shows"]
        )
        for platform in PLATFORMS:
            store.register_computed(
                f"showsByPlatform.{platform}",
                lambda platform=platform: show_views.filter_shows(
                    self._shows(), {"platforms": [platform]}
                ),
                ["shows"],
            )
        store.register_computed(
            "returningShows",
            lambda: show_views.filter_shows(self._shows(), {"returning": True}),
            ["shows"],
        )
        store.register_computed(
            "weekViewData",
            lambda: show_views.group_by_air_day(
                show_views.filter_shows(self._shows(), self._filters())
            ),
            ["shows", "filters"],
        )
        logger.debug("Computed properties defined for ShowTracker")

    # ========================================================================
    # VIEWS
    # ========================================================================

    def get_all_shows(self) -> ShowDatabase:
        return self._shows()

    def get_show(self, show_id: ShowId) -> Optional[Show]:
        return self._shows().get(str(show_id))

    def get_filtered_shows(self) -> ShowDatabase:
        return self._store.get("filteredShows") or {}

    def get_stats(self) -> Dict[str, Any]:
        return self._store.get("stats") or show_views.compute_stats({})

    def get_shows_by_platform(self, platform: str) -> ShowDatabase:
        return self._store.get(f"showsByPlatform.{platform}") or {}

    def get_returning_shows(self) -> ShowDatabase:
        return self._store.get("returningShows") or {}

    def get_week_view_data(self) -> Dict[str, List[Show]]:
        return self._store.get("weekViewData") or show_views.group_by_air_day({})

    def get_filters(self) -> Dict[str, Any]:
        return self._filters()

    # ========================================================================
    # FILTERS
    # ========================================================================

    def set_filters(self, filters: Dict[str, Any], label: str = "update filters") -> None:
        """Merge ``filters`` into the current filters."""
        new_filters = {**self._filters(), **filters}
        self._store.set("filters", new_filters, label)
        logger.debug(f"Filters updated: {new_filters}")

    def set_platform_filter(self, platforms: List[str], label: str = "filter by platform") -> None:
        self.set_filters({"platforms": list(platforms)}, label)

    def set_network_filter(self, networks: List[str], label: str = "filter by network") -> None:
        self.set_filters({"networks": list(networks)}, label)

    def set_air_day_filter(self, air_days: List[str], label: str = "filter by air day") -> None:
        self.set_filters({"air_days": list(air_days)}, label)

    def set_returning_filter(
        self, returning: Optional[bool], label: str = "filter by returning status"
    ) -> None:
        self.set_filters({"returning": returning}, label)

    def set_search_term(self, search_term: str, label: str = "search shows") -> None:
        self._store.batch(
            {
                "filters": {**self._filters(), "search_term": search_term},
                "ui.searchTerm": search_term,
            },
            label,
        )

    def clear_filters(self, label: str = "clear filters") -> None:
        self._store.set("filters", show_views.default_filters(), label)

    # ========================================================================
    # SHOW MUTATIONS
    # ========================================================================

    def update_show(
        self, show_id: ShowId, updates: Dict[str, Any], label: Optional[str] = None
    ) -> bool:
        """
        Merge ``updates`` into an existing show.

        Returns:
            False if the show does not exist

        Raises:
            ValueError: If the merged record is invalid
        """
        show_id = str(show_id)
        shows = self._shows()
        if show_id not in shows:
            logger.warning(f"Show with ID {show_id} not found")
            return False

        updated = normalize_show({**shows[show_id], **updates})
        title = shows[show_id]["title"]
        self._store.set("shows", {**shows, show_id: updated}, label or f"update show: {title}")
        logger.info(f"Show {show_id} updated: {title}")
        return True

    def add_show(self, show_id: ShowId, show: Dict[str, Any], label: Optional[str] = None) -> bool:
        """
        Add a new show. False if the id is taken.

        Raises:
            ValueError: If the record is invalid
        """
        show_id = str(show_id)
        shows = self._shows()
        if show_id in shows:
            logger.warning(f"Show with ID {show_id} already exists")
            return False

        record = normalize_show(show)
        self._store.set("shows", {**shows, show_id: record}, label or f"add show: {record['title']}")
        logger.info(f"Show {show_id} added: {record['title']}")
        return True

    def remove_show(self, show_id: ShowId, label: Optional[str] = None) -> bool:
        show_id = str(show_id)
        shows = self._shows()
        if show_id not in shows:
            logger.warning(f"Show with ID {show_id} not found")
            return False

        title = shows[show_id]["title"]
        remaining = {key: show for key, show in shows.items() if key != show_id}
        self._store.set("shows", remaining, label or f"remove show: {title}")
        logger.info(f"Show {show_id} removed: {title}")
        return True

    def batch_update_shows(
        self, updates: Dict[ShowId, Dict[str, Any]], label: str = "batch update shows"
    ) -> int:
        """
        Apply several show updates as one undoable step.

        Unknown ids are skipped.

        Returns:
            Number of shows updated
        """
        shows = dict(self._shows())
        updated = 0
        for show_id, update in updates.items():
            show_id = str(show_id)
            if show_id in shows:
                shows[show_id] = normalize_show({**shows[show_id], **update})
                updated += 1

        if updated:
            self._store.set("shows", shows, label)
        logger.info(f"Batch updated {updated} shows")
        return updated

    def replace_all_shows(self, shows: ShowDatabase, label: str = "replace all shows") -> None:
        """Swap in a whole database, as done by imports."""
        database = {str(show_id): show for show_id, show in shows.items()}
        self._store.set("shows", database, label)
        logger.info(f"Replaced all shows: {len(database)} shows")

    # ========================================================================
    # SUBSCRIPTIONS
    # ========================================================================

    def _subscribe_value(self, path: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        # Computed paths are notified with None; hand subscribers the fresh value
        return self._store.subscribe(path, lambda new, old, changed: callback(self._store.get(path)))

    def subscribe_to_shows(self, callback: Callable[[ShowDatabase], None]) -> Callable[[], None]:
        return self._subscribe_value("shows", callback)

    def subscribe_to_filtered_shows(
        self, callback: Callable[[ShowDatabase], None]
    ) -> Callable[[], None]:
        return self._subscribe_value("filteredShows", callback)

    def subscribe_to_stats(self, callback: Callable[[Dict[str, Any]], None]) -> Callable[[], None]:
        return self._subscribe_value("stats", callback)

    def subscribe_to_filters(self, callback: Callable[[Dict[str, Any]], None]) -> Callable[[], None]:
        return self._subscribe_value("filters", callback)

    def subscribe_to_week_view(
        self, callback: Callable[[Dict[str, List[Show]]], None]
    ) -> Callable[[], None]:
        return self._subscribe_value("weekViewData", callback)

    def subscribe_to_all_changes(
        self, callback: Callable[[str, Any, Any], None]
    ) -> Callable[[], None]:
        """Call ``callback(path, new_value, old_value)`` for every notification."""
        return self._store.subscribe(WILDCARD, lambda new, old, path: callback(path, new, old))

    # ========================================================================
    # HISTORY & PERSISTENCE
    # ========================================================================

    def undo(self) -> bool:
        return self._store.undo()

    def redo(self) -> bool:
        return self._store.redo()

    def can_undo(self) -> bool:
        return self._store.can_undo()

    def can_redo(self) -> bool:
        return self._store.can_redo()

    def get_history_info(self) -> Dict[str, Any]:
        return self._store.get_history_info()

    def load(self) -> bool:
        loaded = self._store.load()
        if loaded:
            logger.info("ShowTracker state loaded from storage")
        return loaded

    def clear_persisted(self) -> None:
        self._store.clear_persisted()

    def reset(self, initial_shows: Optional[ShowDatabase] = None) -> None:
        """Drop all state and history, then seed again."""
        self._store.reset()
        self._initialize_state(initial_shows or {})
        logger.info("ShowTracker reset to initial state")

    @property
    def store(self) -> KeyedStore:
        return self._store

    def get_state_snapshot(self) -> Dict[str, Any]:
        return self._store.get_all()
