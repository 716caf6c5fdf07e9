"""Integration tests for ShowTracker on top of KeyedStore."""

import pytest

from showtrack import JsonPersistenceAdapter, MemoryBlobBackend, ShowTracker, StoreConfig


@pytest.fixture
def tracker_backend():
    return MemoryBlobBackend()


@pytest.fixture
def tracker(sample_shows, tracker_backend):
    return ShowTracker(
        sample_shows,
        persistence=JsonPersistenceAdapter(tracker_backend, key="shows-state"),
    )


NEW_SHOW = {
    "title": "Grey's Anatomy",
    "platform": "hulu",
    "network": "ABC",
    "season": 21,
    "start": "2024-10-03",
    "end": "2025-05-22",
    "episodes": 18,
    "air_day": "Thursday",
    "returning": True,
}


@pytest.mark.integration
@pytest.mark.tracker
class TestViews:
    def test_seeded_state(self, tracker, sample_shows):
        """Seeded shows are visible through every view"""
        assert tracker.get_all_shows() == sample_shows
        assert tracker.get_filtered_shows() == sample_shows
        assert tracker.get_stats()["total"] == 3
        assert list(tracker.get_returning_shows()) == ["1", "2"]
        assert list(tracker.get_shows_by_platform("peacock")) == ["2"]
        assert tracker.get_shows_by_platform("netflix") == {}

    def test_seeding_is_one_history_entry(self, tracker):
        """Seeding records a single baseline entry"""
        info = tracker.get_history_info()

        assert info["size"] == 1
        assert not tracker.can_undo()

    def test_numeric_ids_are_stored_as_strings(self):
        """Numeric show ids are stored as strings"""
        tracker = ShowTracker({7: {"title": "Seven", "platform": "hulu", "network": "FOX"}})

        assert tracker.get_show(7)["title"] == "Seven"
        assert list(tracker.get_all_shows()) == ["7"]

    def test_week_view_follows_filters(self, tracker):
        """The week view applies the active filters"""
        tracker.set_platform_filter(["paramount"])

        week = tracker.get_week_view_data()

        assert [show["id"] for show in week["Sunday"]] == ["3"]
        assert week["Wednesday"] == []


@pytest.mark.integration
@pytest.mark.tracker
class TestFilters:
    def test_filters_merge(self, tracker):
        """Filter setters merge into the current filters"""
        tracker.set_platform_filter(["hulu", "peacock"])
        tracker.set_returning_filter(True)
        tracker.set_network_filter(["NBC"])

        assert tracker.get_filters()["platforms"] == ["hulu", "peacock"]
        assert list(tracker.get_filtered_shows()) == ["2"]

    def test_air_day_filter(self, tracker):
        """The air-day filter narrows filtered shows"""
        tracker.set_air_day_filter(["Wednesday"])

        assert list(tracker.get_filtered_shows()) == ["1"]

    def test_search_updates_filters_and_ui_in_one_step(self, tracker):
        """A search updates filters and the ui term as one undo step"""
        tracker.set_search_term("tracker")

        assert list(tracker.get_filtered_shows()) == ["3"]
        assert tracker.store.get("ui.searchTerm") == "tracker"
        assert tracker.get_history_info()["size"] == 2

    def test_clear_filters(self, tracker, sample_shows):
        """clear_filters restores the default filters"""
        tracker.set_returning_filter(False)
        tracker.clear_filters()

        assert tracker.get_filtered_shows() == sample_shows

    def test_filter_change_is_undoable(self, tracker, sample_shows):
        """Filter changes can be undone"""
        tracker.set_platform_filter(["hulu"])

        tracker.undo()

        assert tracker.get_filtered_shows() == sample_shows


@pytest.mark.integration
@pytest.mark.tracker
class TestShowMutations:
    def test_add_show(self, tracker):
        """A new show appears in the database and stats"""
        assert tracker.add_show(4, NEW_SHOW) is True

        assert tracker.get_show("4")["title"] == "Grey's Anatomy"
        assert tracker.get_stats()["total"] == 4
        assert tracker.get_stats()["by_network"]["ABC"] == 2

    def test_add_existing_id_is_rejected(self, tracker):
        """Adding a taken id returns False and records nothing"""
        assert tracker.add_show("1", NEW_SHOW) is False
        assert tracker.get_history_info()["size"] == 1

    def test_add_invalid_show_raises(self, tracker):
        """An invalid record raises and is not added"""
        with pytest.raises(ValueError):
            tracker.add_show("4", dict(NEW_SHOW, platform="netflix"))

        assert tracker.get_show("4") is None

    def test_update_show(self, tracker):
        """update_show merges changes and labels the history entry"""
        assert tracker.update_show("3", {"returning": True}) is True

        assert tracker.get_show("3")["returning"] is True
        assert tracker.get_stats()["returning"] == 3
        assert tracker.store.history()[-1].action == "update show: Tracker"

    def test_update_unknown_show(self, tracker):
        """Updating an unknown id returns False"""
        assert tracker.update_show("99", {"returning": True}) is False

    def test_remove_show(self, tracker):
        """remove_show deletes the show once"""
        assert tracker.remove_show(2) is True

        assert tracker.get_show("2") is None
        assert tracker.get_stats()["by_platform"]["peacock"] == 0
        assert tracker.remove_show(2) is False

    def test_batch_update_is_one_undo_step(self, tracker):
        """batch_update_shows is undone in one step and skips unknown ids"""
        updated = tracker.batch_update_shows(
            {"1": {"season": 5}, "2": {"season": 2}, "99": {"season": 1}}
        )

        assert updated == 2
        assert tracker.get_show("1")["season"] == 5

        tracker.undo()

        assert tracker.get_show("1")["season"] == 4
        assert tracker.get_show("2")["season"] == 1

    def test_replace_all_shows(self, tracker):
        """replace_all_shows swaps in a whole database"""
        tracker.replace_all_shows({"10": NEW_SHOW})

        assert list(tracker.get_all_shows()) == ["10"]
        assert tracker.get_stats()["total"] == 1

    def test_undo_redo_show_changes(self, tracker):
        """Show mutations can be undone and redone"""
        tracker.add_show("4", NEW_SHOW)
        tracker.remove_show("1")

        assert tracker.undo() and tracker.undo()
        assert sorted(tracker.get_all_shows()) == ["1", "2", "3"]
        assert not tracker.can_undo()

        assert tracker.redo()
        assert sorted(tracker.get_all_shows()) == ["1", "2", "3", "4"]
        assert tracker.can_redo()


@pytest.mark.integration
@pytest.mark.tracker
class TestSubscriptions:
    def test_stats_subscriber_receives_fresh_value(self, tracker):
        """Stats subscribers receive recomputed stats"""
        seen = []
        tracker.subscribe_to_stats(lambda stats: seen.append(stats["total"]))

        tracker.add_show("4", NEW_SHOW)

        assert seen == [4]

    def test_filtered_and_week_subscribers(self, tracker):
        """Filtered and week view subscribers follow filter changes"""
        filtered, week = [], []
        tracker.subscribe_to_filtered_shows(lambda shows: filtered.append(sorted(shows)))
        tracker.subscribe_to_week_view(lambda data: week.append(len(data["Tuesday"])))

        tracker.set_platform_filter(["peacock"])

        assert filtered == [["2"]]
        assert week == [1]

    def test_shows_and_filters_subscribers(self, tracker):
        """Shows and filters subscribers receive current values"""
        shows, filters = [], []
        tracker.subscribe_to_shows(lambda value: shows.append(len(value)))
        tracker.subscribe_to_filters(lambda value: filters.append(value["returning"]))

        tracker.remove_show("3")
        tracker.set_returning_filter(True)

        assert shows == [2]
        assert filters == [True]

    def test_unsubscribe(self, tracker):
        """An unsubscribed callback is not called again"""
        seen = []
        unsubscribe = tracker.subscribe_to_shows(seen.append)

        unsubscribe()
        tracker.remove_show("1")

        assert seen == []

    def test_all_changes(self, tracker):
        """The all-changes subscriber hears computed paths before the raw path"""
        changes = []
        tracker.subscribe_to_all_changes(lambda path, new, old: changes.append(path))

        tracker.remove_show("1")

        assert "shows" in changes
        assert "stats" in changes
        assert changes.index("stats") < changes.index("shows")


@pytest.mark.integration
@pytest.mark.tracker
class TestPersistence:
    def test_state_survives_a_new_tracker(self, tracker, tracker_backend):
        """A new tracker loads shows and filters saved by an earlier one"""
        tracker.add_show("4", NEW_SHOW)
        tracker.set_returning_filter(True)

        reloaded = ShowTracker(
            persistence=JsonPersistenceAdapter(tracker_backend, key="shows-state"),
            load_persisted=True,
        )

        assert sorted(reloaded.get_all_shows()) == ["1", "2", "3", "4"]
        assert reloaded.get_filters()["returning"] is True
        assert sorted(reloaded.get_filtered_shows()) == ["1", "2", "4"]
        assert reloaded.get_history_info()["size"] == 1

    def test_missing_state_falls_back_to_seed(self, sample_shows):
        """Without saved state the tracker seeds its initial shows"""
        tracker = ShowTracker(
            sample_shows,
            persistence=JsonPersistenceAdapter(MemoryBlobBackend(), key="shows-state"),
            load_persisted=True,
        )

        assert tracker.get_all_shows() == sample_shows

    def test_partial_state_is_completed(self, tracker_backend):
        """Missing raw paths in saved state are filled with defaults"""
        adapter = JsonPersistenceAdapter(tracker_backend, key="shows-state")
        adapter.save({"shows": {}})

        tracker = ShowTracker(persistence=adapter, load_persisted=True)

        assert tracker.get_filters()["platforms"] == []
        assert tracker.store.get("ui.currentView") == "all-shows"

    def test_persistence_can_be_disabled(self, tracker_backend):
        """With persistence disabled the tracker never saves"""
        tracker = ShowTracker(
            config=StoreConfig(enable_persistence=False),
            persistence=JsonPersistenceAdapter(tracker_backend, key="shows-state"),
        )

        tracker.add_show("4", NEW_SHOW)

        assert tracker_backend.get("shows-state") is None

    def test_reset(self, tracker, tracker_backend):
        """reset replaces all shows and history with a new seed"""
        tracker.add_show("4", NEW_SHOW)

        tracker.reset({"9": NEW_SHOW})

        assert list(tracker.get_all_shows()) == ["9"]
        assert tracker.get_history_info()["size"] == 1
        assert not tracker.can_undo()
        assert tracker_backend.get("shows-state") is not None

    def test_snapshot_excludes_computed_paths(self, tracker):
        """get_state_snapshot holds raw paths only"""
        snapshot = tracker.get_state_snapshot()

        assert set(snapshot) == {"shows", "filters", "ui.currentView", "ui.searchTerm"}
