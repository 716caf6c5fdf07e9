"""Unit tests for show filters, stats and record validation."""

import pytest

from showtrack.config import DAY_ORDER
from showtrack.shows import (
    compute_stats,
    default_filters,
    filter_shows,
    group_by_air_day,
    matches_filters,
    normalize_show,
)


@pytest.mark.unit
class TestFilters:
    def test_default_filters_pass_everything(self, sample_shows):
        """Default filters match every show"""
        assert filter_shows(sample_shows, default_filters()) == sample_shows

    def test_missing_filters_pass_everything(self, sample_shows):
        """No filters at all match every show"""
        assert filter_shows(sample_shows) == sample_shows

    @pytest.mark.parametrize(
        "filters,expected",
        [
            ({"platforms": ["hulu"]}, ["1"]),
            ({"platforms": ["hulu", "paramount"]}, ["1", "3"]),
            ({"networks": ["NBC"]}, ["2"]),
            ({"returning": True}, ["1", "2"]),
            ({"returning": False}, ["3"]),
            ({"air_days": ["Sunday", "Tuesday"]}, ["2", "3"]),
            ({"platforms": ["hulu"], "returning": False}, []),
        ],
    )
    def test_filters_combine(self, sample_shows, filters, expected):
        """Active filters narrow the database together"""
        assert sorted(filter_shows(sample_shows, filters)) == expected

    @pytest.mark.parametrize("term", ["abbott", "ELEMENTARY", "abc", "Hulu"])
    def test_search_is_case_insensitive_over_title_network_platform(self, sample_shows, term):
        """Search matches title, network and platform ignoring case"""
        assert list(filter_shows(sample_shows, {"search_term": term})) == ["1"]

    def test_air_day_filter_excludes_shows_without_air_day(self):
        """Shows without an air day never match an air-day filter"""
        show = {"title": "Special", "platform": "hulu", "network": "ABC", "air_day": ""}

        assert not matches_filters(show, {"air_days": ["Monday"]})
        assert matches_filters(show, {"air_days": []})


@pytest.mark.unit
def test_compute_stats(sample_shows):
    """Stats count totals, returning status, platforms and networks"""
    stats = compute_stats(sample_shows)

    assert stats["total"] == 3
    assert stats["returning"] == 2
    assert stats["non_returning"] == 1
    assert stats["by_platform"] == {"hulu": 1, "peacock": 1, "paramount": 1}
    assert stats["by_network"] == {"ABC": 1, "NBC": 1, "CBS": 1, "FOX": 0}


@pytest.mark.unit
def test_compute_stats_of_empty_database():
    """An empty database yields zero counts for every group"""
    stats = compute_stats({})

    assert stats["total"] == 0
    assert set(stats["by_platform"].values()) == {0}


@pytest.mark.unit
def test_group_by_air_day(sample_shows):
    """Shows are grouped per weekday in calendar order and carry their id"""
    week = group_by_air_day(sample_shows)

    assert list(week) == list(DAY_ORDER)
    assert [show["id"] for show in week["Wednesday"]] == ["1"]
    assert week["Sunday"][0]["title"] == "Tracker"
    assert week["Monday"] == []
    assert "id" not in sample_shows["1"]


@pytest.mark.unit
class TestNormalizeShow:
    def test_valid_record_is_normalized(self, sample_shows):
        """A valid record is trimmed to the known fields"""
        record = dict(sample_shows["1"], title="  Abbott Elementary  ", extra="dropped")

        normalized = normalize_show(record)

        assert normalized["title"] == "Abbott Elementary"
        assert "extra" not in normalized
        assert normalized["returning"] is True

    def test_optional_fields_get_defaults(self):
        """Missing optional fields get their defaults"""
        normalized = normalize_show({"title": "New", "platform": "hulu", "network": "FOX"})

        assert normalized["season"] is None
        assert normalized["episodes"] == 13
        assert normalized["air_day"] == ""
        assert normalized["start"] == ""
        assert normalized["returning"] is False

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"title": ""}, "title"),
            ({"title": "x" * 101}, "title"),
            ({"platform": "netflix"}, "platform"),
            ({"network": "HBO"}, "network"),
            ({"air_day": "Someday"}, "air_day"),
            ({"start": "10/09/2024"}, "start"),
            ({"start": "2025-01-02", "end": "2025-01-01"}, "before start"),
            ({"season": 0}, "season"),
            ({"episodes": 101}, "episodes"),
            ({"episodes": "22"}, "episodes"),
            ({"season": True}, "season"),
        ],
    )
    def test_invalid_record_is_rejected(self, sample_shows, overrides, message):
        """Invalid fields raise ValueError naming the field"""
        with pytest.raises(ValueError, match=message):
            normalize_show(dict(sample_shows["1"], **overrides))

    def test_non_object_is_rejected(self):
        """A record that is not a dict raises ValueError"""
        with pytest.raises(ValueError, match="object"):
            normalize_show(["not", "a", "show"])
