"""
Show records, filters and the pure views derived from them.

A show database is a plain JSON-compatible dict keyed by string id::

    {
        "1": {
            "title": "Abbott Elementary",
            "platform": "hulu",
            "network": "ABC",
            "season": 4,
            "start": "2024-10-09",
            "end": "2025-04-16",
            "episodes": 22,
            "air_day": "Wednesday",
            "returning": True,
        },
    }

Everything here is side-effect free; ``showtrack.tracker`` wires these
functions into computed store paths.
"""

import datetime
from typing import Any, Dict, List, Optional

from showtrack.config import DAY_ORDER, EPISODE_DEFAULTS, NETWORKS, PLATFORMS

Show = Dict[str, Any]
ShowDatabase = Dict[str, Show]

TITLE_MAX_LENGTH = 100
SEASON_RANGE = (1, 50)
EPISODE_RANGE = (1, 100)


def default_filters() -> Dict[str, Any]:
    return {
        "platforms": [],
        "networks": [],
        "returning": None,
        "air_days": [],
        "search_term": "",
    }


def matches_filters(show: Show, filters: Dict[str, Any]) -> bool:
    """True if ``show`` passes every active filter; empty filters pass everything."""
    platforms = filters.get("platforms") or []
    if platforms and show.get("platform") not in platforms:
        return False

    networks = filters.get("networks") or []
    if networks and show.get("network") not in networks:
        return False

    returning = filters.get("returning")
    if returning is not None and bool(show.get("returning")) != returning:
        return False

    air_days = filters.get("air_days") or []
    if air_days and (not show.get("air_day") or show["air_day"] not in air_days):
        return False

    search_term = (filters.get("search_term") or "").lower()
    if search_term:
        haystacks = (show.get("title", ""), show.get("network", ""), show.get("platform", ""))
        if not any(search_term in str(text).lower() for text in haystacks):
            return False

    return True


def filter_shows(shows: ShowDatabase, filters: Optional[Dict[str, Any]] = None) -> ShowDatabase:
    filters = filters or {}
    return {show_id: show for show_id, show in shows.items() if matches_filters(show, filters)}


def compute_stats(shows: ShowDatabase) -> Dict[str, Any]:
    """Totals by returning status, platform and network."""
    stats: Dict[str, Any] = {
        "total": 0,
        "returning": 0,
        "non_returning": 0,
        "by_platform": {platform: 0 for platform in PLATFORMS},
        "by_network": {network: 0 for network in NETWORKS},
    }

    for show in shows.values():
        stats["total"] += 1
        if show.get("returning"):
            stats["returning"] += 1
        else:
            stats["non_returning"] += 1

        platform = show.get("platform")
        stats["by_platform"][platform] = stats["by_platform"].get(platform, 0) + 1
        network = show.get("network")
        stats["by_network"][network] = stats["by_network"].get(network, 0) + 1

    return stats


def group_by_air_day(shows: ShowDatabase) -> Dict[str, List[Show]]:
    """Shows per weekday in ``DAY_ORDER``; each item carries its ``id``."""
    week: Dict[str, List[Show]] = {day: [] for day in DAY_ORDER}
    for show_id, show in shows.items():
        air_day = show.get("air_day")
        if air_day in week:
            week[air_day].append(dict(show, id=show_id))
    return week


def _check_int(show: Show, field: str, bounds: tuple) -> Optional[int]:
    value = show.get(field)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{field} must be an integer, got {value!r}")
    low, high = bounds
    if not low <= value <= high:
        raise ValueError(f"{field} must be between {low} and {high}, got {value}")
    return value


def _check_date(show: Show, field: str) -> str:
    value = show.get(field) or ""
    if value:
        try:
            datetime.date.fromisoformat(value)
        except (TypeError, ValueError):
            raise ValueError(f"{field} must be an ISO date (YYYY-MM-DD), got {value!r}")
    return value


def normalize_show(show: Dict[str, Any]) -> Show:
    """
    Validate an imported record and fill in defaults.

    Args:
        show: Record with at least ``title``, ``platform`` and ``network``

    Returns:
        A new record containing exactly the known fields; a missing episode
        count falls back to the network's typical season length

    Raises:
        ValueError: If a field is missing, has the wrong type or is out of range
    """
    if not isinstance(show, dict):
        raise ValueError(f"Show must be an object, got {type(show).__name__}")

    title = show.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValueError("title is required")
    if len(title) > TITLE_MAX_LENGTH:
        raise ValueError(f"title must be at most {TITLE_MAX_LENGTH} characters")

    platform = show.get("platform")
    if platform not in PLATFORMS:
        raise ValueError(f"platform must be one of {', '.join(PLATFORMS)}, got {platform!r}")

    network = show.get("network")
    if network not in NETWORKS:
        raise ValueError(f"network must be one of {', '.join(NETWORKS)}, got {network!r}")

    air_day = show.get("air_day") or ""
    if air_day and air_day not in DAY_ORDER:
        raise ValueError(f"air_day must be a weekday name, got {air_day!r}")

    episodes = _check_int(show, "episodes", EPISODE_RANGE)
    if episodes is None:
        episodes = EPISODE_DEFAULTS.get(network)

    start = _check_date(show, "start")
    end = _check_date(show, "end")
    if start and end and end < start:
        raise ValueError(f"end ({end}) is before start ({start})")

    return {
        "title": title.strip(),
        "platform": platform,
        "network": network,
        "season": _check_int(show, "season", SEASON_RANGE),
        "start": start,
        "end": end,
        "episodes": episodes,
        "air_day": air_day,
        "returning": bool(show.get("returning", False)),
    }
