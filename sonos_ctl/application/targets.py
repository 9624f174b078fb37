"""Resolve household, group, player, favorite and playlist names to API objects.

Lookups are exact, case-sensitive name matches, mirroring what the Sonos app
displays.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, TypeVar

from sonos_ctl.application.exceptions import AmbiguousHousehold, TargetNotFound
from sonos_ctl.domain import entities as e
from sonos_ctl.infrastructure.sonos_client import SonosClient

N = TypeVar("N")


def select_household(households: Sequence[e.Household], index: Optional[int] = None) -> e.Household:
    """Pick the single household, or the ``index``-th one when there are several."""

    if not households:
        raise TargetNotFound("household")
    if index is not None:
        if not 0 <= index < len(households):
            raise TargetNotFound("household", f"#{index}")
        return households[index]
    if len(households) == 1:
        return households[0]
    raise AmbiguousHousehold(
        f"Multiple households found ({len(households)}); pass --household INDEX"
    )


def resolve_household(client: SonosClient, index: Optional[int] = None) -> e.Household:
    return select_household(client.get_households(), index)


def _by_name(items: Iterable[N], name: str, kind: str) -> N:
    for item in items:
        if getattr(item, "name", None) == name:
            return item
    raise TargetNotFound(kind, name)


def find_group(groups: Iterable[e.Group], name: str) -> e.Group:
    return _by_name(groups, name, "group")


def find_player(players: Iterable[e.Player], name: str) -> e.Player:
    return _by_name(players, name, "player")


def find_players(players: Sequence[e.Player], names: Iterable[str]) -> List[e.Player]:
    return [find_player(players, name) for name in names]


def find_favorite(client: SonosClient, household: e.Household, name: str) -> e.Favorite:
    return _by_name(client.get_favorites(household).items, name, "favorite")


def find_playlist(client: SonosClient, household: e.Household, name: str) -> e.Playlist:
    return _by_name(client.get_playlists(household).playlists, name, "playlist")


def matching_groups(groups: Sequence[e.Group], name: Optional[str]) -> List[e.Group]:
    """All groups when ``name`` is ``None``; otherwise the named one (or an error)."""

    if name is None:
        if not groups:
            raise TargetNotFound("group")
        return list(groups)
    return [find_group(groups, name)]


__all__ = [
    "find_favorite",
    "find_group",
    "find_player",
    "find_players",
    "find_playlist",
    "matching_groups",
    "resolve_household",
    "select_household",
]
