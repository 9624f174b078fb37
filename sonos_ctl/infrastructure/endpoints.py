"""Typed request/decoder pairs for every Control API operation used by sonos_ctl.

An :class:`Endpoint` knows how to build its HTTP request relative to the
Control API base URL and how to decode a successful response body. It never
deals with authentication; the dispatcher owns that.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, List, Optional, Sequence, TypeVar
from urllib.parse import quote, urljoin

from sonos_ctl.domain import entities as e

T = TypeVar("T")


def no_content(_payload: Any) -> None:
    """Decoder for commands whose response body carries nothing we use."""
    return None


@dataclass(frozen=True)
class RequestSpec:
    """A fully resolved request, minus authentication."""

    method: str
    url: str
    json: Optional[Dict[str, Any]] = None
    headers: Optional[Dict[str, str]] = None


@dataclass(frozen=True)
class Endpoint(Generic[T]):
    method: str
    path: str
    decode: Callable[[Any], T]
    body: Optional[Dict[str, Any]] = None
    expects_body: bool = True

    def build_request(self, base_url: str) -> RequestSpec:
        headers = {"Accept": "application/json"}
        if self.method != "GET":
            # Commands without a payload still have to announce JSON.
            headers["Content-Type"] = "application/json"
        return RequestSpec(
            method=self.method,
            url=urljoin(base_url, self.path),
            json=self.body,
            headers=headers,
        )


def _seg(value: str) -> str:
    return quote(str(value), safe="")


def _command(path: str, body: Optional[Dict[str, Any]] = None) -> Endpoint[None]:
    return Endpoint("POST", path, no_content, body=body, expects_body=False)


def _compact(values: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in values.items() if value is not None}


# --- households & groups -------------------------------------------------

def get_households() -> Endpoint[List[e.Household]]:
    return Endpoint("GET", "households", e.decode_households)


def get_groups(household_id: str) -> Endpoint[e.Groups]:
    return Endpoint("GET", f"households/{_seg(household_id)}/groups", e.Groups.from_api)


def modify_group_members(
    group_id: str, player_ids_to_add: Sequence[str], player_ids_to_remove: Sequence[str]
) -> Endpoint[e.ModifiedGroup]:
    return Endpoint(
        "POST",
        f"groups/{_seg(group_id)}/groups/modifyGroupMembers",
        e.ModifiedGroup.from_api,
        body={"playerIdsToAdd": list(player_ids_to_add), "playerIdsToRemove": list(player_ids_to_remove)},
    )


# --- favorites & playlists ----------------------------------------------

def get_favorites(household_id: str) -> Endpoint[e.Favorites]:
    return Endpoint("GET", f"households/{_seg(household_id)}/favorites", e.Favorites.from_api)


def load_favorite(
    group_id: str, favorite_id: str, play_on_completion: bool, play_modes: Optional[e.PlayModes]
) -> Endpoint[None]:
    return _command(
        f"groups/{_seg(group_id)}/favorites",
        _compact(
            {
                "favoriteId": favorite_id,
                "playOnCompletion": play_on_completion,
                "playModes": play_modes.to_api() if play_modes else None,
            }
        ),
    )


def get_playlists(household_id: str) -> Endpoint[e.PlaylistsList]:
    return Endpoint("GET", f"households/{_seg(household_id)}/playlists", e.PlaylistsList.from_api)


def get_playlist(household_id: str, playlist_id: str) -> Endpoint[e.PlaylistSummary]:
    return Endpoint(
        "POST",
        f"households/{_seg(household_id)}/playlists/getPlaylist",
        e.PlaylistSummary.from_api,
        body={"playlistId": playlist_id},
    )


def load_playlist(
    group_id: str, playlist_id: str, play_on_completion: bool, play_modes: Optional[e.PlayModes]
) -> Endpoint[None]:
    return _command(
        f"groups/{_seg(group_id)}/playlists",
        _compact(
            {
                "playlistId": playlist_id,
                "playOnCompletion": play_on_completion,
                "playModes": play_modes.to_api() if play_modes else None,
            }
        ),
    )


# --- playback -------------------------------------------------------------

def get_playback_status(group_id: str) -> Endpoint[e.PlaybackStatus]:
    return Endpoint("GET", f"groups/{_seg(group_id)}/playback", e.PlaybackStatus.from_api)


def get_metadata_status(group_id: str) -> Endpoint[e.MetadataStatus]:
    return Endpoint("GET", f"groups/{_seg(group_id)}/playbackMetadata", e.MetadataStatus.from_api)


def playback_command(group_id: str, action: str) -> Endpoint[None]:
    """``play``, ``pause``, ``togglePlayPause``, ``skipToNextTrack`` or ``skipToPreviousTrack``."""
    return _command(f"groups/{_seg(group_id)}/playback/{action}")


def seek(group_id: str, position_millis: int, item_id: Optional[str] = None) -> Endpoint[None]:
    return _command(
        f"groups/{_seg(group_id)}/playback/seek",
        _compact({"positionMillis": position_millis, "itemId": item_id}),
    )


def seek_relative(group_id: str, delta_millis: int, item_id: Optional[str] = None) -> Endpoint[None]:
    return _command(
        f"groups/{_seg(group_id)}/playback/seekRelative",
        _compact({"deltaMillis": delta_millis, "itemId": item_id}),
    )


def load_line_in(group_id: str, device_id: Optional[str], play_on_completion: bool) -> Endpoint[None]:
    return _command(
        f"groups/{_seg(group_id)}/playback/lineIn",
        _compact({"deviceId": device_id, "playOnCompletion": play_on_completion}),
    )


# --- volume ---------------------------------------------------------------

def get_group_volume(group_id: str) -> Endpoint[e.Volume]:
    return Endpoint("GET", f"groups/{_seg(group_id)}/groupVolume", e.Volume.from_api)


def set_group_volume(group_id: str, volume: int) -> Endpoint[None]:
    return _command(f"groups/{_seg(group_id)}/groupVolume", {"volume": volume})


def set_relative_group_volume(group_id: str, volume_delta: int) -> Endpoint[None]:
    return _command(f"groups/{_seg(group_id)}/groupVolume/relative", {"volumeDelta": volume_delta})


def set_group_mute(group_id: str, muted: bool) -> Endpoint[None]:
    return _command(f"groups/{_seg(group_id)}/groupVolume/mute", {"muted": muted})


def get_player_volume(player_id: str) -> Endpoint[e.Volume]:
    return Endpoint("GET", f"players/{_seg(player_id)}/playerVolume", e.Volume.from_api)


def set_player_volume(player_id: str, volume: int) -> Endpoint[None]:
    return _command(f"players/{_seg(player_id)}/playerVolume", {"volume": volume})


def set_relative_player_volume(player_id: str, volume_delta: int) -> Endpoint[None]:
    return _command(f"players/{_seg(player_id)}/playerVolume/relative", {"volumeDelta": volume_delta})


def set_player_mute(player_id: str, muted: bool) -> Endpoint[None]:
    return _command(f"players/{_seg(player_id)}/playerVolume/mute", {"muted": muted})


# --- audio clips & home theater ------------------------------------------

def load_audio_clip(
    player_id: str,
    *,
    app_id: str,
    name: str,
    clip_type: Optional[e.AudioClipType] = None,
    priority: Optional[e.Priority] = None,
    volume: Optional[int] = None,
    http_authorization: Optional[str] = None,
    stream_url: Optional[str] = None,
) -> Endpoint[e.AudioClip]:
    body = _compact(
        {
            "appId": app_id,
            "name": name,
            "clipType": clip_type.value if clip_type else None,
            "priority": priority.value if priority else None,
            "volume": volume,
            "httpAuthorization": http_authorization,
            "streamUrl": stream_url,
        }
    )
    return Endpoint(
        "POST",
        f"players/{_seg(player_id)}/audioClip",
        lambda payload: e.AudioClip.from_api(payload, player_id=player_id),
        body=body,
    )


def cancel_audio_clip(player_id: str, clip_id: str) -> Endpoint[None]:
    return Endpoint(
        "DELETE", f"players/{_seg(player_id)}/audioClip/{_seg(clip_id)}", no_content, expects_body=False
    )


def get_home_theater_options(player_id: str) -> Endpoint[e.HomeTheaterOptions]:
    return Endpoint("GET", f"players/{_seg(player_id)}/homeTheater/options", e.HomeTheaterOptions.from_api)


def set_home_theater_options(player_id: str, options: e.HomeTheaterOptions) -> Endpoint[None]:
    return _command(f"players/{_seg(player_id)}/homeTheater/options", options.to_api())


def set_tv_power_state(player_id: str, state: e.TvPowerState) -> Endpoint[None]:
    return _command(f"players/{_seg(player_id)}/homeTheater/tvPowerState", {"tvPowerState": state.value})


def load_home_theater_playback(player_id: str) -> Endpoint[None]:
    return _command(f"players/{_seg(player_id)}/homeTheater")
