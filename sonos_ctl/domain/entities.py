"""Domain entities decoded from Sonos Control API responses.

Each entity exposes ``from_api`` which accepts the JSON object returned by the
API. Required keys raise ``KeyError``/``TypeError``/``ValueError`` when absent
or malformed; the dispatcher turns those into ``DecodeError``. Unknown keys are
ignored so newer firmware fields do not break decoding.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional


def _obj(payload: Any) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise TypeError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


def _str_list(values: Any) -> List[str]:
    if values is None:
        return []
    if not isinstance(values, list):
        raise TypeError("expected a JSON array")
    return [str(value) for value in values]


def _optional(payload: Mapping[str, Any], key: str, decode) -> Any:
    value = payload.get(key)
    return None if value is None else decode(value)


class Capability(str, Enum):
    PLAYBACK = "PLAYBACK"
    CLOUD = "CLOUD"
    HT_PLAYBACK = "HT_PLAYBACK"
    HT_POWER_STATE = "HT_POWER_STATE"
    AIRPLAY = "AIRPLAY"
    LINE_IN = "LINE_IN"
    AUDIO_CLIP = "AUDIO_CLIP"
    VOICE = "VOICE"
    SPEAKER_DETECTION = "SPEAKER_DETECTION"
    FIXED_VOLUME = "FIXED_VOLUME"


class PlaybackState(str, Enum):
    IDLE = "PLAYBACK_STATE_IDLE"
    PAUSED = "PLAYBACK_STATE_PAUSED"
    BUFFERING = "PLAYBACK_STATE_BUFFERING"
    PLAYING = "PLAYBACK_STATE_PLAYING"


class AudioClipType(str, Enum):
    CHIME = "CHIME"
    CUSTOM = "CUSTOM"


class Priority(str, Enum):
    LOW = "LOW"
    HIGH = "HIGH"


class TvPowerState(str, Enum):
    ON = "ON"
    STANDBY = "STANDBY"


@dataclass(frozen=True)
class Household:
    id: str
    name: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Any) -> "Household":
        data = _obj(payload)
        return cls(id=str(data["id"]), name=data.get("name"))


def decode_households(payload: Any) -> List[Household]:
    return [Household.from_api(item) for item in _obj(payload)["households"]]


@dataclass(frozen=True)
class Player:
    """One logical speaker (possibly several bonded devices)."""

    id: str
    name: str
    capabilities: List[Capability] = field(default_factory=list)
    device_ids: List[str] = field(default_factory=list)
    api_version: Optional[str] = None
    min_api_version: Optional[str] = None
    software_version: Optional[str] = None
    websocket_url: Optional[str] = None
    is_unregistered: bool = False

    def has_capability(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @classmethod
    def from_api(cls, payload: Any) -> "Player":
        data = _obj(payload)
        capabilities = []
        for raw in data.get("capabilities") or []:
            try:
                capabilities.append(Capability(raw))
            except ValueError:
                # Capabilities introduced after this client was written.
                continue
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            capabilities=capabilities,
            device_ids=_str_list(data.get("deviceIds")),
            api_version=data.get("apiVersion"),
            min_api_version=data.get("minApiVersion"),
            software_version=data.get("softwareVersion"),
            websocket_url=data.get("websocketUrl"),
            is_unregistered=bool(data.get("isUnregistered", False)),
        )


@dataclass(frozen=True)
class Group:
    id: str
    name: str
    coordinator_id: str
    playback_state: PlaybackState
    player_ids: List[str] = field(default_factory=list)
    area_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, payload: Any) -> "Group":
        data = _obj(payload)
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            coordinator_id=str(data["coordinatorId"]),
            playback_state=PlaybackState(data["playbackState"]),
            player_ids=_str_list(data.get("playerIds")),
            area_ids=_str_list(data.get("areaIds")),
        )


@dataclass(frozen=True)
class ModifiedGroup:
    id: str
    name: str
    coordinator_id: str
    player_ids: List[str] = field(default_factory=list)

    @classmethod
    def from_api(cls, payload: Any) -> "ModifiedGroup":
        data = _obj(_obj(payload)["group"])
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            coordinator_id=str(data["coordinatorId"]),
            player_ids=_str_list(data.get("playerIds")),
        )


@dataclass(frozen=True)
class Groups:
    """Current set of groups and logical players in a household."""

    groups: List[Group]
    players: List[Player]
    partial: bool = False

    def player_by_id(self, player_id: str) -> Optional[Player]:
        return next((player for player in self.players if player.id == player_id), None)

    @classmethod
    def from_api(cls, payload: Any) -> "Groups":
        data = _obj(payload)
        return cls(
            groups=[Group.from_api(item) for item in data["groups"]],
            players=[Player.from_api(item) for item in data["players"]],
            partial=bool(data.get("partial", False)),
        )


@dataclass(frozen=True)
class PlayModes:
    repeat: bool = False
    repeat_one: bool = False
    crossfade: bool = False
    shuffle: bool = False

    def to_api(self) -> Dict[str, bool]:
        return {
            "repeat": self.repeat,
            "repeatOne": self.repeat_one,
            "crossfade": self.crossfade,
            "shuffle": self.shuffle,
        }

    @classmethod
    def from_api(cls, payload: Any) -> "PlayModes":
        data = _obj(payload)
        return cls(
            repeat=bool(data.get("repeat", False)),
            repeat_one=bool(data.get("repeatOne", False)),
            crossfade=bool(data.get("crossfade", False)),
            shuffle=bool(data.get("shuffle", False)),
        )


@dataclass(frozen=True)
class AvailablePlaybackActions:
    can_skip: bool = False
    can_skip_back: bool = False
    can_seek: bool = False
    can_pause: bool = False
    can_stop: bool = False
    can_repeat: bool = False
    can_repeat_one: bool = False
    can_crossfade: bool = False
    can_shuffle: bool = False

    @classmethod
    def from_api(cls, payload: Any) -> "AvailablePlaybackActions":
        data = _obj(payload)
        return cls(
            can_skip=bool(data.get("canSkip", False)),
            can_skip_back=bool(data.get("canSkipBack", False)),
            can_seek=bool(data.get("canSeek", False)),
            can_pause=bool(data.get("canPause", False)),
            can_stop=bool(data.get("canStop", False)),
            can_repeat=bool(data.get("canRepeat", False)),
            can_repeat_one=bool(data.get("canRepeatOne", False)),
            can_crossfade=bool(data.get("canCrossfade", False)),
            can_shuffle=bool(data.get("canShuffle", False)),
        )


@dataclass(frozen=True)
class PlaybackStatus:
    playback_state: PlaybackState
    position_millis: int = 0
    previous_position_millis: int = 0
    queue_version: Optional[str] = None
    item_id: Optional[str] = None
    play_modes: PlayModes = field(default_factory=PlayModes)
    available_playback_actions: AvailablePlaybackActions = field(default_factory=AvailablePlaybackActions)
    is_ducking: bool = False

    @classmethod
    def from_api(cls, payload: Any) -> "PlaybackStatus":
        data = _obj(payload)
        return cls(
            playback_state=PlaybackState(data["playbackState"]),
            position_millis=int(data.get("positionMillis", 0)),
            previous_position_millis=int(data.get("previousPositionMillis", 0)),
            queue_version=data.get("queueVersion"),
            item_id=data.get("itemId"),
            play_modes=PlayModes.from_api(data.get("playModes") or {}),
            available_playback_actions=AvailablePlaybackActions.from_api(
                data.get("availablePlaybackActions") or {}
            ),
            is_ducking=bool(data.get("isDucking", False)),
        )


@dataclass(frozen=True)
class Service:
    """Music service (or the local library pseudo-service)."""

    name: str
    id: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Any) -> "Service":
        data = _obj(payload)
        return cls(name=str(data["name"]), id=data.get("id"))


@dataclass(frozen=True)
class Named:
    """Artist, album, author or narrator: anything that is just a name here."""

    name: str

    @classmethod
    def from_api(cls, payload: Any) -> "Named":
        return cls(name=str(_obj(payload)["name"]))


@dataclass(frozen=True)
class Track:
    name: Optional[str] = None
    type: Optional[str] = None
    duration_millis: Optional[int] = None
    image_url: Optional[str] = None
    album: Optional[Named] = None
    artist: Optional[Named] = None
    author: Optional[Named] = None
    narrator: Optional[Named] = None
    service: Optional[Service] = None

    @classmethod
    def from_api(cls, payload: Any) -> "Track":
        data = _obj(payload)
        return cls(
            name=data.get("name"),
            type=data.get("type"),
            duration_millis=_optional(data, "durationMillis", int),
            image_url=data.get("imageUrl"),
            album=_optional(data, "album", Named.from_api),
            artist=_optional(data, "artist", Named.from_api),
            author=_optional(data, "author", Named.from_api),
            narrator=_optional(data, "narrator", Named.from_api),
            service=_optional(data, "service", Service.from_api),
        )


@dataclass(frozen=True)
class Item:
    track: Track
    id: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Any) -> "Item":
        data = _obj(payload)
        return cls(track=Track.from_api(data["track"]), id=data.get("id"))


@dataclass(frozen=True)
class Container:
    name: Optional[str] = None
    type: Optional[str] = None
    service: Optional[Service] = None
    image_url: Optional[str] = None

    @property
    def is_home_theater(self) -> bool:
        return self.type == "linein.homeTheater"

    @classmethod
    def from_api(cls, payload: Any) -> "Container":
        data = _obj(payload)
        return cls(
            name=data.get("name"),
            type=data.get("type"),
            service=_optional(data, "service", Service.from_api),
            image_url=data.get("imageUrl"),
        )


@dataclass(frozen=True)
class MetadataStatus:
    container: Optional[Container] = None
    current_item: Optional[Item] = None
    next_item: Optional[Item] = None
    stream_info: Optional[str] = None

    def describe(self) -> List[str]:
        """Human-readable fragments describing what is playing."""
        parts: List[str] = []
        if self.container is not None:
            if self.container.is_home_theater:
                parts.append("Home theater")
            else:
                if self.container.name:
                    parts.append(self.container.name)
                if self.container.service is not None:
                    parts.append(self.container.service.name)
        if self.current_item is not None and self.current_item.track.name:
            track = self.current_item.track
            parts.append(track.name)
            for named in (track.album, track.artist, track.author, track.narrator, track.service):
                if named is not None:
                    parts.append(named.name)
        if self.stream_info:
            cleaned = self.stream_info.strip().strip("-").strip()
            if cleaned:
                parts.append(cleaned)
        return parts

    @classmethod
    def from_api(cls, payload: Any) -> "MetadataStatus":
        data = _obj(payload)
        return cls(
            container=_optional(data, "container", Container.from_api),
            current_item=_optional(data, "currentItem", Item.from_api),
            next_item=_optional(data, "nextItem", Item.from_api),
            stream_info=data.get("streamInfo"),
        )


@dataclass(frozen=True)
class Favorite:
    id: str
    name: str
    description: Optional[str] = None
    service: Optional[Service] = None

    @classmethod
    def from_api(cls, payload: Any) -> "Favorite":
        data = _obj(payload)
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=data.get("description"),
            service=_optional(data, "service", Service.from_api),
        )


@dataclass(frozen=True)
class Favorites:
    version: str
    items: List[Favorite]

    @classmethod
    def from_api(cls, payload: Any) -> "Favorites":
        data = _obj(payload)
        return cls(version=str(data.get("version", "")), items=[Favorite.from_api(i) for i in data["items"]])


@dataclass(frozen=True)
class Playlist:
    id: str
    name: str
    type: Optional[str] = None
    track_count: int = 0

    @classmethod
    def from_api(cls, payload: Any) -> "Playlist":
        data = _obj(payload)
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            type=data.get("type"),
            track_count=int(data.get("trackCount", 0)),
        )


@dataclass(frozen=True)
class PlaylistsList:
    version: str
    playlists: List[Playlist]

    @classmethod
    def from_api(cls, payload: Any) -> "PlaylistsList":
        data = _obj(payload)
        return cls(
            version=str(data.get("version", "")),
            playlists=[Playlist.from_api(item) for item in data["playlists"]],
        )


@dataclass(frozen=True)
class PlaylistTrack:
    name: str
    artist: str
    album: Optional[str] = None

    def format_line(self) -> str:
        if self.album:
            return f"{self.name} - {self.artist} - {self.album}"
        return f"{self.name} - {self.artist}"

    @classmethod
    def from_api(cls, payload: Any) -> "PlaylistTrack":
        data = _obj(payload)
        return cls(name=str(data["name"]), artist=str(data["artist"]), album=data.get("album"))


@dataclass(frozen=True)
class PlaylistSummary:
    id: str
    name: str
    tracks: List[PlaylistTrack]
    type: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Any) -> "PlaylistSummary":
        data = _obj(payload)
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            tracks=[PlaylistTrack.from_api(item) for item in data["tracks"]],
            type=data.get("type"),
        )


@dataclass(frozen=True)
class Volume:
    """Group or player volume; the API shapes are identical."""

    volume: int
    muted: bool
    fixed: bool

    @classmethod
    def from_api(cls, payload: Any) -> "Volume":
        data = _obj(payload)
        return cls(volume=int(data["volume"]), muted=bool(data["muted"]), fixed=bool(data["fixed"]))


@dataclass(frozen=True)
class HomeTheaterOptions:
    night_mode: bool
    enhance_dialog: bool

    def to_api(self) -> Dict[str, bool]:
        return {"nightMode": self.night_mode, "enhanceDialog": self.enhance_dialog}

    @classmethod
    def from_api(cls, payload: Any) -> "HomeTheaterOptions":
        data = _obj(payload)
        return cls(night_mode=bool(data["nightMode"]), enhance_dialog=bool(data["enhanceDialog"]))


@dataclass(frozen=True)
class AudioClip:
    id: str
    name: str
    app_id: str
    clip_type: Optional[AudioClipType] = None
    priority: Optional[Priority] = None
    status: Optional[str] = None
    player_id: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Any, *, player_id: Optional[str] = None) -> "AudioClip":
        data = _obj(payload)
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            app_id=str(data["appId"]),
            clip_type=_optional(data, "clipType", AudioClipType),
            priority=_optional(data, "priority", Priority),
            status=data.get("status"),
            player_id=player_id,
        )


__all__ = [
    "AudioClip",
    "AudioClipType",
    "AvailablePlaybackActions",
    "Capability",
    "Container",
    "Favorite",
    "Favorites",
    "Group",
    "Groups",
    "HomeTheaterOptions",
    "Household",
    "Item",
    "MetadataStatus",
    "ModifiedGroup",
    "Named",
    "PlayModes",
    "PlaybackState",
    "PlaybackStatus",
    "Player",
    "Playlist",
    "PlaylistSummary",
    "PlaylistTrack",
    "PlaylistsList",
    "Priority",
    "Service",
    "Track",
    "TvPowerState",
    "Volume",
    "decode_households",
]
