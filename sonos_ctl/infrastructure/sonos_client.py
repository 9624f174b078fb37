"""Sonos Control API client: credential state plus one method per API operation.

Credentials are loaded once from the configured store (by default two JSON
files under ``~/.config/sonos_ctl``) and every API call goes through the
:class:`AuthenticatedDispatcher`, which owns bearer auth and the single
refresh-and-retry on 401.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence, Tuple, TypeVar

from sonos_ctl.application.exceptions import IntegrationRequired, MissingCapability, UnknownPlayerId
from sonos_ctl.config import settings
from sonos_ctl.domain import entities as e
from sonos_ctl.domain.credentials import CredentialState, IntegrationConfig, validate_redirect_url
from sonos_ctl.domain.token_storage import CredentialStore
from sonos_ctl.infrastructure import endpoints
from sonos_ctl.infrastructure.dispatcher import AuthenticatedDispatcher
from sonos_ctl.infrastructure.endpoints import Endpoint
from sonos_ctl.infrastructure.log_utils import log_message
from sonos_ctl.infrastructure.oauth_flow import SonosOAuthFlow
from sonos_ctl.infrastructure.token_storage import JsonFileCredentialStore

T = TypeVar("T")


def _check_range(name: str, value: int, low: int, high: int) -> int:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")
    return value


def _require(player: e.Player, capability: e.Capability) -> None:
    if not player.has_capability(capability):
        raise MissingCapability(capability)


class SonosClient:
    """A client to interact with the Sonos Control API."""

    def __init__(
        self,
        *,
        store: Optional[CredentialStore] = None,
        oauth: Optional[SonosOAuthFlow] = None,
        http_client: Any | None = None,
        base_url: str | None = None,
        request_timeout: float | None = None,
    ) -> None:
        self._store: CredentialStore = store or JsonFileCredentialStore(
            settings.integration_path, settings.tokens_path
        )
        self._oauth = oauth or SonosOAuthFlow(request_timeout=request_timeout, http_client=http_client)
        self._state = CredentialState(
            integration=self._store.load_integration(),
            tokens=self._store.load_tokens(),
        )
        self._dispatcher = AuthenticatedDispatcher(
            self._state,
            self._store,
            self._oauth,
            base_url=base_url,
            request_timeout=request_timeout,
            http_client=http_client,
        )
        log_message(
            f"Client ready (registered={self.is_registered()}, authorized={self.is_authorized()}).",
            "DEBUG",
        )

    # --- credential lifecycle ------------------------------------------------

    def is_registered(self) -> bool:
        return self._state.integration is not None

    def is_authorized(self) -> bool:
        return self._state.tokens is not None

    def set_integration_config(self, client_id: str, client_secret: str, redirect_url: str) -> None:
        """Register (or re-register) the OAuth application and persist it."""
        client_id = (client_id or "").strip()
        client_secret = (client_secret or "").strip()
        if not client_id or not client_secret:
            raise ValueError("Client identifier and secret are required")
        config = IntegrationConfig(
            client_id=client_id,
            client_secret=client_secret,
            redirect_url=validate_redirect_url(redirect_url),
        )
        self._store.save_integration(config)
        self._state.integration = config

    def authorization_url(self) -> Tuple[str, str]:
        """Return ``(url, csrf_state)`` for the interactive login step."""
        if self._state.integration is None:
            raise IntegrationRequired()
        return self._oauth.authorization_url(self._state.integration)

    def authorize(self, code: str) -> None:
        """Exchange an authorization code and persist the resulting tokens.

        Held tokens only change once the exchange and the write both succeed.
        """
        if self._state.integration is None:
            raise IntegrationRequired()
        tokens = self._oauth.exchange_code(self._state.integration, code.strip())
        self._store.save_tokens(tokens)
        self._state.tokens = tokens
        log_message("Authorized Sonos user account.", "INFO")

    def call(self, endpoint: Endpoint[T]) -> T:
        return self._dispatcher.call(endpoint)

    # --- households & groups -------------------------------------------------

    def get_households(self) -> List[e.Household]:
        return self.call(endpoints.get_households())

    def get_groups(self, household: e.Household) -> e.Groups:
        return self.call(endpoints.get_groups(household.id))

    def modify_group_members(
        self,
        group: e.Group,
        player_ids_to_add: Sequence[str],
        player_ids_to_remove: Sequence[str],
    ) -> e.ModifiedGroup:
        return self.call(endpoints.modify_group_members(group.id, player_ids_to_add, player_ids_to_remove))

    # --- favorites & playlists ----------------------------------------------

    def get_favorites(self, household: e.Household) -> e.Favorites:
        return self.call(endpoints.get_favorites(household.id))

    def load_favorite(
        self,
        group: e.Group,
        favorite: e.Favorite,
        play_on_completion: bool = False,
        play_modes: Optional[e.PlayModes] = None,
    ) -> None:
        self.call(endpoints.load_favorite(group.id, favorite.id, play_on_completion, play_modes))

    def get_playlists(self, household: e.Household) -> e.PlaylistsList:
        return self.call(endpoints.get_playlists(household.id))

    def get_playlist(self, household: e.Household, playlist: e.Playlist) -> e.PlaylistSummary:
        return self.call(endpoints.get_playlist(household.id, playlist.id))

    def load_playlist(
        self,
        group: e.Group,
        playlist: e.Playlist,
        play_on_completion: bool = False,
        play_modes: Optional[e.PlayModes] = None,
    ) -> None:
        self.call(endpoints.load_playlist(group.id, playlist.id, play_on_completion, play_modes))

    # --- playback -------------------------------------------------------------

    def get_playback_status(self, group: e.Group) -> e.PlaybackStatus:
        return self.call(endpoints.get_playback_status(group.id))

    def get_metadata_status(self, group: e.Group) -> e.MetadataStatus:
        return self.call(endpoints.get_metadata_status(group.id))

    def play(self, group: e.Group) -> None:
        self.call(endpoints.playback_command(group.id, "play"))

    def pause(self, group: e.Group) -> None:
        self.call(endpoints.playback_command(group.id, "pause"))

    def toggle_play_pause(self, group: e.Group) -> None:
        self.call(endpoints.playback_command(group.id, "togglePlayPause"))

    def skip_to_next_track(self, group: e.Group) -> None:
        self.call(endpoints.playback_command(group.id, "skipToNextTrack"))

    def skip_to_previous_track(self, group: e.Group) -> None:
        self.call(endpoints.playback_command(group.id, "skipToPreviousTrack"))

    def seek(self, group: e.Group, position_millis: int, item_id: Optional[str] = None) -> None:
        if position_millis < 0:
            raise ValueError("position must not be negative")
        self.call(endpoints.seek(group.id, position_millis, item_id))

    def seek_relative(self, group: e.Group, delta_millis: int, item_id: Optional[str] = None) -> None:
        self.call(endpoints.seek_relative(group.id, delta_millis, item_id))

    def load_line_in(
        self, group: e.Group, player: Optional[e.Player] = None, play_on_completion: bool = False
    ) -> None:
        self.call(endpoints.load_line_in(group.id, player.id if player else None, play_on_completion))

    # --- volume ---------------------------------------------------------------

    def get_group_volume(self, group: e.Group) -> e.Volume:
        return self.call(endpoints.get_group_volume(group.id))

    def set_group_volume(self, group: e.Group, volume: int) -> None:
        self.call(endpoints.set_group_volume(group.id, _check_range("volume", volume, 0, 100)))

    def set_relative_group_volume(self, group: e.Group, volume_delta: int) -> None:
        delta = _check_range("volume delta", volume_delta, -100, 100)
        self.call(endpoints.set_relative_group_volume(group.id, delta))

    def set_group_mute(self, group: e.Group, muted: bool) -> None:
        self.call(endpoints.set_group_mute(group.id, muted))

    def get_player_volume(self, player: e.Player) -> e.Volume:
        return self.call(endpoints.get_player_volume(player.id))

    def set_player_volume(self, player: e.Player, volume: int) -> None:
        self.call(endpoints.set_player_volume(player.id, _check_range("volume", volume, 0, 100)))

    def set_relative_player_volume(self, player: e.Player, volume_delta: int) -> None:
        delta = _check_range("volume delta", volume_delta, -100, 100)
        self.call(endpoints.set_relative_player_volume(player.id, delta))

    def set_player_mute(self, player: e.Player, muted: bool) -> None:
        self.call(endpoints.set_player_mute(player.id, muted))

    # --- audio clips ------------------------------------------------------------

    def load_audio_clip(
        self,
        player: e.Player,
        *,
        app_id: str,
        name: str,
        clip_type: Optional[e.AudioClipType] = None,
        priority: Optional[e.Priority] = None,
        volume: Optional[int] = None,
        http_authorization: Optional[str] = None,
        stream_url: Optional[str] = None,
    ) -> e.AudioClip:
        _require(player, e.Capability.AUDIO_CLIP)
        if volume is not None:
            _check_range("volume", volume, 0, 100)
        return self.call(
            endpoints.load_audio_clip(
                player.id,
                app_id=app_id,
                name=name,
                clip_type=clip_type,
                priority=priority,
                volume=volume,
                http_authorization=http_authorization,
                stream_url=stream_url,
            )
        )

    def cancel_audio_clip(self, audio_clip: e.AudioClip) -> None:
        if audio_clip.player_id is None:
            raise UnknownPlayerId()
        self.call(endpoints.cancel_audio_clip(audio_clip.player_id, audio_clip.id))

    # --- home theater -----------------------------------------------------------

    def get_home_theater_options(self, player: e.Player) -> e.HomeTheaterOptions:
        _require(player, e.Capability.HT_PLAYBACK)
        return self.call(endpoints.get_home_theater_options(player.id))

    def set_home_theater_options(self, player: e.Player, options: e.HomeTheaterOptions) -> None:
        _require(player, e.Capability.HT_PLAYBACK)
        self.call(endpoints.set_home_theater_options(player.id, options))

    def set_tv_power_state(self, player: e.Player, state: e.TvPowerState) -> None:
        _require(player, e.Capability.HT_POWER_STATE)
        self.call(endpoints.set_tv_power_state(player.id, state))

    def load_home_theater_playback(self, player: e.Player) -> None:
        _require(player, e.Capability.HT_PLAYBACK)
        self.call(endpoints.load_home_theater_playback(player.id))


__all__ = ["SonosClient"]
