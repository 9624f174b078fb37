"""
Main command-line interface for sonos_ctl.

One Typer application exposes registration (``init``), login, and the
household / group / player control commands. Every command resolves its
targets by name and then issues its API calls through :class:`SonosClient`.
"""

import functools
from typing import Callable, List, Optional, TypeVar
from urllib.parse import parse_qs, urlparse

import typer
from rich.console import Console
from rich.table import Table
from typer import Argument, Option
from typing_extensions import Annotated

from sonos_ctl.application import targets
from sonos_ctl.application.exceptions import (
    AmbiguousHousehold,
    DecodeError,
    HttpStatusError,
    IntegrationRequired,
    MissingCapability,
    OAuthError,
    SonosError,
    TargetNotFound,
    TokenRequired,
    TransportError,
)
from sonos_ctl.cli.status import render_results, run_auth_checks
from sonos_ctl.config import settings
from sonos_ctl.domain import entities as e
from sonos_ctl.infrastructure import log_utils
from sonos_ctl.infrastructure.sonos_client import SonosClient
from sonos_ctl.infrastructure.token_storage import JsonFileCredentialStore
from sonos_ctl.logging_setup import configure_logging
from sonos_ctl.utils.converters import parse_duration_millis

F = TypeVar("F", bound=Callable[..., None])

console = Console()

# Exit codes per failure kind; anything else derived from SonosError exits with 1.
EXIT_CODES = (
    (IntegrationRequired, 2),
    (TokenRequired, 3),
    (OAuthError, 4),
    (TransportError, 4),
    (HttpStatusError, 5),
    (DecodeError, 6),
    (MissingCapability, 7),
    (TargetNotFound, 8),
    (AmbiguousHousehold, 8),
)

HINTS = {
    IntegrationRequired: "Run 'sonos init' to register your Sonos integration.",
    TokenRequired: "Run 'sonos login' to authorize access to your Sonos account.",
}


def exit_code_for(exc: BaseException) -> int:
    for exc_type, code in EXIT_CODES:
        if isinstance(exc, exc_type):
            return code
    return 1


def _build_client() -> SonosClient:
    """Factory kept separate so tests can substitute a fake client."""
    return SonosClient()


def _build_store() -> JsonFileCredentialStore:
    return JsonFileCredentialStore(settings.integration_path, settings.tokens_path)


def handle_errors(func: F) -> F:
    """Report domain failures on stderr and exit with the matching code."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except SonosError as exc:
            code = exit_code_for(exc)
            log_utils.log_message(f"{func.__name__} failed: {exc}", "ERROR")
            typer.echo(f"Error: {exc}", err=True)
            hint = HINTS.get(type(exc))
            if hint:
                typer.echo(hint, err=True)
            raise typer.Exit(code=code)
        except ValueError as exc:
            log_utils.log_message(f"{func.__name__} rejected input: {exc}", "WARN")
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(code=1)

    return wrapper  # type: ignore[return-value]


# Create the Typer application object
app = typer.Typer(
    name="sonos",
    help="Control Sonos speakers, groups and playback through the Sonos cloud API.",
    add_completion=False,
    no_args_is_help=True,
)


@app.callback()
def main(
    verbose: Annotated[bool, Option("--verbose", "-v", help="Log at DEBUG level.")] = False,
) -> None:
    configure_logging(verbose=verbose)


HouseholdOption = Annotated[
    Optional[int], Option("--household", metavar="INDEX", help="Optional 0-based household index.")
]
PlayOption = Annotated[bool, Option("--play", "-p", help="Automatically start playback.")]
RepeatOption = Annotated[bool, Option("--repeat", "-r", help="Repeat the queue.")]
RepeatOneOption = Annotated[bool, Option("--repeat-one", "-o", help="Repeat the current track.")]
CrossfadeOption = Annotated[bool, Option("--crossfade", "-c", help="Do crossfade between tracks.")]
ShuffleOption = Annotated[bool, Option("--shuffle", "-s", help="Shuffle the tracks.")]


def _play_modes(repeat: bool, repeat_one: bool, crossfade: bool, shuffle: bool) -> Optional[e.PlayModes]:
    if repeat or repeat_one or crossfade or shuffle:
        return e.PlayModes(repeat=repeat, repeat_one=repeat_one, crossfade=crossfade, shuffle=shuffle)
    return None


def _household_and_targets(client: SonosClient, household: Optional[int]):
    selected = targets.resolve_household(client, household)
    return selected, client.get_groups(selected)


def extract_code(raw: str, expected_state: Optional[str]) -> str:
    """Accept either the bare code or the full redirect URL pasted by the user.

    The URL's ``state`` is only compared when ``expected_state`` is known.
    """

    text = raw.strip()
    if "code=" not in text:
        return text
    query = parse_qs(urlparse(text).query if "?" in text else text)
    codes = query.get("code")
    if not codes:
        raise ValueError("No authorization code found in the pasted URL")
    states = query.get("state")
    if expected_state is not None and states and states[0] != expected_state:
        raise ValueError("State mismatch: the redirect does not belong to this login attempt")
    return codes[0]


# --- credentials -------------------------------------------------------------

@app.command()
@handle_errors
def init(
    client_id: Annotated[str, Option(prompt="Client identifier", help="Integration client identifier.")],
    client_secret: Annotated[
        str, Option(prompt="Client secret", hide_input=True, help="Integration client secret.")
    ],
    redirect_url: Annotated[str, Option(prompt="Redirection URL", help="Integration redirect URL.")],
) -> None:
    """
    Initialise the Sonos integration configuration.

    Create a developer account and a control integration at
    https://integration.sonos.com/ first; your regular Sonos account does not work.
    """
    client = _build_client()
    client.set_integration_config(client_id, client_secret, redirect_url)
    typer.echo("OK, ready to go.")
    typer.echo("Now run 'sonos login' to authorize access to your Sonos user account.")


@app.command()
@handle_errors
def login(
    browser: Annotated[
        bool, Option("--browser/--no-browser", help="Open the authorization URL in a web browser.")
    ] = True,
    code: Annotated[
        Optional[str], Option("--code", help="Authorization code (or redirect URL) to skip the prompt.")
    ] = None,
    expected_state: Annotated[
        Optional[str],
        Option("--state", help="State printed by the login run that opened the browser; checked against --code."),
    ] = None,
) -> None:
    """Login with your Sonos user account and authorize this client."""
    client = _build_client()
    url, state = client.authorization_url()
    typer.echo("Open this URL, log in and approve access:")
    typer.echo(url)
    if browser:
        typer.launch(url)
    typer.echo(f"State: {state}")
    if code is None:
        raw, expected = typer.prompt("Code (or the full redirect URL)"), state
    else:
        # A redirect passed with --code came from an earlier run and its own state.
        raw, expected = code, expected_state
    client.authorize(extract_code(raw, expected))
    typer.echo("[OK] Authorized. Tokens saved.")


@app.command("auth-status")
def auth_status() -> None:
    """Report whether an integration is registered and a user is authorized (no network)."""
    results = run_auth_checks(_build_store(), settings.integration_path, settings.tokens_path)
    typer.echo(render_results(results))
    raise typer.Exit(code=0 if all(result.ok for result in results) else 1)


# --- discovery ---------------------------------------------------------------

@app.command()
@handle_errors
def inventory(
    players: Annotated[bool, Option("--players", help="Only show players.")] = False,
    audio_clip: Annotated[
        bool, Option("--audio-clip", "-c", help="Limits to players with the audio-clip capability.")
    ] = False,
    ht_playback: Annotated[
        bool, Option("--ht-playback", "-t", help="Limits to players with home theater playback.")
    ] = False,
    line_in: Annotated[bool, Option("--line-in", "-l", help="Only show players with a line-in.")] = False,
    household_id: Annotated[
        Optional[str], Option("--household-id", metavar="IDENTIFIER", help="Limits output to one household.")
    ] = None,
) -> None:
    """Describe available households, groups and logical players."""
    client = _build_client()
    required = [
        capability
        for flag, capability in (
            (audio_clip, e.Capability.AUDIO_CLIP),
            (ht_playback, e.Capability.HT_PLAYBACK),
            (line_in, e.Capability.LINE_IN),
        )
        if flag
    ]
    households = [h for h in client.get_households() if household_id is None or h.id == household_id]
    if household_id is not None and not households:
        raise TargetNotFound("household", household_id)

    for household in households:
        if household_id is None:
            typer.echo(f"Household: {household.id}")
        found = client.get_groups(household)
        if players or required:
            for player in found.players:
                if all(player.has_capability(capability) for capability in required):
                    typer.echo(player.name)
            continue
        for group in found.groups:
            names = [found.player_by_id(pid) for pid in group.player_ids]
            members = " + ".join(player.name for player in names if player is not None)
            typer.echo(f"{group.name} = {members}" if members else group.name)


@app.command("get-favorites")
@handle_errors
def get_favorites(household: HouseholdOption = None) -> None:
    """
    Get the list of Sonos favorites.

    Favorites do not include pinned items or Sonos playlists.
    """
    client = _build_client()
    selected = targets.resolve_household(client, household)
    for favorite in client.get_favorites(selected).items:
        typer.echo(favorite.name)


@app.command("get-playlists")
@handle_errors
def get_playlists(household: HouseholdOption = None) -> None:
    """Get the list of playlists."""
    client = _build_client()
    selected = targets.resolve_household(client, household)
    for playlist in client.get_playlists(selected).playlists:
        typer.echo(playlist.name)


@app.command("get-playlist")
@handle_errors
def get_playlist(
    playlist: Annotated[str, Argument(help="Name of the playlist.")],
    household: HouseholdOption = None,
) -> None:
    """Get the list of tracks contained in a playlist."""
    client = _build_client()
    selected = targets.resolve_household(client, household)
    found = targets.find_playlist(client, selected, playlist)
    for track in client.get_playlist(selected, found).tracks:
        typer.echo(track.format_line())


@app.command("now-playing")
@handle_errors
def now_playing(group: Annotated[Optional[str], Argument(help="Name of the group.")] = None) -> None:
    """Describe what is currently playing."""
    client = _build_client()
    found = False
    for household in client.get_households():
        groups = client.get_groups(household).groups
        for candidate in groups:
            if group is not None and candidate.name != group:
                continue
            found = True
            if candidate.playback_state is not e.PlaybackState.PLAYING:
                continue
            parts = client.get_metadata_status(candidate).describe()
            if parts:
                typer.echo(f"{candidate.name} => {' - '.join(parts)}")
    if not found:
        raise TargetNotFound("group", group)


app.command("np", hidden=True, help="Alias for now-playing.")(now_playing)


# --- volume ------------------------------------------------------------------

@app.command("get-volume")
@handle_errors
def get_volume(
    group: Annotated[Optional[str], Option("--group", "-g", metavar="NAME")] = None,
    player: Annotated[Optional[str], Option("--player", "-p", metavar="NAME")] = None,
    household: HouseholdOption = None,
) -> None:
    """Get volume from a player or group (everything when neither is given)."""
    if group is not None and player is not None:
        raise ValueError("Use either --group or --player, not both")
    client = _build_client()
    _, found = _household_and_targets(client, household)

    table = Table("Target", "Volume", "Muted", "Fixed")
    rows = 0
    for candidate in found.players:
        if (player is None and group is None) or candidate.name == player:
            volume = client.get_player_volume(candidate)
            table.add_row(candidate.name, str(volume.volume), str(volume.muted), str(volume.fixed))
            rows += 1
    for candidate in found.groups:
        if (player is None and group is None) or candidate.name == group:
            volume = client.get_group_volume(candidate)
            table.add_row(candidate.name, str(volume.volume), str(volume.muted), str(volume.fixed))
            rows += 1
    if not rows:
        raise TargetNotFound("group or player", group or player)
    console.print(table)


@app.command("set-volume")
@handle_errors
def set_volume(
    volume: Annotated[int, Argument(help="Volume in percent.")],
    group: Annotated[Optional[str], Option("--group", "-g", metavar="NAME")] = None,
    player: Annotated[Optional[str], Option("--player", "-p", metavar="NAME")] = None,
    increment: Annotated[bool, Option("--increment", "-i", help="Increase volume.")] = False,
    decrement: Annotated[bool, Option("--decrement", "-d", help="Decrease volume.")] = False,
    household: HouseholdOption = None,
) -> None:
    """Set volume for a group or player."""
    if (group is None) == (player is None):
        raise ValueError("Exactly one of --group or --player is required")
    if increment and decrement:
        raise ValueError("Use either --increment or --decrement, not both")
    client = _build_client()
    _, found = _household_and_targets(client, household)
    delta = volume if increment else -volume if decrement else None

    if group is not None:
        target = targets.find_group(found.groups, group)
        if delta is None:
            client.set_group_volume(target, volume)
        else:
            client.set_relative_group_volume(target, delta)
    else:
        target_player = targets.find_player(found.players, player)
        if delta is None:
            client.set_player_volume(target_player, volume)
        else:
            client.set_relative_player_volume(target_player, delta)


@app.command("set-mute")
@handle_errors
def set_mute(
    group: Annotated[Optional[str], Option("--group", "-g", metavar="NAME")] = None,
    player: Annotated[Optional[str], Option("--player", "-p", metavar="NAME")] = None,
    unmute: Annotated[bool, Option("--unmute", "-u")] = False,
    household: HouseholdOption = None,
) -> None:
    """Set mute state for a group or player."""
    if (group is None) == (player is None):
        raise ValueError("Exactly one of --group or --player is required")
    client = _build_client()
    _, found = _household_and_targets(client, household)
    if group is not None:
        client.set_group_mute(targets.find_group(found.groups, group), not unmute)
    else:
        client.set_player_mute(targets.find_player(found.players, player), not unmute)


# --- playback ----------------------------------------------------------------

def _for_each_group(action: str, group: Optional[str], household: Optional[int]) -> None:
    client = _build_client()
    _, found = _household_and_targets(client, household)
    for target in targets.matching_groups(found.groups, group):
        getattr(client, action)(target)


@app.command()
@handle_errors
def play(
    group: Annotated[Optional[str], Argument(help="Name of the group.")] = None,
    household: HouseholdOption = None,
) -> None:
    """Start playback for the given group (all groups when omitted)."""
    _for_each_group("play", group, household)


@app.command()
@handle_errors
def pause(
    group: Annotated[Optional[str], Argument(help="Name of the group.")] = None,
    household: HouseholdOption = None,
) -> None:
    """Pause playback for the given group (all groups when omitted)."""
    _for_each_group("pause", group, household)


@app.command("toggle-play-pause")
@handle_errors
def toggle_play_pause(
    group: Annotated[Optional[str], Argument(help="Name of the group.")] = None,
    household: HouseholdOption = None,
) -> None:
    """Toggle the playback state of the given group (all groups when omitted)."""
    _for_each_group("toggle_play_pause", group, household)


@app.command()
@handle_errors
def skip(
    group: Annotated[str, Argument(help="Name of the group.")],
    next_track: Annotated[bool, Option("--next-track", "-n", help="Skip to next track.")] = False,
    previous_track: Annotated[bool, Option("--previous-track", "-p", help="Skip to previous track.")] = False,
    household: HouseholdOption = None,
) -> None:
    """Go to the next or previous track in the given group."""
    if next_track and previous_track:
        raise ValueError("Use either --next-track or --previous-track, not both")
    client = _build_client()
    _, found = _household_and_targets(client, household)
    target = targets.find_group(found.groups, group)
    if next_track:
        client.skip_to_next_track(target)
    else:
        client.skip_to_previous_track(target)


@app.command()
@handle_errors
def seek(
    time: Annotated[str, Argument(help="Time specification (example: 2m3s).")],
    group: Annotated[str, Argument(help="Name of the group.")],
    forward: Annotated[bool, Option("--forward", "-f", help="Seek forward relative to the current position.")] = False,
    backward: Annotated[bool, Option("--backward", "-b", help="Seek backward relative to the current position.")] = False,
    household: HouseholdOption = None,
) -> None:
    """Go to a specific position in the current track."""
    if forward and backward:
        raise ValueError("Use either --forward or --backward, not both")
    millis = parse_duration_millis(time)
    client = _build_client()
    _, found = _household_and_targets(client, household)
    target = targets.find_group(found.groups, group)
    if forward or backward:
        client.seek_relative(target, -millis if backward else millis)
    else:
        client.seek(target, millis)


@app.command("load-favorite")
@handle_errors
def load_favorite(
    favorite: Annotated[str, Argument(help="The name of the favorite to load.")],
    group: Annotated[str, Argument(help="The name of the group to load the favorite in.")],
    play_now: PlayOption = False,
    repeat: RepeatOption = False,
    repeat_one: RepeatOneOption = False,
    crossfade: CrossfadeOption = False,
    shuffle: ShuffleOption = False,
    household: HouseholdOption = None,
) -> None:
    """Load the specified favorite in a group."""
    client = _build_client()
    selected, found = _household_and_targets(client, household)
    chosen = targets.find_favorite(client, selected, favorite)
    target = targets.find_group(found.groups, group)
    client.load_favorite(target, chosen, play_now, _play_modes(repeat, repeat_one, crossfade, shuffle))


@app.command("load-playlist")
@handle_errors
def load_playlist(
    playlist: Annotated[str, Argument(help="The name of the playlist to load.")],
    group: Annotated[str, Argument(help="The name of the group to load the playlist in.")],
    play_now: PlayOption = False,
    repeat: RepeatOption = False,
    repeat_one: RepeatOneOption = False,
    crossfade: CrossfadeOption = False,
    shuffle: ShuffleOption = False,
    household: HouseholdOption = None,
) -> None:
    """Load the specified playlist in a group."""
    client = _build_client()
    selected, found = _household_and_targets(client, household)
    chosen = targets.find_playlist(client, selected, playlist)
    target = targets.find_group(found.groups, group)
    client.load_playlist(target, chosen, play_now, _play_modes(repeat, repeat_one, crossfade, shuffle))


@app.command("load-line-in")
@handle_errors
def load_line_in(
    group: Annotated[str, Argument(help="Name of the group.")],
    player: Annotated[Optional[str], Argument(help="Name of the player providing the line-in.")] = None,
    play_now: PlayOption = False,
    household: HouseholdOption = None,
) -> None:
    """Change the given group to the line-in source of a specified player."""
    client = _build_client()
    _, found = _household_and_targets(client, household)
    target = targets.find_group(found.groups, group)
    source = targets.find_player(found.players, player) if player is not None else None
    client.load_line_in(target, source, play_now)


@app.command("load-home-theater-playback")
@handle_errors
def load_home_theater_playback(
    player: Annotated[str, Argument(help="Name of the player.")],
    household: HouseholdOption = None,
) -> None:
    """Signal a player to switch to its TV input (optical or HDMI)."""
    client = _build_client()
    _, found = _household_and_targets(client, household)
    client.load_home_theater_playback(targets.find_player(found.players, player))


@app.command("load-audio-clip")
@handle_errors
def load_audio_clip(
    player: Annotated[str, Argument(help="Name of the player.")],
    url: Annotated[str, Argument(help="Location of the audio clip.")],
    name: Annotated[str, Option("--name", "-n")] = "sonos_ctl clip",
    app_id: Annotated[str, Option("--app-id", "-i", metavar="STRING")] = "sonos_ctl",
    clip_type: Annotated[Optional[e.AudioClipType], Option("--type", "-t", case_sensitive=False)] = None,
    priority: Annotated[Optional[e.Priority], Option("--priority", "-p", case_sensitive=False)] = None,
    volume: Annotated[Optional[int], Option("--volume", "-v", help="Volume in percent (0-100).")] = None,
    http_authorization: Annotated[
        Optional[str], Option("--http-authorization", "-a", metavar="STRING", help="HTTP Authorization string.")
    ] = None,
    household: HouseholdOption = None,
) -> None:
    """Schedule an audio clip to play on a particular player."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("The URL you provided does not look like Sonos will be able to reach it")
    client = _build_client()
    _, found = _household_and_targets(client, household)
    clip = client.load_audio_clip(
        targets.find_player(found.players, player),
        app_id=app_id,
        name=name,
        clip_type=clip_type,
        priority=priority,
        volume=volume,
        http_authorization=http_authorization,
        stream_url=url,
    )
    typer.echo(f"Scheduled clip {clip.id} on {player}.")


@app.command("modify-group")
@handle_errors
def modify_group(
    group: Annotated[str, Argument(help="The name of the group to modify.")],
    add: Annotated[
        Optional[List[str]], Option("--add", "-a", metavar="PLAYER_NAME", help="Logical player to add.")
    ] = None,
    remove: Annotated[
        Optional[List[str]], Option("--remove", "-r", metavar="PLAYER_NAME", help="Logical player to remove.")
    ] = None,
    household: HouseholdOption = None,
) -> None:
    """Add or remove logical players to/from a group."""
    client = _build_client()
    _, found = _household_and_targets(client, household)
    target = targets.find_group(found.groups, group)
    to_add = [p.id for p in targets.find_players(found.players, add or [])]
    to_remove = [p.id for p in targets.find_players(found.players, remove or [])]
    modified = client.modify_group_members(target, to_add, to_remove)
    typer.echo(f"{target.name} -> {modified.name}")


def run() -> None:
    """Console-script entry point."""
    app()


if __name__ == "__main__":  # pragma: no cover
    run()
