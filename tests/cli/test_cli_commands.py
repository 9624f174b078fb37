from unittest.mock import Mock

import pytest
from typer.testing import CliRunner

import sonos_ctl.cli.app as cli
from sonos_ctl.application.exceptions import HttpStatusError, IntegrationRequired, MissingCapability, TokenRequired
from sonos_ctl.domain import entities as e
from sonos_ctl.domain.credentials import TokenPair
from sonos_ctl.infrastructure.sonos_client import SonosClient
from sonos_ctl.infrastructure.token_storage import JsonFileCredentialStore
from tests.fakes import FakeHttp, MemoryStore, groups_payload, make_response

runner = CliRunner()


@pytest.fixture
def client(monkeypatch):
    fake = Mock(spec=SonosClient)
    fake.get_households.return_value = [e.Household(id="H1")]
    fake.get_groups.return_value = e.Groups.from_api(groups_payload())
    monkeypatch.setattr(cli, "_build_client", lambda: fake)
    return fake


def _group(client, name):
    return next(g for g in client.get_groups.return_value.groups if g.name == name)


def _player(client, name):
    return next(p for p in client.get_groups.return_value.players if p.name == name)


def test_init_prompts_and_saves_integration(tmp_path, monkeypatch):
    store = JsonFileCredentialStore(tmp_path / "integration.json", tmp_path / "tokens.json")
    monkeypatch.setattr(cli, "_build_client", lambda: SonosClient(store=store, http_client=FakeHttp()))

    result = runner.invoke(cli.app, ["init"], input="client-1\nsecret-1\nhttps://example.com/cb\n")

    assert result.exit_code == 0, result.output
    assert "sonos login" in result.output
    assert "secret-1" not in result.output
    saved = store.load_integration()
    assert (saved.client_id, saved.client_secret, saved.redirect_url) == (
        "client-1",
        "secret-1",
        "https://example.com/cb",
    )


def test_init_rejects_relative_redirect(client):
    client.set_integration_config.side_effect = ValueError("Invalid redirection URL: 'cb'")

    result = runner.invoke(
        cli.app, ["init", "--client-id", "a", "--client-secret", "b", "--redirect-url", "cb"]
    )

    assert result.exit_code == 1
    assert "Invalid redirection URL" in result.output


def test_login_exchanges_code_and_saves_tokens(monkeypatch, integration):
    http = FakeHttp(token_responses=[make_response(200, {"access_token": "a1", "refresh_token": "r1"})])
    store = MemoryStore(integration=integration)
    sonos = SonosClient(store=store, http_client=http)
    monkeypatch.setattr(cli, "_build_client", lambda: sonos)

    result = runner.invoke(cli.app, ["login", "--no-browser"], input="abc\n")

    assert result.exit_code == 0, result.output
    assert "State: " in result.output
    assert "https://api.sonos.com/login/v3/oauth?" in result.output
    assert store.tokens == TokenPair(access_token="a1", refresh_token="r1")
    assert http.posts[0]["data"]["code"] == "abc"


def test_login_accepts_redirect_url_from_an_earlier_run(monkeypatch, integration):
    http = FakeHttp(token_responses=[make_response(200, {"access_token": "a1", "refresh_token": "r1"})])
    store = MemoryStore(integration=integration)
    monkeypatch.setattr(cli, "_build_client", lambda: SonosClient(store=store, http_client=http))

    result = runner.invoke(
        cli.app,
        ["login", "--no-browser", "--code", "https://example.com/callback?code=abc&state=from-browser"],
    )

    assert result.exit_code == 0, result.output
    assert http.posts[0]["data"]["code"] == "abc"
    assert store.tokens == TokenPair(access_token="a1", refresh_token="r1")


def test_login_checks_code_against_given_state(monkeypatch, integration):
    http = FakeHttp()
    store = MemoryStore(integration=integration)
    monkeypatch.setattr(cli, "_build_client", lambda: SonosClient(store=store, http_client=http))

    result = runner.invoke(
        cli.app,
        [
            "login",
            "--no-browser",
            "--code",
            "https://example.com/callback?code=abc&state=from-browser",
            "--state",
            "something-else",
        ],
    )

    assert result.exit_code == 1
    assert "State mismatch" in result.output
    assert http.posts == []
    assert store.tokens is None


def test_extract_code_checks_state():
    url = "https://example.com/cb?state=expected&code=xyz"

    assert cli.extract_code(url, "expected") == "xyz"
    assert cli.extract_code("  plain-code ", "expected") == "plain-code"
    with pytest.raises(ValueError, match="State mismatch"):
        cli.extract_code(url, "other")


def test_extract_code_without_known_state_accepts_any_redirect():
    assert cli.extract_code("https://example.com/cb?code=xyz&state=whatever", None) == "xyz"


def test_login_without_integration_exits_with_hint(client):
    client.authorization_url.side_effect = IntegrationRequired()

    result = runner.invoke(cli.app, ["login", "--no-browser"])

    assert result.exit_code == 2
    assert "sonos init" in result.output


def test_token_required_maps_to_exit_code(client):
    client.get_households.side_effect = TokenRequired()

    result = runner.invoke(cli.app, ["get-favorites"])

    assert result.exit_code == 3
    assert "sonos login" in result.output


def test_http_error_maps_to_exit_code(client):
    client.get_households.side_effect = HttpStatusError(
        "GET households failed with status code 500", status_code=500, method="GET", url="households"
    )

    result = runner.invoke(cli.app, ["play"])

    assert result.exit_code == 5
    assert "500" in result.output


def test_inventory_lists_groups_with_members(client):
    result = runner.invoke(cli.app, ["inventory"])

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert "Household: H1" in lines
    assert "Living Room = Beam + Sub" in lines
    assert "Kitchen = One" in lines


def test_inventory_filters_players_by_capability(client):
    result = runner.invoke(cli.app, ["inventory", "--audio-clip"])

    assert result.exit_code == 0, result.output
    assert result.output.splitlines()[-1] == "Beam"
    assert "Sub" not in result.output


def test_several_households_require_index(client):
    client.get_households.return_value = [e.Household(id="H1"), e.Household(id="H2")]

    result = runner.invoke(cli.app, ["get-playlists"])

    assert result.exit_code == 8
    assert "--household" in result.output

    client.get_playlists.return_value = e.PlaylistsList(
        version="1", playlists=[e.Playlist(id="PL1", name="Road trip")]
    )
    result = runner.invoke(cli.app, ["get-playlists", "--household", "1"])

    assert result.exit_code == 0, result.output
    assert "Road trip" in result.output
    client.get_playlists.assert_called_with(e.Household(id="H2"))


def test_get_playlist_prints_tracks(client):
    playlist = e.Playlist(id="PL1", name="Road trip")
    client.get_playlists.return_value = e.PlaylistsList(version="1", playlists=[playlist])
    client.get_playlist.return_value = e.PlaylistSummary(
        id="PL1",
        name="Road trip",
        tracks=[e.PlaylistTrack(name="Song", artist="Band", album="Record")],
    )

    result = runner.invoke(cli.app, ["get-playlist", "Road trip"])

    assert result.exit_code == 0, result.output
    assert "Song - Band - Record" in result.output


def test_unknown_group_is_reported(client):
    result = runner.invoke(cli.app, ["pause", "Garage"])

    assert result.exit_code == 8
    assert "No such group named 'Garage'" in result.output
    client.pause.assert_not_called()


def test_play_without_group_targets_every_group(client):
    result = runner.invoke(cli.app, ["play"])

    assert result.exit_code == 0, result.output
    assert [call.args[0].name for call in client.play.call_args_list] == ["Living Room", "Kitchen"]


def test_set_volume_absolute_and_relative(client):
    result = runner.invoke(cli.app, ["set-volume", "30", "--group", "Kitchen"])
    assert result.exit_code == 0, result.output
    client.set_group_volume.assert_called_once_with(_group(client, "Kitchen"), 30)

    result = runner.invoke(cli.app, ["set-volume", "5", "--player", "Beam", "--decrement"])
    assert result.exit_code == 0, result.output
    client.set_relative_player_volume.assert_called_once_with(_player(client, "Beam"), -5)


def test_set_volume_needs_exactly_one_target(client):
    result = runner.invoke(cli.app, ["set-volume", "30"])

    assert result.exit_code == 1
    assert "Exactly one of --group or --player" in result.output


def test_set_mute_and_unmute(client):
    runner.invoke(cli.app, ["set-mute", "--player", "One"])
    runner.invoke(cli.app, ["set-mute", "--group", "Kitchen", "--unmute"])

    client.set_player_mute.assert_called_once_with(_player(client, "One"), True)
    client.set_group_mute.assert_called_once_with(_group(client, "Kitchen"), False)


def test_get_volume_renders_table(client):
    client.get_group_volume.return_value = e.Volume(volume=42, muted=False, fixed=False)

    result = runner.invoke(cli.app, ["get-volume", "--group", "Kitchen"])

    assert result.exit_code == 0, result.output
    assert "Kitchen" in result.output
    assert "42" in result.output
    client.get_player_volume.assert_not_called()


def test_skip_defaults_to_previous_track(client):
    runner.invoke(cli.app, ["skip", "Kitchen"])
    runner.invoke(cli.app, ["skip", "Kitchen", "--next-track"])

    client.skip_to_previous_track.assert_called_once_with(_group(client, "Kitchen"))
    client.skip_to_next_track.assert_called_once_with(_group(client, "Kitchen"))


@pytest.mark.parametrize(
    "args, method, millis",
    [
        (["2m3s", "Kitchen"], "seek", 123_000),
        (["10s", "Kitchen", "--forward"], "seek_relative", 10_000),
        (["10s", "Kitchen", "--backward"], "seek_relative", -10_000),
    ],
)
def test_seek_directions(client, args, method, millis):
    result = runner.invoke(cli.app, ["seek", *args])

    assert result.exit_code == 0, result.output
    getattr(client, method).assert_called_once_with(_group(client, "Kitchen"), millis)


def test_seek_rejects_bad_time(client):
    result = runner.invoke(cli.app, ["seek", "soon", "Kitchen"])

    assert result.exit_code == 1
    client.seek.assert_not_called()


def test_load_favorite_with_play_modes(client):
    favorite = e.Favorite(id="F1", name="Jazz Radio")
    client.get_favorites.return_value = e.Favorites(version="1", items=[favorite])

    result = runner.invoke(cli.app, ["load-favorite", "Jazz Radio", "Living Room", "--play", "--shuffle"])

    assert result.exit_code == 0, result.output
    client.load_favorite.assert_called_once_with(
        _group(client, "Living Room"), favorite, True, e.PlayModes(shuffle=True)
    )


def test_load_line_in_from_named_player(client):
    result = runner.invoke(cli.app, ["load-line-in", "Living Room", "One"])

    assert result.exit_code == 0, result.output
    client.load_line_in.assert_called_once_with(_group(client, "Living Room"), _player(client, "One"), False)


def test_load_audio_clip_validates_url(client):
    result = runner.invoke(cli.app, ["load-audio-clip", "Beam", "not-a-url"])

    assert result.exit_code == 1
    client.load_audio_clip.assert_not_called()


def test_load_audio_clip_missing_capability(client):
    client.load_audio_clip.side_effect = MissingCapability(e.Capability.AUDIO_CLIP)

    result = runner.invoke(cli.app, ["load-audio-clip", "Sub", "https://example.com/a.mp3"])

    assert result.exit_code == 7
    assert "AUDIO_CLIP" in result.output


def test_load_audio_clip_passes_options(client):
    client.load_audio_clip.return_value = e.AudioClip(id="C9", name="clip", app_id="app", player_id="P1")

    result = runner.invoke(
        cli.app,
        ["load-audio-clip", "Beam", "https://example.com/a.mp3", "--type", "chime", "--volume", "20"],
    )

    assert result.exit_code == 0, result.output
    assert "C9" in result.output
    kwargs = client.load_audio_clip.call_args.kwargs
    assert kwargs["clip_type"] is e.AudioClipType.CHIME
    assert kwargs["volume"] == 20
    assert kwargs["stream_url"] == "https://example.com/a.mp3"


def test_modify_group_prints_old_and_new_names(client):
    client.modify_group_members.return_value = e.ModifiedGroup(
        id="G1", name="Living Room + 1", coordinator_id="P1", player_ids=["P1", "P2", "P3"]
    )

    result = runner.invoke(cli.app, ["modify-group", "Living Room", "--add", "One"])

    assert result.exit_code == 0, result.output
    assert "Living Room -> Living Room + 1" in result.output
    client.modify_group_members.assert_called_once_with(_group(client, "Living Room"), ["P3"], [])


def test_now_playing_describes_playing_groups(client):
    client.get_metadata_status.return_value = e.MetadataStatus(
        current_item=e.Item(track=e.Track(name="Song", artist=e.Named(name="Band")))
    )

    result = runner.invoke(cli.app, ["np"])

    assert result.exit_code == 0, result.output
    assert result.output.strip() == "Living Room => Song - Band"
    client.get_metadata_status.assert_called_once_with(_group(client, "Living Room"))


def test_commands_work_end_to_end_with_refresh(monkeypatch, integration, tokens):
    http = FakeHttp(
        responses=[
            make_response(401),
            make_response(200, {"households": [{"id": "H1"}]}),
            make_response(200, groups_payload()),
            make_response(200, text=""),
        ],
        token_responses=[make_response(200, {"access_token": "access-new"})],
    )
    store = MemoryStore(integration=integration, tokens=tokens)
    monkeypatch.setattr(cli, "_build_client", lambda: SonosClient(store=store, http_client=http))

    result = runner.invoke(cli.app, ["pause", "Kitchen"])

    assert result.exit_code == 0, result.output
    assert http.requests[-1]["url"].endswith("groups/G2/playback/pause")
    assert store.tokens == TokenPair(access_token="access-new", refresh_token="refresh-old")
