import pytest

from sonos_ctl.application.exceptions import (
    IntegrationRequired,
    MissingCapability,
    NoRefreshTokenError,
    TokenRequired,
    UnknownPlayerId,
)
from sonos_ctl.domain import entities as e
from sonos_ctl.domain.credentials import TokenPair
from sonos_ctl.infrastructure.sonos_client import SonosClient
from sonos_ctl.infrastructure.token_storage import JsonFileCredentialStore
from tests.fakes import FakeHttp, MemoryStore, groups_payload, make_response

BASE_URL = "https://api.ws.sonos.com/control/api/v1/"


def _client(store, http=None):
    return SonosClient(store=store, http_client=http or FakeHttp(), request_timeout=5)


def _groups():
    return e.Groups.from_api(groups_payload())


def test_fresh_client_is_neither_registered_nor_authorized():
    client = _client(MemoryStore())

    assert client.is_registered() is False
    assert client.is_authorized() is False
    with pytest.raises(IntegrationRequired):
        client.authorization_url()
    with pytest.raises(TokenRequired):
        client.get_households()


def test_set_integration_config_persists_and_enables_login(tmp_path):
    store = JsonFileCredentialStore(tmp_path / "integration.json", tmp_path / "tokens.json")
    client = _client(store)

    client.set_integration_config(" client ", "secret", "http://localhost:8080/cb")

    assert client.is_registered()
    assert store.load_integration().client_id == "client"
    url, state = client.authorization_url()
    assert state in url


def test_set_integration_config_rejects_bad_redirect():
    store = MemoryStore()
    client = _client(store)

    with pytest.raises(ValueError):
        client.set_integration_config("client", "secret", "example.com/callback")

    assert store.integration is None
    assert client.is_registered() is False


@pytest.mark.parametrize("client_id, client_secret", [("   ", "secret"), ("client", "\t \n")])
def test_set_integration_config_rejects_blank_credentials(client_id, client_secret):
    store = MemoryStore()
    client = _client(store)

    with pytest.raises(ValueError, match="required"):
        client.set_integration_config(client_id, client_secret, "http://localhost:8080/cb")

    assert store.integration is None
    assert client.is_registered() is False


def test_authorize_stores_tokens(integration):
    http = FakeHttp(token_responses=[make_response(200, {"access_token": "a", "refresh_token": "r"})])
    store = MemoryStore(integration=integration)
    client = _client(store, http)

    client.authorize(" code ")

    assert client.is_authorized()
    assert store.tokens == TokenPair(access_token="a", refresh_token="r")
    assert http.posts[0]["data"]["code"] == "code"


def test_authorize_without_refresh_token_keeps_previous_tokens(integration, tokens):
    http = FakeHttp(token_responses=[make_response(200, {"access_token": "a"})])
    store = MemoryStore(integration=integration, tokens=tokens)
    client = _client(store, http)

    with pytest.raises(NoRefreshTokenError):
        client.authorize("code")

    assert store.tokens == tokens
    assert store.token_saves == []


def test_authorize_requires_integration():
    with pytest.raises(IntegrationRequired):
        _client(MemoryStore()).authorize("code")


def test_audio_clip_requires_capability_before_any_request(integration, tokens):
    http = FakeHttp()
    client = _client(MemoryStore(integration=integration, tokens=tokens), http)
    sub = _groups().player_by_id("P2")

    with pytest.raises(MissingCapability, match="AUDIO_CLIP"):
        client.load_audio_clip(sub, app_id="app", name="clip")

    assert http.requests == []


def test_home_theater_requires_capability(integration, tokens):
    http = FakeHttp()
    client = _client(MemoryStore(integration=integration, tokens=tokens), http)
    one = _groups().player_by_id("P3")

    with pytest.raises(MissingCapability):
        client.load_home_theater_playback(one)
    with pytest.raises(MissingCapability):
        client.set_tv_power_state(one, e.TvPowerState.ON)

    assert http.requests == []


def test_load_audio_clip_returns_clip_bound_to_player(integration, tokens):
    http = FakeHttp(
        responses=[
            make_response(200, {"id": "C1", "name": "clip", "appId": "app", "status": "ACTIVE"}),
            make_response(200, text=""),
        ]
    )
    client = _client(MemoryStore(integration=integration, tokens=tokens), http)
    beam = _groups().player_by_id("P1")

    clip = client.load_audio_clip(
        beam,
        app_id="app",
        name="clip",
        clip_type=e.AudioClipType.CHIME,
        volume=30,
        stream_url="https://example.com/chime.mp3",
    )
    client.cancel_audio_clip(clip)

    assert clip.player_id == "P1"
    assert http.requests[0]["json"] == {
        "appId": "app",
        "name": "clip",
        "clipType": "CHIME",
        "volume": 30,
        "streamUrl": "https://example.com/chime.mp3",
    }
    assert http.requests[1]["method"] == "DELETE"
    assert http.requests[1]["url"] == BASE_URL + "players/P1/audioClip/C1"


def test_cancel_audio_clip_without_player_id(integration, tokens):
    client = _client(MemoryStore(integration=integration, tokens=tokens))

    with pytest.raises(UnknownPlayerId):
        client.cancel_audio_clip(e.AudioClip(id="C1", name="clip", app_id="app"))


@pytest.mark.parametrize(
    "method, value",
    [
        ("set_group_volume", 101),
        ("set_group_volume", -1),
        ("set_relative_group_volume", 101),
        ("set_relative_group_volume", -101),
    ],
)
def test_group_volume_ranges_are_checked_locally(integration, tokens, method, value):
    http = FakeHttp()
    client = _client(MemoryStore(integration=integration, tokens=tokens), http)
    group = _groups().groups[0]

    with pytest.raises(ValueError):
        getattr(client, method)(group, value)

    assert http.requests == []


def test_relative_volume_accepts_negative_delta(integration, tokens):
    http = FakeHttp(responses=[make_response(200, text="")])
    client = _client(MemoryStore(integration=integration, tokens=tokens), http)

    client.set_relative_player_volume(_groups().player_by_id("P3"), -20)

    assert http.requests[0]["url"] == BASE_URL + "players/P3/playerVolume/relative"
    assert http.requests[0]["json"] == {"volumeDelta": -20}


def test_load_favorite_sends_play_modes(integration, tokens):
    http = FakeHttp(responses=[make_response(200, text="")])
    client = _client(MemoryStore(integration=integration, tokens=tokens), http)
    group = _groups().groups[1]

    client.load_favorite(
        group,
        e.Favorite(id="F1", name="Radio"),
        play_on_completion=True,
        play_modes=e.PlayModes(shuffle=True),
    )

    assert http.requests[0]["url"] == BASE_URL + "groups/G2/favorites"
    assert http.requests[0]["json"] == {
        "favoriteId": "F1",
        "playOnCompletion": True,
        "playModes": {"repeat": False, "repeatOne": False, "crossfade": False, "shuffle": True},
    }


def test_get_groups_skips_unknown_capabilities(integration, tokens):
    http = FakeHttp(responses=[make_response(200, groups_payload())])
    client = _client(MemoryStore(integration=integration, tokens=tokens), http)

    groups = client.get_groups(e.Household(id="H1"))

    assert [g.name for g in groups.groups] == ["Living Room", "Kitchen"]
    assert groups.player_by_id("P2").capabilities == [e.Capability.PLAYBACK]
    assert http.requests[0]["url"] == BASE_URL + "households/H1/groups"
