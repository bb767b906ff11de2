"""Tests for the async request façade."""

import inspect
import logging

import httpx
import pytest

from subsonic_schema_api.client import Client, ClientSettings
from subsonic_schema_api.envelope import ApiError, TypeMismatchError
from subsonic_schema_api.exceptions import EnvelopeDecodeError
from subsonic_schema_api.operations import OPERATIONS, RandomSongsOptions, SearchOptions

from conftest import envelope


def make_client(registry, http_client, version="1.16.1", base_url="https://music.example.com"):
    return Client(base_url, "admin", "sesame", version=version, http_client=http_client, registry=registry)


def test_build_url_parameter_order(registry):
    """Auth pairs come first, then v/c/f, then call parameters."""
    client = make_client(registry, httpx.AsyncClient())
    url = client.build_url("getArtist", {"id": "ar-1"})

    assert url.path == "/rest/getArtist"
    assert [key for key, _ in url.params.multi_items()] == ["u", "t", "s", "v", "c", "f", "id"]
    assert url.params["id"] == "ar-1"


def test_build_url_keeps_base_path(registry):
    client = make_client(registry, httpx.AsyncClient(), base_url="https://example.com/music")

    assert client.build_url("ping").path == "/music/rest/ping"


def test_build_url_renders_values(registry):
    """Lists repeat their key, None is dropped, booleans are lowercase."""
    client = make_client(registry, httpx.AsyncClient())
    url = client.build_url(
        "getPodcasts", [("includeEpisodes", False), ("id", None), ("songId", ["1", "2"])]
    )

    assert url.params["includeEpisodes"] == "false"
    assert "id" not in url.params
    assert url.params.get_list("songId") == ["1", "2"]


def test_build_url_legacy_auth(registry):
    client = make_client(registry, httpx.AsyncClient(), version="1.12.0")
    params = client.build_url("ping").params

    assert [key for key, _ in params.multi_items()] == ["u", "p", "v", "c", "f"]
    assert params["v"] == "1.12.0"


def test_legacy_auth_logs_warning(registry, caplog):
    with caplog.at_level(logging.WARNING, logger="subsonic_schema_api.client"):
        make_client(registry, httpx.AsyncClient(), version="1.12.0")

    assert "plaintext" in caplog.text
    assert "sesame" not in caplog.text


def test_build_url_fresh_salt_per_request(registry):
    client = make_client(registry, httpx.AsyncClient())

    assert client.build_url("ping").params["s"] != client.build_url("ping").params["s"]


@pytest.mark.asyncio
async def test_ping_ok(registry, mock_server):
    http = mock_server(envelope())
    async with make_client(registry, http) as client:
        assert await client.ping() is True

    assert http.requests[0].url.path == "/rest/ping"
    await http.aclose()


@pytest.mark.asyncio
async def test_ping_failed(registry, mock_server):
    """A failed status answers False rather than raising."""
    http = mock_server(envelope({"error": {"code": 40}}, status="failed"))
    async with make_client(registry, http) as client:
        assert await client.ping() is False
    await http.aclose()


@pytest.mark.asyncio
async def test_get_indexes(registry, mock_server):
    http = mock_server(envelope({
        "indexes": {
            "lastModified": 237462836472342,
            "ignoredArticles": "The El La Los Las Le Les",
            "index": [{"name": "A", "artist": [{"id": "1", "name": "ABBA"}]}],
        }
    }))
    async with make_client(registry, http) as client:
        result = await client.get_indexes()

    assert result.ok
    indexes = result.unwrap()
    assert indexes.index[0].artist[0].name == "ABBA"
    assert http.requests[0].url.path == "/rest/getIndexes"
    await http.aclose()


@pytest.mark.asyncio
async def test_get_artist_not_found(registry, mock_server):
    """Error payloads arrive as ApiError values, not exceptions."""
    http = mock_server(envelope({"error": {"code": 70, "message": "Artist not found."}}, status="failed"))
    async with make_client(registry, http) as client:
        result = await client.get_artist("missing")

    assert isinstance(result.error, ApiError)
    assert result.error.code == 70
    assert http.requests[0].url.params["id"] == "missing"
    await http.aclose()


@pytest.mark.asyncio
async def test_unexpected_variant(registry, mock_server):
    http = mock_server(envelope({"genres": {"genre": []}}))
    async with make_client(registry, http) as client:
        result = await client.get_indexes()

    assert isinstance(result.error, TypeMismatchError)
    assert result.error.response.name == "Genres"
    await http.aclose()


@pytest.mark.asyncio
async def test_options_reach_query(registry, mock_server):
    http = mock_server(envelope({"randomSongs": {"song": []}}))
    async with make_client(registry, http) as client:
        result = await client.get_random_songs(RandomSongsOptions(size=5, genre="Rock"))

    assert result.ok
    params = http.requests[0].url.params
    assert params["size"] == "5"
    assert params["genre"] == "Rock"
    assert "fromYear" not in params
    await http.aclose()


@pytest.mark.asyncio
async def test_call_with_explicit_variant(registry, mock_server):
    http = mock_server(envelope({"songsByGenre": {"song": []}}))
    async with make_client(registry, http) as client:
        result = await client.call("getSongsByGenre", "songsByGenre", {"genre": "Rock"})

    assert result.ok
    await http.aclose()


@pytest.mark.asyncio
async def test_http_errors_propagate(registry, mock_server):
    """Non-2xx replies raise httpx.HTTPStatusError unchanged."""
    http = mock_server("", status_code=503)
    async with make_client(registry, http) as client:
        with pytest.raises(httpx.HTTPStatusError):
            await client.ping()
    await http.aclose()


@pytest.mark.asyncio
async def test_decode_errors_propagate(registry, mock_server):
    http = mock_server("not json")
    async with make_client(registry, http) as client:
        with pytest.raises(EnvelopeDecodeError):
            await client.get_genres()
    await http.aclose()


@pytest.mark.asyncio
async def test_injected_client_is_not_closed(registry, mock_server):
    http = mock_server(envelope())
    client = make_client(registry, http)
    await client.aclose()

    assert not http.is_closed
    await http.aclose()


@pytest.mark.asyncio
async def test_owned_client_is_closed(registry):
    client = Client("https://music.example.com", "admin", "sesame", registry=registry)
    await client.aclose()

    assert client._http.is_closed


def test_client_settings_from_env():
    settings = ClientSettings.from_env({
        "SUBSONIC_URL": "https://music.example.com",
        "SUBSONIC_USER": "admin",
        "SUBSONIC_PASSWORD": "sesame",
    })

    assert settings.version == "1.16.1"
    assert "sesame" not in repr(settings)


def test_client_settings_missing_values():
    with pytest.raises(ValueError, match="SUBSONIC_PASSWORD"):
        ClientSettings.from_env({"SUBSONIC_URL": "https://x", "SUBSONIC_USER": "admin"})


def test_every_operation_has_a_method():
    """Each catalogue entry is a declared coroutine taking its positional argument."""
    for operation in OPERATIONS:
        method = getattr(Client, operation.method_name)
        assert inspect.iscoroutinefunction(method), operation.method_name

        parameters = list(inspect.signature(method).parameters)[1:]
        expected = [operation.positional] if operation.positional else []
        if operation.options is not None:
            expected.append("options")
        assert parameters == expected, operation.method_name


@pytest.mark.asyncio
async def test_search3_sends_query(registry, mock_server):
    http = mock_server(envelope({"searchResult3": {"song": [{"id": "1", "isDir": False, "title": "Love"}]}}))
    async with make_client(registry, http) as client:
        result = await client.search3("love", SearchOptions(song_count=10))

    assert result.unwrap().song[0].title == "Love"
    params = http.requests[0].url.params
    assert params["query"] == "love"
    assert params["songCount"] == "10"
    await http.aclose()


@pytest.mark.asyncio
async def test_jukebox_playlist(registry, mock_server):
    http = mock_server(envelope({
        "jukeboxPlaylist": {
            "currentIndex": 0,
            "playing": True,
            "gain": 0.75,
            "entry": [{"id": "1", "isDir": False, "title": "Intro"}],
        }
    }))
    async with make_client(registry, http) as client:
        result = await client.jukebox_playlist()

    playlist = result.unwrap()
    assert playlist.playing is True
    assert playlist.entry[0].title == "Intro"
    request = http.requests[0]
    assert request.url.path == "/rest/jukeboxControl"
    assert request.url.params["action"] == "get"
    await http.aclose()


@pytest.mark.asyncio
async def test_jukebox_status_rejects_playlist_reply(registry, mock_server):
    """jukeboxControl replies are narrowed by the action that was sent."""
    http = mock_server(envelope({"jukeboxPlaylist": {"currentIndex": 0, "playing": False, "gain": 0.5}}))
    async with make_client(registry, http) as client:
        result = await client.jukebox_status()

    assert isinstance(result.error, TypeMismatchError)
    assert http.requests[0].url.params["action"] == "status"
    await http.aclose()
