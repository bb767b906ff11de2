"""Asynchronous request façade for Subsonic servers.

The :class:`Client` builds authenticated request URLs, issues GETs through an
``httpx.AsyncClient``, decodes replies with the compiled Response union and
narrows them to the payload each call expects.

Every request carries the auth pairs (``u, t, s`` or ``u, p``), then
``v, c, f``, then the call's own parameters. Transport failures are not
handled here: a non-2xx status raises ``httpx.HTTPStatusError`` and
connection problems raise whatever httpx raises, both unchanged. Nothing is
retried.

Example:
    async with Client("https://music.example.com", "admin", "sesame") as client:
        if await client.ping():
            result = await client.get_indexes()
            for index in result.unwrap().index or []:
                print(index.name)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

import httpx
from packaging.version import Version

from .auth import DEFAULT_CLIENT_NAME, Auth
from .cache import get_compiled_schema
from .envelope import TypedResult, Variant, decode_envelope, decode_status_envelope
from .operations import (
    OPERATIONS_BY_METHOD,
    AlbumListOptions,
    ArtistInfoOptions,
    ChatMessagesOptions,
    CountOptions,
    CriteriaSearchOptions,
    FolderOptions,
    IndexesOptions,
    LyricsOptions,
    Operation,
    OperationOptions,
    PlaylistsOptions,
    PodcastsOptions,
    RandomSongsOptions,
    SearchOptions,
    SongsByGenreOptions,
)
from .registry import TypeRegistry

logger = logging.getLogger(__name__)

DEFAULT_PROTOCOL_VERSION = "1.16.1"
DEFAULT_TIMEOUT = 30.0
REST_PATH = "rest/"

Params = Union[Mapping[str, Any], Iterable[Tuple[str, Any]], None]


@dataclass(frozen=True)
class ClientSettings:
    """Connection settings, typically read from the environment."""

    url: str
    user: str
    password: str = field(repr=False)
    version: str = DEFAULT_PROTOCOL_VERSION

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ClientSettings":
        """Read ``SUBSONIC_URL``, ``SUBSONIC_USER``, ``SUBSONIC_PASSWORD`` and
        ``SUBSONIC_VERSION``.

        Raises:
            ValueError: If URL, user or password is unset.
        """
        env = os.environ if environ is None else environ
        missing = [
            name
            for name in ("SUBSONIC_URL", "SUBSONIC_USER", "SUBSONIC_PASSWORD")
            if not env.get(name)
        ]
        if missing:
            raise ValueError(f"Missing environment variables: {', '.join(missing)}")
        return cls(
            url=env["SUBSONIC_URL"],
            user=env["SUBSONIC_USER"],
            password=env["SUBSONIC_PASSWORD"],
            version=env.get("SUBSONIC_VERSION") or DEFAULT_PROTOCOL_VERSION,
        )

    def client(self, **kwargs: Any) -> "Client":
        return Client(self.url, self.user, self.password, version=self.version, **kwargs)


class Client:
    """Authenticated client for one server.

    Args:
        base_url: Server root; ``rest/<endpoint>`` is resolved beneath it.
        user: Subsonic username.
        password: Subsonic password.
        version: Protocol version announced in ``v``; also selects token or
            plaintext auth.
        client_name: Value of the ``c`` parameter.
        encode_password: Hex-encode the password in plaintext mode.
        http_client: Injected ``httpx.AsyncClient``; the client does not close
            an injected instance.
        registry: Compiled schema; defaults to the cached bundled schema.
    """

    def __init__(
        self,
        base_url: Union[str, httpx.URL],
        user: str,
        password: str,
        version: str = DEFAULT_PROTOCOL_VERSION,
        *,
        client_name: str = DEFAULT_CLIENT_NAME,
        encode_password: bool = False,
        http_client: Optional[httpx.AsyncClient] = None,
        registry: Optional[TypeRegistry] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.base_url = _as_directory(httpx.URL(str(base_url)))
        self.version = Version(version)
        self.auth = Auth(
            user=user,
            password=password,
            client_name=client_name,
            encode_password=encode_password,
        )
        self.registry = registry if registry is not None else get_compiled_schema()
        self._owns_http_client = http_client is None
        self._http = http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)

        if not self.auth.uses_token_auth(self.version):
            logger.warning(
                f"Protocol {self.version} predates token auth; the password is sent "
                f"in plaintext with every request to {self.base_url.host}"
            )

    async def __aenter__(self) -> "Client":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_http_client:
            await self._http.aclose()

    def build_url(self, endpoint: str, params: Params = None) -> httpx.URL:
        """Return the full request URL for ``endpoint``.

        A fresh salt is drawn on every call, so no two URLs share a token.
        """
        pairs: List[Tuple[str, str]] = list(self.auth.to_query(self.version))
        pairs.extend(_render_params(params))
        url = self.base_url.join(REST_PATH).join(endpoint)
        return url.copy_with(params=httpx.QueryParams(pairs))

    async def ping(self) -> bool:
        """True when the server answers ``ping`` with status ``ok``."""
        body = await self._get("ping")
        return decode_status_envelope(body).ok

    async def call(
        self, endpoint: str, variant: Union[str, Variant], params: Params = None
    ) -> TypedResult[Any]:
        """Issue ``endpoint`` and narrow the reply to ``variant``.

        Raises:
            httpx.HTTPStatusError: For non-2xx replies.
            EnvelopeDecodeError: If the body is not a valid envelope.
        """
        expected = self.registry.response.variant(variant)
        body = await self._get(endpoint, params)
        envelope = decode_envelope(body, self.registry.response)
        result = self.registry.response.narrow(envelope, expected)
        if not result.ok:
            logger.debug(f"{endpoint} returned {type(result.error).__name__}")
        return result

    async def request(
        self,
        operation: Operation,
        argument: Optional[str] = None,
        options: Optional[OperationOptions] = None,
    ) -> TypedResult[Any]:
        """Issue a catalogue :class:`Operation`."""
        return await self.call(
            operation.endpoint, operation.variant, operation.query(argument, options)
        )

    # ---------------- Browsing ---------------- #

    async def get_music_folders(self) -> TypedResult[Any]:
        return await self._run("get_music_folders")

    async def get_indexes(self, options: Optional[IndexesOptions] = None) -> TypedResult[Any]:
        """Artist index, optionally limited to one music folder."""
        return await self._run("get_indexes", options=options)

    async def get_music_directory(self, id: str) -> TypedResult[Any]:
        return await self._run("get_music_directory", id)

    async def get_genres(self) -> TypedResult[Any]:
        return await self._run("get_genres")

    async def get_artists(self, options: Optional[FolderOptions] = None) -> TypedResult[Any]:
        """ID3 artist index."""
        return await self._run("get_artists", options=options)

    async def get_artist(self, id: str) -> TypedResult[Any]:
        """One artist with its albums."""
        return await self._run("get_artist", id)

    async def get_album(self, id: str) -> TypedResult[Any]:
        """One album with its songs."""
        return await self._run("get_album", id)

    async def get_song(self, id: str) -> TypedResult[Any]:
        return await self._run("get_song", id)

    async def get_videos(self) -> TypedResult[Any]:
        return await self._run("get_videos")

    async def get_video_info(self, id: str) -> TypedResult[Any]:
        return await self._run("get_video_info", id)

    async def get_artist_info(
        self, id: str, options: Optional[ArtistInfoOptions] = None
    ) -> TypedResult[Any]:
        return await self._run("get_artist_info", id, options)

    async def get_artist_info2(
        self, id: str, options: Optional[ArtistInfoOptions] = None
    ) -> TypedResult[Any]:
        return await self._run("get_artist_info2", id, options)

    async def get_album_info(self, id: str) -> TypedResult[Any]:
        return await self._run("get_album_info", id)

    async def get_album_info2(self, id: str) -> TypedResult[Any]:
        return await self._run("get_album_info2", id)

    async def get_similar_songs(
        self, id: str, options: Optional[CountOptions] = None
    ) -> TypedResult[Any]:
        return await self._run("get_similar_songs", id, options)

    async def get_similar_songs2(
        self, id: str, options: Optional[CountOptions] = None
    ) -> TypedResult[Any]:
        return await self._run("get_similar_songs2", id, options)

    async def get_top_songs(
        self, artist: str, options: Optional[CountOptions] = None
    ) -> TypedResult[Any]:
        """Top songs for an artist name (not an id)."""
        return await self._run("get_top_songs", artist, options)

    # ---------------- Lists ---------------- #

    async def get_album_list(self, options: Optional[AlbumListOptions] = None) -> TypedResult[Any]:
        """Album listing; the list type defaults to ``newest``."""
        return await self._run("get_album_list", options=options)

    async def get_album_list2(self, options: Optional[AlbumListOptions] = None) -> TypedResult[Any]:
        """ID3 variant of :meth:`get_album_list`."""
        return await self._run("get_album_list2", options=options)

    async def get_random_songs(
        self, options: Optional[RandomSongsOptions] = None
    ) -> TypedResult[Any]:
        return await self._run("get_random_songs", options=options)

    async def get_songs_by_genre(
        self, genre: str, options: Optional[SongsByGenreOptions] = None
    ) -> TypedResult[Any]:
        return await self._run("get_songs_by_genre", genre, options)

    async def get_now_playing(self) -> TypedResult[Any]:
        return await self._run("get_now_playing")

    async def get_starred(self, options: Optional[FolderOptions] = None) -> TypedResult[Any]:
        return await self._run("get_starred", options=options)

    async def get_starred2(self, options: Optional[FolderOptions] = None) -> TypedResult[Any]:
        return await self._run("get_starred2", options=options)

    # ---------------- Searching ---------------- #

    async def search(self, options: Optional[CriteriaSearchOptions] = None) -> TypedResult[Any]:
        """Deprecated criteria search; matches come back as ``match`` children."""
        return await self._run("search", options=options)

    async def search2(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> TypedResult[Any]:
        return await self._run("search2", query, options)

    async def search3(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> TypedResult[Any]:
        """ID3 search for artists, albums and songs matching ``query``."""
        return await self._run("search3", query, options)

    # ---------------- Playlists and jukebox ---------------- #

    async def get_playlists(self, options: Optional[PlaylistsOptions] = None) -> TypedResult[Any]:
        return await self._run("get_playlists", options=options)

    async def get_playlist(self, id: str) -> TypedResult[Any]:
        return await self._run("get_playlist", id)

    async def jukebox_status(self) -> TypedResult[Any]:
        """``jukeboxControl`` with ``action=status``."""
        return await self._run("jukebox_status")

    async def jukebox_playlist(self) -> TypedResult[Any]:
        """``jukeboxControl`` with ``action=get``: status plus queued entries."""
        return await self._run("jukebox_playlist")

    # ---------------- Media metadata ---------------- #

    async def get_lyrics(self, options: Optional[LyricsOptions] = None) -> TypedResult[Any]:
        return await self._run("get_lyrics", options=options)

    async def get_podcasts(self, options: Optional[PodcastsOptions] = None) -> TypedResult[Any]:
        return await self._run("get_podcasts", options=options)

    async def get_newest_podcasts(
        self, options: Optional[CountOptions] = None
    ) -> TypedResult[Any]:
        return await self._run("get_newest_podcasts", options=options)

    async def get_internet_radio_stations(self) -> TypedResult[Any]:
        return await self._run("get_internet_radio_stations")

    # ---------------- Users and server state ---------------- #

    async def get_user(self, username: str) -> TypedResult[Any]:
        return await self._run("get_user", username)

    async def get_users(self) -> TypedResult[Any]:
        return await self._run("get_users")

    async def get_license(self) -> TypedResult[Any]:
        return await self._run("get_license")

    async def get_scan_status(self) -> TypedResult[Any]:
        return await self._run("get_scan_status")

    async def get_bookmarks(self) -> TypedResult[Any]:
        return await self._run("get_bookmarks")

    async def get_play_queue(self) -> TypedResult[Any]:
        return await self._run("get_play_queue")

    async def get_shares(self) -> TypedResult[Any]:
        return await self._run("get_shares")

    async def get_chat_messages(
        self, options: Optional[ChatMessagesOptions] = None
    ) -> TypedResult[Any]:
        return await self._run("get_chat_messages", options=options)

    # ---------------- Internal helpers ---------------- #

    async def _get(self, endpoint: str, params: Params = None) -> bytes:
        logger.info(f"GET {endpoint}")
        response = await self._http.get(self.build_url(endpoint, params))
        response.raise_for_status()
        return response.content

    async def _run(
        self,
        method: str,
        argument: Optional[str] = None,
        options: Optional[OperationOptions] = None,
    ) -> TypedResult[Any]:
        return await self.request(OPERATIONS_BY_METHOD[method], argument, options)


def _as_directory(url: httpx.URL) -> httpx.URL:
    if url.path.endswith("/"):
        return url
    return url.copy_with(path=url.path + "/")


def _render_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _render_params(params: Params) -> List[Tuple[str, str]]:
    """Flatten call parameters; lists repeat their key, ``None`` is dropped."""
    if params is None:
        return []
    items = params.items() if isinstance(params, Mapping) else params
    rendered: List[Tuple[str, str]] = []
    for key, value in items:
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            rendered.extend((key, _render_value(v)) for v in value if v is not None)
        else:
            rendered.append((key, _render_value(value)))
    return rendered
