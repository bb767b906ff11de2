"""Catalogue of Subsonic retrieval operations.

Each :class:`Operation` names a REST endpoint, the Response variant its reply
carries, and the call-specific parameters it takes: at most one positional
identifier plus an optional options object. Options objects are pydantic
models whose fields are all independently optional; absent fields are left
out of the query string.

Every payload variant except ``error`` has at least one operation. The
:class:`~subsonic_schema_api.client.Client` declares one coroutine method per
catalogue entry (``getArtist`` becomes ``Client.get_artist``).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field

from .naming import to_snake_case


class OperationOptions(BaseModel):
    """Base class for named, independently optional call parameters."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    def to_query(self) -> List[Tuple[str, Any]]:
        return list(self.model_dump(by_alias=True, exclude_none=True).items())


class FolderOptions(OperationOptions):
    music_folder_id: Optional[str] = Field(None, alias="musicFolderId")


class IndexesOptions(FolderOptions):
    if_modified_since: Optional[int] = Field(None, alias="ifModifiedSince")


class CountOptions(OperationOptions):
    count: Optional[int] = None


class ArtistInfoOptions(CountOptions):
    include_not_present: Optional[bool] = Field(None, alias="includeNotPresent")


class AlbumListOptions(FolderOptions):
    """``type`` is required by the server; the rest narrow the listing."""

    ty: str = Field("newest", alias="type")
    size: Optional[int] = None
    offset: Optional[int] = None
    from_year: Optional[int] = Field(None, alias="fromYear")
    to_year: Optional[int] = Field(None, alias="toYear")
    genre: Optional[str] = None


class RandomSongsOptions(FolderOptions):
    size: Optional[int] = None
    genre: Optional[str] = None
    from_year: Optional[int] = Field(None, alias="fromYear")
    to_year: Optional[int] = Field(None, alias="toYear")


class SongsByGenreOptions(FolderOptions):
    count: Optional[int] = None
    offset: Optional[int] = None


class CriteriaSearchOptions(OperationOptions):
    """Criteria for the deprecated ``search`` call; at least one should be set."""

    artist: Optional[str] = None
    album: Optional[str] = None
    title: Optional[str] = None
    any: Optional[str] = None
    count: Optional[int] = None
    offset: Optional[int] = None
    newer_than: Optional[int] = Field(None, alias="newerThan")


class SearchOptions(FolderOptions):
    artist_count: Optional[int] = Field(None, alias="artistCount")
    artist_offset: Optional[int] = Field(None, alias="artistOffset")
    album_count: Optional[int] = Field(None, alias="albumCount")
    album_offset: Optional[int] = Field(None, alias="albumOffset")
    song_count: Optional[int] = Field(None, alias="songCount")
    song_offset: Optional[int] = Field(None, alias="songOffset")


class PlaylistsOptions(OperationOptions):
    username: Optional[str] = None


class LyricsOptions(OperationOptions):
    artist: Optional[str] = None
    title: Optional[str] = None


class PodcastsOptions(OperationOptions):
    include_episodes: Optional[bool] = Field(None, alias="includeEpisodes")
    id: Optional[str] = None


class ChatMessagesOptions(OperationOptions):
    since: Optional[int] = None


@dataclass(frozen=True)
class Operation:
    """One retrieval endpoint.

    Attributes:
        endpoint: REST method name (``getArtist``).
        variant: Wire name of the Response variant the reply carries.
        positional: Query key of the single positional argument, if any.
        options: Options model accepted as ``options=...``, if any.
        fixed: Pairs sent on every call, after the positional argument.
        name: Client method name when the endpoint serves several
            operations (``jukeboxControl`` with ``action=get``).
    """

    endpoint: str
    variant: str
    positional: Optional[str] = None
    options: Optional[Type[OperationOptions]] = None
    fixed: Tuple[Tuple[str, str], ...] = ()
    name: Optional[str] = None

    @property
    def method_name(self) -> str:
        return self.name or to_snake_case(self.endpoint)

    def query(
        self, argument: Optional[str] = None, options: Optional[OperationOptions] = None
    ) -> List[Tuple[str, Any]]:
        """Build the call-specific query pairs.

        Raises:
            TypeError: On a missing/unexpected positional argument or an options
                object of the wrong type.
        """
        pairs: List[Tuple[str, Any]] = []
        if self.positional is not None:
            if argument is None:
                raise TypeError(f"{self.method_name}() missing argument '{self.positional}'")
            pairs.append((self.positional, argument))
        elif argument is not None:
            raise TypeError(f"{self.method_name}() takes no positional argument")
        pairs.extend(self.fixed)

        if options is not None:
            if self.options is None or not isinstance(options, self.options):
                expected = self.options.__name__ if self.options else "no options"
                raise TypeError(f"{self.method_name}() expects {expected}")
            pairs.extend(options.to_query())
        elif self.options is not None:
            # Defaults only; non-empty for models with required server params.
            pairs.extend(self.options().to_query())
        return pairs


OPERATIONS: Tuple[Operation, ...] = (
    Operation("getMusicFolders", "musicFolders"),
    Operation("getIndexes", "indexes", options=IndexesOptions),
    Operation("getMusicDirectory", "directory", positional="id"),
    Operation("getGenres", "genres"),
    Operation("getArtists", "artists", options=FolderOptions),
    Operation("getArtist", "artist", positional="id"),
    Operation("getAlbum", "album", positional="id"),
    Operation("getSong", "song", positional="id"),
    Operation("getVideos", "videos"),
    Operation("getVideoInfo", "videoInfo", positional="id"),
    Operation("getArtistInfo", "artistInfo", positional="id", options=ArtistInfoOptions),
    Operation("getArtistInfo2", "artistInfo2", positional="id", options=ArtistInfoOptions),
    Operation("getAlbumInfo", "albumInfo", positional="id"),
    Operation("getAlbumInfo2", "albumInfo", positional="id"),
    Operation("getSimilarSongs", "similarSongs", positional="id", options=CountOptions),
    Operation("getSimilarSongs2", "similarSongs2", positional="id", options=CountOptions),
    Operation("getTopSongs", "topSongs", positional="artist", options=CountOptions),
    Operation("getAlbumList", "albumList", options=AlbumListOptions),
    Operation("getAlbumList2", "albumList2", options=AlbumListOptions),
    Operation("getRandomSongs", "randomSongs", options=RandomSongsOptions),
    Operation("getSongsByGenre", "songsByGenre", positional="genre", options=SongsByGenreOptions),
    Operation("getNowPlaying", "nowPlaying"),
    Operation("getStarred", "starred", options=FolderOptions),
    Operation("getStarred2", "starred2", options=FolderOptions),
    Operation("search", "searchResult", options=CriteriaSearchOptions),
    Operation("search2", "searchResult2", positional="query", options=SearchOptions),
    Operation("search3", "searchResult3", positional="query", options=SearchOptions),
    Operation("getPlaylists", "playlists", options=PlaylistsOptions),
    Operation("getPlaylist", "playlist", positional="id"),
    Operation("jukeboxControl", "jukeboxStatus", fixed=(("action", "status"),), name="jukebox_status"),
    Operation("jukeboxControl", "jukeboxPlaylist", fixed=(("action", "get"),), name="jukebox_playlist"),
    Operation("getLyrics", "lyrics", options=LyricsOptions),
    Operation("getUser", "user", positional="username"),
    Operation("getUsers", "users"),
    Operation("getLicense", "license"),
    Operation("getScanStatus", "scanStatus"),
    Operation("getPodcasts", "podcasts", options=PodcastsOptions),
    Operation("getNewestPodcasts", "newestPodcasts", options=CountOptions),
    Operation("getInternetRadioStations", "internetRadioStations"),
    Operation("getBookmarks", "bookmarks"),
    Operation("getPlayQueue", "playQueue"),
    Operation("getShares", "shares"),
    Operation("getChatMessages", "chatMessages", options=ChatMessagesOptions),
)

OPERATIONS_BY_METHOD: Dict[str, Operation] = {op.method_name: op for op in OPERATIONS}
