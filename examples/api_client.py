#!/usr/bin/env python3
"""
Example client for a Subsonic server.

This script demonstrates how to ping a server, browse its library through
the typed payloads, and handle server-reported errors and transport failures.

Configure it through the environment:

    SUBSONIC_URL=https://music.example.com SUBSONIC_USER=admin \
    SUBSONIC_PASSWORD=sesame python examples/api_client.py
"""

import asyncio
import sys

import httpx

from subsonic_schema_api import ApiError, ClientSettings
from subsonic_schema_api.operations import AlbumListOptions, SearchOptions


async def show_library(client) -> None:
    """Print the artist index and a few recently added albums."""
    result = await client.get_artists()
    for index in result.unwrap().index or []:
        names = ", ".join(artist.name for artist in index.artist or [])
        print(f"  {index.name}: {names}")

    albums = await client.get_album_list2(AlbumListOptions(ty="newest", size=5))
    print("\nNewest albums:")
    for album in albums.unwrap().album or []:
        print(f"  {album.name} ({album.song_count} songs)")


async def search(client, query: str) -> None:
    """Search songs, reporting API errors without raising."""
    result = await client.search3(query, SearchOptions(song_count=10))
    if isinstance(result.error, ApiError):
        print(f"Search failed: {result.error.code} {result.error.server_message}")
        return
    for song in result.unwrap().song or []:
        print(f"  {song.artist or '?'} - {song.title}")


async def main() -> int:
    try:
        settings = ClientSettings.from_env()
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    try:
        async with settings.client() as client:
            if not await client.ping():
                print("Server rejected ping; check the credentials")
                return 1
            print(f"Connected to {settings.url}\n\nArtists:")
            await show_library(client)
            print("\nSearch 'love':")
            await search(client, "love")
    except httpx.ConnectError:
        print(f"Error: Could not connect to {settings.url}")
        return 1
    except httpx.HTTPStatusError as e:
        print(f"HTTP Error: {e.response.status_code}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
