"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core and adapters expect so the app layer can build them safely.
"""

from __future__ import annotations

from dataclasses import dataclass

# Client ID used by the public web player. No user authentication is involved.
PUBLIC_CLIENT_ID = "kimne78kx3ncx6brgo4mv6wki5h1ko"
GQL_URL = "https://gql.twitch.tv/gql"


@dataclass(frozen=True)
class DownloaderConfig:
    """Download orchestration settings."""

    cache_dir: str = "./cache"
    max_downloads: int = 3


@dataclass(frozen=True)
class TransportConfig:
    """Settings for the GraphQL transport adapter."""

    client_id: str = PUBLIC_CLIENT_ID
    url: str = GQL_URL
    timeout_seconds: float = 30.0
