"""Static configuration for chatscraper.

User-editable settings (cache location, download limits, transport, logging)
live in an optional JSON file so they can be tweaked without touching Python.
Environment variables (also read from a ``.env`` file) override the client ID
and the config file location.
"""

import json
import os

from dotenv import load_dotenv

from chatscraper.core.config import GQL_URL, PUBLIC_CLIENT_ID, DownloaderConfig, TransportConfig

load_dotenv()

PROJECT_ROOT = os.getcwd()

# config.json is optional; every key has a default.
CONFIG_PATH = os.getenv("CHATSCRAPER_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config(path: str) -> dict:
    """Load the config file, or an empty config when there is none."""

    if not os.path.exists(path):
        return {}

    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a JSON object: {path}")
    return data


_CONFIG = _load_json_config(CONFIG_PATH)

# Relative cache paths resolve against the working directory, like ./cache.
CACHE_DIR = _CONFIG.get("cache_dir", "./cache")

# Upper bound for simultaneous network downloads. Cache reads are unbounded.
_downloads = _CONFIG.get("downloads", {})
MAX_DOWNLOADS = int(_downloads.get("max_concurrent", 3))

# Transport settings. The client ID is the public web client; no login is used.
_transport = _CONFIG.get("transport", {})
CLIENT_ID = os.getenv("CHATSCRAPER_CLIENT_ID") or _transport.get("client_id", PUBLIC_CLIENT_ID)
GQL_ENDPOINT = _transport.get("url", GQL_URL)
TIMEOUT_SECONDS = float(_transport.get("timeout_seconds", 30))

# How many recent broadcasts --vods-from adds when --max-vods is omitted.
_vods = _CONFIG.get("vods", {})
DEFAULT_VOD_LIMIT = int(_vods.get("default_limit", 5))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})


def downloader_config() -> DownloaderConfig:
    return DownloaderConfig(cache_dir=CACHE_DIR, max_downloads=MAX_DOWNLOADS)


def transport_config() -> TransportConfig:
    return TransportConfig(client_id=CLIENT_ID, url=GQL_ENDPOINT, timeout_seconds=TIMEOUT_SECONDS)
