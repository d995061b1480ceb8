"""chatscraper: search chat replays of recorded broadcasts."""

__version__ = "0.1.0"
