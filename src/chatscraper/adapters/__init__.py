"""Adapters connecting the chatscraper core to HTTP, files and the terminal."""
