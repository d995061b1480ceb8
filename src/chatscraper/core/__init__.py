"""Core domain package for chatscraper.

Core contains pagination, dedup, download orchestration, rule matching and
highlight resolution without any HTTP or filesystem code, keeping the
business logic portable.
"""
