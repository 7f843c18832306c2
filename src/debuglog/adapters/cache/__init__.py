"""Local fallback cache adapters."""

from debuglog.adapters.cache.json_file import CACHE_KEY, JsonFileCache

__all__ = ["CACHE_KEY", "JsonFileCache"]
