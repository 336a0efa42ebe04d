from .date_cache import DEFAULT_MAX_SIZE, DateParseCache

__all__ = ["DateParseCache", "DEFAULT_MAX_SIZE"]
