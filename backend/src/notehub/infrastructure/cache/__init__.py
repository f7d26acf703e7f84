from .view_cache import MODERATION_NAMESPACE, SEARCH_NAMESPACE, ViewCache, get_view_cache

__all__ = ["ViewCache", "get_view_cache", "SEARCH_NAMESPACE", "MODERATION_NAMESPACE"]
