from .wishlist_api import WishlistApi, WishlistApiError

_CLIENTS = {}


def api_for(base_url: str) -> WishlistApi:
    """One client per service base URL, shared for the life of the process."""
    key = base_url.rstrip("/")
    client = _CLIENTS.get(key)
    if client is None:
        client = _CLIENTS[key] = WishlistApi(key)
    return client


__all__ = ["WishlistApi", "WishlistApiError", "api_for"]
