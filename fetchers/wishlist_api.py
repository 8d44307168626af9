import asyncio
import os
from typing import Any, Dict, List, Optional

import requests

from core.logger import get_logger
from core.models import GuestEntry, MutationResult, WishlistItem, normalize_id

logger = get_logger(__name__)

USER_AGENT = os.getenv("WISHLIST_USER_AGENT", "storefront-wishlist/1.0")
HTTP_TIMEOUT = float(os.getenv("WISHLIST_HTTP_TIMEOUT", "15"))

SESSION = requests.Session()
SESSION.headers.update({"User-Agent": USER_AGENT, "Accept": "application/json"})


class WishlistApiError(Exception):
    """Transport failure or unreadable response from the wishlist service."""


class WishlistApi:
    """
    Client for the wishlist service endpoints.

    Requests are blocking, so each public coroutine runs its request in a
    worker thread; parsing and every caller-visible state change stay on the
    event loop.
    """

    def __init__(self, base_url: str, session: requests.Session = SESSION):
        self.base_url = base_url.rstrip("/")
        self.session = session

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(method, url, timeout=HTTP_TIMEOUT, **kwargs)
        except requests.RequestException as e:
            raise WishlistApiError(f"{method} {url} failed: {e}") from e
        # Error statuses still carry {success: false, error} bodies
        try:
            data = r.json()
        except ValueError as e:
            raise WishlistApiError(
                f"{method} {url} returned non-JSON body (HTTP {r.status_code})"
            ) from e
        if not isinstance(data, dict):
            raise WishlistApiError(f"{method} {url} returned {type(data).__name__}, expected object")
        logger.debug("%s %s -> HTTP %s", method, url, r.status_code)
        return data

    async def _call(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        return await asyncio.to_thread(self._request, method, path, **kwargs)

    async def fetch_wishlist(self, customer_id: str, shop_domain: str = "") -> List[WishlistItem]:
        params = {"customerId": customer_id}
        if shop_domain:
            params["shop"] = shop_domain
        data = await self._call("GET", "/wishlist", params=params)
        rows = data.get("wishlist")
        if not isinstance(rows, list):
            return []
        return [WishlistItem.from_api(row) for row in rows if isinstance(row, dict)]

    async def add_item(
        self,
        customer_id: str,
        product_id: str,
        variant_id: str,
        email: str = "",
        shop_domain: str = "",
    ) -> MutationResult:
        body: Dict[str, Any] = {
            "customerId": customer_id,
            "productId": product_id,
            "variantId": variant_id or None,
        }
        if email:
            body["email"] = email
        if shop_domain:
            body["shopDomain"] = shop_domain
        data = await self._call("POST", "/wishlist/add", json=body)
        return _mutation_result(data)

    async def remove_item(self, wishlist_item_id: str) -> MutationResult:
        data = await self._call("POST", "/wishlist/remove", json={"wishlistItemId": wishlist_item_id})
        return _mutation_result(data)

    async def merge_guest_items(
        self, customer_id: str, guest_items: List[GuestEntry]
    ) -> Optional[List[WishlistItem]]:
        """Returns the merged list, or None when the service reports an error."""
        body = {
            "customerId": customer_id,
            "guestItems": [e.to_storage() for e in guest_items],
        }
        data = await self._call("POST", "/wishlist/merge", json=body)
        rows = data.get("wishlist")
        if data.get("error") or not isinstance(rows, list):
            logger.warning("Guest merge for customer %s rejected: %s", customer_id, data.get("error"))
            return None
        return [WishlistItem.from_api(row) for row in rows if isinstance(row, dict)]

    async def fetch_product(self, product_id: str, shop_domain: str) -> Optional[Dict[str, Any]]:
        """Raw product payload from the detail endpoint, or None when missing."""
        data = await self._call(
            "GET", "/detail-product", params={"productId": product_id, "shop": shop_domain}
        )
        inner = data.get("data")
        if not isinstance(inner, dict):
            return None
        product = inner.get("product")
        return product if isinstance(product, dict) else None


def _mutation_result(data: Dict[str, Any]) -> MutationResult:
    if data.get("success") is True:
        item_id = data.get("wishlistItemId")
        return MutationResult(success=True, item_id=normalize_id(item_id) or None)
    return MutationResult(success=False, error=normalize_id(data.get("error")))
