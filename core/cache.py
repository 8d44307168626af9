# core/cache.py
import asyncio
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple, Union

from fetchers import WishlistApi, WishlistApiError

from .identity import Identity
from .logger import get_logger
from .models import ProductDetail, WishlistItem

logger = get_logger(__name__)

ApiFactory = Callable[[str], WishlistApi]


@dataclass(frozen=True)
class Pending:
    task: "asyncio.Task"


@dataclass(frozen=True)
class Resolved:
    items: Tuple[WishlistItem, ...]


# A missing key is the Empty state
CacheEntry = Union[Pending, Resolved]


class RemoteWishlistCache:
    """
    Page-lifetime cache of each customer's remote wishlist.

    At most one fetch is in flight per customer: the pending task is stored
    before anything awaits it, so every caller arriving before it completes
    shares the same request. A resolved list stays current until mutated
    through apply_add/apply_remove/replace.
    """

    def __init__(self, api_for: ApiFactory):
        self._api_for = api_for
        self._entries: Dict[str, CacheEntry] = {}

    def peek(self, customer_id: str) -> Optional[CacheEntry]:
        return self._entries.get(customer_id)

    async def get(self, identity: Identity) -> Tuple[WishlistItem, ...]:
        key = identity.customer_id
        entry = self._entries.get(key)
        if isinstance(entry, Resolved):
            logger.debug("Wishlist cache hit for customer %s", key)
            return entry.items
        if isinstance(entry, Pending):
            logger.debug("Joining in-flight wishlist fetch for customer %s", key)
            task = entry.task
        else:
            task = asyncio.ensure_future(self._load(identity))
            self._entries[key] = Pending(task)
        # One waiter being cancelled must not cancel the shared fetch
        return await asyncio.shield(task)

    async def _load(self, identity: Identity) -> Tuple[WishlistItem, ...]:
        key = identity.customer_id
        api = self._api_for(identity.api_base_url)
        try:
            items = tuple(await api.fetch_wishlist(key, identity.shop_domain))
        except WishlistApiError as e:
            logger.warning("Wishlist fetch failed for customer %s; using empty list: %s", key, e)
            items = ()
        current = self._entries.get(key)
        # replace() may have landed while the fetch was in flight
        if isinstance(current, Resolved):
            return current.items
        self._entries[key] = Resolved(items)
        logger.debug("Cached %d wishlist items for customer %s", len(items), key)
        return items

    def apply_add(self, customer_id: str, item: WishlistItem):
        entry = self._entries.get(customer_id)
        if not isinstance(entry, Resolved):
            return
        if any(existing.id == item.id for existing in entry.items):
            return
        self._entries[customer_id] = Resolved(entry.items + (item,))

    def apply_remove(self, customer_id: str, item_id: str):
        entry = self._entries.get(customer_id)
        if not isinstance(entry, Resolved):
            return
        self._entries[customer_id] = Resolved(
            tuple(existing for existing in entry.items if existing.id != item_id)
        )

    def replace(self, customer_id: str, items):
        self._entries[customer_id] = Resolved(tuple(items))


class ProductDetailCache:
    """
    Memo of product display data, keyed by product id.

    Lookups that fail or find no product are remembered as None so a page
    with many rows for the same product never repeats a failing request.
    """

    def __init__(self, api_for: ApiFactory):
        self._api_for = api_for
        self._entries: Dict[str, Union["asyncio.Task", Optional[ProductDetail]]] = {}

    async def get(self, product_id: str, identity: Identity) -> Optional[ProductDetail]:
        if product_id in self._entries:
            entry = self._entries[product_id]
            if isinstance(entry, asyncio.Task):
                return await asyncio.shield(entry)
            return entry
        task = asyncio.ensure_future(self._load(product_id, identity))
        self._entries[product_id] = task
        return await asyncio.shield(task)

    async def _load(self, product_id: str, identity: Identity) -> Optional[ProductDetail]:
        api = self._api_for(identity.api_base_url)
        detail: Optional[ProductDetail] = None
        try:
            product = await api.fetch_product(product_id, identity.shop_domain)
            if product is not None:
                detail = ProductDetail.from_product(product)
        except WishlistApiError as e:
            logger.warning("Product detail lookup failed for %s: %s", product_id, e)
        except Exception as e:
            logger.exception("Unreadable product detail for %s: %s", product_id, e)
        finally:
            # Every outcome leaves a value, never the task
            self._entries[product_id] = detail
        if detail is None:
            logger.info("Product %s unavailable; remembering as missing.", product_id)
        return detail
