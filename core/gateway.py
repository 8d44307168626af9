# core/gateway.py
from typing import Optional

from fetchers import WishlistApiError

from .cache import ApiFactory, RemoteWishlistCache
from .identity import Identity
from .logger import get_logger
from .models import MutationResult, WishlistItem
from .storage import GuestStore, now_utc_iso

logger = get_logger(__name__)


class MutationGateway:
    """
    Server-confirmed add/remove for both identities.

    Guest mutations go straight to the GuestStore. Customer mutations call the
    service and, only on a confirmed success, update the shared cache so
    every other widget for that customer sees the change on its next read.
    No retries: a failure leaves all state as it was.
    """

    def __init__(self, api_for: ApiFactory, cache: RemoteWishlistCache, guest_store: GuestStore):
        self._api_for = api_for
        self.cache = cache
        self.guest_store = guest_store

    async def add(self, identity: Identity, product_id: str, variant_id: str) -> MutationResult:
        if identity.is_guest:
            self.guest_store.add(product_id, variant_id)
            return MutationResult(success=True)

        api = self._api_for(identity.api_base_url)
        try:
            result = await api.add_item(
                identity.customer_id,
                product_id,
                variant_id,
                email=identity.email,
                shop_domain=identity.shop_domain,
            )
        except WishlistApiError as e:
            logger.warning("Add %s/%s for customer %s failed: %s", product_id, variant_id, identity.customer_id, e)
            return MutationResult(success=False, error=str(e))

        if not result.success:
            logger.warning(
                "Add %s/%s for customer %s not confirmed: %s",
                product_id, variant_id, identity.customer_id, result.error or "no success flag",
            )
            return result

        if result.item_id:
            self.cache.apply_add(
                identity.customer_id,
                WishlistItem(
                    id=result.item_id,
                    product_id=product_id,
                    variant_id=variant_id,
                    added_at=now_utc_iso(),
                ),
            )
        logger.info("Customer %s added %s/%s (item %s)", identity.customer_id, product_id, variant_id, result.item_id)
        return result

    async def remove(
        self,
        identity: Identity,
        item_id: Optional[str] = None,
        product_id: str = "",
        variant_id: str = "",
    ) -> MutationResult:
        """
        Guests are addressed by (product_id, variant_id); customers by the
        server-assigned item_id, without which nothing is sent.
        """
        if identity.is_guest:
            self.guest_store.remove(product_id, variant_id)
            return MutationResult(success=True)

        if not item_id:
            return MutationResult(success=False, error="Missing wishlist item id")

        api = self._api_for(identity.api_base_url)
        try:
            result = await api.remove_item(item_id)
        except WishlistApiError as e:
            logger.warning("Remove of item %s for customer %s failed: %s", item_id, identity.customer_id, e)
            return MutationResult(success=False, error=str(e))

        if not result.success:
            logger.warning("Remove of item %s not confirmed: %s", item_id, result.error)
            return MutationResult(success=False, error=result.error or "Failed to remove item")

        self.cache.apply_remove(identity.customer_id, item_id)
        logger.info("Customer %s removed item %s", identity.customer_id, item_id)
        return MutationResult(success=True, item_id=item_id)

    async def merge_guest(self, identity: Identity) -> bool:
        """
        Move the device's guest wishlist into the customer's remote wishlist.
        On success the cache holds the merged list and the guest store is emptied.
        """
        if identity.is_guest:
            return False
        entries = self.guest_store.list()
        if not entries:
            return False

        api = self._api_for(identity.api_base_url)
        try:
            merged = await api.merge_guest_items(identity.customer_id, entries)
        except WishlistApiError as e:
            logger.warning("Guest merge for customer %s failed: %s", identity.customer_id, e)
            return False
        if merged is None:
            return False

        self.cache.replace(identity.customer_id, merged)
        self.guest_store.clear()
        logger.info(
            "Merged %d guest entries into customer %s (%d items now).",
            len(entries), identity.customer_id, len(merged),
        )
        return True
