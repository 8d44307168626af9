from typing import Optional

from bs4.element import Tag

from core.cache import RemoteWishlistCache
from core.gateway import MutationGateway
from core.identity import WidgetConfig, resolve_identity
from core.logger import get_logger
from core.models import ButtonState, MutationResult

from .render import set_disabled, toggle_class

logger = get_logger(__name__)

ACTIVE_CLASS = "is-active"


class ButtonController:
    """
    Drives one "toggle favorite" control.

    The control is disabled for as long as an operation is in flight, so a
    single widget never has two mutations outstanding. A widget without a
    product or variant id stays inert.
    """

    def __init__(
        self,
        node: Tag,
        config: WidgetConfig,
        cache: RemoteWishlistCache,
        gateway: MutationGateway,
    ):
        self.node = node
        self.config = config
        self.identity = resolve_identity(config)
        self.cache = cache
        self.gateway = gateway
        self.state = ButtonState()
        # Disabled until hydrate() has read the remote list
        if not self.inert and not self.identity.is_guest:
            self._set_loading(True)

    @property
    def inert(self) -> bool:
        return not (self.config.product_id and self.config.variant_id)

    def _set_loading(self, value: bool):
        self.state.is_loading = value
        set_disabled(self.node, value)

    def _set_active(self, value: bool, item_id: Optional[str] = None):
        self.state.wishlisted = value
        self.state.wishlist_item_id = item_id if value else None
        toggle_class(self.node, ACTIVE_CLASS, value)
        self.node["aria-pressed"] = "true" if value else "false"

    async def hydrate(self):
        if self.inert:
            logger.debug("Wishlist button without product/variant id left inert: %s", self.config)
            return
        product_id, variant_id = self.config.product_id, self.config.variant_id

        if self.identity.is_guest:
            self._set_active(self.gateway.guest_store.contains(product_id, variant_id))
            self.state.hydrated = True
            return

        try:
            items = await self.cache.get(self.identity)
        finally:
            self._set_loading(False)
        found = next((it for it in items if it.matches(product_id, variant_id)), None)
        self._set_active(found is not None, found.id if found else None)
        self.state.hydrated = True

    async def click(self) -> bool:
        """Toggle membership. Returns True when state changed."""
        if self.inert or self.state.is_loading or not self.state.hydrated:
            return False
        removing = self.state.wishlisted
        # Customers can only remove an item whose server id is known
        if removing and not self.identity.is_guest and not self.state.wishlist_item_id:
            return False

        product_id, variant_id = self.config.product_id, self.config.variant_id
        result = MutationResult(success=False)
        self._set_loading(True)
        try:
            if removing:
                result = await self.gateway.remove(
                    self.identity,
                    item_id=self.state.wishlist_item_id,
                    product_id=product_id,
                    variant_id=variant_id,
                )
                if result.success:
                    self._set_active(False)
            else:
                result = await self.gateway.add(self.identity, product_id, variant_id)
                if result.success:
                    self._set_active(True, result.item_id)
        finally:
            self._set_loading(False)
        return result.success
