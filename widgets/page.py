import asyncio
from typing import List, Optional

from bs4.element import Tag

from core.cache import ProductDetailCache, RemoteWishlistCache
from core.gateway import MutationGateway
from core.identity import WidgetConfig, resolve_identity
from core.logger import get_logger
from core.models import PageState, ProductDetail, WishlistItem

from .render import fragment, render_login, render_row, set_disabled, set_hidden, set_text

logger = get_logger(__name__)


class PageController:
    """
    Renders the full wishlist inside a `[data-wishlist-page]` container.

    The container supplies optional slots: `[data-wishlist-list]`,
    `[data-wishlist-empty]`, `[data-wishlist-loading]`, `[data-wishlist-error]`
    and `[data-wishlist-login]`. Rows keep the order of their source.
    """

    def __init__(
        self,
        node: Tag,
        config: WidgetConfig,
        cache: RemoteWishlistCache,
        details: ProductDetailCache,
        gateway: MutationGateway,
    ):
        self.node = node
        self.config = config
        self.identity = resolve_identity(config)
        self.cache = cache
        self.details = details
        self.gateway = gateway
        self.state = PageState()
        self._removing = set()

        self.list_el = node.select_one("[data-wishlist-list]")
        self.empty_el = node.select_one("[data-wishlist-empty]")
        self.loading_el = node.select_one("[data-wishlist-loading]")
        self.error_el = node.select_one("[data-wishlist-error]")
        self.login_el = node.select_one("[data-wishlist-login]")

    def _set_loading(self, value: bool):
        self.state.is_loading = value
        set_hidden(self.loading_el, not value)

    def _set_error(self, message: str):
        self.state.error = message
        set_text(self.error_el, message)

    async def hydrate(self):
        await self.load()

    async def load(self):
        self._set_error("")
        self._set_loading(True)
        try:
            if self.identity.is_guest:
                items = [entry.as_item() for entry in self.gateway.guest_store.list()]
            else:
                items = list(await self.cache.get(self.identity))
            await self.render(items)
        finally:
            self._set_loading(False)

    async def _detail(self, item: WishlistItem) -> Optional[ProductDetail]:
        # The detail endpoint is scoped to a shop
        if not self.identity.shop_domain:
            return None
        return await self.details.get(item.product_id, self.identity)

    async def render(self, items: List[WishlistItem]):
        self.state.items = items
        details = await asyncio.gather(*(self._detail(item) for item in items))

        if self.list_el is not None:
            self.list_el.clear()
            for item, detail in zip(items, details):
                for row in fragment(render_row(item, detail)):
                    self.list_el.append(row)
        set_hidden(self.empty_el, bool(items))

        if self.login_el is not None:
            self.login_el.clear()
            show_login = self.identity.is_guest and bool(self.config.login_url)
            if show_login:
                for link in fragment(render_login(self.config.login_url)):
                    self.login_el.append(link)
            set_hidden(self.login_el, not show_login)

        logger.info(
            "Rendered wishlist page with %d items (%s).",
            len(items), "guest" if self.identity.is_guest else f"customer {self.identity.customer_id}",
        )

    def _remove_button(self, item_id: str) -> Optional[Tag]:
        if self.list_el is None:
            return None
        for button in self.list_el.select("[data-wishlist-remove]"):
            if button.get("data-wishlist-item-id") == item_id:
                return button
        return None

    async def remove(self, item_id: str) -> bool:
        item = next((it for it in self.state.items if it.id == item_id), None)
        if item is None or item_id in self._removing:
            return False

        self._set_error("")
        self._removing.add(item_id)
        button = self._remove_button(item_id)
        if button is not None:
            set_disabled(button, True)
        try:
            if self.identity.is_guest:
                result = await self.gateway.remove(
                    self.identity, product_id=item.product_id, variant_id=item.variant_id
                )
            else:
                result = await self.gateway.remove(self.identity, item_id=item.id)
        finally:
            self._removing.discard(item_id)
            if button is not None:
                set_disabled(button, False)

        if not result.success:
            self._set_error(result.error or "Failed to remove item")
            return False
        await self.load()
        return True
