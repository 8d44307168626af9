import html
import json

import pytest

from core.models import MutationResult, WishlistItem
from core.storage import GuestStore
from fetchers import WishlistApiError
from widgets import WishlistRuntime


class FakeWishlistApi:
    """In-memory stand-in for the wishlist service."""

    def __init__(self):
        self.wishlists = {}
        self.products = {}
        self.calls = []
        self.fetch_gate = None
        self.add_gate = None
        self.fail_fetch = False
        self.fail_products = False
        self.product_error = None
        self.add_result = None
        self.remove_result = None
        self.merge_error = ""
        self._next_id = 1

    def count(self, name):
        return sum(1 for call in self.calls if call[0] == name)

    async def fetch_wishlist(self, customer_id, shop_domain=""):
        self.calls.append(("fetch", customer_id))
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if self.fail_fetch:
            raise WishlistApiError("service down")
        return [WishlistItem.from_api(row) for row in self.wishlists.get(customer_id, [])]

    async def add_item(self, customer_id, product_id, variant_id, email="", shop_domain=""):
        self.calls.append(("add", customer_id, product_id, variant_id))
        if self.add_gate is not None:
            await self.add_gate.wait()
        if self.add_result is not None:
            return self.add_result
        item_id = f"I{self._next_id}"
        self._next_id += 1
        self.wishlists.setdefault(customer_id, []).append(
            {"id": item_id, "productId": product_id, "variantId": variant_id}
        )
        return MutationResult(success=True, item_id=item_id)

    async def remove_item(self, wishlist_item_id):
        self.calls.append(("remove", wishlist_item_id))
        if self.remove_result is not None:
            return self.remove_result
        for rows in self.wishlists.values():
            rows[:] = [row for row in rows if row["id"] != wishlist_item_id]
        return MutationResult(success=True)

    async def merge_guest_items(self, customer_id, guest_items):
        self.calls.append(("merge", customer_id, len(guest_items)))
        if self.merge_error:
            return None
        rows = self.wishlists.setdefault(customer_id, [])
        for entry in guest_items:
            if not any(r["productId"] == entry.product_id and r["variantId"] == entry.variant_id for r in rows):
                rows.append({
                    "id": f"I{self._next_id}",
                    "productId": entry.product_id,
                    "variantId": entry.variant_id,
                })
                self._next_id += 1
        return [WishlistItem.from_api(row) for row in rows]

    async def fetch_product(self, product_id, shop_domain):
        self.calls.append(("product", product_id))
        if self.fail_products:
            raise WishlistApiError("detail lookup failed")
        if self.product_error is not None:
            raise self.product_error
        return self.products.get(product_id)


def marker(kind, config, inner=""):
    """HTML for a widget marker carrying a JSON config attribute."""
    payload = config if isinstance(config, str) else json.dumps(config)
    return f'<div data-wishlist-{kind} data-wishlist-config="{html.escape(payload, quote=True)}">{inner}</div>'


PAGE_SLOTS = (
    '<p data-wishlist-loading>Loading wishlist...</p>'
    '<p data-wishlist-error hidden></p>'
    '<p data-wishlist-empty hidden>Your wishlist is empty.</p>'
    '<div data-wishlist-login hidden></div>'
    '<ul data-wishlist-list></ul>'
)


@pytest.fixture()
def fake_api():
    return FakeWishlistApi()


@pytest.fixture()
def guest_store(tmp_path):
    return GuestStore(db_path=str(tmp_path / "guest.sqlite3"))


@pytest.fixture()
def runtime(fake_api, guest_store):
    return WishlistRuntime(api_for=lambda base_url: fake_api, guest_store=guest_store)
